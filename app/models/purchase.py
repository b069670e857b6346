from datetime import datetime, timezone
from decimal import Decimal
import enum
import random

from sqlalchemy import (
    Column, Integer, String, Numeric, Text, DateTime, Enum, ForeignKey, CheckConstraint,
)
from sqlalchemy.orm import validates

from app.database import Base
from app.utils.money import to_money


class PurchaseStatus(str, enum.Enum):
    """Enum for purchase status. Purchases are created COMPLETED."""
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def generate_invoice_number(prefix: str = "FAC", now: datetime = None, rng: random.Random = None) -> str:
    """
    Build a human readable invoice number: ``<prefix>-<epoch millis>-<3 digits>``.

    Collisions are unlikely but possible under load; the unique constraint on
    ``purchases.invoice_number`` is the backstop and callers regenerate on conflict.
    """
    now = now or datetime.now(timezone.utc)
    rng = rng or random
    millis = int(now.timestamp() * 1000)
    return f"{prefix}-{millis}-{rng.randint(0, 999):03d}"


def compute_subtotal(quantity: int, unit_price) -> Decimal:
    """Line subtotal in exact two-place decimal arithmetic."""
    return to_money(to_money(unit_price) * quantity)


class Purchase(Base):
    """
    Purchase model, immutable once created.

    Attributes:
        id: Unique identifier for the purchase
        invoice_number: Unique human readable invoice number
        user_id: Buyer
        created_at: Timestamp when the purchase was made
        total: Sum of the item subtotals
        status: Purchase status
        notes: Free-text notes from the buyer
    """
    __tablename__ = "purchases"

    id = Column(Integer, primary_key=True, index=True)
    invoice_number = Column(String(50), nullable=False, unique=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), index=True
    )
    total = Column(Numeric(12, 2), nullable=False)
    status = Column(Enum(PurchaseStatus), default=PurchaseStatus.COMPLETED, nullable=False)
    notes = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint('total > 0', name='check_total_positive'),
    )

    def __repr__(self):
        return f"<Purchase(id={self.id}, invoice_number='{self.invoice_number}', total={self.total})>"


class PurchaseItem(Base):
    """
    Line of a purchase.

    ``product_name`` and ``lot_code`` are copies taken when the purchase was
    made, so later edits to the product never change an old invoice.
    ``subtotal`` follows ``quantity`` and ``unit_price`` on every assignment.
    """
    __tablename__ = "purchase_items"

    id = Column(Integer, primary_key=True, index=True)
    purchase_id = Column(Integer, ForeignKey("purchases.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False)
    product_name = Column(String(200), nullable=False)
    lot_code = Column(String(50), nullable=False)

    __table_args__ = (
        CheckConstraint('quantity > 0', name='check_item_quantity_positive'),
        CheckConstraint('unit_price > 0', name='check_item_price_positive'),
    )

    @validates("quantity", "unit_price")
    def _recompute_subtotal(self, key, value):
        if key == "unit_price" and value is not None:
            value = to_money(value)
        quantity = value if key == "quantity" else self.quantity
        unit_price = value if key == "unit_price" else self.unit_price
        if quantity is not None and unit_price is not None:
            self.subtotal = compute_subtotal(quantity, unit_price)
        return value

    def __repr__(self):
        return f"<PurchaseItem(id={self.id}, product_id={self.product_id}, quantity={self.quantity})>"
