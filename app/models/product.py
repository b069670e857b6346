from sqlalchemy import Column, Integer, String, Numeric, Text, DateTime, Enum, CheckConstraint
from sqlalchemy.sql import func
import enum

from app.database import Base


class ProductStatus(str, enum.Enum):
    """Enum for product availability. Retired products are never sold."""
    ACTIVE = "active"
    RETIRED = "retired"


class Product(Base):
    """
    Product model representing items available for sale.

    Attributes:
        id: Unique identifier for the product
        lot_code: Business batch identifier, unique and printed on invoices
        name: Product name
        price: Unit price (must be positive)
        available_quantity: Units in stock (must be non-negative)
        ingested_at: When the lot entered the inventory
        description: Free-text description
        status: ACTIVE or RETIRED (soft delete)
        created_at: Timestamp when product was created
        updated_at: Timestamp when product was last updated
    """
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    lot_code = Column(String(50), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=False, index=True)
    price = Column(Numeric(10, 2), nullable=False)
    available_quantity = Column(Integer, nullable=False, default=0)
    ingested_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(Enum(ProductStatus), default=ProductStatus.ACTIVE, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Database-level constraints to ensure data integrity
    __table_args__ = (
        CheckConstraint('price > 0', name='check_price_positive'),
        CheckConstraint('available_quantity >= 0', name='check_quantity_non_negative'),
    )

    @property
    def is_purchasable(self) -> bool:
        return self.status == ProductStatus.ACTIVE

    def __repr__(self):
        return (
            f"<Product(id={self.id}, lot_code='{self.lot_code}', "
            f"available_quantity={self.available_quantity})>"
        )
