from datetime import datetime
from decimal import Decimal
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional, List, Tuple, Dict
import math

from app.models.product import Product
from app.models.purchase import Purchase, PurchaseItem
from app.models.user import User
from app.schemas.purchase import (
    PurchaseAggregate,
    PurchaseItemResponse,
    ProductSummary,
    UserSummary,
)
from app.services.exceptions import DuplicateInvoiceError, PersistenceError
from app.utils.money import to_money


class PurchaseRepository:
    """
    Data access for purchases and their items.

    There are no ORM relationships between purchases, items, products and
    users; every cross-table read below is an explicit query.
    """

    def __init__(self, db: Session):
        self.db = db

    def create(self, purchase: Purchase) -> Purchase:
        """
        Insert a purchase and flush it so it gets an ID.

        Raises:
            DuplicateInvoiceError: If the invoice number is already taken
            PersistenceError: On any other constraint violation
        """
        self.db.add(purchase)
        try:
            self.db.flush()
        except IntegrityError as e:
            if "invoice_number" in str(e.orig):
                raise DuplicateInvoiceError(purchase.invoice_number) from e
            raise PersistenceError(f"Could not create purchase: {e.orig}") from e
        return purchase

    def add_item(self, item: PurchaseItem) -> PurchaseItem:
        self.db.add(item)
        try:
            self.db.flush()
        except IntegrityError as e:
            raise PersistenceError(f"Could not create purchase item: {e.orig}") from e
        return item

    def find_by_id(self, purchase_id: int, user_id: int = None) -> Optional[Purchase]:
        query = self.db.query(Purchase).filter(Purchase.id == purchase_id)
        if user_id is not None:
            query = query.filter(Purchase.user_id == user_id)
        return query.first()

    def find_items(self, purchase_ids: List[int]) -> Dict[int, List[PurchaseItem]]:
        """Items of several purchases, grouped by purchase ID."""
        grouped = {purchase_id: [] for purchase_id in purchase_ids}
        if not purchase_ids:
            return grouped
        items = (
            self.db.query(PurchaseItem)
            .filter(PurchaseItem.purchase_id.in_(purchase_ids))
            .order_by(PurchaseItem.id)
            .all()
        )
        for item in items:
            grouped[item.purchase_id].append(item)
        return grouped

    def get_aggregate(self, purchase_id: int, user_id: int = None) -> Optional[PurchaseAggregate]:
        """Load one purchase with items, product summaries and buyer."""
        purchase = self.find_by_id(purchase_id, user_id=user_id)
        if not purchase:
            return None
        return self.build_aggregates([purchase])[0]

    def build_aggregates(self, purchases: List[Purchase]) -> List[PurchaseAggregate]:
        purchase_ids = [p.id for p in purchases]
        items_by_purchase = self.find_items(purchase_ids)

        product_ids = {item.product_id for items in items_by_purchase.values() for item in items}
        products = {}
        if product_ids:
            products = {
                p.id: p for p in self.db.query(Product).filter(Product.id.in_(product_ids)).all()
            }

        user_ids = {p.user_id for p in purchases}
        users = {}
        if user_ids:
            users = {u.id: u for u in self.db.query(User).filter(User.id.in_(user_ids)).all()}

        aggregates = []
        for purchase in purchases:
            items = [
                PurchaseItemResponse(
                    product_id=item.product_id,
                    product_name=item.product_name,
                    lot_code=item.lot_code,
                    quantity=item.quantity,
                    unit_price=to_money(item.unit_price),
                    subtotal=to_money(item.subtotal),
                    product=(
                        ProductSummary.model_validate(products[item.product_id])
                        if item.product_id in products else None
                    ),
                )
                for item in items_by_purchase[purchase.id]
            ]
            user = users.get(purchase.user_id)
            aggregates.append(
                PurchaseAggregate(
                    id=purchase.id,
                    invoice_number=purchase.invoice_number,
                    user_id=purchase.user_id,
                    created_at=purchase.created_at,
                    total=to_money(purchase.total),
                    status=purchase.status,
                    notes=purchase.notes,
                    items=items,
                    user=UserSummary.model_validate(user) if user else None,
                )
            )
        return aggregates

    def _filtered(
        self,
        user_id: int = None,
        search: str = None,
        date_from: datetime = None,
        date_to: datetime = None,
    ):
        query = self.db.query(Purchase)
        if user_id is not None:
            query = query.filter(Purchase.user_id == user_id)
        if search:
            pattern = f"%{search}%"
            query = query.join(User, User.id == Purchase.user_id).filter(
                or_(User.name.ilike(pattern), User.email.ilike(pattern))
            )
        if date_from:
            query = query.filter(Purchase.created_at >= date_from)
        if date_to:
            query = query.filter(Purchase.created_at <= date_to)
        return query

    def find_and_count(
        self,
        page: int = 1,
        page_size: int = 10,
        user_id: int = None,
        search: str = None,
        date_from: datetime = None,
        date_to: datetime = None,
    ) -> Tuple[List[Purchase], int, int]:
        """
        Get paginated list of purchases, newest first.

        Returns:
            Tuple of (purchases list, total count, total pages)
        """
        query = self._filtered(user_id, search, date_from, date_to)

        total = query.count()
        total_pages = math.ceil(total / page_size) if total > 0 else 1

        offset = (page - 1) * page_size
        purchases = (
            query.order_by(Purchase.created_at.desc(), Purchase.id.desc())
            .offset(offset)
            .limit(page_size)
            .all()
        )
        return purchases, total, total_pages

    def total_sales(
        self,
        user_id: int = None,
        search: str = None,
        date_from: datetime = None,
        date_to: datetime = None,
    ) -> Decimal:
        query = self._filtered(user_id, search, date_from, date_to)
        total = query.with_entities(func.sum(Purchase.total)).scalar()
        return to_money(total or 0)
