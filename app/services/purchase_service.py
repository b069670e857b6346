from datetime import datetime
from sqlalchemy.orm import Session
from typing import List, Tuple

from app.repositories.purchase_repository import PurchaseRepository
from app.schemas.purchase import PurchaseAggregate, PurchaseStatistics
from app.services.exceptions import PurchaseNotFoundError


class PurchaseService:
    """Read side of purchases: history, invoices and the admin overview."""

    def __init__(self, db: Session):
        self.db = db
        self.repository = PurchaseRepository(db)

    def get_invoice(self, purchase_id: int, user_id: int = None) -> PurchaseAggregate:
        """
        Get one purchase with its items.

        When ``user_id`` is given, purchases of other users are reported as
        not found.
        """
        aggregate = self.repository.get_aggregate(purchase_id, user_id=user_id)
        if aggregate is None:
            raise PurchaseNotFoundError(purchase_id)
        return aggregate

    def get_user_purchases(
        self, user_id: int, page: int = 1, page_size: int = 10
    ) -> Tuple[List[PurchaseAggregate], int, int]:
        purchases, total, total_pages = self.repository.find_and_count(
            page=page, page_size=page_size, user_id=user_id
        )
        return self.repository.build_aggregates(purchases), total, total_pages

    def get_all(
        self,
        page: int = 1,
        page_size: int = 10,
        search: str = None,
        date_from: datetime = None,
        date_to: datetime = None,
    ) -> Tuple[List[PurchaseAggregate], int, int, PurchaseStatistics]:
        """
        Paginated list of all purchases for administrators.

        Args:
            search: Matched against the buyer's name and email
            date_from: Earliest purchase timestamp (inclusive)
            date_to: Latest purchase timestamp (inclusive)

        Returns:
            Tuple of (purchases, total count, total pages, sales statistics)
        """
        filters = {"search": search, "date_from": date_from, "date_to": date_to}
        purchases, total, total_pages = self.repository.find_and_count(
            page=page, page_size=page_size, **filters
        )
        statistics = PurchaseStatistics(
            total_sales=self.repository.total_sales(**filters),
            total_purchases=total,
        )
        return self.repository.build_aggregates(purchases), total, total_pages, statistics
