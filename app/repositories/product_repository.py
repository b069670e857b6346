from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional, List, Tuple, Dict
import math

from app.models.product import Product, ProductStatus
from app.models.purchase import PurchaseItem
from app.services.exceptions import DuplicateLotCodeError, PersistenceError

SORTABLE_FIELDS = {
    "ingested_at": Product.ingested_at,
    "name": Product.name,
    "price": Product.price,
    "available_quantity": Product.available_quantity,
    "id": Product.id,
}


class ProductRepository:
    """
    Data access for products.

    Writes only flush; committing belongs to whoever owns the transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, product_id: int, for_update: bool = False) -> Optional[Product]:
        """
        Load a product by ID.

        With ``for_update`` the row is locked (SELECT ... FOR UPDATE) until
        the surrounding transaction ends.
        """
        query = self.db.query(Product).filter(Product.id == product_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def find_by_lot_code(self, lot_code: str) -> Optional[Product]:
        return self.db.query(Product).filter(Product.lot_code == lot_code).first()

    def lock_many(self, product_ids: List[int]) -> Dict[int, Product]:
        """
        Load and lock several products at once, in ascending ID order.

        Every checkout takes its row locks in the same order, so two carts
        holding the same products in different orders queue behind each
        other instead of deadlocking.
        """
        ids = sorted(set(product_ids))
        if not ids:
            return {}
        products = (
            self.db.query(Product)
            .filter(Product.id.in_(ids))
            .order_by(Product.id)
            .with_for_update()
            .all()
        )
        return {product.id: product for product in products}

    def is_referenced(self, product_id: int) -> bool:
        """True once any purchase item points at the product."""
        query = self.db.query(PurchaseItem.id).filter(PurchaseItem.product_id == product_id)
        return bool(self.db.query(query.exists()).scalar())

    def create(self, product: Product) -> Product:
        self.db.add(product)
        self.save(product)
        return product

    def save(self, product: Product) -> Product:
        """Flush pending changes, translating constraint violations."""
        try:
            self.db.flush()
        except IntegrityError as e:
            if "lot_code" in str(e.orig):
                raise DuplicateLotCodeError(product.lot_code) from e
            raise PersistenceError(f"Could not save product: {e.orig}") from e
        return product

    def find_and_count(
        self,
        page: int = 1,
        page_size: int = 10,
        search: str = None,
        status: ProductStatus = None,
        in_stock_only: bool = False,
        sort_by: str = "ingested_at",
        descending: bool = True,
    ) -> Tuple[List[Product], int, int]:
        """
        Get paginated list of products.

        Args:
            page: Page number (1-indexed)
            page_size: Number of items per page
            search: Optional search term matched against name and lot code
            status: Filter by product status
            in_stock_only: Only products with available_quantity > 0
            sort_by: One of SORTABLE_FIELDS
            descending: Sort direction

        Returns:
            Tuple of (products list, total count, total pages)
        """
        query = self.db.query(Product)

        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Product.name.ilike(pattern), Product.lot_code.ilike(pattern)))
        if status:
            query = query.filter(Product.status == status)
        if in_stock_only:
            query = query.filter(Product.available_quantity > 0)

        total = query.count()
        total_pages = math.ceil(total / page_size) if total > 0 else 1

        column = SORTABLE_FIELDS.get(sort_by, Product.ingested_at)
        order = column.desc() if descending else column.asc()
        offset = (page - 1) * page_size
        products = query.order_by(order, Product.id.desc()).offset(offset).limit(page_size).all()

        return products, total, total_pages
