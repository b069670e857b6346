from sqlalchemy.orm import Session
from typing import Optional, List
import logging

from app.database import transaction_scope
from app.models.product import Product, ProductStatus
from app.repositories.product_repository import ProductRepository
from app.schemas.product import ProductCreate, ProductUpdate
from app.services.exceptions import DuplicateLotCodeError, LotCodeLockedError
from app.utils.cache import cache_service
from app.utils.money import to_money

logger = logging.getLogger(__name__)


class ProductService:
    """
    Service class for Product administration.

    This service handles:
    - Creating new products (lot codes are unique)
    - Reading products (with caching)
    - Listing for administrators and the client catalog
    - Updating products
    - Retiring products (soft delete, purchase history keeps referencing them)
    - Cache invalidation
    """

    CACHE_PREFIX = "product"

    def __init__(self, db: Session):
        self.db = db
        self.repository = ProductRepository(db)

    def create(self, product_data: ProductCreate) -> Product:
        """
        Create a new product.

        The lot code lookup is only a fast path; the unique constraint on
        ``products.lot_code`` reports the same DuplicateLotCodeError when two
        admins race on the same code.

        Raises:
            DuplicateLotCodeError: If the lot code is already in use
        """
        if self.repository.find_by_lot_code(product_data.lot_code):
            raise DuplicateLotCodeError(product_data.lot_code)

        product = Product(
            lot_code=product_data.lot_code,
            name=product_data.name,
            price=to_money(product_data.price),
            available_quantity=product_data.available_quantity,
            description=product_data.description,
            status=ProductStatus.ACTIVE,
        )
        if product_data.ingested_at:
            product.ingested_at = product_data.ingested_at

        with transaction_scope(self.db):
            self.repository.create(product)
        self.db.refresh(product)

        logger.info(f"Product #{product.id} ({product.lot_code}) created")
        return product

    def get_by_id(self, product_id: int) -> Optional[Product]:
        """
        Get a product by ID and refresh its cache entry.

        Args:
            product_id: Product ID to look up

        Returns:
            Product instance or None if not found
        """
        product = self.repository.find_by_id(product_id)
        if product:
            self._cache_product(product)
        return product

    def get_by_id_cached(self, product_id: int) -> Optional[dict]:
        """
        Get product details from cache or database.
        Returns a dictionary (suitable for API response).
        """
        cached = cache_service.get(self.CACHE_PREFIX, str(product_id))
        if cached:
            return cached

        product = self.repository.find_by_id(product_id)
        if product:
            return self._cache_product(product)
        return None

    def get_all(
        self,
        page: int = 1,
        page_size: int = 10,
        search: str = None,
        status: ProductStatus = None,
        sort_by: str = "ingested_at",
        descending: bool = True,
    ) -> tuple[List[Product], int, int]:
        """Paginated list of every product, for administrators."""
        return self.repository.find_and_count(
            page=page,
            page_size=page_size,
            search=search,
            status=status,
            sort_by=sort_by,
            descending=descending,
        )

    def get_catalog(
        self,
        page: int = 1,
        page_size: int = 10,
        search: str = None,
    ) -> tuple[List[Product], int, int]:
        """Paginated list of active, in-stock products for clients, by name."""
        return self.repository.find_and_count(
            page=page,
            page_size=page_size,
            search=search,
            status=ProductStatus.ACTIVE,
            in_stock_only=True,
            sort_by="name",
            descending=False,
        )

    def update(self, product_id: int, product_data: ProductUpdate) -> Optional[Product]:
        """
        Update an existing product.

        Past purchase items keep their own copy of name, lot code and price,
        so edits here never change an issued invoice. The lot code itself is
        frozen once any purchase item references the product.

        Returns:
            Updated product or None if not found

        Raises:
            DuplicateLotCodeError: If the new lot code belongs to another product
            LotCodeLockedError: If the lot code changes on a product already purchased
        """
        product = self.repository.find_by_id(product_id)
        if not product:
            return None

        update_data = product_data.model_dump(exclude_unset=True)
        new_lot_code = update_data.get("lot_code")
        if new_lot_code and new_lot_code != product.lot_code:
            if self.repository.is_referenced(product.id):
                raise LotCodeLockedError(product.id, product.lot_code)
            existing = self.repository.find_by_lot_code(new_lot_code)
            if existing and existing.id != product.id:
                raise DuplicateLotCodeError(new_lot_code)

        with transaction_scope(self.db):
            for field, value in update_data.items():
                if value is None:
                    continue
                if field == "price":
                    value = to_money(value)
                setattr(product, field, value)
            self.repository.save(product)
        self.db.refresh(product)

        self._invalidate_cache(product_id)
        logger.info(f"Product #{product_id} updated: {sorted(update_data)}")
        return product

    def retire(self, product_id: int) -> bool:
        """
        Soft-delete a product by marking it RETIRED.

        Returns:
            True if retired, False if not found
        """
        product = self.repository.find_by_id(product_id)
        if not product:
            return False

        with transaction_scope(self.db):
            product.status = ProductStatus.RETIRED
            self.repository.save(product)

        self._invalidate_cache(product_id)
        logger.info(f"Product #{product_id} retired")
        return True

    def _cache_product(self, product: Product) -> dict:
        """Cache a product instance."""
        product_dict = {
            "id": product.id,
            "lot_code": product.lot_code,
            "name": product.name,
            "price": str(product.price),
            "available_quantity": product.available_quantity,
            "description": product.description,
            "status": product.status.value,
            "ingested_at": str(product.ingested_at),
            "updated_at": str(product.updated_at),
        }
        cache_service.set(self.CACHE_PREFIX, str(product.id), product_dict)
        return product_dict

    def _invalidate_cache(self, product_id: int) -> None:
        """Invalidate cache for a product."""
        cache_service.delete(self.CACHE_PREFIX, str(product_id))
