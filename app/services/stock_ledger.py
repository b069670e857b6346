from sqlalchemy import func, update
from sqlalchemy.orm import Session
import logging

from app.models.product import Product
from app.services.exceptions import InsufficientStockError, ValidationError

logger = logging.getLogger(__name__)


class StockLedger:
    """
    Guards the stock of a single product row.

    Must run inside the caller's transaction. Decrements are written as a
    conditional UPDATE (compare-and-swap on available_quantity), so even a
    product loaded without a row lock can never be driven below zero: if a
    concurrent purchase got there first, zero rows match and the decrement
    fails instead of overwriting the other transaction's result.
    """

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def has_stock(product: Product, quantity: int) -> bool:
        return quantity > 0 and product.available_quantity >= quantity

    def decrement(self, product: Product, quantity: int) -> Product:
        """
        Take ``quantity`` units out of stock.

        Raises:
            InsufficientStockError: If the product can't cover the quantity,
                either as loaded or as currently stored
        """
        if not self.has_stock(product, quantity):
            raise InsufficientStockError(product.id, product.available_quantity, quantity)

        result = self.db.execute(
            update(Product)
            .where(Product.id == product.id, Product.available_quantity >= quantity)
            .values(available_quantity=Product.available_quantity - quantity, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            # Someone else consumed the stock since we read it
            self.db.refresh(product, attribute_names=["available_quantity"])
            logger.warning(
                f"Stock for product #{product.id} changed concurrently "
                f"(available {product.available_quantity}, requested {quantity})"
            )
            raise InsufficientStockError(product.id, product.available_quantity, quantity)

        self.db.refresh(product, attribute_names=["available_quantity"])
        return product

    def increment(self, product: Product, quantity: int) -> Product:
        """Return ``quantity`` units to stock (returns and cancellations)."""
        if quantity <= 0:
            raise ValidationError(
                "Quantity to return must be positive",
                {"product_id": product.id, "quantity": quantity},
            )

        self.db.execute(
            update(Product)
            .where(Product.id == product.id)
            .values(available_quantity=Product.available_quantity + quantity, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        self.db.refresh(product, attribute_names=["available_quantity"])
        return product
