from dataclasses import dataclass
from decimal import Decimal
from functools import partial
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Callable, Iterable, List, Optional, Tuple
import logging

from app.config import get_settings
from app.database import transaction_scope
from app.models.purchase import Purchase, PurchaseItem, PurchaseStatus, generate_invoice_number
from app.repositories.product_repository import ProductRepository
from app.repositories.purchase_repository import PurchaseRepository
from app.schemas.purchase import PurchaseAggregate
from app.services.exceptions import (
    DuplicateInvoiceError,
    EmptyCartError,
    InsufficientStockError,
    PersistenceError,
    ProductInactiveError,
    ProductNotFoundError,
    ValidationError,
)
from app.services.stock_ledger import StockLedger
from app.utils.cache import cache_service
from app.utils.money import to_money

logger = logging.getLogger(__name__)

settings = get_settings()


@dataclass(frozen=True)
class CartLine:
    product_id: int
    quantity: int


class PurchaseOrchestrator:
    """
    Turns a cart into a purchase as a single unit of work.

    STOCK CONSISTENCY STRATEGY:
    ===========================
    Every product row in the cart is read with SELECT ... FOR UPDATE, so on
    PostgreSQL a concurrent purchase of the same product waits until we
    commit or roll back and then sees the decremented stock. Rows are locked
    in one statement ordered by product ID, whatever the cart order, so carts
    [A, B] and [B, A] can't deadlock each other. The decrement itself is a
    conditional UPDATE (see StockLedger), which keeps the no-overselling
    guarantee on engines that ignore row locks.

    Items are written before the matching stock decrement, and all writes
    share one transaction: any error rolls back the purchase, its items and
    every decrement already applied.

    Invoice numbers are generated here, not by the database. A collision on
    the unique constraint rolls the attempt back and the whole cart is
    retried with a fresh number, up to INVOICE_RETRY_LIMIT attempts.
    """

    def __init__(
        self,
        db: Session,
        invoice_number_factory: Callable[[], str] = None,
        max_attempts: int = None,
    ):
        self.db = db
        self.products = ProductRepository(db)
        self.purchases = PurchaseRepository(db)
        self.ledger = StockLedger(db)
        self.invoice_number_factory = invoice_number_factory or partial(
            generate_invoice_number, settings.INVOICE_PREFIX
        )
        self.max_attempts = max_attempts or settings.INVOICE_RETRY_LIMIT

    def create_purchase(
        self,
        user_id: int,
        cart_items: Iterable,
        notes: Optional[str] = None,
    ) -> PurchaseAggregate:
        """
        Create a purchase from a cart.

        Args:
            user_id: Already authenticated buyer
            cart_items: Lines as CartLine, objects with product_id/quantity
                attributes, or mappings with those keys
            notes: Optional free-text notes

        Returns:
            The committed purchase with items, product summaries and buyer

        Raises:
            EmptyCartError: If the cart has no lines
            ProductNotFoundError: If a product doesn't exist
            ProductInactiveError: If a product has been retired
            InsufficientStockError: If a line asks for more than is available
            PersistenceError: If storage fails or invoice retries run out
        """
        lines = [self._as_cart_line(line) for line in (cart_items or [])]
        if not lines:
            raise EmptyCartError()

        for attempt in range(1, self.max_attempts + 1):
            invoice_number = self.invoice_number_factory()
            try:
                purchase_id, product_ids = self._create_once(user_id, lines, notes, invoice_number)
                break
            except DuplicateInvoiceError:
                logger.warning(
                    f"Invoice number {invoice_number} already taken "
                    f"(attempt {attempt}/{self.max_attempts}), regenerating"
                )
        else:
            logger.error(f"Could not allocate a unique invoice number after {self.max_attempts} attempts")
            raise PersistenceError(
                "Could not allocate a unique invoice number",
                {"attempts": self.max_attempts},
            )

        # Stock changed, cached product details are stale now
        cache_service.delete_many("product", [str(product_id) for product_id in set(product_ids)])

        aggregate = self.purchases.get_aggregate(purchase_id)
        logger.info(
            f"Purchase #{purchase_id} ({aggregate.invoice_number}) created for user #{user_id}, "
            f"total {aggregate.total}"
        )
        return aggregate

    def _create_once(
        self,
        user_id: int,
        lines: List[CartLine],
        notes: Optional[str],
        invoice_number: str,
    ) -> Tuple[int, List[int]]:
        """One transactional attempt. Returns the purchase ID and touched product IDs."""
        try:
            with transaction_scope(self.db):
                drafts = []
                total = Decimal("0.00")

                locked = self.products.lock_many([line.product_id for line in lines])

                for line in lines:
                    product = locked.get(line.product_id)
                    if product is None:
                        raise ProductNotFoundError(line.product_id)
                    if not product.is_purchasable:
                        raise ProductInactiveError(line.product_id)
                    if not self.ledger.has_stock(product, line.quantity):
                        raise InsufficientStockError(
                            product.id, product.available_quantity, line.quantity
                        )

                    item = PurchaseItem(
                        product_id=product.id,
                        quantity=line.quantity,
                        unit_price=product.price,
                        product_name=product.name,
                        lot_code=product.lot_code,
                    )
                    total += item.subtotal
                    drafts.append((item, product))

                purchase = self.purchases.create(
                    Purchase(
                        invoice_number=invoice_number,
                        user_id=user_id,
                        total=to_money(total),
                        status=PurchaseStatus.COMPLETED,
                        notes=notes,
                    )
                )

                for item, product in drafts:
                    item.purchase_id = purchase.id
                    self.purchases.add_item(item)
                    self.ledger.decrement(product, item.quantity)

                purchase_id = purchase.id
        except (InsufficientStockError, ProductNotFoundError) as e:
            logger.warning(f"Purchase rejected for user #{user_id}: {e.message}")
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error creating purchase for user #{user_id}: {e}")
            raise PersistenceError(f"Could not create purchase: {e}") from e

        return purchase_id, [line.product_id for line in lines]

    @staticmethod
    def _as_cart_line(line) -> CartLine:
        if isinstance(line, CartLine):
            return line
        if isinstance(line, dict):
            product_id, quantity = line.get("product_id"), line.get("quantity")
        else:
            product_id = getattr(line, "product_id", None)
            quantity = getattr(line, "quantity", None)
        if not isinstance(product_id, int) or not isinstance(quantity, int):
            raise ValidationError(
                "Each cart line needs an integer product_id and quantity",
                {"line": repr(line)},
            )
        return CartLine(product_id=product_id, quantity=quantity)
