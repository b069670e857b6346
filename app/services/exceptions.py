"""Domain errors raised by the inventory and purchase services.

Every error carries a stable ``code`` and an HTTP ``status_code`` so the API
layer can render it without knowing the concrete type.
"""
from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base class for all domain errors."""

    code = "DOMAIN_ERROR"
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "code": self.code, "details": self.details}


class ValidationError(DomainError):
    """Malformed input rejected before any state is touched."""

    code = "VALIDATION_ERROR"
    status_code = 422


class EmptyCartError(DomainError):
    code = "EMPTY_CART"
    status_code = 422

    def __init__(self):
        super().__init__("Cart must contain at least one item")


class ProductNotFoundError(DomainError):
    """Raised when the requested product doesn't exist."""

    code = "PRODUCT_NOT_FOUND"
    status_code = 404

    def __init__(self, product_id: int, message: Optional[str] = None):
        super().__init__(
            message or f"Product with ID {product_id} not found",
            {"product_id": product_id},
        )
        self.product_id = product_id


class ProductInactiveError(ProductNotFoundError):
    """Raised when the product exists but has been retired from sale."""

    code = "PRODUCT_INACTIVE"

    def __init__(self, product_id: int):
        super().__init__(product_id, f"Product with ID {product_id} is not available")


class InsufficientStockError(DomainError):
    """Raised when there's not enough stock to fulfill a line."""

    code = "INSUFFICIENT_STOCK"
    status_code = 409

    def __init__(self, product_id: int, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for product {product_id}. "
            f"Available: {available}, Requested: {requested}",
            {"product_id": product_id, "available": available, "requested": requested},
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class DuplicateLotCodeError(DomainError):
    code = "DUPLICATE_LOT_CODE"
    status_code = 409

    def __init__(self, lot_code: str):
        super().__init__(f"Lot code {lot_code} already exists", {"lot_code": lot_code})
        self.lot_code = lot_code


class DuplicateInvoiceError(DomainError):
    """Storage rejected an invoice number that is already taken."""

    code = "DUPLICATE_INVOICE"
    status_code = 409

    def __init__(self, invoice_number: str):
        super().__init__(
            f"Invoice number {invoice_number} already exists",
            {"invoice_number": invoice_number},
        )
        self.invoice_number = invoice_number


class PurchaseNotFoundError(DomainError):
    code = "PURCHASE_NOT_FOUND"
    status_code = 404

    def __init__(self, purchase_id: int):
        super().__init__(f"Purchase with ID {purchase_id} not found", {"purchase_id": purchase_id})
        self.purchase_id = purchase_id


class PersistenceError(DomainError):
    """Storage failure that cannot be recovered locally."""

    code = "PERSISTENCE_ERROR"
    status_code = 500


class LotCodeLockedError(DomainError):
    """Lot codes printed on issued invoices can't change."""

    code = "LOT_CODE_LOCKED"
    status_code = 409

    def __init__(self, product_id: int, lot_code: str):
        super().__init__(
            f"Lot code of product {product_id} is referenced by purchases and can't be changed",
            {"product_id": product_id, "lot_code": lot_code},
        )
        self.product_id = product_id
        self.lot_code = lot_code


class DuplicateEmailError(DomainError):
    code = "DUPLICATE_EMAIL"
    status_code = 409

    def __init__(self, email: str):
        super().__init__(f"Email {email} is already registered", {"email": email})
        self.email = email


class UserNotFoundError(DomainError):
    code = "USER_NOT_FOUND"
    status_code = 404

    def __init__(self, user_id: int):
        super().__init__(f"User with ID {user_id} not found", {"user_id": user_id})
        self.user_id = user_id
