from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from decimal import Decimal
from typing import Optional

from app.models.purchase import PurchaseStatus


class PurchaseItemCreate(BaseModel):
    """One cart line."""
    product_id: int = Field(..., description="ID of the product to purchase")
    quantity: int = Field(..., ge=1, description="Units to purchase")


class PurchaseCreate(BaseModel):
    """Schema for creating a new purchase from a cart."""
    items: list[PurchaseItemCreate] = Field(..., min_length=1, description="Cart lines")
    notes: Optional[str] = Field(None, max_length=500)


class ProductSummary(BaseModel):
    """Current state of the product referenced by a purchase item."""
    id: int
    name: str
    lot_code: str

    model_config = ConfigDict(from_attributes=True)


class UserSummary(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class PurchaseItemResponse(BaseModel):
    """Purchase line with the name and lot code captured at purchase time."""
    product_id: int
    product_name: str
    lot_code: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    product: Optional[ProductSummary] = None

    model_config = ConfigDict(from_attributes=True)


class PurchaseAggregate(BaseModel):
    """A purchase with its items and buyer, as returned to callers."""
    id: int
    invoice_number: str
    user_id: int
    created_at: datetime
    total: Decimal
    status: PurchaseStatus
    notes: Optional[str] = None
    items: list[PurchaseItemResponse]
    user: Optional[UserSummary] = None

    model_config = ConfigDict(from_attributes=True)


class PurchaseListResponse(BaseModel):
    """Schema for paginated purchase list response."""
    items: list[PurchaseAggregate]
    total: int
    page: int
    page_size: int
    total_pages: int


class PurchaseStatistics(BaseModel):
    total_sales: Decimal
    total_purchases: int


class AdminPurchaseListResponse(PurchaseListResponse):
    statistics: PurchaseStatistics
