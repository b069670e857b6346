from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from decimal import Decimal
from typing import Optional

from app.models.product import ProductStatus


class ProductBase(BaseModel):
    """Base schema for Product with common attributes."""
    lot_code: str = Field(..., min_length=1, max_length=50, description="Unique lot code")
    name: str = Field(..., min_length=2, max_length=200, description="Product name")
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2, description="Unit price (must be positive)")
    available_quantity: int = Field(..., ge=0, description="Available stock (must be non-negative)")
    description: Optional[str] = Field(None, max_length=1000)


class ProductCreate(ProductBase):
    """Schema for creating a new product."""
    ingested_at: Optional[datetime] = Field(None, description="Defaults to now")


class ProductUpdate(BaseModel):
    """Schema for updating an existing product. All fields are optional."""
    lot_code: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=2, max_length=200)
    price: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    available_quantity: Optional[int] = Field(None, ge=0)
    ingested_at: Optional[datetime] = None
    description: Optional[str] = Field(None, max_length=1000)
    status: Optional[ProductStatus] = None


class ProductResponse(ProductBase):
    """Schema for product response including all fields."""
    id: int
    status: ProductStatus
    ingested_at: datetime
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CatalogProductResponse(BaseModel):
    """Reduced product view shown to clients."""
    id: int
    lot_code: str
    name: str
    price: Decimal
    available_quantity: int
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ProductListResponse(BaseModel):
    """Schema for paginated product list response."""
    items: list[ProductResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class CatalogListResponse(BaseModel):
    items: list[CatalogProductResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
