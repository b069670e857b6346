from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from app.api.deps import require_admin, require_client
from app.database import get_db
from app.models.product import ProductStatus
from app.services.product_service import ProductService
from app.schemas.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
    ProductListResponse,
    CatalogProductResponse,
    CatalogListResponse,
)

router = APIRouter(prefix="/products", tags=["Products"])


@router.get(
    "/catalog",
    response_model=CatalogListResponse,
    summary="Browse the catalog",
    description="Active products with stock, sorted by name. Clients only."
)
def get_catalog(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(10, ge=1, le=100, description="Items per page"),
    search: Optional[str] = Query(None, description="Search by product name or lot code"),
    db: Session = Depends(get_db),
    _client=Depends(require_client)
):
    """Get the purchasable products."""
    service = ProductService(db)
    products, total, total_pages = service.get_catalog(page, page_size, search)

    return CatalogListResponse(
        items=[CatalogProductResponse.model_validate(p) for p in products],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages
    )


@router.post(
    "/",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new product",
    description="Create a new product with lot code, name, price and initial stock."
)
def create_product(
    product_data: ProductCreate,
    db: Session = Depends(get_db),
    _admin=Depends(require_admin)
):
    """
    Create a new product.

    - **lot_code**: Unique lot code (required)
    - **name**: Product name (required)
    - **price**: Unit price, must be positive (required)
    - **available_quantity**: Initial stock, must be non-negative (required)
    """
    service = ProductService(db)
    return service.create(product_data)


@router.get(
    "/",
    response_model=ProductListResponse,
    summary="List all products",
    description="Get a paginated list of all products, including retired ones."
)
def list_products(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(10, ge=1, le=100, description="Items per page"),
    search: Optional[str] = Query(None, description="Search by product name or lot code"),
    status: Optional[ProductStatus] = Query(None, description="Filter by product status"),
    sort_by: str = Query("ingested_at", description="Sort field"),
    descending: bool = Query(True, description="Sort newest/highest first"),
    db: Session = Depends(get_db),
    _admin=Depends(require_admin)
):
    """Get paginated list of products."""
    service = ProductService(db)
    products, total, total_pages = service.get_all(
        page, page_size, search, status, sort_by, descending
    )

    return ProductListResponse(
        items=[ProductResponse.model_validate(p) for p in products],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages
    )


@router.get(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Get product by ID",
    description="Get detailed information about a specific product."
)
def get_product(
    product_id: int,
    db: Session = Depends(get_db),
    _admin=Depends(require_admin)
):
    """Get a product by ID."""
    service = ProductService(db)
    product = service.get_by_id(product_id)

    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Product with ID {product_id} not found"
        )

    return product


@router.get(
    "/{product_id}/cached",
    summary="Get product from cache",
    description="Get product details from Redis cache (or database if not cached)."
)
def get_product_cached(
    product_id: int,
    db: Session = Depends(get_db),
    _admin=Depends(require_admin)
):
    """Get product from cache."""
    service = ProductService(db)
    product_data = service.get_by_id_cached(product_id)

    if not product_data:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Product with ID {product_id} not found"
        )

    return product_data


@router.put(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Update a product",
    description="Update product details. Only provided fields will be updated."
)
def update_product(
    product_id: int,
    product_data: ProductUpdate,
    db: Session = Depends(get_db),
    _admin=Depends(require_admin)
):
    """
    Update a product.

    Partial updates are supported - only include fields you want to change.
    Issued invoices keep the name and price they were created with.
    """
    service = ProductService(db)
    product = service.update(product_id, product_data)

    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Product with ID {product_id} not found"
        )

    return product


@router.delete(
    "/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Retire a product",
    description="Mark a product as retired. It stays in purchase history but can no longer be sold."
)
def retire_product(
    product_id: int,
    db: Session = Depends(get_db),
    _admin=Depends(require_admin)
):
    """Retire a product."""
    service = ProductService(db)
    retired = service.retire(product_id)

    if not retired:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Product with ID {product_id} not found"
        )

    return None
