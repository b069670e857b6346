from datetime import datetime
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from app.api.deps import require_admin, require_client
from app.database import get_db
from app.models.user import User
from app.services.purchase_orchestrator import PurchaseOrchestrator
from app.services.purchase_service import PurchaseService
from app.schemas.purchase import (
    PurchaseCreate,
    PurchaseAggregate,
    PurchaseListResponse,
    AdminPurchaseListResponse,
)
from app.tasks.purchase_tasks import send_purchase_receipt

router = APIRouter(prefix="/purchases", tags=["Purchases"])


@router.post(
    "/",
    response_model=PurchaseAggregate,
    status_code=status.HTTP_201_CREATED,
    summary="Purchase a cart",
    description="""
    Buy every line of the cart in a single transaction.

    **Stock Handling:**
    Product rows are locked while the purchase is built and every decrement
    is conditional, so stock can never be oversold. If any line fails, nothing
    is written:
    - 404 when a product doesn't exist or has been retired
    - 409 when a line asks for more than is available
    - 422 when the cart is empty

    After the purchase is committed, a background Celery task sends the receipt.
    """
)
def create_purchase(
    purchase_data: PurchaseCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_client)
):
    """
    Create a purchase.

    - **items**: List of `{product_id, quantity}` lines (required, non-empty)
    - **notes**: Free-text notes (optional)
    """
    orchestrator = PurchaseOrchestrator(db)
    purchase = orchestrator.create_purchase(user.id, purchase_data.items, purchase_data.notes)

    send_purchase_receipt.delay(purchase.id)

    return purchase


@router.get(
    "/mine",
    response_model=PurchaseListResponse,
    summary="My purchases",
    description="Paginated purchase history of the authenticated client."
)
def list_my_purchases(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(10, ge=1, le=100, description="Items per page"),
    db: Session = Depends(get_db),
    user: User = Depends(require_client)
):
    service = PurchaseService(db)
    purchases, total, total_pages = service.get_user_purchases(user.id, page, page_size)

    return PurchaseListResponse(
        items=purchases,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages
    )


@router.get(
    "/admin/all",
    response_model=AdminPurchaseListResponse,
    summary="List all purchases",
    description="Paginated list of all purchases with date range, buyer search and sales totals."
)
def list_all_purchases(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(10, ge=1, le=100, description="Items per page"),
    search: Optional[str] = Query(None, description="Search by buyer name or email"),
    date_from: Optional[datetime] = Query(None, description="Purchases made at or after"),
    date_to: Optional[datetime] = Query(None, description="Purchases made at or before"),
    db: Session = Depends(get_db),
    _admin=Depends(require_admin)
):
    """Get paginated list of purchases for administrators."""
    service = PurchaseService(db)
    purchases, total, total_pages, statistics = service.get_all(
        page, page_size, search, date_from, date_to
    )

    return AdminPurchaseListResponse(
        items=purchases,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages,
        statistics=statistics
    )


@router.get(
    "/{purchase_id}/invoice",
    response_model=PurchaseAggregate,
    summary="Get invoice",
    description="Invoice of one of the authenticated client's purchases."
)
def get_invoice(
    purchase_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_client)
):
    """Get an invoice by purchase ID. Other users' purchases are reported as not found."""
    service = PurchaseService(db)
    return service.get_invoice(purchase_id, user_id=user.id)
