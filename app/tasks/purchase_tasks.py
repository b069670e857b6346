import logging

from app.tasks.celery_app import celery_app
from app.database import SessionLocal
from app.repositories.purchase_repository import PurchaseRepository

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name="send_purchase_receipt")
def send_purchase_receipt(self, purchase_id: int) -> dict:
    """
    Background task to send the receipt of a committed purchase.

    Runs after the purchase transaction has committed, so it reads the
    purchase in its own session. Delivery is logged; an email or webhook
    integration plugs in here.

    Args:
        purchase_id: ID of the purchase

    Returns:
        Dictionary with the dispatch result
    """
    logger.info(f"Preparing receipt for Purchase #{purchase_id}")

    db = SessionLocal()

    try:
        aggregate = PurchaseRepository(db).get_aggregate(purchase_id)

        if aggregate is None:
            logger.error(f"Purchase #{purchase_id} not found")
            return {"status": "failed", "error": "Purchase not found"}

        recipient = aggregate.user.email if aggregate.user else None
        lines = len(aggregate.items)
        logger.info(
            f"Receipt {aggregate.invoice_number} sent to {recipient}: "
            f"{lines} line(s), total {aggregate.total}"
        )

        return {
            "status": "sent",
            "purchase_id": purchase_id,
            "invoice_number": aggregate.invoice_number,
            "email": recipient,
        }

    except Exception as e:
        logger.error(f"Error sending receipt for Purchase #{purchase_id}: {e}")
        raise self.retry(exc=e, countdown=60, max_retries=3)

    finally:
        db.close()
