from celery import Celery

from app.config import get_settings

settings = get_settings()

celery_app = Celery(
    "inventory",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["app.tasks.purchase_tasks"]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Receipts go to their own queue so a mail outage never backs up other work
    task_routes={"send_purchase_receipt": {"queue": "receipts"}},
    task_default_queue="default",
    task_time_limit=120,
    task_soft_time_limit=90,

    # A receipt is only acknowledged once it was actually handed off
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    result_expires=86400,
)
