from celery import Celery

from retailer.config import get_settings

settings = get_settings()

celery_app = Celery(
    "retailer",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["retailer.tasks.analytics_tasks"]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    task_track_started=True,
    task_time_limit=120,
    task_soft_time_limit=90,

    worker_prefetch_multiplier=1,

    task_acks_late=True,
    task_reject_on_worker_lost=True,
)
