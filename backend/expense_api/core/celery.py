from celery import Celery
from expense_api.core.settings import get_settings

settings = get_settings()

celery_app = Celery(
    "expense_api",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["expense_api.tasks.notification_tasks"]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    result_expires=3600,
    task_ignore_result=True,
    broker_connection_timeout=2,
)
