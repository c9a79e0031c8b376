"""Celery application for background tasks."""

from celery import Celery

from .config import settings

# Create Celery app
celery_app = Celery(
    "chatline",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["chatline.tasks"]
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,  # 5 minutes max per task
    task_soft_time_limit=240,  # 4 minutes soft limit
    worker_prefetch_multiplier=4,
    broker_connection_retry_on_startup=True,
)

# Periodic tasks (Celery Beat schedule)
celery_app.conf.beat_schedule = {
    # Reclaim upload grants nobody confirmed
    "cleanup-expired-uploads": {
        "task": "chatline.tasks.cleanup_expired_uploads",
        "schedule": float(settings.UPLOAD_CLEANUP_INTERVAL_SECONDS),
    },
}

if __name__ == "__main__":
    celery_app.start()
