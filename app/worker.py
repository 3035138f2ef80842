"""Celery worker configuration.

Background work for the booking engine:
- Completing confirmed stays once their checkout date has passed
"""

from celery import Celery
from celery.schedules import crontab

from app.config import settings

# Create Celery app
celery_app = Celery(
    "stayline_tasks",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["app.tasks"],
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=300,  # 5 minutes max
    task_soft_time_limit=240,  # Soft limit at 4 minutes

    # Worker settings
    worker_prefetch_multiplier=1,

    # Result backend settings
    result_expires=3600,  # Results expire after 1 hour

    # Retry settings
    task_default_retry_delay=60,  # 1 minute

    # Beat schedule for periodic tasks
    beat_schedule={
        # Complete finished stays once a day
        "complete-finished-bookings": {
            "task": "app.tasks.complete_finished_bookings",
            "schedule": crontab(hour=settings.completion_job_hour, minute=0),
        },
    },
)


if __name__ == "__main__":
    celery_app.start()
