from celery import Celery
from celery.schedules import crontab

from shared.config import (
    CELERY_BROKER_URL,
    get_notification_timezone,
    get_schedule_time,
)

NOTIFICATION_HOUR, NOTIFICATION_MINUTE = get_schedule_time()

celery_app = Celery(
    "pharmacy_alerts",
    broker=CELERY_BROKER_URL,
    include=["scheduler.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=get_notification_timezone().key,
    enable_utc=True,
    # Run the job once a day (09:00 by default)
    beat_schedule={
        "send-daily-notifications": {
            "task": "scheduler.tasks.send_daily_notifications",
            "schedule": crontab(hour=NOTIFICATION_HOUR, minute=NOTIFICATION_MINUTE),
            "options": {"queue": "notifications"},
        },
    },
    task_routes={
        "scheduler.tasks.*": {"queue": "notifications"},
    },
    # One run at a time per worker; the Redis run lock covers other processes
    worker_concurrency=1,
    worker_prefetch_multiplier=1,
)
