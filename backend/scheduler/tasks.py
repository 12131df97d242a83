from typing import Any

from celery.signals import worker_ready

from notifications.email_sender import check_email_configuration
from notifications.exceptions import (
    RecipientFetchError,
    RunInProgressError,
    RunLockError,
)
from notifications.process_notifications import run_notification_job
from scheduler.celery_app import NOTIFICATION_HOUR, NOTIFICATION_MINUTE, celery_app


@worker_ready.connect
def announce_schedule(**kwargs: Any) -> None:
    print(
        f"Initializing scheduler: running notification job daily at "
        f"{NOTIFICATION_HOUR:02d}:{NOTIFICATION_MINUTE:02d} "
        f"({celery_app.conf.timezone})"
    )
    check_email_configuration()


@celery_app.task(name="scheduler.tasks.send_daily_notifications")
def send_daily_notifications() -> dict[str, Any]:
    """Scheduled notification run. Failed deliveries are not retried."""
    try:
        outcome = run_notification_job()
    except RunInProgressError as e:
        return {"status": "skipped", "error": str(e)}
    except (RecipientFetchError, RunLockError) as e:
        return {"status": "aborted", "error": str(e)}

    return {"status": "completed", **outcome.model_dump(mode="json")}
