"""
CLI script for running the alert notification job on demand.

Runs the same job the daily schedule runs.

Usage:
    # Evaluate alerts for every user and send emails
    uv run python -m notifications.process_notifications

    # Dry run (evaluate and compose, don't send emails)
    uv run python -m notifications.process_notifications --dry-run

    # Only process one user
    uv run python -m notifications.process_notifications --user-email owner@example.com
"""

import argparse
import sys
from typing import Any

from models import BatchOutcome
from notifications.dispatcher import NotificationDispatcher
from notifications.email_sender import check_email_configuration
from notifications.exceptions import NotificationError
from notifications.run_lock import get_run_lock, hold_run_lock
from notifications.store import NotificationStore
from shared.config import get_notification_timezone, load_thresholds
from shared.db import get_supabase_client

_dispatcher: NotificationDispatcher | None = None


def create_store() -> NotificationStore:
    """Fresh store (and Supabase client) for one run."""
    return NotificationStore(get_supabase_client())


def build_dispatcher(
    dry_run: bool = False, only_email: str | None = None, max_workers: int = 1
) -> NotificationDispatcher:
    """Dispatcher wired to Supabase, Resend and the console."""
    return NotificationDispatcher(
        store_factory=create_store,
        thresholds=load_thresholds(),
        tz=get_notification_timezone(),
        max_workers=max_workers,
        dry_run=dry_run,
        only_email=only_email,
    )


def get_dispatcher() -> NotificationDispatcher:
    """Dispatcher shared by scheduled runs in this process."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = build_dispatcher()
    return _dispatcher


def run_notification_job(
    dispatcher: NotificationDispatcher | None = None,
    run_lock: Any = None,
) -> BatchOutcome:
    """
    Run one notification batch.

    Both the daily schedule and the CLI call this. The batch holds the shared
    run lock, so a run started from any process (worker or CLI) turns away
    every other trigger until it finishes.

    Args:
        dispatcher: Dispatcher to run (defaults to the process-wide one)
        run_lock: Lock with ``acquire(blocking=False)`` and ``release()``
            (defaults to the Redis run lock)

    Raises:
        RecipientFetchError: If the recipient list could not be loaded
        RunInProgressError: If a run is already in progress
        RunLockError: If the run lock could not be checked
    """
    check_email_configuration()
    dispatcher = dispatcher or get_dispatcher()
    lock = run_lock if run_lock is not None else get_run_lock()

    with hold_run_lock(lock, on_busy=dispatcher.observer.run_skipped):
        return dispatcher.run_once()


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Returns the process exit code."""
    parser = argparse.ArgumentParser(
        description="Evaluate inventory alerts and send notification emails"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Dry run mode (don't actually send emails)",
    )

    parser.add_argument(
        "--user-email",
        type=str,
        help="Only process the user with this email address",
    )

    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of users to process in parallel (default: 1)",
    )

    args = parser.parse_args(argv)

    if args.workers < 1:
        parser.error("--workers must be at least 1")

    print("Triggering manual notification check...")

    dispatcher = build_dispatcher(
        dry_run=args.dry_run, only_email=args.user_email, max_workers=args.workers
    )

    try:
        run_notification_job(dispatcher)
    except NotificationError as e:
        print(f"Manual check failed: {e}")
        return 1

    print("Manual check complete.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
