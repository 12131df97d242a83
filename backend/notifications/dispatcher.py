"""
Runs the alert notification job over all recipients.

One run loads the recipient list, then evaluates, composes and sends for each
recipient as an independent unit of work: a failure for one recipient is
reported and counted, and the run moves on to the next.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone, tzinfo
from typing import Any, Callable

from models import BatchOutcome, ComposedMessage, Recipient, RecipientOutcome
from notifications.composer import compose_notification
from notifications.email_sender import send_notification_email
from notifications.exceptions import RecipientFetchError, RunInProgressError
from notifications.observer import ConsoleObserver, DispatchObserver
from notifications.rules import RuleEvaluator
from notifications.store import NotificationStore
from shared.config import AlertThresholds

EmailSender = Callable[[ComposedMessage], dict[str, Any]]


class NotificationDispatcher:
    """
    Batch driver for alert emails.

    Args:
        store_factory: Returns a store for one run; called once per run
        send_email: Delivery function returning {'success', 'email_id'|'error'}
        observer: Receives run and per-recipient events
        thresholds: Alert rule thresholds
        tz: Timezone for "today" and dates shown in emails
        clock: Returns the current time (defaults to now in ``tz``)
        max_workers: Recipients processed in parallel (1 = sequential)
        dry_run: Evaluate and compose but never send
        only_email: Restrict the run to the recipient with this address
    """

    def __init__(
        self,
        store_factory: Callable[[], NotificationStore],
        send_email: EmailSender = send_notification_email,
        observer: DispatchObserver | None = None,
        thresholds: AlertThresholds | None = None,
        tz: tzinfo = timezone.utc,
        clock: Callable[[], datetime] | None = None,
        max_workers: int = 1,
        dry_run: bool = False,
        only_email: str | None = None,
    ):
        self.store_factory = store_factory
        self.send_email = send_email
        self.observer = observer or ConsoleObserver()
        self.thresholds = thresholds or AlertThresholds()
        self.tz = tz
        self.clock = clock or (lambda: datetime.now(self.tz))
        self.max_workers = max(1, max_workers)
        self.dry_run = dry_run
        self.only_email = only_email.lower() if only_email else None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def run_once(self) -> BatchOutcome:
        """
        Run one batch over all eligible recipients.

        Returns:
            BatchOutcome tally for the run

        Raises:
            RunInProgressError: If another run on this dispatcher is still going
            RecipientFetchError: If the recipient list could not be loaded
        """
        if not self._lock.acquire(blocking=False):
            self.observer.run_skipped()
            raise RunInProgressError("Notification job is already running")

        try:
            return self._run()
        finally:
            self._lock.release()

    def _run(self) -> BatchOutcome:
        outcome = BatchOutcome(started_at=self.clock())
        self.observer.run_started(outcome.started_at)

        try:
            store = self.store_factory()
            recipients = store.fetch_active_recipients()
        except RecipientFetchError as e:
            self.observer.run_aborted(e)
            raise
        except Exception as e:
            error = RecipientFetchError(str(e))
            self.observer.run_aborted(error)
            raise error from e

        if self.only_email:
            recipients = [r for r in recipients if r.email.lower() == self.only_email]

        self.observer.recipients_loaded(len(recipients))

        if self.max_workers == 1:
            for recipient in recipients:
                outcome.record(self.notify_recipient(store, recipient))
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                for result in pool.map(
                    lambda r: self.notify_recipient(store, r), recipients
                ):
                    outcome.record(result)

        outcome.finished_at = self.clock()
        self.observer.run_finished(outcome)
        return outcome

    def notify_recipient(
        self,
        store: NotificationStore,
        recipient: Recipient,
        now: datetime | None = None,
    ) -> RecipientOutcome:
        """
        Evaluate, compose and send alerts for a single recipient.

        Never raises: any failure is returned as a 'failed' outcome.
        """
        outcome = self._notify(store, recipient, now or self.clock())

        # Reporting is part of the recipient's unit of work
        try:
            self.observer.recipient_processed(outcome)
        except Exception as e:
            print(f"  ⚠️  Could not report outcome for {recipient.email}: {e}")
        return outcome

    def _notify(
        self, store: NotificationStore, recipient: Recipient, now: datetime
    ) -> RecipientOutcome:
        if not recipient.is_eligible() or recipient.notification_settings is None:
            return RecipientOutcome(
                user_id=recipient.id, email=recipient.email, status="skipped"
            )

        # A failed rule query skips the whole recipient for this run
        try:
            evaluator = RuleEvaluator(store, self.thresholds, self.tz)
            results = evaluator.evaluate_all(recipient.notification_settings, now)
            message = compose_notification(
                recipient, results, now.astimezone(self.tz).date()
            )
        except Exception as e:
            return RecipientOutcome(
                user_id=recipient.id,
                email=recipient.email,
                status="failed",
                error_message=f"Rule evaluation failed: {e}",
            )

        fired_rules = [result.rule for result in results if result.fired]

        if message is None:
            return RecipientOutcome(
                user_id=recipient.id, email=recipient.email, status="nothing_to_send"
            )

        if self.dry_run:
            return RecipientOutcome(
                user_id=recipient.id,
                email=recipient.email,
                status="sent",
                fired_rules=fired_rules,
                dry_run=True,
            )

        try:
            result = self.send_email(message)
        except Exception as e:
            result = {"success": False, "error": str(e)}

        if result.get("success"):
            return RecipientOutcome(
                user_id=recipient.id,
                email=recipient.email,
                status="sent",
                fired_rules=fired_rules,
                email_id=result.get("email_id"),
            )

        return RecipientOutcome(
            user_id=recipient.id,
            email=recipient.email,
            status="failed",
            fired_rules=fired_rules,
            error_message=result.get("error", "Unknown error"),
        )
