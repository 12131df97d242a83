"""
Reporting hooks for notification runs.

The dispatcher reports every run and every recipient outcome through a
``DispatchObserver``. ``ConsoleObserver`` prints them and writes an error
report file for each failure.
"""

from datetime import datetime
from typing import Any, Protocol

from models import BatchOutcome, RecipientOutcome
from notifications.error_logger import log_notification_error


class DispatchObserver(Protocol):
    def run_started(self, started_at: datetime) -> None: ...

    def recipients_loaded(self, count: int) -> None: ...

    def recipient_processed(self, outcome: RecipientOutcome) -> None: ...

    def run_aborted(self, error: Exception) -> None: ...

    def run_skipped(self) -> None: ...

    def run_finished(self, outcome: BatchOutcome) -> None: ...


class ConsoleObserver:
    """Prints run progress and logs failures to error report files."""

    def __init__(self, log_dir: str | None = None):
        self.log_dir = log_dir

    def run_started(self, started_at: datetime) -> None:
        print(f"[{started_at.isoformat()}] Running scheduled notification job...")

    def recipients_loaded(self, count: int) -> None:
        print(f"Found {count} users with notification settings")

    def recipient_processed(self, outcome: RecipientOutcome) -> None:
        rules = ", ".join(rule.value for rule in outcome.fired_rules) or "none"

        if outcome.status == "sent":
            if outcome.dry_run:
                print(f"  [DRY RUN] Would send alerts to {outcome.email} (rules: {rules})")
            else:
                print(f"  ✓ Sent alerts to {outcome.email} (rules: {rules})")
        elif outcome.status == "nothing_to_send":
            print(f"  ⊘ No content to send for {outcome.email}")
        elif outcome.status == "skipped":
            print(f"  ⊘ Email alerts disabled for {outcome.email}, skipping")
        else:
            print(f"  ✗ Failed for {outcome.email}: {outcome.error_message}")
            self._write_report(
                error_type="sending" if outcome.fired_rules else "evaluation",
                error_message=outcome.error_message or "Unknown error",
                context={
                    "user_id": outcome.user_id,
                    "email": outcome.email,
                    "fired_rules": [rule.value for rule in outcome.fired_rules],
                },
                indent="    ",
            )

    def run_aborted(self, error: Exception) -> None:
        print(f"✗ Notification job aborted: {error}")
        self._write_report(error_type="recipients", error_message=str(error), indent="  ")

    def _write_report(
        self,
        error_type: str,
        error_message: str,
        context: dict[str, Any] | None = None,
        indent: str = "",
    ) -> None:
        # An unwritable log directory must not stop the run
        try:
            error_file = log_notification_error(
                error_type=error_type,
                error_message=error_message,
                context=context,
                log_dir=self.log_dir,
            )
        except OSError as e:
            print(f"{indent}⚠️  Could not write error report: {e}")
            return
        print(f"{indent}Error details logged to: {error_file}")

    def run_skipped(self) -> None:
        print("⚠️  Notification job is already running, skipping this trigger")

    def run_finished(self, outcome: BatchOutcome) -> None:
        print(f"\n{'=' * 60}")
        print("Notification Job Complete")
        print(f"{'=' * 60}")
        print(f"Processed: {outcome.processed}")
        print(f"Sent:      {outcome.sent}")
        print(f"Skipped:   {outcome.skipped}")
        print(f"Failed:    {outcome.failed}")
