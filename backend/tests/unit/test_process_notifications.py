"""
Unit tests for notifications/process_notifications.py

Tests the manual CLI trigger, its exit codes, and the shared job entry point.
"""

import threading
import unittest
from unittest.mock import Mock, patch

from redis.exceptions import ConnectionError as RedisConnectionError

from models import BatchOutcome
from notifications.dispatcher import NotificationDispatcher
from notifications.exceptions import (
    RecipientFetchError,
    RunInProgressError,
    RunLockError,
)
from notifications.process_notifications import (
    build_dispatcher,
    create_store,
    main,
    run_notification_job,
)
from notifications.store import NotificationStore
from tests.fixtures.mock_helpers import create_mock_sender, create_mock_store
from tests.fixtures.recipient_factory import create_test_recipient


@patch("builtins.print")
class TestMain(unittest.TestCase):
    """Tests for main() CLI entry point."""

    @patch("notifications.process_notifications.run_notification_job")
    def test_success_exit_code(self, mock_run, mock_print):
        """Completed run exits 0"""
        mock_run.return_value = BatchOutcome(processed=2, sent=1, failed=1)

        self.assertEqual(main([]), 0)
        mock_run.assert_called_once()

    @patch("notifications.process_notifications.run_notification_job")
    def test_recipient_fetch_failure_exit_code(self, mock_run, mock_print):
        """Recipient fetch failure exits non-zero"""
        mock_run.side_effect = RecipientFetchError("unreachable")

        self.assertEqual(main([]), 1)

    @patch("notifications.process_notifications.run_notification_job")
    def test_run_in_progress_exit_code(self, mock_run, mock_print):
        """Overlapping run exits non-zero"""
        mock_run.side_effect = RunInProgressError("busy")

        self.assertEqual(main([]), 1)

    @patch("notifications.process_notifications.run_notification_job")
    def test_flags_passed_to_dispatcher(self, mock_run, mock_print):
        """--dry-run, --user-email and --workers configure the dispatcher"""
        main(["--dry-run", "--user-email", "owner@pharmacy.com", "--workers", "4"])

        dispatcher = mock_run.call_args[0][0]
        self.assertTrue(dispatcher.dry_run)
        self.assertEqual(dispatcher.only_email, "owner@pharmacy.com")
        self.assertEqual(dispatcher.max_workers, 4)

    def test_invalid_workers_rejected(self, mock_print):
        """--workers below 1 is a usage error"""
        with patch("sys.stderr"):
            with self.assertRaises(SystemExit):
                main(["--workers", "0"])


def create_lock() -> Mock:
    lock = Mock()
    lock.acquire.return_value = True
    return lock


@patch("notifications.process_notifications.check_email_configuration")
class TestRunNotificationJob(unittest.TestCase):
    """Tests for run_notification_job()"""

    def test_runs_dispatcher_once(self, mock_check):
        """Configuration is checked and one batch runs under the run lock"""
        dispatcher = Mock()
        dispatcher.run_once.return_value = BatchOutcome(processed=1, sent=1)
        lock = create_lock()

        outcome = run_notification_job(dispatcher, run_lock=lock)

        mock_check.assert_called_once()
        dispatcher.run_once.assert_called_once()
        lock.acquire.assert_called_once_with(blocking=False)
        lock.release.assert_called_once()
        self.assertEqual(outcome.sent, 1)

    def test_fetch_failure_propagates(self, mock_check):
        """Recipient fetch failure reaches the trigger and frees the lock"""
        dispatcher = Mock()
        dispatcher.run_once.side_effect = RecipientFetchError("unreachable")
        lock = create_lock()

        with self.assertRaises(RecipientFetchError):
            run_notification_job(dispatcher, run_lock=lock)

        lock.release.assert_called_once()

    @patch("notifications.process_notifications.get_run_lock")
    def test_default_lock_is_shared_run_lock(self, mock_get_lock, mock_check):
        """Without an explicit lock the Redis run lock is used"""
        mock_get_lock.return_value = create_lock()
        dispatcher = Mock()
        dispatcher.run_once.return_value = BatchOutcome()

        run_notification_job(dispatcher)

        mock_get_lock.assert_called_once_with()
        mock_get_lock.return_value.acquire.assert_called_once_with(blocking=False)

    def test_lock_store_unreachable(self, mock_check):
        """Run does not start when the lock cannot be checked"""
        dispatcher = Mock()
        lock = Mock()
        lock.acquire.side_effect = RedisConnectionError("connection refused")

        with self.assertRaises(RunLockError):
            run_notification_job(dispatcher, run_lock=lock)

        dispatcher.run_once.assert_not_called()

    def test_separate_dispatchers_share_guard(self, mock_check):
        """A run on one dispatcher turns away a trigger on another"""
        shared_lock = threading.Lock()
        started = threading.Event()
        release = threading.Event()

        def slow_send(message):
            started.set()
            release.wait(timeout=5)
            return {"success": True, "email_id": "email_1"}

        first_store = create_mock_store(recipients=[create_test_recipient()])
        second_store = create_mock_store(recipients=[create_test_recipient()])
        first = NotificationDispatcher(
            store_factory=lambda: first_store,
            send_email=Mock(side_effect=slow_send),
            observer=Mock(),
        )
        second = NotificationDispatcher(
            store_factory=lambda: second_store,
            send_email=create_mock_sender(),
            observer=Mock(),
        )

        worker = threading.Thread(
            target=run_notification_job, args=(first,), kwargs={"run_lock": shared_lock}
        )
        worker.start()
        self.assertTrue(started.wait(timeout=5))

        try:
            with self.assertRaises(RunInProgressError):
                run_notification_job(second, run_lock=shared_lock)
            second.observer.run_skipped.assert_called_once()
        finally:
            release.set()
            worker.join(timeout=5)

        second_store.fetch_active_recipients.assert_not_called()
        self.assertEqual(first_store.fetch_active_recipients.call_count, 1)
        self.assertFalse(shared_lock.locked())

        # Guard is free again once the first run ends
        run_notification_job(second, run_lock=shared_lock)
        second_store.fetch_active_recipients.assert_called_once()


@patch("builtins.print")
class TestMainLockFailure(unittest.TestCase):
    """Exit code when the run lock cannot be checked."""

    @patch("notifications.process_notifications.run_notification_job")
    def test_lock_error_exit_code(self, mock_run, mock_print):
        """Unreachable run lock store exits non-zero"""
        mock_run.side_effect = RunLockError("connection refused")

        self.assertEqual(main([]), 1)


class TestWiring(unittest.TestCase):
    """Tests for store and dispatcher construction."""

    @patch("notifications.process_notifications.get_supabase_client")
    def test_create_store_uses_fresh_client(self, mock_client):
        """Each store gets its own Supabase client"""
        mock_client.side_effect = [Mock(), Mock()]

        first = create_store()
        second = create_store()

        self.assertIsInstance(first, NotificationStore)
        self.assertIsNot(first.client, second.client)

    def test_build_dispatcher_defaults(self):
        """Dispatcher built with sequential, live-sending defaults"""
        dispatcher = build_dispatcher()

        self.assertFalse(dispatcher.dry_run)
        self.assertEqual(dispatcher.max_workers, 1)
        self.assertIs(dispatcher.store_factory, create_store)


if __name__ == "__main__":
    unittest.main()
