"""
Unit tests for notifications/run_lock.py

Tests the shared run lock: name, expiry, non-blocking acquire and release.
"""

import threading
import unittest
from unittest.mock import Mock, patch

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import LockNotOwnedError

from notifications.exceptions import RunInProgressError, RunLockError
from notifications.run_lock import RUN_LOCK_NAME, get_run_lock, hold_run_lock


class TestGetRunLock(unittest.TestCase):
    """Tests for get_run_lock()"""

    @patch("notifications.run_lock.redis.Redis.from_url")
    def test_lock_name_and_timeout(self, mock_from_url):
        """Every process asks Redis for the same named, expiring lock"""
        client = mock_from_url.return_value

        lock = get_run_lock(url="redis://broker:6379/0", timeout=120)

        mock_from_url.assert_called_once_with("redis://broker:6379/0")
        client.lock.assert_called_once_with(
            "pharmacy-alerts:notification-run", timeout=120
        )
        self.assertIs(lock, client.lock.return_value)
        self.assertEqual(RUN_LOCK_NAME, "pharmacy-alerts:notification-run")

    @patch("notifications.run_lock.get_run_lock_timeout", return_value=3600)
    @patch("notifications.run_lock.redis.Redis.from_url")
    def test_default_timeout(self, mock_from_url, mock_timeout):
        """Timeout comes from configuration when not given"""
        get_run_lock()

        mock_from_url.return_value.lock.assert_called_once_with(
            RUN_LOCK_NAME, timeout=3600
        )


class TestHoldRunLock(unittest.TestCase):
    """Tests for hold_run_lock()"""

    def test_acquires_without_blocking_and_releases(self):
        """Lock is taken non-blocking and released after the block"""
        lock = Mock()
        lock.acquire.return_value = True

        with hold_run_lock(lock):
            lock.release.assert_not_called()

        lock.acquire.assert_called_once_with(blocking=False)
        lock.release.assert_called_once()

    def test_released_when_run_raises(self):
        """A failing run still frees the lock"""
        lock = threading.Lock()

        with self.assertRaises(ValueError):
            with hold_run_lock(lock):
                raise ValueError("boom")

        self.assertFalse(lock.locked())

    def test_busy_lock_raises_and_notifies(self):
        """Held lock means RunInProgressError and the busy callback fires"""
        lock = threading.Lock()
        lock.acquire()
        on_busy = Mock()
        ran = Mock()

        try:
            with self.assertRaises(RunInProgressError):
                with hold_run_lock(lock, on_busy=on_busy):
                    ran()
        finally:
            lock.release()

        on_busy.assert_called_once()
        ran.assert_not_called()

    def test_unreachable_store_raises_lock_error(self):
        """Redis being down stops the run before any work"""
        lock = Mock()
        lock.acquire.side_effect = RedisConnectionError("connection refused")

        with self.assertRaises(RunLockError):
            with hold_run_lock(lock):
                self.fail("run should not start")

    @patch("builtins.print")
    def test_expired_lock_release_warns(self, mock_print):
        """Lock that expired during the run is reported, not raised"""
        lock = Mock()
        lock.acquire.return_value = True
        lock.release.side_effect = LockNotOwnedError("expired")

        with hold_run_lock(lock):
            pass

        printed = " ".join(str(call) for call in mock_print.call_args_list)
        self.assertIn("Could not release run lock", printed)


if __name__ == "__main__":
    unittest.main()
