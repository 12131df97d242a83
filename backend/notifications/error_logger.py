"""
Error logging utility for the alert notification job.

Writes each failure to its own timestamped report file so a batch run's
console output stays short.
"""

import os
from datetime import datetime
from typing import Any

LOG_DIR = os.getenv(
    "NOTIFICATION_LOG_DIR", os.path.join(os.path.dirname(__file__), "logs")
)


def log_notification_error(
    error_type: str,
    error_message: str,
    context: dict[str, Any] | None = None,
    log_dir: str | None = None,
) -> str:
    """
    Log a notification error to a timestamped file.

    Args:
        error_type: Type of error ('recipients', 'evaluation', 'sending')
        error_message: The error message
        context: Optional dictionary with additional context (user_id, rules, etc.)
        log_dir: Directory for reports (defaults to NOTIFICATION_LOG_DIR)

    Returns:
        Path to the log file created
    """
    log_dir = log_dir or LOG_DIR
    os.makedirs(log_dir, exist_ok=True)

    # Microseconds keep reports from the same second apart
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    filename = os.path.join(log_dir, f"notification_error_{error_type}_{timestamp}.txt")

    with open(filename, "w", encoding="utf-8") as f:
        f.write(f"Notification Error Report - {datetime.now()}\n")
        f.write("=" * 60 + "\n\n")
        f.write(f"Error Type: {error_type}\n")
        f.write(f"Error Message: {error_message}\n\n")

        if context:
            f.write("Context:\n")
            f.write("-" * 60 + "\n")
            for key, value in context.items():
                f.write(f"{key}: {value}\n")

    return filename
