"""
Email sending via Resend API for notification system.
"""

from typing import Any

import resend

from models import ComposedMessage
from shared.config import (
    NOTIFICATION_FROM_EMAIL,
    NOTIFICATION_FROM_NAME,
    RESEND_API_KEY,
)

# Initialize Resend with API key from environment
resend.api_key = RESEND_API_KEY


def check_email_configuration() -> bool:
    """
    Warn if the Resend API key is missing.

    The job still runs without it; every send attempt then fails and is
    reported per recipient.
    """
    if not resend.api_key:
        print(
            "⚠️  RESEND_API_KEY is missing. Email notifications will not be "
            "delivered until it is configured."
        )
        return False
    return True


def send_notification_email(message: ComposedMessage) -> dict[str, Any]:
    """
    Send a composed alert email.

    Args:
        message: Email to send

    Returns:
        Dictionary with 'success' (bool), 'email_id' (str if success), 'error' (str if failed)
    """
    if not resend.api_key:
        return {"success": False, "error": "RESEND_API_KEY is not configured"}

    try:
        response = resend.Emails.send(
            {
                "from": f"{NOTIFICATION_FROM_NAME} <{NOTIFICATION_FROM_EMAIL}>",
                "to": message.to,
                "subject": message.subject,
                "html": message.html,
                "text": message.text,
            }
        )

        return {"success": True, "email_id": response.get("id")}

    except Exception as e:
        return {"success": False, "error": str(e)}
