"""
Alert notification system for pharmacy inventory.

This module handles:
- Evaluating low-stock, expiry and daily sales rules per user
- Composing one alert email per user from the rules that fired
- Sending notification emails via Resend
- Running the batch over all users (daily schedule or manual CLI)
"""

from .composer import compose_notification
from .dispatcher import NotificationDispatcher
from .email_sender import send_notification_email
from .rules import RuleEvaluator, evaluate

__all__ = [
    'compose_notification',
    'NotificationDispatcher',
    'send_notification_email',
    'RuleEvaluator',
    'evaluate',
]
