"""Pydantic models for data validation and type checking."""

from models.notification import (
    BatchOutcome,
    ComposedMessage,
    InventoryItem,
    NotificationSettings,
    Recipient,
    RecipientOutcome,
    Rule,
    RuleResult,
)

__all__ = [
    "BatchOutcome",
    "ComposedMessage",
    "InventoryItem",
    "NotificationSettings",
    "Recipient",
    "RecipientOutcome",
    "Rule",
    "RuleResult",
]
