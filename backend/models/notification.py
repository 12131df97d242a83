"""Pydantic models for the notification system."""

from datetime import datetime
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from models.types import ProductID, UserID


class Rule(str, Enum):
    """Alert rules, declared in evaluation order."""

    LOW_STOCK = "low_stock"
    EXPIRY = "expiry"
    SALES_SUMMARY = "sales_summary"


class NotificationSettings(BaseModel):
    """Per-recipient alert preferences.

    Stored as a JSON column with camelCase keys (``emailAlerts``,
    ``lowStockAlerts``, ...). Snake_case field names are accepted too.
    """

    model_config = ConfigDict(populate_by_name=True)

    email_alerts: bool = Field(
        False, validation_alias=AliasChoices("emailAlerts", "email_alerts")
    )
    low_stock_alerts: bool = Field(
        False, validation_alias=AliasChoices("lowStockAlerts", "low_stock_alerts")
    )
    expiry_alerts: bool = Field(
        False, validation_alias=AliasChoices("expiryAlerts", "expiry_alerts")
    )
    sales_summary: bool = Field(
        False, validation_alias=AliasChoices("salesSummary", "sales_summary")
    )

    def is_enabled(self, rule: Rule) -> bool:
        """Whether the individual preference for ``rule`` is on."""
        return {
            Rule.LOW_STOCK: self.low_stock_alerts,
            Rule.EXPIRY: self.expiry_alerts,
            Rule.SALES_SUMMARY: self.sales_summary,
        }[rule]


class Recipient(BaseModel):
    """User profile eligible to receive alert emails."""

    model_config = ConfigDict(str_strip_whitespace=True)

    id: UserID
    name: str | None = None
    email: str = Field(..., pattern=r"^[^@]+@[^@]+\.[^@]+$")
    is_active: bool = True
    notification_settings: NotificationSettings | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.email.split("@")[0]

    def is_eligible(self) -> bool:
        """Active, with settings present and the master email switch on."""
        return (
            self.is_active
            and self.notification_settings is not None
            and self.notification_settings.email_alerts
        )


class InventoryItem(BaseModel):
    """Product record as read from the inventory table."""

    model_config = ConfigDict(str_strip_whitespace=True)

    id: ProductID
    name: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=0)
    expiry_date: datetime | None = None
    is_active: bool = True


class RuleResult(BaseModel):
    """Outcome of evaluating one rule for one recipient."""

    rule: Rule
    fired: bool
    order: int
    title: str = ""
    lines: list[str] = Field(default_factory=list)
    note: str | None = None

    @classmethod
    def not_fired(cls, rule: Rule, order: int) -> "RuleResult":
        return cls(rule=rule, fired=False, order=order)


class ComposedMessage(BaseModel):
    """Email ready to hand to the delivery channel."""

    to: str
    subject: str
    html: str
    text: str
    fragment_count: int = Field(..., ge=1)


class RecipientOutcome(BaseModel):
    """Structured record of what happened to one recipient during a run."""

    user_id: UserID
    email: str
    status: str = Field(..., pattern="^(sent|skipped|nothing_to_send|failed)$")
    fired_rules: list[Rule] = Field(default_factory=list)
    email_id: str | None = None
    error_message: str | None = None
    dry_run: bool = False


class BatchOutcome(BaseModel):
    """Tally for one full pass over the recipients."""

    processed: int = 0
    sent: int = 0
    skipped: int = 0
    failed: int = 0
    started_at: datetime | None = None
    finished_at: datetime | None = None

    def record(self, outcome: RecipientOutcome) -> None:
        self.processed += 1
        if outcome.status == "sent":
            self.sent += 1
        elif outcome.status == "failed":
            self.failed += 1
        else:
            self.skipped += 1
