"""
Alert rule evaluation.

Each rule is a pure function of a recipient's settings and a data snapshot.
``RuleEvaluator`` fetches the snapshot each enabled rule needs from the store
and evaluates the rules in their fixed order.
"""

from datetime import datetime, timedelta, timezone, tzinfo

from pydantic import BaseModel, ConfigDict, Field

from models import InventoryItem, NotificationSettings, Rule, RuleResult
from notifications.store import NotificationStore
from shared.config import AlertThresholds

# Evaluation order, which is also the order of sections in the email
RULE_ORDER: dict[Rule, int] = {
    Rule.LOW_STOCK: 1,
    Rule.EXPIRY: 2,
    Rule.SALES_SUMMARY: 3,
}

EXPIRY_DATE_FORMAT = "%B %d, %Y"


class DataSnapshot(BaseModel):
    """Store data a rule is evaluated against, captured at ``now``."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    now: datetime
    tz: tzinfo = timezone.utc
    products: list[InventoryItem] = Field(default_factory=list)
    transactions_today: int = 0


def start_of_day(now: datetime, tz: tzinfo) -> datetime:
    """Local midnight of the day ``now`` falls on in ``tz``."""
    return now.astimezone(tz).replace(hour=0, minute=0, second=0, microsecond=0)


def _as_aware(value: datetime) -> datetime:
    # Timestamps without an offset are stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def evaluate_low_stock(
    snapshot: DataSnapshot, thresholds: AlertThresholds
) -> RuleResult:
    """Fires when at least one active product is below the stock threshold."""
    order = RULE_ORDER[Rule.LOW_STOCK]
    matches = sorted(
        (
            item
            for item in snapshot.products
            if item.is_active and item.quantity < thresholds.low_stock_threshold
        ),
        key=lambda item: item.quantity,
    )[: thresholds.max_items]

    if not matches:
        return RuleResult.not_fired(Rule.LOW_STOCK, order)

    return RuleResult(
        rule=Rule.LOW_STOCK,
        fired=True,
        order=order,
        title="⚠️ Low Stock Alert",
        lines=[f"{item.name}: only {item.quantity} left" for item in matches],
        note="Please restock these items soon.",
    )


def evaluate_expiry(snapshot: DataSnapshot, thresholds: AlertThresholds) -> RuleResult:
    """
    Fires when at least one active product expires within the window.

    Both bounds are exclusive: a product expiring exactly at ``now`` (or
    already expired) is left out, as is one expiring exactly at the end of
    the window.
    """
    order = RULE_ORDER[Rule.EXPIRY]
    now = _as_aware(snapshot.now)
    window_end = now + timedelta(days=thresholds.expiry_window_days)

    matches = sorted(
        (
            item
            for item in snapshot.products
            if item.is_active
            and item.expiry_date is not None
            and now < _as_aware(item.expiry_date) < window_end
        ),
        key=lambda item: _as_aware(item.expiry_date),  # type: ignore[arg-type]
    )[: thresholds.max_items]

    if not matches:
        return RuleResult.not_fired(Rule.EXPIRY, order)

    lines = []
    for item in matches:
        expires = _as_aware(item.expiry_date).astimezone(snapshot.tz)  # type: ignore[arg-type]
        lines.append(f"{item.name}: expires on {expires.strftime(EXPIRY_DATE_FORMAT)}")

    return RuleResult(
        rule=Rule.EXPIRY,
        fired=True,
        order=order,
        title=f"📅 Expiry Alert (Next {thresholds.expiry_window_days} Days)",
        lines=lines,
    )


def evaluate_sales_summary(snapshot: DataSnapshot) -> RuleResult:
    """Always fires; reports how many invoices were created today."""
    return RuleResult(
        rule=Rule.SALES_SUMMARY,
        fired=True,
        order=RULE_ORDER[Rule.SALES_SUMMARY],
        title="📊 Daily Summary",
        lines=[f"Total transactions today: {snapshot.transactions_today}"],
    )


def evaluate(
    rule: Rule,
    settings: NotificationSettings,
    snapshot: DataSnapshot,
    thresholds: AlertThresholds | None = None,
) -> RuleResult:
    """
    Evaluate a single rule for a recipient.

    Args:
        rule: Rule to evaluate
        settings: Recipient's notification settings
        snapshot: Data the rule looks at
        thresholds: Alert thresholds (defaults used if omitted)

    Returns:
        RuleResult, not fired if the rule's preference is off
    """
    thresholds = thresholds or AlertThresholds()

    if not settings.is_enabled(rule):
        return RuleResult.not_fired(rule, RULE_ORDER[rule])

    if rule == Rule.LOW_STOCK:
        return evaluate_low_stock(snapshot, thresholds)
    if rule == Rule.EXPIRY:
        return evaluate_expiry(snapshot, thresholds)
    return evaluate_sales_summary(snapshot)


class RuleEvaluator:
    """Loads rule data from the store and evaluates every rule in order."""

    def __init__(
        self,
        store: NotificationStore,
        thresholds: AlertThresholds | None = None,
        tz: tzinfo = timezone.utc,
    ):
        self.store = store
        self.thresholds = thresholds or AlertThresholds()
        self.tz = tz

    def evaluate_all(
        self, settings: NotificationSettings, now: datetime
    ) -> list[RuleResult]:
        """
        Evaluate all rules for one recipient at a single instant.

        Raises:
            RuleDataFetchError: If data for an enabled rule cannot be loaded
        """
        results = []
        for rule in sorted(RULE_ORDER, key=RULE_ORDER.__getitem__):
            if not settings.is_enabled(rule):
                results.append(RuleResult.not_fired(rule, RULE_ORDER[rule]))
                continue
            snapshot = self._load_snapshot(rule, now)
            results.append(evaluate(rule, settings, snapshot, self.thresholds))
        return results

    def _load_snapshot(self, rule: Rule, now: datetime) -> DataSnapshot:
        if rule == Rule.LOW_STOCK:
            products = self.store.fetch_low_stock_products(
                self.thresholds.low_stock_threshold, self.thresholds.max_items
            )
            return DataSnapshot(now=now, tz=self.tz, products=products)

        if rule == Rule.EXPIRY:
            aware_now = _as_aware(now)
            products = self.store.fetch_expiring_products(
                aware_now,
                aware_now + timedelta(days=self.thresholds.expiry_window_days),
                self.thresholds.max_items,
            )
            return DataSnapshot(now=now, tz=self.tz, products=products)

        count = self.store.count_invoices_since(start_of_day(now, self.tz))
        return DataSnapshot(now=now, tz=self.tz, transactions_today=count)
