"""
Read-only data access for the alert rules.

Wraps the Supabase query builder so the rest of the notification code deals
in validated models instead of raw PostgREST responses.
"""

from datetime import datetime
from typing import Any, cast

from pydantic import ValidationError

from models import InventoryItem, Recipient
from notifications.exceptions import RecipientFetchError, RuleDataFetchError

RECIPIENT_COLUMNS = "id, name, email, is_active, notification_settings"
PRODUCT_COLUMNS = "id, name, quantity, expiry_date, is_active"


class NotificationStore:
    """Queries against user_profiles, products and invoices."""

    def __init__(self, client: Any):
        self.client = client

    def fetch_active_recipients(self) -> list[Recipient]:
        """
        Fetch active users that have a notification settings record.

        Rows that fail validation are reported and left out.

        Raises:
            RecipientFetchError: If the query itself fails
        """
        try:
            response = (
                self.client.table("user_profiles")
                .select(RECIPIENT_COLUMNS)
                .eq("is_active", True)
                .not_.is_("notification_settings", None)
                .execute()
            )
        except Exception as e:
            raise RecipientFetchError(str(e)) from e

        recipients = []
        for row in response.data or []:
            try:
                recipients.append(Recipient.model_validate(row))
            except ValidationError as e:
                print(f"  ⚠️  Skipping invalid user profile {row.get('id')}: {e}")
        return recipients

    def fetch_low_stock_products(self, threshold: int, limit: int) -> list[InventoryItem]:
        """Active products with quantity below threshold, lowest first."""
        try:
            response = (
                self.client.table("products")
                .select(PRODUCT_COLUMNS)
                .lt("quantity", threshold)
                .eq("is_active", True)
                .order("quantity", desc=False)
                .limit(limit)
                .execute()
            )
            return [InventoryItem.model_validate(row) for row in response.data or []]
        except Exception as e:
            raise RuleDataFetchError("low_stock", str(e)) from e

    def fetch_expiring_products(
        self, after: datetime, before: datetime, limit: int
    ) -> list[InventoryItem]:
        """Active products expiring strictly between ``after`` and ``before``."""
        try:
            response = (
                self.client.table("products")
                .select(PRODUCT_COLUMNS)
                .gt("expiry_date", after.isoformat())
                .lt("expiry_date", before.isoformat())
                .eq("is_active", True)
                .order("expiry_date", desc=False)
                .limit(limit)
                .execute()
            )
            return [InventoryItem.model_validate(row) for row in response.data or []]
        except Exception as e:
            raise RuleDataFetchError("expiry", str(e)) from e

    def count_invoices_since(self, since: datetime) -> int:
        """Number of invoices created at or after ``since``."""
        try:
            response = (
                self.client.table("invoices")
                .select("id", count="exact")
                .gte("created_at", since.isoformat())
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise RuleDataFetchError("sales_summary", str(e)) from e

        if response.count is None:
            raise RuleDataFetchError("sales_summary", "invoice count missing from response")
        return cast(int, response.count)
