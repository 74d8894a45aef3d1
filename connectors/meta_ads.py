"""
Meta (Facebook) Ads Connector for the marketing dashboard.

Pulls account-level spend, impressions, clicks and purchase conversions.
"""

import json
from datetime import date
from typing import Optional

from connectors.common import BaseConnector, get_setting, period_window, require_settings, to_number


class MetaAdsConnector(BaseConnector):
    """Connector for Meta Marketing API."""

    PLATFORM = "Meta Ads"
    API_VERSION = "v18.0"
    BASE_URL = f"https://graph.facebook.com/{API_VERSION}"

    def _account(self, account_id: Optional[str], tenant_id: Optional[str]) -> str:
        ad_account_id = account_id or get_setting("META_AD_ACCOUNT_ID", tenant_id)
        if not ad_account_id:
            raise ValueError(f"{self.PLATFORM} missing credentials: META_AD_ACCOUNT_ID")

        # Ensure ad_account_id has act_ prefix
        if not ad_account_id.startswith("act_"):
            ad_account_id = f"act_{ad_account_id}"
        return ad_account_id

    def _access_token(self, tenant_id: Optional[str]) -> str:
        return require_settings(self.PLATFORM, tenant_id, "META_ACCESS_TOKEN")["META_ACCESS_TOKEN"]

    async def _make_request(self, client, endpoint: str, params: dict) -> dict:
        """Make authenticated request to Meta API."""
        response = await client.get(f"{self.BASE_URL}/{endpoint}", params=params)

        if response.status_code != 200:
            try:
                message = response.json().get("error", {}).get("message", response.text)
            except ValueError:
                message = response.text
            raise RuntimeError(f"{self.PLATFORM} API Error: {message}")

        return response.json()

    async def get_insights(self, account_id: Optional[str], start_date: str, end_date: str,
                           tenant_id: Optional[str] = None) -> list[dict]:
        """
        Get daily account insights.

        Args:
            start_date: YYYY-MM-DD format
            end_date: YYYY-MM-DD format

        Returns:
            List of daily records with purchases parsed out of actions
        """
        ad_account_id = self._account(account_id, tenant_id)
        params = {
            "access_token": self._access_token(tenant_id),
            "fields": "clicks,impressions,spend,actions,action_values",
            "time_range": json.dumps({"since": start_date, "until": end_date}),
            "time_increment": 1,  # Daily breakdown
            "level": "account",
            "limit": 500,
        }

        all_results = []
        async with self._client() as client:
            data = await self._make_request(client, f"{ad_account_id}/insights", params)
            while True:
                for row in data.get("data", []):
                    all_results.append(self._parse_row(row))

                next_url = data.get("paging", {}).get("next")
                if not next_url:
                    break
                response = await client.get(next_url)
                self._raise_for_status(response)
                data = response.json()

        return all_results

    def _parse_row(self, row: dict) -> dict:
        # Parse actions to get conversions
        purchases = 0
        purchase_value = 0

        for action in row.get("actions", []):
            if action.get("action_type") == "purchase":
                purchases = to_number(action.get("value"))

        for action_value in row.get("action_values", []):
            if action_value.get("action_type") == "purchase":
                purchase_value = to_number(action_value.get("value"))

        return {
            "date": row.get("date_start"),
            "spend": to_number(row.get("spend")),
            "impressions": int(to_number(row.get("impressions"))),
            "clicks": int(to_number(row.get("clicks"))),
            "purchases": purchases,
            "purchase_value": purchase_value,
        }

    async def get_performance(self, account_id: Optional[str] = None, period: str = "7d",
                              tenant_id: Optional[str] = None) -> dict:
        """Get account performance for a period, with the previous window for comparison."""
        window = period_window(period)
        rows = await self.get_insights(
            account_id,
            window.previous_start.date().isoformat(),
            window.end.date().isoformat(),
            tenant_id,
        )

        current, previous = [], []
        for row in rows:
            (current if window.is_current(date.fromisoformat(row["date"])) else previous).append(row)

        performance = self._totals(current)
        performance["previous"] = self._totals(previous)
        return performance

    def _totals(self, rows: list[dict]) -> dict:
        spend = sum(r["spend"] for r in rows)
        revenue = sum(r["purchase_value"] for r in rows)
        return {
            "clicks": sum(r["clicks"] for r in rows),
            "impressions": sum(r["impressions"] for r in rows),
            "spend": round(spend, 2),
            "conversions": sum(r["purchases"] for r in rows),
            "conversion_value": round(revenue, 2),
            "roas": round(revenue / spend, 2) if spend > 0 else 0,
        }

    async def _probe(self, tenant_id: Optional[str]):
        async with self._client() as client:
            await self._make_request(
                client,
                self._account(None, tenant_id),
                {"access_token": self._access_token(tenant_id), "fields": "name,account_id,currency"},
            )
