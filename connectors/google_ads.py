"""
Google Ads Connector for the marketing dashboard.

Pulls account-level clicks, impressions, spend and conversions through the
Google Ads REST search endpoint.
"""

from datetime import date
from typing import Optional

from connectors.common import BaseConnector, get_setting, period_window, require_settings, to_number


class GoogleAdsConnector(BaseConnector):
    """Connector for the Google Ads API."""

    PLATFORM = "Google Ads"
    API_VERSION = "v17"
    BASE_URL = f"https://googleads.googleapis.com/{API_VERSION}"

    async def _headers(self, client, tenant_id: Optional[str]) -> dict:
        creds = require_settings(self.PLATFORM, tenant_id, "GOOGLE_ADS_DEVELOPER_TOKEN", "GOOGLE_ADS_CUSTOMER_ID")
        access_token = await self._refresh_google_token(client, tenant_id, "GOOGLE_ADS_REFRESH_TOKEN")

        # Login customer defaults to the customer itself when there is no manager account
        login_customer_id = get_setting("GOOGLE_ADS_LOGIN_CUSTOMER_ID", tenant_id) or creds["GOOGLE_ADS_CUSTOMER_ID"]
        return {
            "Authorization": f"Bearer {access_token}",
            "developer-token": creds["GOOGLE_ADS_DEVELOPER_TOKEN"],
            "login-customer-id": login_customer_id.replace("-", ""),
            "Content-Type": "application/json",
        }

    async def search(self, customer_id: str, query: str, tenant_id: Optional[str] = None) -> list[dict]:
        """Run a GAQL query and return every result row across pages."""
        results = []
        async with self._client() as client:
            headers = await self._headers(client, tenant_id)
            body = {"query": query}
            while True:
                response = await client.post(
                    f"{self.BASE_URL}/customers/{customer_id}/googleAds:search",
                    headers=headers,
                    json=body,
                )
                self._raise_for_status(response)

                data = response.json()
                results.extend(data.get("results", []))
                if not data.get("nextPageToken"):
                    break
                body = {"query": query, "pageToken": data["nextPageToken"]}

        return results

    async def get_performance(self, account_id: Optional[str] = None, period: str = "7d",
                              tenant_id: Optional[str] = None) -> dict:
        """
        Get account performance for a period.

        Args:
            account_id: Customer id; defaults to GOOGLE_ADS_CUSTOMER_ID
            period: One of 24h, 7d, 30d, 90d
            tenant_id: Business whose credentials to use

        Returns:
            Totals for the period plus a "previous" dict for the window before it
        """
        customer_id = account_id or require_settings(self.PLATFORM, tenant_id, "GOOGLE_ADS_CUSTOMER_ID")["GOOGLE_ADS_CUSTOMER_ID"]
        window = period_window(period)

        query = f"""
            SELECT
                segments.date,
                metrics.clicks,
                metrics.impressions,
                metrics.cost_micros,
                metrics.conversions,
                metrics.conversions_value
            FROM customer
            WHERE segments.date BETWEEN '{window.previous_start.date().isoformat()}' AND '{window.end.date().isoformat()}'
        """

        rows = await self.search(customer_id.replace("-", ""), query, tenant_id)

        current, previous = [], []
        for row in rows:
            day = date.fromisoformat(row.get("segments", {}).get("date"))
            (current if window.is_current(day) else previous).append(row.get("metrics", {}))

        performance = self._totals(current)
        performance["previous"] = self._totals(previous)
        return performance

    def _totals(self, rows: list[dict]) -> dict:
        clicks = sum(int(to_number(m.get("clicks"))) for m in rows)
        impressions = sum(int(to_number(m.get("impressions"))) for m in rows)
        spend = sum(to_number(m.get("costMicros")) for m in rows) / 1_000_000
        conversions = sum(to_number(m.get("conversions")) for m in rows)
        conversion_value = sum(to_number(m.get("conversionsValue")) for m in rows)

        return {
            "clicks": clicks,
            "impressions": impressions,
            "spend": round(spend, 2),
            "conversions": round(conversions, 2),
            "conversion_value": round(conversion_value, 2),
            "roas": round(conversion_value / spend, 2) if spend > 0 else 0,
        }

    async def _probe(self, tenant_id: Optional[str]):
        async with self._client() as client:
            headers = await self._headers(client, tenant_id)
            response = await client.get(f"{self.BASE_URL}/customers:listAccessibleCustomers", headers=headers)
            self._raise_for_status(response)
