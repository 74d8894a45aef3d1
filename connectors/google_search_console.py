"""
Google Search Console Connector for the marketing dashboard.

Pulls search analytics totals (clicks, impressions, CTR, average position)
for a site. Uses OAuth 2.0 with the shared Google credentials.
"""

from datetime import date
from typing import Optional
from urllib.parse import quote

from connectors.common import BaseConnector, get_setting, period_window, to_number


class GoogleSearchConsoleConnector(BaseConnector):
    """Connector for Google Search Console Search Analytics API."""

    PLATFORM = "Google Search Console"
    API_BASE = "https://searchconsole.googleapis.com/webmasters/v3"

    async def _api_request(self, client, tenant_id: Optional[str], endpoint: str,
                           method: str = "GET", data: dict = None) -> dict:
        """Make API request to GSC."""
        access_token = await self._refresh_google_token(client, tenant_id, "GSC_REFRESH_TOKEN")
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

        url = f"{self.API_BASE}/{endpoint}"
        if method == "GET":
            response = await client.get(url, headers=headers)
        else:
            response = await client.post(url, headers=headers, json=data)

        self._raise_for_status(response)
        return response.json()

    async def list_sites(self, tenant_id: Optional[str] = None) -> list:
        """List all verified sites in GSC."""
        async with self._client() as client:
            result = await self._api_request(client, tenant_id, "sites")
        return result.get("siteEntry", [])

    async def get_search_analytics(self, site_url: str, start_date: str, end_date: str,
                                   tenant_id: Optional[str] = None, row_limit: int = 1000) -> list:
        """
        Get search analytics rows split by date.

        Args:
            site_url: Verified property, e.g. https://example.com/ or sc-domain:example.com
            start_date: YYYY-MM-DD
            end_date: YYYY-MM-DD
        """
        async with self._client() as client:
            result = await self._api_request(
                client,
                tenant_id,
                f"sites/{quote(site_url, safe='')}/searchAnalytics/query",
                method="POST",
                data={
                    "startDate": start_date,
                    "endDate": end_date,
                    "dimensions": ["date"],
                    "rowLimit": row_limit,
                },
            )
        return result.get("rows", [])

    async def get_performance(self, site_url: Optional[str] = None, period: str = "7d",
                              tenant_id: Optional[str] = None) -> dict:
        """Get search totals for a period, with the previous window for comparison."""
        site_url = site_url or get_setting("GSC_SITE_URL", tenant_id)
        if not site_url:
            sites = await self.list_sites(tenant_id)
            site_url = sites[0]["siteUrl"] if sites else None
        if not site_url:
            raise ValueError(f"{self.PLATFORM} has no verified site")

        window = period_window(period)
        rows = await self.get_search_analytics(
            site_url,
            window.previous_start.date().isoformat(),
            window.end.date().isoformat(),
            tenant_id,
        )

        current, previous = [], []
        for row in rows:
            # With dimensions=["date"] the only key is the date
            day = date.fromisoformat(row["keys"][0])
            (current if window.is_current(day) else previous).append(row)

        performance = self._totals(current)
        performance["previous"] = self._totals(previous)
        return performance

    def _totals(self, rows: list) -> dict:
        clicks = sum(int(to_number(r.get("clicks"))) for r in rows)
        impressions = sum(int(to_number(r.get("impressions"))) for r in rows)
        positions = [to_number(r.get("position")) for r in rows]
        return {
            "clicks": clicks,
            "impressions": impressions,
            "ctr": round(clicks / impressions * 100, 2) if impressions > 0 else 0,
            "position": round(sum(positions) / len(positions), 1) if positions else 0,
        }

    async def _probe(self, tenant_id: Optional[str]):
        await self.list_sites(tenant_id)
