"""
BigCommerce Connector for the marketing dashboard.

Pulls orders for a period and turns them into store analytics:
revenue, order count, average order value and a daily revenue series.
"""

from email.utils import parsedate_to_datetime
from typing import Optional

from connectors.common import BaseConnector, period_window, require_settings, to_number


class BigCommerceConnector(BaseConnector):
    """Connector for the BigCommerce Stores API."""

    PLATFORM = "BigCommerce"
    BASE_URL = "https://api.bigcommerce.com/stores"
    PAGE_SIZE = 250

    def _credentials(self, tenant_id: Optional[str]) -> dict:
        return require_settings(self.PLATFORM, tenant_id, "BIGCOMMERCE_STORE_HASH", "BIGCOMMERCE_ACCESS_TOKEN")

    def _headers(self, creds: dict) -> dict:
        return {
            "X-Auth-Token": creds["BIGCOMMERCE_ACCESS_TOKEN"],
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def get_orders(self, start, end, tenant_id: Optional[str] = None) -> list[dict]:
        """
        Get all orders created between two datetimes.

        Walks the v2 orders pages until a short page comes back.
        """
        creds = self._credentials(tenant_id)
        url = f"{self.BASE_URL}/{creds['BIGCOMMERCE_STORE_HASH']}/v2/orders"

        orders = []
        page = 1
        async with self._client() as client:
            while True:
                response = await client.get(
                    url,
                    headers=self._headers(creds),
                    params={
                        "min_date_created": start.isoformat(),
                        "max_date_created": end.isoformat(),
                        "limit": self.PAGE_SIZE,
                        "page": page,
                        "sort": "date_created:desc",
                    },
                )
                # 204 means no (more) orders
                if response.status_code == 204:
                    break
                self._raise_for_status(response)

                batch = response.json() or []
                orders.extend(batch)
                if len(batch) < self.PAGE_SIZE:
                    break
                page += 1

        return orders

    async def get_analytics(self, period: str = "7d", tenant_id: Optional[str] = None) -> dict:
        """Get store analytics for a period, with the previous window for comparison."""
        window = period_window(period)
        orders = await self.get_orders(window.previous_start, window.end, tenant_id)

        current, previous = [], []
        for order in orders:
            created = parsedate_to_datetime(order["date_created"])
            total = to_number(order.get("total_inc_tax"))
            if window.is_current(created):
                current.append((created, total))
            else:
                previous.append((created, total))

        analytics = self._summarize(current)
        analytics["daily_revenue"] = self._daily_revenue(current, window)
        analytics["previous"] = self._summarize(previous)
        return analytics

    def _summarize(self, orders: list[tuple]) -> dict:
        revenue = round(sum(total for _, total in orders), 2)
        count = len(orders)
        return {
            "revenue": revenue,
            "orders": count,
            "average_order_value": round(revenue / count, 2) if count > 0 else 0,
        }

    def _daily_revenue(self, orders: list[tuple], window) -> list[dict]:
        """One point per day of the current window, oldest first."""
        by_day = {}
        for created, total in orders:
            day = created.astimezone(window.end.tzinfo).date()
            by_day[day] = by_day.get(day, 0) + total

        series = []
        for day in window.current_days():
            series.append({
                "name": day.strftime("%a"),
                "date": day.isoformat(),
                "value": round(by_day.get(day, 0)),
            })
        return series

    async def _probe(self, tenant_id: Optional[str]):
        creds = self._credentials(tenant_id)
        async with self._client() as client:
            response = await client.get(
                f"{self.BASE_URL}/{creds['BIGCOMMERCE_STORE_HASH']}/v2/store",
                headers=self._headers(creds),
            )
            self._raise_for_status(response)
