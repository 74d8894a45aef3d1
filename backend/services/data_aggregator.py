"""
Data Aggregator for the marketing dashboard.

Combines data from every connected platform into the three dashboard views:

1. Summary metrics (revenue, orders, conversions, CTR, impressions, users)
2. Per-platform cards
3. Chart series (revenue over time, traffic sources, conversions by provider)

Each view is cached per (view, period, business). Upstream calls for a view
are issued together and a failing platform only drops its own contribution.
"""

import asyncio
import inspect
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Optional

from backend.config import CACHE_TTL_SECONDS, CHART_TYPES, REFRESH_PERIODS, VALID_PERIODS
from backend.services.cache_manager import CacheManager
from connectors.common import to_number

DEFAULT_TENANT = "default"

# Platform names, in the order cards are shown
PLATFORMS = ["bigcommerce", "search_console", "google_ads", "meta_ads"]

# Which platforms contribute to each summed field
METRIC_SOURCES = {
    "revenue": ("bigcommerce",),
    "orders": ("bigcommerce",),
    "conversions": ("google_ads", "meta_ads"),
    "impressions": ("search_console", "google_ads", "meta_ads"),
    "clicks": ("search_console", "google_ads", "meta_ads"),
    "users": ("search_console",),
}


class InvalidRequestError(ValueError):
    """Raised for a period or chart type the dashboard does not offer."""


@dataclass
class FetchResult:
    """Outcome of one upstream call inside a fan-out."""
    platform: str
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def _invoke(fetch, *args):
    """Call a fetcher that may be sync or async."""
    result = fetch(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def format_large_number(num) -> str:
    if num >= 1_000_000:
        return f"{num / 1_000_000:.1f}M"
    elif num >= 1_000:
        return f"{num / 1_000:.1f}K"
    return f"{num:g}"


def percent_change(current: float, previous: float) -> tuple[str, str]:
    """Period-over-period change as (display, trend)."""
    if not previous:
        return "0.0%", "neutral"

    change = (current - previous) / previous * 100
    if change > 0:
        return f"+{change:.1f}%", "up"
    if change < 0:
        return f"{change:.1f}%", "down"
    return "0.0%", "neutral"


class DataAggregator:
    """Aggregates platform data into cached dashboard views."""

    def __init__(self, cache: CacheManager, store, google_ads, meta_ads, search_console,
                 ttl_seconds: int = CACHE_TTL_SECONDS):
        self.cache = cache
        self.store = store
        self.google_ads = google_ads
        self.meta_ads = meta_ads
        self.search_console = search_console
        self.ttl_seconds = ttl_seconds
        self.refresh_in_progress = False

    # =========================================================================
    # FAN-OUT
    # =========================================================================

    async def _settle(self, calls: dict[str, Awaitable]) -> dict[str, FetchResult]:
        """Await every call together and tag each outcome; never raises for a call."""
        names = list(calls)
        outcomes = await asyncio.gather(*calls.values(), return_exceptions=True)

        results = {}
        for name, outcome in zip(names, outcomes):
            if isinstance(outcome, BaseException):
                print(f"[Aggregator] {name} call failed: {outcome!r}")
                results[name] = FetchResult(name, error=outcome)
            else:
                results[name] = FetchResult(name, value=outcome)
        return results

    def _upstream_calls(self, period: str, tenant_id: Optional[str]) -> dict[str, Awaitable]:
        return {
            "bigcommerce": _invoke(self.store.get_analytics, period, tenant_id),
            "google_ads": _invoke(self.google_ads.get_performance, None, period, tenant_id),
            "meta_ads": _invoke(self.meta_ads.get_performance, None, period, tenant_id),
            "search_console": _invoke(self.search_console.get_performance, None, period, tenant_id),
        }

    async def _fetch_records(self, period: str, tenant_id: Optional[str]) -> tuple[dict, dict]:
        """Fetch every platform; returns (records, source status). Failed records are None."""
        results = await self._settle(self._upstream_calls(period, tenant_id))
        records = {name: r.value if r.ok else None for name, r in results.items()}
        sources = {name: "ok" if r.ok else "error" for name, r in results.items()}
        return records, sources

    def _connectors(self) -> dict:
        return {
            "bigcommerce": self.store,
            "google_ads": self.google_ads,
            "meta_ads": self.meta_ads,
            "search_console": self.search_console,
        }

    # =========================================================================
    # VIEWS
    # =========================================================================

    def _check_period(self, period: str):
        if period not in VALID_PERIODS:
            raise InvalidRequestError(f"Invalid period: {period}. Use one of {', '.join(VALID_PERIODS)}")

    @staticmethod
    def _tenant(tenant_id: Optional[str]) -> str:
        return tenant_id or DEFAULT_TENANT

    async def get_aggregated_metrics(self, period: str = "7d", tenant_id: Optional[str] = None) -> dict:
        """Summary metrics for a business over a period."""
        self._check_period(period)
        cache_key = f"metrics_{period}_{self._tenant(tenant_id)}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        records, sources = await self._fetch_records(period, tenant_id)
        metrics = {
            "period": period,
            "business_id": self._tenant(tenant_id),
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "sources": sources,
            "metrics": self.calculate_aggregated_metrics(records),
        }

        self.cache.set(cache_key, metrics, self.ttl_seconds)
        return metrics

    async def get_platform_data(self, period: str = "7d", tenant_id: Optional[str] = None) -> list[dict]:
        """One card per platform; platforms that fail are left out."""
        self._check_period(period)
        cache_key = f"platforms_{period}_{self._tenant(tenant_id)}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        results = await self._settle({
            "bigcommerce": self._bigcommerce_card(period, tenant_id),
            "search_console": self._search_console_card(period, tenant_id),
            "google_ads": self._ads_card(self.google_ads, "google_ads", "Google Ads",
                                         "from-yellow-500 to-orange-600", period, tenant_id),
            "meta_ads": self._ads_card(self.meta_ads, "meta_ads", "Meta Ads",
                                       "from-pink-500 to-purple-600", period, tenant_id),
        })
        platform_data = [results[name].value for name in PLATFORMS if results[name].ok]

        self.cache.set(cache_key, platform_data, self.ttl_seconds)
        return platform_data

    async def get_chart_data(self, period: str = "7d", chart_type: str = "all",
                             tenant_id: Optional[str] = None) -> dict:
        """
        Chart series for a period.

        All three series are built from one fan-out (traffic needs clicks from
        several providers anyway); a specific chart_type narrows the result.
        """
        self._check_period(period)
        chart_type = chart_type or "all"
        if chart_type != "all" and chart_type not in CHART_TYPES:
            raise InvalidRequestError(f"Invalid chart type: {chart_type}. Use all or one of {', '.join(CHART_TYPES)}")

        cache_key = f"charts_{period}_{chart_type}_{self._tenant(tenant_id)}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        records, _ = await self._fetch_records(period, tenant_id)
        chart_data = {
            "revenue": self._revenue_series(records),
            "traffic": self._traffic_series(records),
            "conversions": self._conversions_series(records),
        }
        if chart_type != "all":
            chart_data = {chart_type: chart_data[chart_type]}

        self.cache.set(cache_key, chart_data, self.ttl_seconds)
        return chart_data

    # =========================================================================
    # REFRESH / INVALIDATION
    # =========================================================================

    async def refresh_all_data(self, tenant_id: Optional[str] = None) -> bool:
        """
        Drop and re-warm every cached view of a business.

        Only one refresh runs at a time across all businesses; a call made
        while another is running returns False without doing anything.
        """
        if self.refresh_in_progress:
            print("[Aggregator] Data refresh already in progress, skipping...")
            return False

        self.refresh_in_progress = True
        tenant = self._tenant(tenant_id)
        print(f"[Aggregator] Starting data refresh for business: {tenant}...")

        try:
            removed = self.clear_business_cache(tenant_id)
            print(f"[Aggregator] Cleared {removed} cached entries for {tenant}")

            for period in REFRESH_PERIODS:
                outcomes = await asyncio.gather(
                    self.get_aggregated_metrics(period, tenant_id),
                    self.get_platform_data(period, tenant_id),
                    self.get_chart_data(period, "all", tenant_id),
                    return_exceptions=True,
                )
                for view, outcome in zip(("metrics", "platforms", "charts"), outcomes):
                    if isinstance(outcome, BaseException):
                        print(f"[Aggregator] Refresh of {view} ({period}) failed: {outcome!r}")

            print(f"[Aggregator] Data refresh for {tenant} completed")
            return True
        finally:
            self.refresh_in_progress = False

    def clear_business_cache(self, tenant_id: Optional[str] = None) -> int:
        """Delete every cached key that mentions the business id."""
        tenant = self._tenant(tenant_id)
        keys_to_remove = [key for key in self.cache.keys() if tenant in key]
        for key in keys_to_remove:
            self.cache.delete(key)
        return len(keys_to_remove)

    def invalidate_cache(self, platform: str) -> int:
        """Delete every cached key containing the platform name, for all businesses."""
        removed = self.cache.clear_by_pattern(f"*{platform}*")
        print(f"[Aggregator] Invalidated {removed} cached entries matching {platform}")
        return removed

    async def get_system_status(self, tenant_id: Optional[str] = None) -> dict:
        """Probe every platform and report cache state. Never cached."""
        results = await self._settle({
            name: _invoke(connector.test_connection, tenant_id)
            for name, connector in self._connectors().items()
        })

        services = {}
        for name, result in results.items():
            reported_error = isinstance(result.value, dict) and result.value.get("status") == "error"
            services[name] = "healthy" if result.ok and not reported_error else "error"

        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "business_id": self._tenant(tenant_id),
            "services": services,
            "cache": {
                "size": self.cache.size(),
                "hit_rate": self.cache.get_hit_rate(),
            },
            "refresh_in_progress": self.refresh_in_progress,
        }

    # =========================================================================
    # CALCULATIONS
    # =========================================================================

    def _totals(self, records: dict) -> dict:
        totals = {}
        for field, platforms in METRIC_SOURCES.items():
            totals[field] = sum(
                to_number(records[p].get(field))
                for p in platforms
                if records.get(p)
            )

        clicks, impressions = totals["clicks"], totals["impressions"]
        totals["ctr"] = round(clicks / impressions * 100, 2) if clicks > 0 and impressions > 0 else 0
        return totals

    def _metric(self, value, previous, display: str) -> dict:
        change, trend = percent_change(value, previous)
        return {"value": value, "display": display, "change": change, "trend": trend}

    def calculate_aggregated_metrics(self, records: dict) -> dict:
        """
        Reduce platform records into the six summary metrics.

        Missing (failed) records count as zero. Previous-window totals come
        from each record's "previous" dict when the platform provides one.
        """
        current = self._totals(records)
        previous = self._totals({
            name: record.get("previous") if record else None
            for name, record in records.items()
        })

        return {
            "total_revenue": self._metric(
                current["revenue"], previous["revenue"], f"${current['revenue']:,.2f}"),
            "orders": self._metric(
                current["orders"], previous["orders"], f"{current['orders']:,.0f}"),
            "conversions": self._metric(
                current["conversions"], previous["conversions"], f"{current['conversions']:,.0f}"),
            "click_through_rate": self._metric(
                current["ctr"], previous["ctr"], f"{current['ctr']:.2f}%" if current["ctr"] else "0%"),
            "impressions": self._metric(
                current["impressions"], previous["impressions"], format_large_number(current["impressions"])),
            "active_users": self._metric(
                current["users"], previous["users"], f"{current['users']:,.0f}"),
        }

    async def _bigcommerce_card(self, period: str, tenant_id: Optional[str]) -> dict:
        data = await _invoke(self.store.get_analytics, period, tenant_id)
        return {
            "platform": "bigcommerce",
            "name": "BigCommerce",
            "revenue": f"${to_number(data.get('revenue')):,.2f}",
            "orders": int(to_number(data.get("orders"))),
            "average_order_value": f"${to_number(data.get('average_order_value')):,.2f}",
            "color": "from-blue-500 to-blue-700",
        }

    async def _search_console_card(self, period: str, tenant_id: Optional[str]) -> dict:
        data = await _invoke(self.search_console.get_performance, None, period, tenant_id)
        return {
            "platform": "search_console",
            "name": "Google Search Console",
            "impressions": format_large_number(to_number(data.get("impressions"))),
            "clicks": format_large_number(to_number(data.get("clicks"))),
            "ctr": f"{to_number(data.get('ctr')):.2f}%",
            "color": "from-green-500 to-green-700",
        }

    async def _ads_card(self, connector, platform: str, name: str, color: str,
                        period: str, tenant_id: Optional[str]) -> dict:
        data = await _invoke(connector.get_performance, None, period, tenant_id)
        return {
            "platform": platform,
            "name": name,
            "spend": f"${to_number(data.get('spend')):,.2f}",
            "conversions": to_number(data.get("conversions")),
            "roas": f"{to_number(data.get('roas')):.2f}x",
            "color": color,
        }

    def _revenue_series(self, records: dict) -> list[dict]:
        store = records.get("bigcommerce")
        return list(store.get("daily_revenue") or []) if store else []

    def _traffic_series(self, records: dict) -> list[dict]:
        """Share of clicks per traffic source, in whole percent."""
        def clicks(platform):
            record = records.get(platform)
            return to_number(record.get("clicks")) if record else 0

        organic = clicks("search_console")
        paid = clicks("google_ads")
        social = clicks("meta_ads")
        total = organic + paid + social

        def share(value):
            return round(value / total * 100) if total > 0 else 0

        return [
            {"name": "Organic", "value": share(organic), "color": "#10B981"},
            {"name": "Paid Ads", "value": share(paid), "color": "#3B82F6"},
            {"name": "Social", "value": share(social), "color": "#EC4899"},
        ]

    def _conversions_series(self, records: dict) -> dict:
        def conversions(platform):
            record = records.get(platform)
            return to_number(record.get("conversions")) if record else 0

        return {
            "google_ads": conversions("google_ads"),
            "meta_ads": conversions("meta_ads"),
        }
