"""Stand-ins for the platform connectors and the clock."""

import asyncio


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeStore:
    """Stands in for BigCommerceConnector."""

    def __init__(self, record=None, error: Exception = None):
        self.record = record if record is not None else {
            "revenue": 1500.0,
            "orders": 30,
            "average_order_value": 50.0,
            "daily_revenue": [{"name": "Mon", "date": "2026-10-19", "value": 1500}],
            "previous": {"revenue": 1000.0, "orders": 30},
        }
        self.error = error
        self.calls = 0

    async def get_analytics(self, period, tenant_id=None):
        self.calls += 1
        await asyncio.sleep(0)
        if self.error:
            raise self.error
        return self.record

    async def test_connection(self, tenant_id=None):
        if self.error:
            return {"status": "error", "message": str(self.error)}
        return {"status": "connected", "message": "ok"}


class FakePerformance:
    """Stands in for the ads and search console connectors."""

    def __init__(self, record=None, error: Exception = None):
        self.record = record or {}
        self.error = error
        self.calls = 0

    async def get_performance(self, account_id, period, tenant_id=None):
        self.calls += 1
        await asyncio.sleep(0)
        if self.error:
            raise self.error
        return self.record

    async def test_connection(self, tenant_id=None):
        if self.error:
            raise self.error
        return {"status": "connected", "message": "ok"}


def google_ads_record():
    return {
        "clicks": 400, "impressions": 10_000, "spend": 250.0,
        "conversions": 12, "conversion_value": 900.0, "roas": 3.6,
        "previous": {"clicks": 400, "impressions": 10_000, "conversions": 10},
    }


def meta_ads_record():
    return {
        "clicks": 100, "impressions": 5_000, "spend": 120.0,
        "conversions": 8, "conversion_value": 300.0, "roas": 2.5,
        "previous": {"clicks": 50, "impressions": 5_000, "conversions": 10},
    }


def search_console_record():
    return {"clicks": 500, "impressions": 35_000, "ctr": 1.43, "position": 8.2}


