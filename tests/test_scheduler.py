import asyncio

from backend.services.scheduler import RefreshScheduler


class RecordingAggregator:
    def __init__(self, fail_for=None):
        self.refreshed = []
        self.fail_for = fail_for

    async def refresh_all_data(self, tenant_id=None):
        self.refreshed.append(tenant_id)
        if tenant_id == self.fail_for:
            raise RuntimeError("upstream exploded")
        return True


def test_run_refresh_covers_every_tenant_and_survives_errors(cache, capsys):
    aggregator = RecordingAggregator(fail_for="biz1")
    scheduler = RefreshScheduler(aggregator, cache, tenants=["biz1", "biz2"])

    asyncio.run(scheduler.run_refresh())

    assert aggregator.refreshed == ["biz1", "biz2"]
    assert "Data refresh failed for biz1" in capsys.readouterr().out


def test_default_tenant_when_none_configured(cache, monkeypatch):
    monkeypatch.delenv("REFRESH_TENANTS", raising=False)
    scheduler = RefreshScheduler(RecordingAggregator(), cache)
    assert scheduler.tenants == [None]


def test_tenants_from_environment(cache, monkeypatch):
    monkeypatch.setenv("REFRESH_TENANTS", "biz1, biz2,,")
    scheduler = RefreshScheduler(RecordingAggregator(), cache)
    assert scheduler.tenants == ["biz1", "biz2"]


def test_loops_refresh_and_sweep_until_stopped(cache, clock):
    aggregator = RecordingAggregator()
    scheduler = RefreshScheduler(aggregator, cache, refresh_interval=0.01, cleanup_interval=0.01, tenants=[None])
    cache.set("stale", 1, 1)
    clock.advance(5)

    async def scenario():
        scheduler.start()
        assert scheduler.running
        await asyncio.sleep(0.1)
        await scheduler.stop()

    asyncio.run(scenario())

    assert not scheduler.running
    assert aggregator.refreshed
    assert cache.size() == 0
