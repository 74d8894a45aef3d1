import pytest

from backend.services.cache_manager import CacheManager
from backend.services.data_aggregator import DataAggregator
from tests.fakes import FakeClock, FakePerformance, FakeStore, google_ads_record, meta_ads_record, search_console_record


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return CacheManager(clock=clock)


@pytest.fixture
def connectors():
    return {
        "store": FakeStore(),
        "google_ads": FakePerformance(google_ads_record()),
        "meta_ads": FakePerformance(meta_ads_record()),
        "search_console": FakePerformance(search_console_record()),
    }


@pytest.fixture
def aggregator(cache, connectors):
    return DataAggregator(cache, **connectors)
