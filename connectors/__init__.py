"""Async platform connectors feeding the dashboard aggregator."""

from connectors.bigcommerce import BigCommerceConnector
from connectors.google_ads import GoogleAdsConnector
from connectors.google_search_console import GoogleSearchConsoleConnector
from connectors.meta_ads import MetaAdsConnector

__all__ = [
    "BigCommerceConnector",
    "GoogleAdsConnector",
    "GoogleSearchConsoleConnector",
    "MetaAdsConnector",
]
