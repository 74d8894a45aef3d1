"""
Runtime configuration for the dashboard API.

Values come from the environment (a .env file is loaded if present).
"""

import os
from typing import Optional

from dotenv import load_dotenv

from connectors.common import PERIOD_DAYS

load_dotenv()

# Valid period options, in the order the dashboard offers them
VALID_PERIODS = list(PERIOD_DAYS)

# Periods pre-computed by a full refresh
REFRESH_PERIODS = ["24h", "7d", "30d"]

CHART_TYPES = ["revenue", "traffic", "conversions"]

# TTL settings (in seconds)
CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", 900))
REFRESH_INTERVAL_SECONDS = int(os.getenv("REFRESH_INTERVAL_SECONDS", 900))
CACHE_CLEANUP_INTERVAL_SECONDS = int(os.getenv("CACHE_CLEANUP_INTERVAL_SECONDS", 300))

SCHEDULER_ENABLED = os.getenv("SCHEDULER_ENABLED", "true").lower() in ("1", "true", "yes")


def get_refresh_tenants() -> list[Optional[str]]:
    """Tenants the scheduler refreshes; None stands for the default tenant."""
    raw = os.getenv("REFRESH_TENANTS", "")
    tenants = [t.strip() for t in raw.split(",") if t.strip()]
    return tenants or [None]


def get_webhook_secret() -> Optional[str]:
    """Shared secret expected in the X-Webhook-Secret header, if any."""
    return os.getenv("WEBHOOK_SECRET") or None


def get_allowed_origins() -> list[str]:
    """Get CORS allowed origins from environment or defaults."""
    origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]

    # Add custom origins if provided (comma-separated)
    custom_origins = os.getenv("CORS_ORIGINS", "")
    if custom_origins:
        origins.extend([o.strip() for o in custom_origins.split(",") if o.strip()])

    frontend_url = os.getenv("FRONTEND_URL")
    if frontend_url:
        origins.append(frontend_url)

    return origins


def configured_platforms() -> dict[str, str]:
    """Which platforms have base credentials set (for the health check)."""
    def state(*names):
        return "configured" if all(os.getenv(n) for n in names) else "not configured"

    return {
        "bigcommerce": state("BIGCOMMERCE_STORE_HASH", "BIGCOMMERCE_ACCESS_TOKEN"),
        "google_ads": state("GOOGLE_ADS_DEVELOPER_TOKEN", "GOOGLE_ADS_CUSTOMER_ID"),
        "meta_ads": state("META_ACCESS_TOKEN", "META_AD_ACCOUNT_ID"),
        "search_console": state("GOOGLE_ADS_CLIENT_ID", "GOOGLE_ADS_CLIENT_SECRET"),
    }
