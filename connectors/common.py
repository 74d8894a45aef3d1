"""
Shared helpers for the platform connectors.

Period windows, per-tenant credential lookup and the Google OAuth
refresh-token exchange used by both Google connectors.
"""

import os
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional

import httpx
from dotenv import load_dotenv

load_dotenv()

# Relative windows accepted by every connector
PERIOD_DAYS = {"24h": 1, "7d": 7, "30d": 30, "90d": 90}

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"

DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=10.0)


@dataclass
class PeriodWindow:
    """Current window plus the equally long window right before it."""
    previous_start: datetime
    start: datetime
    end: datetime

    def is_current(self, day) -> bool:
        """True if a date (or datetime) falls in the current window."""
        if isinstance(day, datetime):
            return day >= self.start
        return day >= self.start.date()

    def current_days(self) -> list[date]:
        """Calendar days of the current window, oldest first."""
        first = self.start.date()
        return [first + timedelta(days=offset) for offset in range((self.end.date() - first).days + 1)]


def period_window(period: str, now: datetime = None) -> PeriodWindow:
    """
    Build the window for a period; unknown periods fall back to 7 days.

    Windows are whole calendar days: the current one is the last N days
    up to and including today, the previous one the N days before it.
    """
    days = PERIOD_DAYS.get(period, 7)
    end = now or datetime.now(timezone.utc)
    start = end.replace(hour=0, minute=0, second=0, microsecond=0) - timedelta(days=days - 1)
    return PeriodWindow(previous_start=start - timedelta(days=days), start=start, end=end)


def tenant_suffix(tenant_id: str) -> str:
    """Normalize a tenant id into an env var suffix (biz-123 -> BIZ_123)."""
    return re.sub(r"[^A-Za-z0-9]", "_", tenant_id).upper()


def get_setting(name: str, tenant_id: Optional[str] = None, default: Optional[str] = None) -> Optional[str]:
    """
    Read a setting from the environment.

    A tenant-specific value (NAME__TENANT) wins over the shared NAME.
    """
    if tenant_id:
        value = os.getenv(f"{name}__{tenant_suffix(tenant_id)}")
        if value:
            return value
    return os.getenv(name, default)


def require_settings(platform: str, tenant_id: Optional[str], *names: str) -> dict:
    """Resolve several settings at once, raising ValueError for any missing."""
    values = {name: get_setting(name, tenant_id) for name in names}
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise ValueError(f"{platform} missing credentials: {', '.join(missing)}")
    return values


def to_number(value) -> float:
    """Coerce API numbers (often strings) to float; empty values are 0."""
    if value in (None, ""):
        return 0.0
    return float(value)


class BaseConnector:
    """Common HTTP plumbing for the async connectors."""

    PLATFORM = ""

    def __init__(self, transport: httpx.AsyncBaseTransport = None, timeout: httpx.Timeout = DEFAULT_TIMEOUT):
        self.transport = transport
        self.timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport, timeout=self.timeout)

    def _raise_for_status(self, response: httpx.Response):
        if response.status_code >= 400:
            raise RuntimeError(f"{self.PLATFORM} API Error: {response.status_code} - {response.text}")

    async def _refresh_google_token(self, client: httpx.AsyncClient, tenant_id: Optional[str], refresh_setting: str) -> str:
        """Exchange a stored refresh token for a short-lived access token."""
        creds = require_settings(
            self.PLATFORM, tenant_id,
            "GOOGLE_ADS_CLIENT_ID", "GOOGLE_ADS_CLIENT_SECRET",
        )
        refresh_token = get_setting(refresh_setting, tenant_id) or get_setting("GOOGLE_ADS_REFRESH_TOKEN", tenant_id)
        if not refresh_token:
            raise ValueError(f"{self.PLATFORM} missing credentials: {refresh_setting}")

        response = await client.post(
            GOOGLE_TOKEN_URL,
            data={
                "client_id": creds["GOOGLE_ADS_CLIENT_ID"],
                "client_secret": creds["GOOGLE_ADS_CLIENT_SECRET"],
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            },
        )
        if response.status_code != 200:
            raise RuntimeError(f"Failed to refresh token: {response.text}")

        return response.json()["access_token"]

    async def test_connection(self, tenant_id: Optional[str] = None) -> dict:
        """Probe the platform; never raises."""
        try:
            await self._probe(tenant_id)
            return {"status": "connected", "message": f"{self.PLATFORM} API connection successful"}
        except Exception as e:
            return {"status": "error", "message": str(e)}

    async def _probe(self, tenant_id: Optional[str]):
        raise NotImplementedError
