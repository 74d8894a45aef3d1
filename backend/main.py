"""
Marketing Dashboard API

FastAPI backend that serves unified dashboard data pulled from BigCommerce,
Google Search Console, Google Ads and Meta Ads.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.config import SCHEDULER_ENABLED, configured_platforms, get_allowed_origins
from backend.routers import dashboard, webhooks
from backend.services.cache_manager import CacheManager
from backend.services.data_aggregator import DataAggregator
from backend.services.scheduler import RefreshScheduler
from connectors import (
    BigCommerceConnector,
    GoogleAdsConnector,
    GoogleSearchConsoleConnector,
    MetaAdsConnector,
)

# One cache and aggregator per process
cache_manager = CacheManager()
data_aggregator = DataAggregator(
    cache_manager,
    store=BigCommerceConnector(),
    google_ads=GoogleAdsConnector(),
    meta_ads=MetaAdsConnector(),
    search_console=GoogleSearchConsoleConnector(),
)
scheduler = RefreshScheduler(data_aggregator, cache_manager)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    print("Starting Marketing Dashboard API...")
    print(f"CORS allowed origins: {get_allowed_origins()}")
    if SCHEDULER_ENABLED:
        scheduler.start()
    yield
    if scheduler.running:
        await scheduler.stop()
    print("Shutting down...")


app = FastAPI(
    title="Marketing Dashboard API",
    description="Unified marketing metrics across store, search and ad platforms",
    version="1.0.0",
    lifespan=lifespan,
)
app.state.aggregator = data_aggregator

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["Dashboard"])
app.include_router(webhooks.router, prefix="/api/webhooks", tags=["Webhooks"])


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "healthy", "service": "Marketing Dashboard API"}


@app.get("/api/health")
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "version": "1.0.0",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": configured_platforms(),
        "cache_size": cache_manager.size(),
        "endpoints": [
            "/api/dashboard",
            "/api/webhooks",
        ],
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("backend.main:app", host="0.0.0.0", port=8000, reload=True)
