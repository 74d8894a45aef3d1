"""
Dashboard API endpoints.

Aggregated metrics, platform cards, chart series, refresh and status,
per business. The routes without a business id use the default business.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from backend.services.data_aggregator import DataAggregator, InvalidRequestError

router = APIRouter()


def get_aggregator(request: Request) -> DataAggregator:
    """The process-wide aggregator created in backend.main."""
    return request.app.state.aggregator


async def _run(description: str, operation, *args):
    """Await an aggregator call, mapping failures to HTTP errors."""
    try:
        return await operation(*args)
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        print(f"[Dashboard] Error fetching {description}: {e!r}")
        raise HTTPException(status_code=500, detail=f"Failed to load {description}")


async def _metrics(aggregator, period, business_id):
    return await _run("dashboard metrics", aggregator.get_aggregated_metrics, period, business_id)


async def _platforms(aggregator, period, business_id):
    return await _run("platform data", aggregator.get_platform_data, period, business_id)


async def _charts(aggregator, period, chart_type, business_id):
    return await _run("chart data", aggregator.get_chart_data, period, chart_type, business_id)


async def _refresh(aggregator, business_id):
    refreshed = await _run("data refresh", aggregator.refresh_all_data, business_id)
    return {
        "success": True,
        "refreshed": refreshed,
        "message": "Data refresh completed" if refreshed else "Data refresh already in progress",
    }


async def _status(aggregator, business_id):
    return await _run("system status", aggregator.get_system_status, business_id)


# Default business

@router.get("/metrics")
async def get_default_metrics(period: str = "7d", aggregator: DataAggregator = Depends(get_aggregator)):
    """Summary metrics for the default business."""
    return await _metrics(aggregator, period, None)


@router.get("/platforms")
async def get_default_platforms(period: str = "7d", aggregator: DataAggregator = Depends(get_aggregator)):
    """Platform cards for the default business."""
    return await _platforms(aggregator, period, None)


@router.get("/charts")
async def get_default_charts(
    period: str = "7d",
    chart_type: str = Query("all", alias="type"),
    aggregator: DataAggregator = Depends(get_aggregator),
):
    """Chart series for the default business."""
    return await _charts(aggregator, period, chart_type, None)


@router.post("/refresh")
async def refresh_default(aggregator: DataAggregator = Depends(get_aggregator)):
    """Force a refresh of the default business."""
    return await _refresh(aggregator, None)


@router.get("/status")
async def get_default_status(aggregator: DataAggregator = Depends(get_aggregator)):
    """Connection status for the default business."""
    return await _status(aggregator, None)


# Per business

@router.get("/{business_id}/metrics")
async def get_metrics(business_id: str, period: str = "7d", aggregator: DataAggregator = Depends(get_aggregator)):
    """Summary metrics for a business."""
    return await _metrics(aggregator, period, business_id)


@router.get("/{business_id}/platforms")
async def get_platforms(business_id: str, period: str = "7d", aggregator: DataAggregator = Depends(get_aggregator)):
    """Platform cards for a business."""
    return await _platforms(aggregator, period, business_id)


@router.get("/{business_id}/charts")
async def get_charts(
    business_id: str,
    period: str = "7d",
    chart_type: Optional[str] = Query("all", alias="type"),
    aggregator: DataAggregator = Depends(get_aggregator),
):
    """Chart series for a business; ?type= narrows to one chart."""
    return await _charts(aggregator, period, chart_type, business_id)


@router.post("/{business_id}/refresh")
async def refresh(business_id: str, aggregator: DataAggregator = Depends(get_aggregator)):
    """Force a refresh of every cached view of a business."""
    return await _refresh(aggregator, business_id)


@router.get("/{business_id}/status")
async def get_status(business_id: str, aggregator: DataAggregator = Depends(get_aggregator)):
    """Connection status for a business's platforms plus cache state."""
    return await _status(aggregator, business_id)
