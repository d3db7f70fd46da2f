"""Prometheus scrape endpoint."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST

from ..core.observability import get_prometheus_metrics, metrics_collector
from ..workers.manager import worker_manager

router = APIRouter()


@router.get(
    "/metrics",
    summary="Prometheus Metrics",
    description="Booking, inventory, HTTP and worker metrics in Prometheus text format",
    response_class=Response,
    tags=["Observability"]
)
async def metrics():
    """
    Return Prometheus metrics.

    Worker gauges are refreshed on every scrape.
    """
    metrics_collector.record_worker_status(worker_manager.get_worker_status())
    return Response(content=get_prometheus_metrics(), media_type=CONTENT_TYPE_LATEST)
