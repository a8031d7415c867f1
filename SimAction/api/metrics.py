"""Prometheus metrics endpoint."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from SimAction.metrics import get_metrics_registry

router = APIRouter()


@router.get("/api/metrics")
def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Example Prometheus scrape config:
        scrape_configs:
          - job_name: 'simaction'
            scrape_interval: 15s
            static_configs:
              - targets: ['localhost:8000']
            metrics_path: '/api/metrics'

    Returns:
        Response: Prometheus-compatible text format
    """
    registry = get_metrics_registry()
    data = generate_latest(registry)

    return Response(
        content=data,
        media_type=CONTENT_TYPE_LATEST,
    )
