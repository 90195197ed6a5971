# slotkeeper/routes/v1/metrics.py
"""
Prometheus metrics endpoint.

Public, like any Prometheus scrape target. Exposes the counters and
histograms recorded by ``measure_operation``, the provider schedule lock
and the booking lifecycle.
"""

from fastapi import APIRouter, Response

from ...monitoring.prometheus_metrics import prometheus_metrics

router = APIRouter(tags=["monitoring"])


@router.get("", response_class=Response)
def get_metrics() -> Response:
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
        headers={"Cache-Control": "no-store"},
    )
