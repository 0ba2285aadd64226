"""Prometheus metrics endpoint.

Prometheus calls this every scrape interval.  Each call triggers exactly
one balance fetch (inside Exporter.collect) and returns plain text in the
exposition format:

  # HELP nexmo_up Was the last scrape of nexmo successful.
  # TYPE nexmo_up gauge
  nexmo_up 1.0
  # HELP nexmo_balance Nexmo balance in euros.
  # TYPE nexmo_balance gauge
  nexmo_balance 12.5

The handler is a plain ``def``: Starlette runs it in its threadpool, so
the blocking upstream call never stalls the event loop, and concurrent
scrapes queue on the exporter's lock instead.

The path is configurable (--web.telemetry-path), so the router is built
per app instead of living at module level.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest


def build_router(metrics_path: str) -> APIRouter:
    router = APIRouter(tags=["observability"])

    @router.get(metrics_path, include_in_schema=False)
    def metrics(request: Request) -> Response:
        """Scrape the balance and expose every metric in the app's registry."""
        registry: CollectorRegistry = request.app.state.registry
        return Response(
            content=generate_latest(registry),
            media_type=CONTENT_TYPE_LATEST,
        )

    return router
