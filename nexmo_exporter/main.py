from __future__ import annotations

import logging

from fastapi import FastAPI
from prometheus_client import CollectorRegistry

from nexmo_exporter import __version__
from nexmo_exporter.api.landing import router as landing_router
from nexmo_exporter.api.metrics_endpoint import build_router as build_metrics_router
from nexmo_exporter.core.config import DEFAULT_METRICS_PATH
from nexmo_exporter.middleware.request_context import RequestContextMiddleware

logger = logging.getLogger(__name__)


def create_app(
    registry: CollectorRegistry,
    *,
    metrics_path: str = DEFAULT_METRICS_PATH,
) -> FastAPI:
    """Build the HTTP app around an already-constructed registry.

    No module-level app or exporter: every call returns an independent
    instance, which is what lets tests run several exporters side by side.
    """
    app = FastAPI(
        title="nexmo-exporter",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.registry = registry
    app.state.metrics_path = metrics_path

    app.add_middleware(RequestContextMiddleware)

    app.include_router(build_metrics_router(metrics_path))
    app.include_router(landing_router)

    logger.debug("App created  metrics_path=%s", metrics_path)
    return app
