"""Process entry point.

RUN:  python -m nexmo_exporter [--web.listen-address=:9100] ...

Startup order matters:

  1. parse flags / env          → StartupConfigError exits 1
  2. configure logging
  3. load the credential file   → StartupConfigError exits 1
  4. build client, exporter, registry, app
  5. bind the listen address and serve

Nothing is bound before steps 1-3 succeed, so a pod without its
credential secret fails immediately instead of serving ``up = 0`` forever.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import uvicorn

from nexmo_exporter import __version__
from nexmo_exporter.core.config import load_settings
from nexmo_exporter.core.errors import StartupConfigError
from nexmo_exporter.core.logging import setup_logging
from nexmo_exporter.core.metrics import Exporter, build_registry
from nexmo_exporter.main import create_app
from nexmo_exporter.middleware.request_context import install_log_filter
from nexmo_exporter.services.balance_client import BalanceClient
from nexmo_exporter.services.credentials import load_credentials

logger = logging.getLogger("nexmo_exporter")


def main(argv: Sequence[str] | None = None) -> int:
    try:
        settings = load_settings(argv)
    except StartupConfigError as exc:
        setup_logging("info")
        logger.error("Invalid configuration: %s", exc)
        return 1

    setup_logging(settings.log_level, json_format=settings.log_json)
    install_log_filter()

    try:
        credentials = load_credentials(settings.credentials_file)
    except StartupConfigError as exc:
        logger.error("%s", exc)
        return 1

    with BalanceClient(
        settings.nexmo_url,
        credentials.api_key,
        credentials.api_secret,
        timeout=settings.timeout,
    ) as client:
        exporter = Exporter(client, namespace=settings.namespace)
        registry = build_registry(exporter, __version__)
        app = create_app(registry, metrics_path=settings.metrics_path)

        logger.info(
            "Starting nexmo_exporter  version=%s namespace=%s upstream=%s timeout=%.3fs",
            __version__,
            settings.namespace,
            client.redacted_uri,
            settings.timeout,
            extra={"namespace": settings.namespace, "upstream": client.redacted_uri},
        )
        logger.info("Listening on %s", settings.listen_address)
        uvicorn.run(
            app,
            host=settings.listen_host,
            port=settings.listen_port,
            log_config=None,
            access_log=False,
        )

    return 0
