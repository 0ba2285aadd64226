from __future__ import annotations

import logging
import sys
from collections.abc import Callable, Iterator
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient
from prometheus_client import CollectorRegistry

# Ensure repo root is on sys.path so `import nexmo_exporter` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from nexmo_exporter.core.metrics import Exporter, build_registry  # noqa: E402
from nexmo_exporter.main import create_app  # noqa: E402
from nexmo_exporter.services.balance_client import BalanceClient  # noqa: E402

UPSTREAM_URL = "https://rest.nexmo.test"
API_KEY = "key123"
API_SECRET = "hunter2-secret"

Handler = Callable[[httpx.Request], httpx.Response]


class FakeUpstream:
    """Scripted balance API served through httpx.MockTransport.

    The most recently configured reply is returned for every request
    until it is changed.  All requests are recorded for assertions.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._handler: Handler = lambda request: httpx.Response(
            200, json={"value": 0.0, "autoReload": False}
        )

    def reply(self, status_code: int = 200, **kwargs: object) -> None:
        self._handler = lambda request: httpx.Response(status_code, **kwargs)  # type: ignore[arg-type]

    def balance(self, value: float, auto_reload: bool = False) -> None:
        self.reply(200, json={"value": value, "autoReload": auto_reload})

    def fail(self, exc_type: type[httpx.TransportError], message: str = "boom") -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise exc_type(message, request=request)

        self._handler = handler

    def handle(self, handler: Handler) -> None:
        self._handler = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture(autouse=True)
def restore_root_logging() -> Iterator[None]:
    """Undo setup_logging() calls so handlers don't leak between tests."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def balance_client(upstream: FakeUpstream) -> Iterator[BalanceClient]:
    with BalanceClient(
        UPSTREAM_URL,
        API_KEY,
        API_SECRET,
        timeout=1.0,
        transport=upstream.transport,
    ) as client:
        yield client


@pytest.fixture
def exporter(balance_client: BalanceClient) -> Exporter:
    return Exporter(balance_client, namespace="nexmo")


@pytest.fixture
def registry(exporter: Exporter) -> CollectorRegistry:
    return build_registry(exporter, "0.0.0-test")


@pytest.fixture
def client(registry: CollectorRegistry) -> TestClient:
    return TestClient(create_app(registry, metrics_path="/metrics"))
