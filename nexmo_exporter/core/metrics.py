"""The exporter: a custom Prometheus collector around the balance client.

HOW A SCRAPE WORKS
--------------------
There is no background polling.  Prometheus GETs /metrics, the handler
calls ``generate_latest(registry)``, and the registry calls
``Exporter.collect()``.  That call IS the scrape:

  1. take the lock
  2. total_scrapes += 1
  3. fetch the balance (blocking, bounded by the client timeout)
  4. success → balance = value, up = 1
     failure → up = 0, balance untouched ("last known good"), log it
  5. yield the three metric families from that same state
  6. release the lock

Two overlapping scrapes never interleave: the second one waits on the
lock and then performs its own full fetch.  Nothing is deduplicated.

The collector answers normally when the upstream is down.  ``up = 0`` is
the signal; the HTTP response to Prometheus stays a 200.

WHY A CUSTOM COLLECTOR (NOT Gauge/Counter OBJECTS)
----------------------------------------------------
prometheus_client's Gauge/Counter are updated at the point of action
and read whenever the registry is collected.  Here the action happens
*during* collection, and the three values must be read as one
consistent snapshot.  A collector that builds fresh MetricFamily objects
under its own lock gives exactly that.

Each Exporter gets its own CollectorRegistry (``build_registry``), never
the global default REGISTRY.  Two exporters with different namespaces can
live in one process (or one test session) without name collisions.
"""

from __future__ import annotations

import logging
import platform
import threading
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Protocol

from prometheus_client import (
    CollectorRegistry,
    GCCollector,
    Info,
    PlatformCollector,
    ProcessCollector,
)
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric
from prometheus_client.registry import Collector

from nexmo_exporter.core.errors import BalanceError
from nexmo_exporter.services.balance_client import BalanceSample

logger = logging.getLogger(__name__)

UP_HELP = "Was the last scrape of nexmo successful."
SCRAPES_HELP = "Current total nexmo scrapes."
BALANCE_HELP = "Nexmo balance in euros."


class BalanceFetcher(Protocol):
    def fetch_balance(self) -> BalanceSample:
        """Return one balance reading or raise BalanceError."""
        ...


@dataclass(frozen=True, slots=True)
class ExporterState:
    """Outcome of the most recent scrape."""

    up: int = 0
    total_scrapes: int = 0
    balance: float = 0.0


class Exporter(Collector):
    """Collects the Nexmo balance on every registry collection."""

    def __init__(self, client: BalanceFetcher, namespace: str = "nexmo") -> None:
        self.client = client
        self.namespace = namespace
        self._lock = threading.Lock()
        self._up = 0
        self._total_scrapes = 0
        self._balance = 0.0

    def _name(self, name: str) -> str:
        return f"{self.namespace}_{name}"

    def describe(self) -> Iterator[Metric]:
        # Same names and types as collect(), no samples, no upstream call.
        yield GaugeMetricFamily(self._name("up"), UP_HELP)
        yield CounterMetricFamily(self._name("exporter_scrapes"), SCRAPES_HELP)
        yield GaugeMetricFamily(self._name("balance"), BALANCE_HELP)

    def collect(self) -> Iterator[Metric]:
        with self._lock:
            self.scrape()
            state = self._state()

        yield GaugeMetricFamily(self._name("up"), UP_HELP, value=state.up)
        yield CounterMetricFamily(
            self._name("exporter_scrapes"), SCRAPES_HELP, value=state.total_scrapes
        )
        yield GaugeMetricFamily(self._name("balance"), BALANCE_HELP, value=state.balance)

    def scrape(self) -> None:
        """Run one fetch and update the state.  Caller must hold the lock."""
        self._total_scrapes += 1

        try:
            sample = self.client.fetch_balance()
        except BalanceError as exc:
            self._up = 0
            logger.error(
                "Can't get balance: %s",
                exc,
                extra={"namespace": self.namespace, "error_kind": type(exc).__name__},
            )
            return

        self._balance = sample.value
        self._up = 1
        logger.debug(
            "Scraped balance %.4f (autoReload=%s)",
            sample.value,
            sample.auto_reload,
            extra={"namespace": self.namespace},
        )

    def _state(self) -> ExporterState:
        return ExporterState(
            up=self._up, total_scrapes=self._total_scrapes, balance=self._balance
        )

    def snapshot(self) -> ExporterState:
        """Consistent copy of the current state, without scraping."""
        with self._lock:
            return self._state()


def build_registry(exporter: Exporter, version: str) -> CollectorRegistry:
    """Fresh registry with the exporter, process metrics and build info."""
    registry = CollectorRegistry(auto_describe=True)
    registry.register(exporter)

    ProcessCollector(registry=registry)
    PlatformCollector(registry=registry)
    GCCollector(registry=registry)

    build_info = Info(
        "exporter_build",
        "Build information of the nexmo exporter.",
        namespace=exporter.namespace,
        registry=registry,
    )
    build_info.info({"version": version, "python_version": platform.python_version()})
    return registry
