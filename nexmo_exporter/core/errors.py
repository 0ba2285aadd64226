"""Exception hierarchy for the exporter.

Two families, handled in two very different places:

  BalanceError (and subclasses)
    Raised by the balance client when one upstream fetch fails.  These
    are EXPECTED at runtime: the collector catches them, reports
    ``up = 0`` and the scrape still answers 200.

  StartupConfigError
    Raised while building the process (bad flag, missing credential
    file).  Only the CLI entry point catches it, logs it and exits
    non-zero before the listen address is bound.
"""

from __future__ import annotations


class ExporterError(Exception):
    """Base class for every error raised by nexmo_exporter."""


class StartupConfigError(ExporterError):
    """Invalid configuration or credentials; the process must not start."""


class BalanceError(ExporterError):
    """One balance fetch failed."""


class TransportError(BalanceError):
    """DNS, connect, or timeout failure talking to the balance API."""


class UpstreamStatusError(BalanceError):
    """The balance API answered with a non-200 status."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"HTTP status {status_code}")
        self.status_code = status_code


class DecodeError(BalanceError):
    """The response body could not be read or parsed."""
