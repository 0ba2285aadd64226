"""Client for the Nexmo account-balance endpoint.

  GET {base_url}/account/get-balance/{api_key}/{api_secret}
  Accept: application/json

  200 → {"value": 12.5, "autoReload": false}

The key and secret are path segments, not headers.  That is the upstream
contract and cannot change, but it means the request URL is a secret:
nothing in this module puts it into an exception message, and callers
that want to log the target use ``redacted_uri``.

Every failure maps onto one BalanceError subclass:

  TransportError       DNS, connect, timeout, connection reset
  UpstreamStatusError  anything but HTTP 200
  DecodeError          body unreadable (connection dropped mid-body),
                       not JSON, or wrong shape

There is no retry.  A failed fetch is one failed scrape; Prometheus will
ask again on its next interval.
"""

from __future__ import annotations

import logging
from types import TracebackType

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from nexmo_exporter.core.errors import DecodeError, TransportError, UpstreamStatusError

logger = logging.getLogger(__name__)

BALANCE_PATH = "/account/get-balance/{key}/{secret}"


class BalanceSample(BaseModel):
    """One balance reading as returned by the API."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    # strict: a quoted number is a contract violation, not something to coerce
    value: float = Field(strict=True)
    auto_reload: bool = Field(default=False, alias="autoReload")

    @field_validator("auto_reload", mode="before")
    @classmethod
    def _null_auto_reload_is_off(cls, v: object) -> object:
        return False if v is None else v


class BalanceClient:
    """Fetches the account balance with a single blocking GET.

    One ``httpx.Client`` is kept for the lifetime of the exporter so that
    connections to the API are reused between scrapes.  ``timeout`` (in
    seconds) bounds connect, read and write alike.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        api_secret: str,
        *,
        timeout: float = 5.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        base = base_url.rstrip("/")
        self._uri = base + BALANCE_PATH.format(key=api_key, secret=api_secret)
        self.redacted_uri = base + BALANCE_PATH.format(key=api_key, secret="****")
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout),
            headers={"Accept": "application/json"},
            transport=transport,
        )

    def fetch_balance(self) -> BalanceSample:
        """Return the current balance or raise a BalanceError subclass."""
        try:
            with self._client.stream("GET", self._uri) as response:
                if response.status_code != 200:
                    raise UpstreamStatusError(response.status_code)
                try:
                    body = response.read()
                except httpx.TransportError as exc:
                    raise DecodeError(
                        f"failed to read response body: {type(exc).__name__}: {exc}"
                    ) from None
        except httpx.TransportError as exc:
            # str(exc) is the OS/protocol reason only; exc.request holds the URL.
            raise TransportError(f"{type(exc).__name__}: {exc}") from None

        try:
            return BalanceSample.model_validate_json(body)
        except ValidationError as exc:
            details = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or '<body>'}: {err['msg']}"
                for err in exc.errors(include_input=False, include_url=False)
            )
            raise DecodeError(f"malformed balance response: {details}") from None

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> BalanceClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"BalanceClient({self.redacted_uri!r})"
