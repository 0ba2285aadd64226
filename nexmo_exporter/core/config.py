from __future__ import annotations

import argparse
import math
import os
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from nexmo_exporter import __version__
from nexmo_exporter.core.errors import StartupConfigError

LogLevel = Literal["debug", "info", "warning", "error"]
LogFormat = Literal["logfmt", "json"]

DEFAULT_LISTEN_ADDRESS = ":9100"
DEFAULT_METRICS_PATH = "/metrics"
DEFAULT_NEXMO_URL = "https://rest.nexmo.com"
DEFAULT_TIMEOUT = "5s"
DEFAULT_NAMESPACE = "nexmo"
DEFAULT_CREDENTIALS_FILE = "/app/credentials/nexmo.json"

_NAMESPACE_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def _getenv(environ: Mapping[str, str], name: str, default: str) -> str:
    # Empty values fall back to the default so `FOO=` in a compose file is harmless.
    return environ.get(name, "").strip() or default


@dataclass(frozen=True)
class Settings:
    listen_host: str
    listen_port: int
    metrics_path: str
    nexmo_url: str
    timeout: float
    namespace: str
    credentials_file: Path
    log_level: LogLevel
    log_format: LogFormat

    @property
    def log_json(self) -> bool:
        return self.log_format == "json"

    @property
    def listen_address(self) -> str:
        return f"{self.listen_host}:{self.listen_port}"


def parse_duration(raw: str) -> float:
    """Parse a Go-style duration ("5s", "250ms", "1m30s") or bare seconds.

    Returns the duration in seconds.  Raises StartupConfigError when the
    value is malformed or not strictly positive.
    """
    text = raw.strip()
    try:
        seconds = float(text)
    except ValueError:
        pos = 0
        seconds = 0.0
        for match in _DURATION_PART_RE.finditer(text):
            if match.start() != pos:
                break
            seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
            pos = match.end()
        if pos == 0 or pos != len(text):
            raise StartupConfigError(f"invalid duration {raw!r}") from None

    if not math.isfinite(seconds) or seconds <= 0:
        raise StartupConfigError(f"duration must be positive (got {raw!r})")
    return seconds


def parse_listen_address(raw: str) -> tuple[str, int]:
    """Split "host:port" (host optional, IPv6 in brackets) into its parts.

    A bare port number is accepted too, which is how the container image
    passes PROMETHEUS_METRICS_PORT.  An empty host means all interfaces.
    """
    text = raw.strip()
    if text.isdigit():
        host, port_raw = "", text
    else:
        host, sep, port_raw = text.rpartition(":")
        if not sep:
            raise StartupConfigError(
                f"listen address must be [host]:port (got {raw!r})"
            )
        host = host.strip("[]")

    try:
        port = int(port_raw)
    except ValueError:
        raise StartupConfigError(
            f"listen port must be an integer (got {port_raw!r})"
        ) from None
    if not 0 < port < 65536:
        raise StartupConfigError(f"listen port out of range (got {port})")

    return host or "0.0.0.0", port


def build_parser(environ: Mapping[str, str]) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nexmo_exporter",
        description="Prometheus exporter for the Nexmo account balance.",
    )
    parser.add_argument(
        "--web.listen-address",
        dest="listen_address",
        default=_getenv(environ, "PROMETHEUS_METRICS_PORT", DEFAULT_LISTEN_ADDRESS),
        help="Address to listen on for web interface and telemetry.",
    )
    parser.add_argument(
        "--web.telemetry-path",
        dest="metrics_path",
        default=_getenv(environ, "PROMETHEUS_METRICS_PATH", DEFAULT_METRICS_PATH),
        help="Path under which to expose metrics.",
    )
    parser.add_argument(
        "--nexmo.url",
        dest="nexmo_url",
        default=_getenv(environ, "NEXMO_URL", DEFAULT_NEXMO_URL),
        help="Nexmo API URL.",
    )
    parser.add_argument(
        "--nexmo.timeout",
        dest="timeout",
        default=_getenv(environ, "NEXMO_TIMEOUT", DEFAULT_TIMEOUT),
        help="Timeout for trying to get stats from Nexmo.",
    )
    parser.add_argument(
        "--nexmo.namespace",
        dest="namespace",
        default=_getenv(environ, "NEXMO_PROMETHEUS_NAMESPACE", DEFAULT_NAMESPACE),
        help="Prometheus namespace for Nexmo metrics.",
    )
    parser.add_argument(
        "--nexmo.credentials-file",
        dest="credentials_file",
        default=_getenv(environ, "NEXMO_CREDENTIALS_FILE", DEFAULT_CREDENTIALS_FILE),
        help="JSON file holding the APIKey / APISecret pair.",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        default=_getenv(environ, "LOG_LEVEL", "info"),
        help="Only log messages with the given severity or above.",
    )
    parser.add_argument(
        "--log.format",
        dest="log_format",
        default=_getenv(environ, "LOG_FORMAT", "logfmt"),
        help="Output format of log messages: logfmt or json.",
    )
    parser.add_argument("--version", action="version", version=__version__)
    return parser


def load_settings(
    argv: Sequence[str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Build Settings from command-line flags, defaulting from the environment."""
    env = os.environ if environ is None else environ
    args = build_parser(env).parse_args(argv)

    log_level = args.log_level.strip().lower()
    if log_level not in ("debug", "info", "warning", "error"):
        raise StartupConfigError(
            f"log.level must be debug|info|warning|error (got {args.log_level!r})"
        )

    log_format = args.log_format.strip().lower()
    if log_format not in ("logfmt", "json"):
        raise StartupConfigError(
            f"log.format must be logfmt|json (got {args.log_format!r})"
        )

    namespace = args.namespace.strip()
    if not _NAMESPACE_RE.match(namespace):
        raise StartupConfigError(
            f"nexmo.namespace must be a valid metric name prefix (got {namespace!r})"
        )

    metrics_path = args.metrics_path.strip()
    if not metrics_path.startswith("/") or metrics_path == "/":
        raise StartupConfigError(
            f"web.telemetry-path must start with '/' and not be the root (got {metrics_path!r})"
        )

    nexmo_url = args.nexmo_url.strip()
    if not nexmo_url.startswith(("http://", "https://")):
        raise StartupConfigError(f"nexmo.url must be an http(s) URL (got {nexmo_url!r})")

    host, port = parse_listen_address(args.listen_address)

    return Settings(  # type: ignore[arg-type]
        listen_host=host,
        listen_port=port,
        metrics_path=metrics_path,
        nexmo_url=nexmo_url.rstrip("/"),
        timeout=parse_duration(args.timeout),
        namespace=namespace,
        credentials_file=Path(args.credentials_file),
        log_level=log_level,
        log_format=log_format,
    )
