from __future__ import annotations

from pathlib import Path

import pytest

from nexmo_exporter.core.config import (
    Settings,
    load_settings,
    parse_duration,
    parse_listen_address,
)
from nexmo_exporter.core.errors import StartupConfigError

# ---- defaults ----


def test_load_settings_defaults() -> None:
    settings = load_settings([], environ={})
    assert settings.listen_host == "0.0.0.0"
    assert settings.listen_port == 9100
    assert settings.metrics_path == "/metrics"
    assert settings.nexmo_url == "https://rest.nexmo.com"
    assert settings.timeout == 5.0
    assert settings.namespace == "nexmo"
    assert settings.credentials_file == Path("/app/credentials/nexmo.json")
    assert settings.log_level == "info"
    assert settings.log_json is False


def test_load_settings_reads_flags() -> None:
    settings = load_settings(
        [
            "--web.listen-address=127.0.0.1:9101",
            "--web.telemetry-path=/probe",
            "--nexmo.url=http://localhost:8080/",
            "--nexmo.timeout=250ms",
            "--nexmo.namespace=vonage",
            "--nexmo.credentials-file=/tmp/creds.json",
            "--log.level=DEBUG",
            "--log.format=json",
        ],
        environ={},
    )
    assert settings.listen_address == "127.0.0.1:9101"
    assert settings.metrics_path == "/probe"
    assert settings.nexmo_url == "http://localhost:8080"
    assert settings.timeout == pytest.approx(0.25)
    assert settings.namespace == "vonage"
    assert settings.credentials_file == Path("/tmp/creds.json")
    assert settings.log_level == "debug"
    assert settings.log_json is True


def test_environment_provides_defaults() -> None:
    env = {
        "PROMETHEUS_METRICS_PORT": "9200",
        "PROMETHEUS_METRICS_PATH": "/nexmo-metrics",
        "NEXMO_URL": "https://api.nexmo.test",
        "NEXMO_TIMEOUT": "10s",
        "NEXMO_PROMETHEUS_NAMESPACE": "acct_eu",
        "LOG_LEVEL": "warning",
    }
    settings = load_settings([], environ=env)
    assert settings.listen_port == 9200
    assert settings.metrics_path == "/nexmo-metrics"
    assert settings.nexmo_url == "https://api.nexmo.test"
    assert settings.timeout == 10.0
    assert settings.namespace == "acct_eu"
    assert settings.log_level == "warning"


def test_flags_override_environment() -> None:
    settings = load_settings(
        ["--nexmo.namespace=from_flag"],
        environ={"NEXMO_PROMETHEUS_NAMESPACE": "from_env"},
    )
    assert settings.namespace == "from_flag"


def test_empty_env_values_fall_back_to_defaults() -> None:
    settings = load_settings([], environ={"NEXMO_TIMEOUT": "  ", "LOG_LEVEL": ""})
    assert settings.timeout == 5.0
    assert settings.log_level == "info"


# ---- invalid values ----


@pytest.mark.parametrize(
    ("flag", "message"),
    [
        ("--log.level=verbose", "log.level must be debug|info|warning|error"),
        ("--log.format=xml", "log.format must be logfmt|json"),
        ("--nexmo.namespace=bad-name", "nexmo.namespace"),
        ("--nexmo.namespace=9lives", "nexmo.namespace"),
        ("--web.telemetry-path=metrics", "web.telemetry-path"),
        ("--web.telemetry-path=/", "web.telemetry-path"),
        ("--nexmo.url=ftp://rest.nexmo.com", "nexmo.url"),
        ("--nexmo.timeout=soon", "invalid duration"),
        ("--web.listen-address=localhost", "listen address"),
    ],
)
def test_load_settings_rejects_invalid_values(flag: str, message: str) -> None:
    with pytest.raises(StartupConfigError, match=message):
        load_settings([flag], environ={})


def test_version_flag_exits_cleanly(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        load_settings(["--version"], environ={})
    assert excinfo.value.code == 0
    assert "0.1.0" in capsys.readouterr().out


# ---- durations ----


@pytest.mark.parametrize(
    ("raw", "seconds"),
    [
        ("5s", 5.0),
        ("250ms", 0.25),
        ("1m30s", 90.0),
        ("1h", 3600.0),
        ("1.5s", 1.5),
        ("500us", 0.0005),
        ("3", 3.0),
        ("0.5", 0.5),
    ],
)
def test_parse_duration(raw: str, seconds: float) -> None:
    assert parse_duration(raw) == pytest.approx(seconds)


@pytest.mark.parametrize("raw", ["", "s", "5x", "5s garbage", "-1s", "0s", "0", "nan"])
def test_parse_duration_rejects(raw: str) -> None:
    with pytest.raises(StartupConfigError):
        parse_duration(raw)


# ---- listen address ----


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (":9100", ("0.0.0.0", 9100)),
        ("9101", ("0.0.0.0", 9101)),
        ("127.0.0.1:9100", ("127.0.0.1", 9100)),
        ("[::1]:9100", ("::1", 9100)),
    ],
)
def test_parse_listen_address(raw: str, expected: tuple[str, int]) -> None:
    assert parse_listen_address(raw) == expected


@pytest.mark.parametrize("raw", [":http", ":0", ":70000", "host"])
def test_parse_listen_address_rejects(raw: str) -> None:
    with pytest.raises(StartupConfigError):
        parse_listen_address(raw)


# ---- Settings ----


def test_settings_is_frozen() -> None:
    s = load_settings([], environ={})
    with pytest.raises(AttributeError):
        s.namespace = "other"  # type: ignore[misc]


def test_settings_log_json_property() -> None:
    s = Settings(  # type: ignore[arg-type]
        listen_host="0.0.0.0",
        listen_port=9100,
        metrics_path="/metrics",
        nexmo_url="https://rest.nexmo.com",
        timeout=5.0,
        namespace="nexmo",
        credentials_file=Path("/dev/null"),
        log_level="info",
        log_format="json",
    )
    assert s.log_json is True
