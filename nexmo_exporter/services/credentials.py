"""Nexmo API credentials, loaded once at startup.

In the container image the file is a mounted secret volume at
/app/credentials/nexmo.json:

  {"APIKey": "abcd1234", "APISecret": "s3cr3t"}

Any problem with it (missing, unreadable, not JSON, missing or empty
fields) raises StartupConfigError.  The process must not start without
credentials, so the CLI turns that into a non-zero exit.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from nexmo_exporter.core.errors import StartupConfigError

logger = logging.getLogger(__name__)


class Credentials(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    api_key: str = Field(alias="APIKey", min_length=1)
    # repr=False keeps the secret out of tracebacks and debug logs.
    api_secret: str = Field(alias="APISecret", min_length=1, repr=False)


def load_credentials(path: Path) -> Credentials:
    """Read and validate the credential file at ``path``."""
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise StartupConfigError(
            f"failed to read API credentials from {path}: {exc.strerror or exc}"
        ) from exc

    try:
        credentials = Credentials.model_validate_json(raw)
    except ValidationError as exc:
        # Only report which fields failed; input values may contain the secret.
        fields = sorted({".".join(str(p) for p in err["loc"]) or "<root>" for err in exc.errors()})
        raise StartupConfigError(
            f"invalid API credentials in {path}: bad or missing {', '.join(fields)}"
        ) from None

    logger.info("Loaded API credentials from %s for key %s", path, credentials.api_key)
    return credentials
