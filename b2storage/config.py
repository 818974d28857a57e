"""Environment-based configuration for the B2 client.

Credentials are read from ``B2_*`` environment variables, optionally seeded
from a ``.env`` file in the working directory.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from b2storage.models import Credentials

logger = logging.getLogger(__name__)

CREDENTIAL_FIELDS = {
    "key_id": "KEY_ID",
    "application_key": "APPLICATION_KEY",
    "bucket_id": "BUCKET_ID",
    "bucket_name": "BUCKET_NAME",
}


class ConfigError(Exception):
    """Raised when required configuration is missing."""

    pass


def _parse_line(line: str) -> tuple[str, str] | None:
    line = line.strip()
    if not line or line.startswith("#") or "=" not in line:
        return None
    if line.startswith("export "):
        line = line[len("export ") :]
    key, value = line.split("=", 1)
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        value = value[1:-1]
    return key.strip(), value


def load_env_file_if_present(path: str | Path = ".env", override: bool = False) -> dict[str, str]:
    """Load KEY=VALUE pairs from a .env file if it exists.

    Keeps the package free of a python-dotenv dependency. Blank lines and
    ``#`` comments are skipped, an ``export`` prefix is allowed and matching
    quotes around a value are removed. Existing environment variables win
    unless ``override`` is set.

    Returns the pairs read from the file.
    """
    env_path = Path(path)
    loaded: dict[str, str] = {}
    if not env_path.is_file():
        return loaded

    for raw in env_path.read_text(encoding="utf-8").splitlines():
        parsed = _parse_line(raw)
        if parsed is None:
            continue
        key, value = parsed
        if override or key not in os.environ:
            os.environ[key] = value
        loaded[key] = value

    logger.debug(f"Loaded {len(loaded)} entries from {env_path}")
    return loaded


def load_credentials(prefix: str = "B2_", dotenv: bool = True) -> Credentials:
    """Build Credentials from ``<prefix>KEY_ID``, ``<prefix>APPLICATION_KEY``,
    ``<prefix>BUCKET_ID`` and ``<prefix>BUCKET_NAME``.

    Raises ConfigError listing every variable that is unset or empty.
    """
    if dotenv:
        load_env_file_if_present()

    values = {attr: os.getenv(prefix + suffix) for attr, suffix in CREDENTIAL_FIELDS.items()}
    missing = [prefix + CREDENTIAL_FIELDS[attr] for attr, value in values.items() if not value]
    if missing:
        raise ConfigError(
            f"Missing B2 configuration: {', '.join(missing)}. Set them in environment or .env"
        )
    return Credentials(**values)
