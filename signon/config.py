"""Configuration management for the signon service."""
from __future__ import annotations

import logging
import os
import secrets
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from .credentials import DEFAULT_HASH_ROUNDS
from .database import DEFAULT_STORAGE_TIMEOUT, resolve_database_path
from .service import DEFAULT_OPERATION_TIMEOUT
from .tokens import DEFAULT_TOKEN_TTL

logger = logging.getLogger("signon.config")

_ENV_PREFIX = "SIGNON_"

# setting name -> environment variable suffix
_ENV_KEYS = {
    "database_path": "DB_PATH",
    "token_secret": "TOKEN_SECRET",
    "token_issuer": "TOKEN_ISSUER",
    "token_ttl_seconds": "TOKEN_TTL",
    "hash_rounds": "HASH_ROUNDS",
    "request_timeout": "REQUEST_TIMEOUT",
    "storage_timeout": "STORAGE_TIMEOUT",
    "env": "ENV",
}


def _as_int(name: str, value: object) -> int:
    try:
        return int(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"Invalid integer value {value!r} for setting '{name}'") from exc


def _as_timeout(name: str, value: object) -> Optional[float]:
    if value is None:
        return None
    text = str(value).strip().lower()
    if text in {"", "none", "off", "0"}:
        return None
    try:
        parsed = float(text)
    except ValueError as exc:
        raise ValueError(f"Invalid timeout value {value!r} for setting '{name}'") from exc
    if parsed < 0:
        raise ValueError(f"Setting '{name}' must not be negative")
    return parsed


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, read-only once loaded."""

    database_path: Path
    token_secret: str
    token_issuer: str = "signon"
    token_ttl_seconds: int = int(DEFAULT_TOKEN_TTL.total_seconds())
    hash_rounds: int = DEFAULT_HASH_ROUNDS
    request_timeout: Optional[float] = DEFAULT_OPERATION_TIMEOUT
    storage_timeout: float = DEFAULT_STORAGE_TIMEOUT
    env: str = "development"

    @property
    def token_ttl(self) -> timedelta:
        return timedelta(seconds=self.token_ttl_seconds)

    @staticmethod
    def from_dict(data: Mapping[str, object], base_path: Path | None = None) -> "Settings":
        """Create :class:`Settings` from raw values, filling in defaults."""

        unknown = set(data) - set(_ENV_KEYS)
        if unknown:
            raise ValueError(f"Unknown configuration settings: {', '.join(sorted(unknown))}")

        raw_path = data.get("database_path")
        if raw_path:
            candidate = Path(str(raw_path)).expanduser()
            if not candidate.is_absolute() and base_path is not None:
                candidate = base_path / candidate
            database_path = candidate.resolve(strict=False)
        else:
            database_path = resolve_database_path(None)

        token_secret = str(data.get("token_secret") or "")
        if not token_secret:
            logger.warning(
                "No token secret configured; generated an ephemeral one. Tokens will not"
                " survive a restart. Set SIGNON_TOKEN_SECRET for production use."
            )
            token_secret = secrets.token_urlsafe(32)

        ttl = _as_int("token_ttl_seconds", data.get("token_ttl_seconds", int(DEFAULT_TOKEN_TTL.total_seconds())))
        if ttl <= 0:
            raise ValueError("Setting 'token_ttl_seconds' must be positive")
        rounds = _as_int("hash_rounds", data.get("hash_rounds", DEFAULT_HASH_ROUNDS))
        if rounds <= 0:
            raise ValueError("Setting 'hash_rounds' must be positive")

        storage_timeout = _as_timeout("storage_timeout", data.get("storage_timeout", DEFAULT_STORAGE_TIMEOUT))

        return Settings(
            database_path=database_path,
            token_secret=token_secret,
            token_issuer=str(data.get("token_issuer") or "signon"),
            token_ttl_seconds=ttl,
            hash_rounds=rounds,
            request_timeout=_as_timeout(
                "request_timeout", data.get("request_timeout", DEFAULT_OPERATION_TIMEOUT)
            ),
            storage_timeout=storage_timeout if storage_timeout is not None else DEFAULT_STORAGE_TIMEOUT,
            env=str(data.get("env") or "development"),
        )


def _read_config_file(config_path: Path) -> Dict[str, object]:
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Configuration file {config_path} must contain a mapping")
    return dict(raw)


def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Load settings from an optional YAML file, then apply environment overrides."""

    env = os.environ if environ is None else environ

    if config_path is None and env.get(f"{_ENV_PREFIX}CONFIG"):
        config_path = Path(env[f"{_ENV_PREFIX}CONFIG"]).expanduser()

    data: Dict[str, object] = {}
    base_path: Path | None = None
    if config_path is not None:
        data.update(_read_config_file(config_path))
        base_path = config_path.resolve(strict=False).parent

    for name, suffix in _ENV_KEYS.items():
        value = env.get(f"{_ENV_PREFIX}{suffix}")
        if value is None or value.strip() == "":
            continue
        if name == "database_path":
            value = str(resolve_database_path(value))
        data[name] = value

    return Settings.from_dict(data, base_path=base_path)


__all__ = ["Settings", "load_settings"]
