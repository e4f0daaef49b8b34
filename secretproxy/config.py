"""Environment driven client settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import ConfigError

BUS_ENV = "SECRETPROXY_BUS"
PROMPT_TIMEOUT_ENV = "SECRETPROXY_PROMPT_TIMEOUT"
PROMPT_POLL_ENV = "SECRETPROXY_PROMPT_POLL"
CALL_TIMEOUT_ENV = "SECRETPROXY_CALL_TIMEOUT"
LEGACY_ENV = "SECRETPROXY_LEGACY"
LOG_PATH_ENV = "SECRETPROXY_LOG_PATH"

DEFAULT_BUS = "SESSION"
DEFAULT_PROMPT_TIMEOUT = 300.0
DEFAULT_PROMPT_POLL = 0.5

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ClientSettings:
    """Settings shared by every proxy created from one :class:`Service`."""

    bus: str = DEFAULT_BUS
    prompt_timeout: Optional[float] = DEFAULT_PROMPT_TIMEOUT
    prompt_poll_interval: float = DEFAULT_PROMPT_POLL
    call_timeout: Optional[float] = None
    legacy: bool = False
    log_path: Optional[Path] = None


def _float_env(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        # Non-positive timeouts disable the bound entirely.
        return None
    return value


def log_path() -> Optional[Path]:
    """Return the event log location from :env:`SECRETPROXY_LOG_PATH`, if any."""

    override = os.environ.get(LOG_PATH_ENV)
    if override:
        return Path(override).expanduser().resolve()
    return None


def load_settings() -> ClientSettings:
    """Build :class:`ClientSettings` from the ``SECRETPROXY_*`` variables."""

    bus = os.environ.get(BUS_ENV, DEFAULT_BUS).strip().upper() or DEFAULT_BUS
    if bus not in {"SESSION", "SYSTEM"}:
        raise ConfigError(f"{BUS_ENV} must be SESSION or SYSTEM, got {bus!r}")
    poll = _float_env(PROMPT_POLL_ENV, DEFAULT_PROMPT_POLL) or DEFAULT_PROMPT_POLL
    return ClientSettings(
        bus=bus,
        prompt_timeout=_float_env(PROMPT_TIMEOUT_ENV, DEFAULT_PROMPT_TIMEOUT),
        prompt_poll_interval=poll,
        call_timeout=_float_env(CALL_TIMEOUT_ENV, None),
        legacy=os.environ.get(LEGACY_ENV, "").strip().lower() in _TRUTHY,
        log_path=log_path(),
    )


__all__ = ["ClientSettings", "load_settings", "log_path"]
