"""
Configuration - Environment-driven settings.

Variables:
    CROUPIER_ENV                Deployment label (default: development)
    CROUPIER_WATCHDOG_SECONDS   Watchdog window in seconds (default: 15)
    CROUPIER_ACCOUNT_ID         Account used for balance queries (default: local)
    CROUPIER_INITIAL_BALANCE    Seed balance for the in-memory transport
    ALLOWED_ORIGINS             Comma-separated CORS origins (default: *)
    CROUPIER_LOG_VERBOSITY      0 = WARNING, 1 = INFO, 2 = DEBUG

Invalid numeric values fall back to the defaults.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Mapping, Optional
import logging
import os

from .session.watchdog import DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)


def _number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %r", name, raw, default)
        return default
    if value < 0:
        logger.warning("Ignoring negative %s=%r, using %r", name, raw, default)
        return default
    return value


@dataclass
class SyncConfig:
    """Settings shared by the CLI and the HTTP surface."""
    env: str = "development"
    watchdog_seconds: float = DEFAULT_TIMEOUT
    account_id: str = "local"
    initial_balance: Optional[int] = None
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])
    log_verbosity: int = 0

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> SyncConfig:
        env = os.environ if env is None else env
        watchdog = _number(env, "CROUPIER_WATCHDOG_SECONDS", DEFAULT_TIMEOUT, float)
        if watchdog == 0:
            watchdog = DEFAULT_TIMEOUT
        origins = [o.strip() for o in env.get("ALLOWED_ORIGINS", "*").split(",") if o.strip()]
        return cls(
            env=env.get("CROUPIER_ENV", "development"),
            watchdog_seconds=watchdog,
            account_id=env.get("CROUPIER_ACCOUNT_ID", "local") or "local",
            initial_balance=_number(env, "CROUPIER_INITIAL_BALANCE", None, int),
            allowed_origins=origins or ["*"],
            log_verbosity=_number(env, "CROUPIER_LOG_VERBOSITY", 0, int),
        )
