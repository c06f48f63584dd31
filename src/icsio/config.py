from __future__ import annotations

from dataclasses import dataclass
import logging
import os

from icsio import __version__

logger = logging.getLogger(__name__)

ENV_TIMEOUT_SEC = "ICSIO_FETCH_TIMEOUT_SEC"
ENV_RETRIES = "ICSIO_FETCH_RETRIES"
ENV_BACKOFF_SEC = "ICSIO_FETCH_BACKOFF_SEC"
ENV_USER_AGENT = "ICSIO_USER_AGENT"

DEFAULT_TIMEOUT_SEC = 20.0
DEFAULT_RETRIES = 0
DEFAULT_BACKOFF_SEC = 2
DEFAULT_USER_AGENT = f"icsio/{__version__}"


@dataclass(frozen=True)
class FetchSettings:
    timeout_sec: float = DEFAULT_TIMEOUT_SEC
    retries: int = DEFAULT_RETRIES
    backoff_sec: int = DEFAULT_BACKOFF_SEC
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        if self.timeout_sec <= 0:
            raise ValueError("timeout_sec must be > 0.")
        if self.retries < 0:
            raise ValueError("retries must be >= 0.")
        if self.backoff_sec < 0:
            raise ValueError("backoff_sec must be >= 0.")
        if not self.user_agent.strip():
            raise ValueError("user_agent must not be empty.")

    @classmethod
    def from_env(cls) -> FetchSettings:
        """Read ICSIO_* variables; invalid values fall back to defaults with a warning."""
        return cls(
            timeout_sec=_env_float(ENV_TIMEOUT_SEC, DEFAULT_TIMEOUT_SEC, minimum=0.0, inclusive=False),
            retries=_env_int(ENV_RETRIES, DEFAULT_RETRIES),
            backoff_sec=_env_int(ENV_BACKOFF_SEC, DEFAULT_BACKOFF_SEC),
            user_agent=os.getenv(ENV_USER_AGENT, "").strip() or DEFAULT_USER_AGENT,
        )


def _env_int(key: str, default: int) -> int:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("icsio_config_invalid key=%s reason=not_an_integer", key)
        return default
    if value < 0:
        logger.warning("icsio_config_invalid key=%s reason=negative", key)
        return default
    return value


def _env_float(key: str, default: float, *, minimum: float, inclusive: bool) -> float:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("icsio_config_invalid key=%s reason=not_a_float", key)
        return default
    if value < minimum or (not inclusive and value == minimum):
        logger.warning("icsio_config_invalid key=%s reason=out_of_range", key)
        return default
    return value
