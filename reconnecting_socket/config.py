from dataclasses import dataclass, field, fields
import os
from typing import Any, Mapping, Optional

from dotenv import load_dotenv

from reconnecting_socket.exceptions import ConfigError

# Load .env from project root if present
load_dotenv()

STRATEGIES = ("exponential", "fibonacci")

# camelCase spellings accepted by BackoffConfig.from_mapping
_ALIASES = {
    "initialDelay": "initial_delay",
    "maxDelay": "max_delay",
    "randomizationFactor": "randomization_factor",
    "randomisationFactor": "randomization_factor",
    "failAfter": "fail_after",
}


def _env_float(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a number, got {raw!r}", cause=exc) from exc


def _env_fail_after() -> Optional[int]:
    raw = os.getenv("RS_BACKOFF_FAIL_AFTER", "").strip()
    if not raw or raw.lower() in ("none", "unbounded"):
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"RS_BACKOFF_FAIL_AFTER must be an integer, got {raw!r}", cause=exc) from exc


@dataclass
class BackoffConfig:
    """Retry policy for a reconnecting socket. Delays are in milliseconds."""

    strategy: str = "fibonacci"
    initial_delay: float = 1000
    max_delay: float = 20000
    randomization_factor: float = 0.2
    fail_after: Optional[int] = None

    def __post_init__(self):
        if self.strategy not in STRATEGIES:
            raise ConfigError(
                f"unknown backoff strategy {self.strategy!r}",
                context={"choices": STRATEGIES},
            )
        if self.initial_delay <= 0:
            raise ConfigError("initial_delay must be greater than 0")
        if self.max_delay < self.initial_delay:
            raise ConfigError("max_delay must not be smaller than initial_delay")
        if not 0 <= self.randomization_factor < 1:
            raise ConfigError("randomization_factor must be in [0, 1)")
        if self.fail_after is not None and self.fail_after < 1:
            raise ConfigError("fail_after must be a positive integer or None")

    @classmethod
    def from_env(cls) -> "BackoffConfig":
        return cls(
            strategy=os.getenv("RS_BACKOFF_STRATEGY", "fibonacci").strip().lower(),
            initial_delay=_env_float("RS_BACKOFF_INITIAL_DELAY", 1000),
            max_delay=_env_float("RS_BACKOFF_MAX_DELAY", 20000),
            randomization_factor=_env_float("RS_BACKOFF_RANDOMIZATION_FACTOR", 0.2),
            fail_after=_env_fail_after(),
        )

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "BackoffConfig":
        """Build from a plain dict; unknown keys are rejected."""
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in (data or {}).items():
            name = _ALIASES.get(key, key)
            if name not in known:
                raise ConfigError(f"unknown backoff option {key!r}")
            kwargs[name] = value
        return cls(**kwargs)


@dataclass
class Config:
    LOG_LEVEL: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    # empty string disables the rotating file handler
    LOG_FILE: str = field(default_factory=lambda: os.getenv("LOG_FILE", "logs/reconnecting_socket.log"))
    # RS_BACKOFF_* are read on demand through BackoffConfig.from_env, never on import


# single shared config instance
config = Config()
