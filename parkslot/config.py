# File: parkslot/config.py
"""
Runtime settings read from environment variables

PARKSLOT_BACKEND        memory | sqlalchemy | mongodb
DATABASE_URL            SQLAlchemy URL for the sqlalchemy backend
MONGODB_URI             MongoDB connection string
MONGODB_DATABASE        MongoDB database name
REDIS_URL               Redis URL for locks and events
PARKSLOT_LOCK_BACKEND   local | redis
PARKSLOT_LOCK_TIMEOUT   lock lease in seconds (redis)
PARKSLOT_LOCK_WAIT      seconds to wait for an area lock
PARKSLOT_EVENTS         memory | redis
PARKSLOT_SLOT_STRATEGY  nearest_entry | typed_only
LOG_LEVEL               logging level name
LOG_FILE                optional log file path
"""

from dataclasses import dataclass
from typing import Mapping, Optional
import os

BACKENDS = ("memory", "sqlalchemy", "mongodb")
LOCK_BACKENDS = ("local", "redis")
EVENT_BACKENDS = ("memory", "redis")


def _choice(value: str, allowed: tuple, variable: str) -> str:
    value = value.strip().lower()
    if value not in allowed:
        raise ValueError(f"{variable} must be one of {', '.join(allowed)}, got: {value!r}")
    return value


def _seconds(value: Optional[str], variable: str, default: float) -> float:
    if value is None or not value.strip():
        return default
    try:
        seconds = float(value)
    except ValueError:
        raise ValueError(f"{variable} must be a number of seconds, got: {value!r}") from None
    if seconds <= 0:
        raise ValueError(f"{variable} must be positive, got: {value!r}")
    return seconds


@dataclass
class Settings:
    """Application configuration"""
    backend: str = "memory"
    database_url: str = "sqlite:///./parkslot.db"
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_database: str = "parkslot"
    redis_url: str = "redis://localhost:6379/0"
    lock_backend: str = "local"
    lock_timeout: float = 10.0
    lock_wait: float = 5.0
    events: str = "memory"
    slot_strategy: str = "nearest_entry"
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Settings':
        """
        Build settings from the environment
        Raises: ValueError for unsupported values
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            backend=_choice(env.get("PARKSLOT_BACKEND", defaults.backend), BACKENDS, "PARKSLOT_BACKEND"),
            database_url=env.get("DATABASE_URL", defaults.database_url),
            mongodb_uri=env.get("MONGODB_URI", defaults.mongodb_uri),
            mongodb_database=env.get("MONGODB_DATABASE", defaults.mongodb_database),
            redis_url=env.get("REDIS_URL", defaults.redis_url),
            lock_backend=_choice(
                env.get("PARKSLOT_LOCK_BACKEND", defaults.lock_backend), LOCK_BACKENDS, "PARKSLOT_LOCK_BACKEND"
            ),
            lock_timeout=_seconds(env.get("PARKSLOT_LOCK_TIMEOUT"), "PARKSLOT_LOCK_TIMEOUT", defaults.lock_timeout),
            lock_wait=_seconds(env.get("PARKSLOT_LOCK_WAIT"), "PARKSLOT_LOCK_WAIT", defaults.lock_wait),
            events=_choice(env.get("PARKSLOT_EVENTS", defaults.events), EVENT_BACKENDS, "PARKSLOT_EVENTS"),
            slot_strategy=env.get("PARKSLOT_SLOT_STRATEGY", defaults.slot_strategy).strip().lower(),
            log_level=env.get("LOG_LEVEL", defaults.log_level).upper(),
            log_file=env.get("LOG_FILE") or None,
        )

    @property
    def uses_redis(self) -> bool:
        return self.lock_backend == "redis" or self.events == "redis"
