"""Configuration and logging setup for taskdeck."""

import logging
import os
import sys
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigError

load_dotenv()

BACKENDS = ("local", "sql", "supabase")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class Settings:
    """Runtime settings.

    Attributes:
        backend: Which Reconciler/remote pairing to run (local, sql, supabase)
        database_url: SQLAlchemy URL used by the sql backend
        supabase_url: Project URL used by the supabase backend
        supabase_anon_key: Public API key sent with every Supabase request
        auth_secret: Signing secret for locally issued access tokens
        history_limit: Maximum number of undoable entries kept
        remote_timeout: Seconds before a remote call is treated as failed
        log_level: Root log level name
    """
    backend: str = "local"
    database_url: str = "sqlite:///./taskdeck.db"
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    auth_secret: str = "taskdeck-dev-secret"
    history_limit: int = 50
    remote_timeout: float = 10.0
    log_level: str = "INFO"

    def __post_init__(self):
        if self.backend not in BACKENDS:
            raise ConfigError(f"Unknown backend '{self.backend}', expected one of {', '.join(BACKENDS)}")
        if self.history_limit < 1:
            raise ConfigError("History limit must be at least 1")
        if self.backend == "supabase" and not (self.supabase_url and self.supabase_anon_key):
            raise ConfigError("SUPABASE_URL and SUPABASE_ANON_KEY are required for the supabase backend")

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables."""
        try:
            return cls(
                backend=os.getenv("TASKDECK_BACKEND", "local").lower(),
                database_url=os.getenv("DATABASE_URL", "sqlite:///./taskdeck.db"),
                supabase_url=os.getenv("SUPABASE_URL"),
                supabase_anon_key=os.getenv("SUPABASE_ANON_KEY"),
                auth_secret=os.getenv("TASKDECK_AUTH_SECRET", "taskdeck-dev-secret"),
                history_limit=int(os.getenv("TASKDECK_HISTORY_LIMIT", "50")),
                remote_timeout=float(os.getenv("TASKDECK_REMOTE_TIMEOUT", "10")),
                log_level=os.getenv("TASKDECK_LOG_LEVEL", "INFO").upper(),
            )
        except ValueError as e:
            if isinstance(e, ConfigError):
                raise
            raise ConfigError(f"Invalid numeric setting: {e}") from e


def configure_logging(level: str = "INFO") -> None:
    """Install a stdout handler on the package logger."""
    logger = logging.getLogger("taskdeck")
    logger.setLevel(level)

    # Prevent adding handlers multiple times
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
