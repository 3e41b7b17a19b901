"""
Lifecycle - Configuration

Centralized configuration for the supervisor and its ambient stack.
Uses environment variables with sensible defaults; a local .env file is
loaded on import.
"""
import os
import signal
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Environment(Enum):
    """Deployment environments."""
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(Enum):
    """Logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def _parse_signals(value: str) -> Tuple[signal.Signals, ...]:
    """Parse a comma separated list such as "SIGTERM,SIGINT"."""
    names = [name.strip().upper() for name in value.split(",") if name.strip()]
    signals = []
    for name in names:
        if not name.startswith("SIG"):
            name = f"SIG{name}"
        try:
            signals.append(signal.Signals[name])
        except KeyError:
            raise ValueError(f"Unknown signal in LIFECYCLE_SIGNALS: {name}") from None
    return tuple(signals)


@dataclass
class SupervisorConfig:
    """Supervisor behavior."""
    handle_signals: bool = field(
        default_factory=lambda: os.getenv("LIFECYCLE_HANDLE_SIGNALS", "true").lower() == "true"
    )
    signals: Tuple[signal.Signals, ...] = field(
        default_factory=lambda: _parse_signals(os.getenv("LIFECYCLE_SIGNALS", "SIGTERM,SIGINT"))
    )
    # Exit status used by the default terminator when the terminal error is set
    failure_exit_code: int = field(
        default_factory=lambda: int(os.getenv("LIFECYCLE_FAILURE_EXIT_CODE", "1"))
    )

    def __post_init__(self) -> None:
        if self.failure_exit_code == 0:
            raise ValueError("failure_exit_code must be non-zero")


@dataclass
class LoggingSettings:
    """Logging configuration."""
    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    json_format: bool = field(
        default_factory=lambda: os.getenv("LOG_FORMAT", "console").lower() == "json"
    )
    log_file: Optional[str] = field(default_factory=lambda: os.getenv("LOG_FILE") or None)

    def __post_init__(self) -> None:
        self.level = LogLevel(self.level.upper()).value


@dataclass
class Config:
    """Main configuration container."""
    service_name: str = field(default_factory=lambda: os.getenv("LIFECYCLE_SERVICE_NAME", "lifecycle"))
    environment: Environment = field(
        default_factory=lambda: Environment(os.getenv("ENVIRONMENT", "development"))
    )
    supervisor: SupervisorConfig = field(default_factory=SupervisorConfig)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary (for logging)."""
        return {
            "service_name": self.service_name,
            "environment": self.environment.value,
            "supervisor": {
                "handle_signals": self.supervisor.handle_signals,
                "signals": [s.name for s in self.supervisor.signals],
                "failure_exit_code": self.supervisor.failure_exit_code,
            },
            "logging": {
                "level": self.logging.level,
                "json_format": self.logging.json_format,
                "log_file": self.logging.log_file,
            },
        }


# Singleton configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create configuration singleton."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reload_config() -> Config:
    """Reload configuration from environment."""
    global _config
    load_dotenv(override=True)
    _config = Config()
    return _config
