"""
Configuration for GreenRules
============================
Runtime settings for the rule configuration manager, loaded from environment
variables. Sets up the logging configuration as well.
"""

import os
from contextlib import suppress
from dataclasses import dataclass, field

from ghrules.domain.exceptions import ConfigurationError


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"Environment variable {name} must be an integer.") from None


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"Environment variable {name} must be a number.") from None


@dataclass
class AppConfig:
    """Runtime configuration loaded from environment variables."""

    environment: str = field(default_factory=lambda: os.getenv("GHRULES_ENV", "development"))

    # Remote rule authority
    api_url: str = field(default_factory=lambda: os.getenv("GHRULES_API_URL", "http://localhost:8080"))
    api_timeout_seconds: float = field(default_factory=lambda: _env_float("GHRULES_API_TIMEOUT", 10.0))

    # Session / persisted selection
    session_path: str = field(default_factory=lambda: os.getenv("GHRULES_SESSION_PATH", "var/session.json"))

    # Greenhouse data loading
    loader_workers: int = field(default_factory=lambda: _env_int("GHRULES_LOADER_WORKERS", 3))
    background_loads: bool = field(default_factory=lambda: _env_bool("GHRULES_BACKGROUND_LOADS", False))

    # Notifications kept for display
    notification_history_size: int = field(default_factory=lambda: _env_int("GHRULES_NOTIFICATION_HISTORY", 50))

    DEBUG: bool = field(default_factory=lambda: _env_bool("GHRULES_DEBUG", False))
    audit_log_path: str = field(default_factory=lambda: os.getenv("GHRULES_AUDIT_LOG_PATH", "logs/audit.log"))
    log_level: str = field(default_factory=lambda: os.getenv("GHRULES_LOG_LEVEL", "INFO"))
    log_file: str = field(default_factory=lambda: os.getenv("GHRULES_LOG_FILE", "logs/ghrules.log"))

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self.api_url = self.api_url.rstrip("/")
        if not self.api_url.startswith(("http://", "https://")):
            raise ConfigurationError(f"GHRULES_API_URL must be an http(s) URL, got {self.api_url!r}")
        if self.api_timeout_seconds <= 0:
            raise ConfigurationError("GHRULES_API_TIMEOUT must be positive")
        # One worker per concurrent fetch (rules, sensors, actuators) at minimum
        if self.loader_workers < 3:
            raise ConfigurationError("GHRULES_LOADER_WORKERS must be at least 3")
        if self.notification_history_size < 1:
            raise ConfigurationError("GHRULES_NOTIFICATION_HISTORY must be at least 1")


def setup_logging(debug: bool = False, log_file: str | None = None) -> None:
    """Setup logging configuration."""
    import logging
    import sys
    from logging.handlers import RotatingFileHandler

    log_level = logging.DEBUG if debug else logging.INFO

    root = logging.getLogger()
    root.setLevel(log_level)

    # Avoid adding duplicates when setup_logging is called more than once
    has_console = any(getattr(h, "name", "") == "ghrules_console" for h in root.handlers)
    has_file = any(getattr(h, "name", "") == "ghrules_file" for h in root.handlers)
    added_handler = False

    stream = sys.stdout
    with suppress(AttributeError, ValueError):
        stream.reconfigure(encoding="utf-8", errors="replace")
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    if not has_console:
        console_handler = logging.StreamHandler(stream=stream)
        console_handler.name = "ghrules_console"
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)
        added_handler = True

    if log_file and not has_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.name = "ghrules_file"
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
        added_handler = True

    for handler in root.handlers:
        if getattr(handler, "name", "") in {"ghrules_console", "ghrules_file"}:
            handler.setLevel(log_level)

    if added_handler:
        root.info("Logging initialized at level: %s", logging.getLevelName(log_level))

    # requests/urllib3 log every connection at DEBUG
    if _env_bool("GHRULES_SILENCE_URLLIB3", True):
        logging.getLogger("urllib3").setLevel(logging.WARNING)


def load_config() -> AppConfig:
    """Helper for callers to load and validate configuration."""
    return AppConfig()
