"""Configuration loading from environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Valid log levels
VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

# Port validation bounds
MIN_PORT = 1
MAX_PORT = 65535

# Five minutes between poll cycles
DEFAULT_POLL_INTERVAL_MS = 5 * 60 * 1000

# Courtesy pause between runs for free-tier provider quotas
DEFAULT_RUN_DELAY_MS = 1000


@dataclass(frozen=True)
class PollingSettings:
    """Poll cycle cadence and scheduling options."""

    interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    enabled: bool = True
    run_delay_ms: int = DEFAULT_RUN_DELAY_MS
    # Skip a cycle while another is still in flight (off = overlapping cycles allowed)
    single_flight: bool = False
    runs_file: Path | None = None


@dataclass(frozen=True)
class DebugSettings:
    """Inputs for resolving debug mode.

    ``override`` is ``None`` when debug mode should be detected from the
    environment, otherwise it forces debug mode on or off.
    """

    override: bool | None = None
    environment: str = "production"
    hostname: str = ""
    dev_server_port: str = ""


@dataclass(frozen=True)
class LoggingConfig:
    """Logging output options."""

    level: str = "INFO"
    json: bool = False
    diagnostic_tags: str = ""


@dataclass(frozen=True)
class DashboardConfig:
    """Debug panel server options."""

    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 8080


@dataclass(frozen=True)
class ServicesConfig:
    """Flight and traffic provider credentials plus run data cache sizing."""

    aviationstack_api_key: str = ""
    tomtom_api_key: str = ""
    http_timeout: float = 10.0
    cache_ttl: int = 900  # seconds
    cache_maxsize: int = 1024

    @property
    def flight_configured(self) -> bool:
        return bool(self.aviationstack_api_key)

    @property
    def traffic_configured(self) -> bool:
        return bool(self.tomtom_api_key)


@dataclass(frozen=True)
class Config:
    """Application configuration loaded from environment.

    This dataclass is frozen (immutable); use ``dataclasses.replace`` to
    derive an overridden copy.
    """

    polling: PollingSettings = field(default_factory=PollingSettings)
    debug: DebugSettings = field(default_factory=DebugSettings)
    logging_config: LoggingConfig = field(default_factory=LoggingConfig)
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)
    services: ServicesConfig = field(default_factory=ServicesConfig)


def _parse_positive_int(value: str, name: str, default: int) -> int:
    """Parse a string as a positive integer with validation.

    Args:
        value: The string value to parse.
        name: The name of the setting (for error messages).
        default: The default value to use if parsing fails.

    Returns:
        The parsed positive integer, or the default if invalid.
    """
    try:
        parsed = int(value)
        if parsed <= 0:
            logging.warning(
                "Invalid %s: %d is not positive, using default %d",
                name,
                parsed,
                default,
            )
            return default
        return parsed
    except ValueError:
        logging.warning(
            "Invalid %s: '%s' is not a valid integer, using default %d",
            name,
            value,
            default,
        )
        return default


def _parse_non_negative_int(value: str, name: str, default: int) -> int:
    """Parse a string as an integer that may be zero.

    Args:
        value: The string value to parse.
        name: The name of the setting (for error messages).
        default: The default value to use if parsing fails.

    Returns:
        The parsed non-negative integer, or the default if invalid.
    """
    try:
        parsed = int(value)
        if parsed < 0:
            logging.warning(
                "Invalid %s: %d is negative, using default %d",
                name,
                parsed,
                default,
            )
            return default
        return parsed
    except ValueError:
        logging.warning(
            "Invalid %s: '%s' is not a valid integer, using default %d",
            name,
            value,
            default,
        )
        return default


def _parse_port(value: str, name: str, default: int) -> int:
    """Parse a string as a valid TCP port number with range validation.

    Args:
        value: The string value to parse.
        name: The name of the setting (for error messages).
        default: The default value to use if parsing fails.

    Returns:
        The parsed port number (MIN_PORT-MAX_PORT), or the default if invalid.
    """
    try:
        parsed = int(value)
        if parsed < MIN_PORT or parsed > MAX_PORT:
            logging.warning(
                "Invalid %s: %d is not a valid port (must be %d-%d), using default %d",
                name,
                parsed,
                MIN_PORT,
                MAX_PORT,
                default,
            )
            return default
        return parsed
    except ValueError:
        logging.warning(
            "Invalid %s: '%s' is not a valid integer, using default %d",
            name,
            value,
            default,
        )
        return default


def _validate_log_level(value: str, default: str = "INFO") -> str:
    """Validate and normalize a log level string.

    Args:
        value: The log level string to validate.
        default: The default value to use if invalid.

    Returns:
        The validated log level (uppercase), or the default if invalid.
    """
    normalized = value.upper()
    if normalized not in VALID_LOG_LEVELS:
        logging.warning(
            "Invalid RUNSYNC_LOG_LEVEL: '%s' is not valid, using default '%s'. Valid values: %s",
            value,
            default,
            ", ".join(sorted(VALID_LOG_LEVELS)),
        )
        return default
    return normalized


def _parse_bool(value: str) -> bool:
    """Parse a string as a boolean.

    Returns:
        True if value is "true", "1", or "yes" (case-insensitive), False otherwise.
    """
    return value.lower() in ("true", "1", "yes")


def _parse_optional_bool(value: str, name: str) -> bool | None:
    """Parse a tri-state flag where an empty value means "not set".

    Args:
        value: The string value to parse.
        name: The name of the setting (for error messages).

    Returns:
        True or False for recognised values, None when empty or unrecognised.
    """
    normalized = value.strip().lower()
    if not normalized:
        return None
    if normalized in ("true", "1", "yes", "on"):
        return True
    if normalized in ("false", "0", "no", "off"):
        return False
    logging.warning("Invalid %s: '%s' is not a boolean, ignoring", name, value)
    return None


def _parse_non_negative_float(value: str, name: str, default: float) -> float:
    """Parse a string as a non-negative float with validation.

    Args:
        value: The string value to parse.
        name: The name of the setting (for error messages).
        default: The default value to use if parsing fails.

    Returns:
        The parsed non-negative float, or the default if invalid.
    """
    try:
        parsed = float(value)
        if parsed < 0:
            logging.warning(
                "Invalid %s: %f is negative, using default %f",
                name,
                parsed,
                default,
            )
            return default
        return parsed
    except ValueError:
        logging.warning(
            "Invalid %s: '%s' is not a valid number, using default %f",
            name,
            value,
            default,
        )
        return default


def load_config(env_file: Path | None = None) -> Config:
    """Load configuration from environment variables.

    Args:
        env_file: Optional path to .env file. If not provided,
                  looks for .env in current directory.

    Returns:
        Config object with loaded values.

    Invalid values never raise; a warning is logged and the default is used.
    """
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    runs_file_str = os.getenv("RUNSYNC_RUNS_FILE", "")

    polling = PollingSettings(
        interval_ms=_parse_positive_int(
            os.getenv("RUNSYNC_POLL_INTERVAL_MS", str(DEFAULT_POLL_INTERVAL_MS)),
            "RUNSYNC_POLL_INTERVAL_MS",
            DEFAULT_POLL_INTERVAL_MS,
        ),
        enabled=_parse_bool(os.getenv("RUNSYNC_POLLING_ENABLED", "true")),
        run_delay_ms=_parse_non_negative_int(
            os.getenv("RUNSYNC_RUN_DELAY_MS", str(DEFAULT_RUN_DELAY_MS)),
            "RUNSYNC_RUN_DELAY_MS",
            DEFAULT_RUN_DELAY_MS,
        ),
        single_flight=_parse_bool(os.getenv("RUNSYNC_SINGLE_FLIGHT", "")),
        runs_file=Path(runs_file_str) if runs_file_str else None,
    )

    debug = DebugSettings(
        override=_parse_optional_bool(os.getenv("RUNSYNC_DEBUG_MODE", ""), "RUNSYNC_DEBUG_MODE"),
        environment=os.getenv("RUNSYNC_ENV", "production"),
        hostname=os.getenv("RUNSYNC_HOSTNAME", ""),
        dev_server_port=os.getenv("RUNSYNC_DEV_SERVER_PORT", ""),
    )

    logging_config = LoggingConfig(
        level=_validate_log_level(os.getenv("RUNSYNC_LOG_LEVEL", "INFO")),
        json=_parse_bool(os.getenv("RUNSYNC_LOG_JSON", "")),
        diagnostic_tags=os.getenv("RUNSYNC_DIAGNOSTIC_TAGS", ""),
    )

    dashboard = DashboardConfig(
        enabled=_parse_bool(os.getenv("RUNSYNC_DASHBOARD_ENABLED", "")),
        host=os.getenv("RUNSYNC_DASHBOARD_HOST", "127.0.0.1"),
        port=_parse_port(
            os.getenv("RUNSYNC_DASHBOARD_PORT", "8080"),
            "RUNSYNC_DASHBOARD_PORT",
            8080,
        ),
    )

    services = ServicesConfig(
        aviationstack_api_key=os.getenv("AVIATIONSTACK_API_KEY", ""),
        tomtom_api_key=os.getenv("TOMTOM_API_KEY", ""),
        http_timeout=_parse_non_negative_float(
            os.getenv("RUNSYNC_HTTP_TIMEOUT", "10.0"),
            "RUNSYNC_HTTP_TIMEOUT",
            10.0,
        ),
        cache_ttl=_parse_positive_int(
            os.getenv("RUNSYNC_CACHE_TTL", "900"),
            "RUNSYNC_CACHE_TTL",
            900,
        ),
        cache_maxsize=_parse_positive_int(
            os.getenv("RUNSYNC_CACHE_MAXSIZE", "1024"),
            "RUNSYNC_CACHE_MAXSIZE",
            1024,
        ),
    )

    return Config(
        polling=polling,
        debug=debug,
        logging_config=logging_config,
        dashboard=dashboard,
        services=services,
    )
