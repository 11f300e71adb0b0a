"""
Centralized configuration with environment variable overrides.

Booking horizon, day-status thresholds, the same-day cutoff and the
capacity policy for unassigned inventory entries are configurable here.
Nothing is hardcoded in resolver or session logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from availability_engine.logging_context import LOG_FORMAT, install_session_filter

load_dotenv()

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_bool(env_var: str, default: str) -> bool:
    """Parse a boolean flag from an env var (true/false, yes/no, 1/0, on/off)."""
    raw = os.getenv(env_var, default)
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean for {env_var}: {raw!r}")


@dataclass(frozen=True)
class AvailabilityConfig:
    """Calendar window and day-status classification settings."""

    horizon_days: int = _safe_int("BOOKING_HORIZON_DAYS", "35")
    low_slots_max: int = _safe_int("LOW_SLOTS_MAX", "3")
    same_day_cutoff_minutes: int = _safe_int("SAME_DAY_CUTOFF_MINUTES", "15")
    unassigned_professional_id: str = os.getenv("UNASSIGNED_PROFESSIONAL_ID", "unassigned")
    unassigned_blocks_all: bool = _safe_bool("UNASSIGNED_BLOCKS_ALL", "true")


@dataclass(frozen=True)
class ContactConfig:
    """Which contact fields a booking must carry before it can be confirmed."""

    require_email: bool = _safe_bool("REQUIRE_CLIENT_EMAIL", "false")
    require_identity: bool = _safe_bool("REQUIRE_CLIENT_IDENTITY", "true")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    availability: AvailabilityConfig = field(default_factory=AvailabilityConfig)
    contact: ContactConfig = field(default_factory=ContactConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    engine_name: str = os.getenv("ENGINE_NAME", "availability-engine")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.availability.horizon_days < 1:
        raise ValueError(
            f"BOOKING_HORIZON_DAYS must be >= 1, got {config.availability.horizon_days}"
        )
    if config.availability.low_slots_max < 1:
        raise ValueError(
            f"LOW_SLOTS_MAX must be >= 1, got {config.availability.low_slots_max}"
        )
    if config.availability.same_day_cutoff_minutes < 0:
        raise ValueError(
            "SAME_DAY_CUTOFF_MINUTES must be >= 0, "
            f"got {config.availability.same_day_cutoff_minutes}"
        )
    if not config.availability.unassigned_professional_id.strip():
        raise ValueError("UNASSIGNED_PROFESSIONAL_ID must not be empty")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    install_session_filter()
    logger.info("Configuration loaded for '%s'", config.engine_name)
    return config


# Singleton instance
settings = load_config()
