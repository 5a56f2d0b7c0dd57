from typing import Annotated
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from app.utils.timezone import MINUTES_PER_DAY


logger = logging.getLogger(__name__)


class CustomSettings(BaseSettings):
    """Application settings loaded from environment variables.

    Validates configuration at startup to catch misconfiguration early.
    """

    listings_file: str = "./data/listings.xml"
    listings_poll_interval_sec: int = 30  # How often the watcher checks the file for changes
    guide_timezone: str = "UTC"  # Used for 'now' when a request does not supply one
    default_slot_count: int = 3
    default_slot_width: int = 30  # Minutes per timeslot
    max_slot_count: int = 48
    cors_origins: Annotated[list[str], NoDecode] = ["*"]
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("listings_file")
    @classmethod
    def validate_listings_file(cls, value: str) -> str:
        """Ensure a listings file path is configured."""
        if not value or not value.strip():
            raise ValueError("listings_file is required")
        return value.strip()

    @field_validator("listings_poll_interval_sec")
    @classmethod
    def validate_poll_interval(cls, value: int) -> int:
        """Validate watcher poll interval (seconds)."""
        if value <= 0:
            raise ValueError("listings_poll_interval_sec must be > 0")
        return value

    @field_validator("guide_timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Validate timezone string"""
        if value == "UTC":
            return value
        try:
            ZoneInfo(value)
            return value
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Invalid timezone: {value}. Must be a valid IANA timezone (e.g., 'Europe/London', 'America/New_York') or 'UTC'")

    @field_validator("default_slot_count", "max_slot_count")
    @classmethod
    def validate_slot_counts(cls, value: int, info) -> int:
        """Ensure slot counts are positive integers."""
        if value < 1:
            raise ValueError(f"{info.field_name} must be >= 1")
        return value

    @field_validator("default_slot_width")
    @classmethod
    def validate_slot_width(cls, value: int) -> int:
        """Ensure the slot width tiles a day exactly."""
        if value < 1 or MINUTES_PER_DAY % value != 0:
            raise ValueError(f"default_slot_width must evenly divide {MINUTES_PER_DAY} minutes")
        return value

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, value):
        """Parse comma-separated origins or list."""
        if value is None:
            return []
        if isinstance(value, str):
            if not value.strip():
                return []
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        if isinstance(value, list):
            return value
        return []

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate logging level name."""
        normalized = value.upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if normalized not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return normalized

    @model_validator(mode="after")
    def validate_guide_configuration(self):
        """Validate cross-field configuration."""
        if self.default_slot_count > self.max_slot_count:
            raise ValueError(
                "default_slot_count must not exceed max_slot_count"
            )

        if not self.cors_origins:
            logger.warning("No CORS origins configured - cross-origin requests will be rejected")

        return self

    def __init__(self, **data):
        """Initialize settings and log configuration."""
        super().__init__(**data)

        logger.info("Configuration loaded:")
        logger.info("  Listings File: %s", self.listings_file)
        logger.info("  Poll Interval: %ss", self.listings_poll_interval_sec)
        logger.info("  Guide Timezone: %s", self.guide_timezone)
        logger.info(
            "  Default Grid: %s slots x %s minutes (max %s slots)",
            self.default_slot_count,
            self.default_slot_width,
            self.max_slot_count,
        )
        logger.info("  CORS Origins: %s", ", ".join(self.cors_origins) or "none")
        logger.info("  Log Level: %s", self.log_level)


settings = CustomSettings()


def setup_logging() -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
