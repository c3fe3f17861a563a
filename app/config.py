from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)


class CustomSettings(BaseSettings):
    """Application settings loaded from environment variables.

    Validates configuration at startup to catch misconfiguration early.
    """

    database_path: str = "./data/scheduler.db"
    sqlite_busy_timeout_sec: int = 30

    scan_period_ms: int = 60000
    lookahead_start_min: int = 5
    lookahead_width_min: int = 1
    default_duration_min: int = 30
    scan_max_concurrency: int = 8
    scan_max_overlap: int = 3  # Concurrent scan cycles allowed
    scan_misfire_grace_sec: int = 30

    notification_url: str | None = None
    notification_exchange: str = "scheduler.events"
    notification_routing_key: str = "schedule.preplay"
    notification_timeout_sec: float = 10.0

    schedule_timezone: str = "UTC"
    upcoming_default_limit: int = 10
    cors_allow_origins: str = "*"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("database_path")
    @classmethod
    def validate_database_path(cls, value: str) -> str:
        """Validate database path is accessible."""
        path = Path(value)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            return value
        except (OSError, PermissionError) as exc:
            raise ValueError(f"Cannot access database path '{value}': {exc}") from exc

    @field_validator(
        "sqlite_busy_timeout_sec",
        "scan_period_ms",
        "lookahead_width_min",
        "default_duration_min",
        "scan_max_concurrency",
        "scan_max_overlap",
        "scan_misfire_grace_sec",
        "upcoming_default_limit",
    )
    @classmethod
    def validate_positive_ints(cls, value: int, info) -> int:
        """Ensure integer settings are positive."""
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @field_validator("lookahead_start_min")
    @classmethod
    def validate_non_negative_ints(cls, value: int, info) -> int:
        """Ensure offsets are non-negative."""
        if value < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return value

    @field_validator("notification_timeout_sec")
    @classmethod
    def validate_notification_timeout(cls, value: float) -> float:
        """Validate notification sink timeout (seconds)."""
        if value <= 0:
            raise ValueError("notification_timeout_sec must be > 0")
        return value

    @field_validator("notification_url", mode="before")
    @classmethod
    def parse_notification_url(cls, value):
        """Treat an empty string as 'no sink configured'."""
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("notification_url", mode="after")
    @classmethod
    def validate_notification_url(cls, value: str | None) -> str | None:
        """Validate notification sink URL is HTTP/HTTPS."""
        if value is None:
            return value
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError(f"Notification URL must be HTTP/HTTPS: {value}")
        return value

    @field_validator("cors_allow_origins")
    @classmethod
    def validate_cors_allow_origins(cls, value: str) -> str:
        """Validate comma-separated CORS origins."""
        if not value.strip():
            raise ValueError("cors_allow_origins must name at least one origin or '*'")
        return value.strip()

    @field_validator("schedule_timezone")
    @classmethod
    def validate_schedule_timezone(cls, value: str) -> str:
        """Validate timezone used to interpret local schedule dates."""
        if value == "UTC":
            return value
        try:
            ZoneInfo(value)
            return value
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Invalid timezone '{value}': must be a valid IANA timezone") from exc

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate logging level name."""
        normalized = value.upper()
        allowed = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
        if normalized not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return normalized

    @model_validator(mode="after")
    def validate_scan_configuration(self):
        """Validate cross-field configuration."""
        width_ms = self.lookahead_width_min * 60 * 1000
        if width_ms % self.scan_period_ms != 0 and self.scan_period_ms % width_ms != 0:
            logger.warning(
                "Scan period %sms does not align with the %s minute lookahead window - "
                "entries may be visited more than once or skipped",
                self.scan_period_ms,
                self.lookahead_width_min,
            )
        elif self.scan_period_ms > width_ms:
            logger.warning(
                "Scan period %sms is longer than the %s minute lookahead window - "
                "some entries will never be notified",
                self.scan_period_ms,
                self.lookahead_width_min,
            )

        if self.notification_url is None:
            logger.warning(
                "No notification URL configured - pre-playback events will be logged and dropped"
            )

        return self

    @property
    def cors_origins(self) -> list[str]:
        """CORS origins as a list; '*' allows any origin."""
        if self.cors_allow_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]

    def __init__(self, **data):
        """Initialize settings and log configuration."""
        super().__init__(**data)

        logger.info("Configuration loaded:")
        logger.info("  Database: %s", self.database_path)
        logger.info("  Scan Period: %sms", self.scan_period_ms)
        logger.info(
            "  Lookahead Window: [now+%sm, now+%sm)",
            self.lookahead_start_min,
            self.lookahead_start_min + self.lookahead_width_min,
        )
        logger.info("  Default Duration: %s min", self.default_duration_min)
        logger.info("  Scan Concurrency: %s", self.scan_max_concurrency)
        logger.info("  Scan Overlap Limit: %s", self.scan_max_overlap)
        logger.info("  Notification Sink: %s", self.notification_url or "disabled")
        logger.info(
            "  Notification Route: exchange=%s routing_key=%s",
            self.notification_exchange,
            self.notification_routing_key,
        )
        logger.info("  Schedule Timezone: %s", self.schedule_timezone)
        logger.info("  CORS Origins: %s", ", ".join(self.cors_origins))


settings = CustomSettings()


def setup_logging() -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
