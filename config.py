"""
Configuration module for the task reminder service.
Loads environment variables and provides typed configuration.
"""

from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.exceptions import ConfigInvalidError

# Load .env file
env_path = Path(__file__).parent / ".env"
load_dotenv(dotenv_path=env_path)


class DeliveryGuarantee(str, Enum):
    """What happens to a task whose reminder could not be delivered."""

    AT_LEAST_ONCE = "at_least_once"  # retried on the next tick
    AT_MOST_ONCE = "at_most_once"  # recorded as notified anyway


class ScannerConfig(BaseModel):
    """Timing configuration of a single reminder scanner."""

    tick_interval: timedelta = timedelta(seconds=60)
    lookahead: timedelta = timedelta(minutes=5)
    store_timeout: timedelta = timedelta(seconds=5)
    sink_timeout: timedelta = timedelta(seconds=5)
    suppression_retention: timedelta = timedelta(hours=1)
    prune_interval: timedelta = timedelta(minutes=10)
    delivery_guarantee: DeliveryGuarantee = DeliveryGuarantee.AT_LEAST_ONCE

    def ensure_valid(self) -> None:
        """
        Check that every duration is usable.

        Raises:
            ConfigInvalidError: If an interval, window or timeout is not positive
                or the retention is negative
        """
        positive = {
            "tick_interval": self.tick_interval,
            "lookahead": self.lookahead,
            "store_timeout": self.store_timeout,
            "sink_timeout": self.sink_timeout,
            "prune_interval": self.prune_interval,
        }
        invalid = [name for name, value in positive.items() if value <= timedelta(0)]
        if self.suppression_retention < timedelta(0):
            invalid.append("suppression_retention")

        if invalid:
            raise ConfigInvalidError(
                f"Invalid scanner configuration: {', '.join(invalid)}. "
                f"Durations must be positive and retention must not be negative."
            )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Scanner timing (seconds)
    tick_interval_seconds: float = 60.0
    lookahead_seconds: float = 300.0
    store_timeout_seconds: float = 5.0
    sink_timeout_seconds: float = 5.0
    suppression_retention_seconds: float = 3600.0
    prune_interval_seconds: float = 600.0
    delivery_guarantee: DeliveryGuarantee = DeliveryGuarantee.AT_LEAST_ONCE

    # Supabase (task store)
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    tasks_table: str = "tasks"

    # Telegram (notification sink); reminders are only logged when unset
    bot_token: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_dir: str = "logs"
    log_file: Optional[str] = "reminders.log"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def scanner_config(self) -> ScannerConfig:
        """Build the scanner timing configuration from the flat settings."""
        return ScannerConfig(
            tick_interval=timedelta(seconds=self.tick_interval_seconds),
            lookahead=timedelta(seconds=self.lookahead_seconds),
            store_timeout=timedelta(seconds=self.store_timeout_seconds),
            sink_timeout=timedelta(seconds=self.sink_timeout_seconds),
            suppression_retention=timedelta(
                seconds=self.suppression_retention_seconds
            ),
            prune_interval=timedelta(seconds=self.prune_interval_seconds),
            delivery_guarantee=self.delivery_guarantee,
        )

    def validate_all_required(self) -> None:
        """
        Validate that the worker can start with these settings.

        Raises:
            ConfigInvalidError: If the store is not configured or timings are invalid
        """
        missing = []
        for field in ("supabase_url", "supabase_key"):
            value = getattr(self, field, None)
            if not value or str(value).lower().startswith("your_"):
                missing.append(field)

        if missing:
            raise ConfigInvalidError(
                f"Missing or invalid required configuration: "
                f"{', '.join(missing)}. "
                f"Please check your .env file and ensure all required "
                f"values are set."
            )

        self.scanner_config().ensure_valid()


# Global settings instance
settings = Settings()
