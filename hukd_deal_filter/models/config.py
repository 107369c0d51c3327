"""
Configuration models for the system.
"""

from dataclasses import dataclass, field
from typing import List

from .channel import Channel

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class DatabaseConfig:
    """Configuration for the deal store."""

    path: str = "data/deals.db"
    timeout: float = 5.0

    def validate(self) -> bool:
        """Validate database configuration."""
        if not self.path or not self.path.strip():
            raise ValueError("Database path cannot be empty")

        if not isinstance(self.timeout, (int, float)) or self.timeout <= 0:
            raise ValueError("Database timeout must be a positive number")

        return True


@dataclass
class DeliveryConfig:
    """Configuration for webhook delivery."""

    max_retries: int = 2
    retry_delay: float = 1.0

    def validate(self) -> bool:
        """Validate delivery configuration."""
        if not isinstance(self.max_retries, int) or self.max_retries < 0:
            raise ValueError("Max retries must be a non-negative integer")

        if self.max_retries > 10:
            raise ValueError("Max retries cannot exceed 10")

        if not isinstance(self.retry_delay, (int, float)) or self.retry_delay < 0:
            raise ValueError("Retry delay must be a non-negative number")

        return True


@dataclass
class Configuration:
    """System configuration."""

    channels: List[Channel]
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    delivery: DeliveryConfig = field(default_factory=DeliveryConfig)
    sweep_interval: int = 60
    log_level: str = "INFO"
    log_dir: str = "logs"

    def validate(self) -> bool:
        """Validate system configuration."""
        if not isinstance(self.channels, list):
            raise ValueError("Channels must be a list")

        channel_ids = set()
        for channel in self.channels:
            channel.validate()
            if channel.channel_id in channel_ids:
                raise ValueError(f"Duplicate channel ID: {channel.channel_id}")
            channel_ids.add(channel.channel_id)

        if not isinstance(self.sweep_interval, int) or self.sweep_interval <= 0:
            raise ValueError("Sweep interval must be a positive integer")

        if self.sweep_interval < 10:
            raise ValueError("Sweep interval must be at least 10 seconds")

        if self.log_level.upper() not in VALID_LOG_LEVELS:
            raise ValueError(f"Log level must be one of: {VALID_LOG_LEVELS}")

        # Validate nested configurations
        self.database.validate()
        self.delivery.validate()

        return True
