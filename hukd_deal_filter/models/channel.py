"""
Channel and quiet-hours schedule models.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urlparse

from .filter import FilterConfig

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
SUPPORTED_PLATFORMS = ["discord", "slack"]


@dataclass(frozen=True)
class QuietHoursSchedule:
    """Local time window during which deliveries are deferred."""

    enabled: bool = False
    start: Optional[str] = None  # HH:MM, 24-hour
    end: Optional[str] = None
    timezone: str = "UTC"

    @property
    def is_configured(self) -> bool:
        return bool(self.enabled and self.start and self.end)

    def validate(self) -> bool:
        """Validate the quiet-hours schedule."""
        if not self.enabled:
            return True

        if not self.start or not self.end:
            raise ValueError("Both quiet hours start and end times are required")

        for label, value in (("start", self.start), ("end", self.end)):
            if not TIME_PATTERN.match(value):
                raise ValueError(
                    f"Quiet hours {label} time must be in HH:mm format (00:00 - 23:59)"
                )

        if not self.timezone or not self.timezone.strip():
            raise ValueError("Quiet hours timezone cannot be empty")

        return True


@dataclass
class Channel:
    """Notification destination with its schedule and search configs."""

    channel_id: str
    name: str
    webhook_url: str
    platform: str = "discord"
    quiet_hours: QuietHoursSchedule = field(default_factory=QuietHoursSchedule)
    configs: List[FilterConfig] = field(default_factory=list)

    @property
    def enabled_configs(self) -> List[FilterConfig]:
        return [config for config in self.configs if config.enabled]

    def validate(self) -> bool:
        """Validate channel configuration."""
        if not self.channel_id or not str(self.channel_id).strip():
            raise ValueError("Channel ID cannot be empty")

        if not self.name or not self.name.strip():
            raise ValueError("Channel name cannot be empty")

        if self.platform not in SUPPORTED_PLATFORMS:
            raise ValueError(f"Channel platform must be one of: {SUPPORTED_PLATFORMS}")

        parsed_url = urlparse(self.webhook_url or "")
        if parsed_url.scheme != "https" or not parsed_url.netloc:
            raise ValueError(f"Invalid webhook URL for channel {self.channel_id}")

        if self.platform == "discord" and not (
            self.webhook_url.startswith("https://discord.com/api/webhooks/")
            or self.webhook_url.startswith("https://discordapp.com/api/webhooks/")
        ):
            raise ValueError("Invalid Discord webhook URL format")

        if self.platform == "slack" and not self.webhook_url.startswith(
            "https://hooks.slack.com/"
        ):
            raise ValueError("Invalid Slack webhook URL format")

        self.quiet_hours.validate()

        search_terms = set()
        for config in self.configs:
            config.validate()
            key = config.search_term.strip().lower()
            if key in search_terms:
                raise ValueError(
                    f"Duplicate search term '{config.search_term}' in channel {self.name}"
                )
            search_terms.add(key)

        return True
