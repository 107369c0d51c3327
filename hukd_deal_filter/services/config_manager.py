"""
Configuration management system for the HotUKDeals Deal Filter.
"""

import os
import re
import yaml
import json
from typing import Dict, Any, List, Optional

from ..models.channel import Channel, QuietHoursSchedule
from ..models.config import Configuration, DatabaseConfig, DeliveryConfig
from ..models.filter import FilterConfig
from ..utils.logging import get_logger

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


class ConfigurationManager:
    """Manages loading, validation, and reloading of system configuration."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to the configuration file. If None, uses default paths.
        """
        self.config_path = config_path or self._find_config_file()
        self._config: Optional[Configuration] = None
        self._last_modified: Optional[float] = None
        self.logger = get_logger("config.manager")

    def _find_config_file(self) -> str:
        """Find the configuration file in standard locations."""
        possible_paths = [
            "config/config.yaml",
            "config/config.yml",
            "config/config.json",
            "config.yaml",
            "config.yml",
            "config.json",
        ]

        for path in possible_paths:
            if os.path.exists(path):
                return path

        if os.path.exists("config/config.example.yaml"):
            raise ValueError(
                "No configuration file found. Please copy 'config/config.example.yaml' "
                "to 'config/config.yaml' and customize it for your needs."
            )

        raise ValueError(
            "No configuration file found. Please create a configuration file "
            "at one of these locations: " + ", ".join(possible_paths)
        )

    def load_config(self) -> Configuration:
        """
        Load configuration from file.

        Returns:
            Configuration object with validated settings.

        Raises:
            ValueError: If configuration is invalid or file cannot be read.
            FileNotFoundError: If configuration file doesn't exist.
        """
        if not os.path.exists(self.config_path):
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        try:
            raw_config = self._read_file(self.config_path)

            # Expand environment variables
            raw_config = self._expand_env_vars(raw_config)

            config = self._parse_config(raw_config)
            config.validate()

            # Update cache
            self._config = config
            self._last_modified = os.path.getmtime(self.config_path)

            self.logger.info(
                "Configuration loaded",
                extra={"path": self.config_path, "channels": len(config.channels)},
            )
            return config

        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file: {e}")
        except Exception as e:
            raise ValueError(f"Error loading configuration: {e}")

    @staticmethod
    def _read_file(path: str) -> Dict[str, Any]:
        with open(path, "r", encoding="utf-8") as f:
            if path.endswith(".json"):
                raw_config = json.load(f)
            else:
                raw_config = yaml.safe_load(f)

        if raw_config is None:
            return {}
        if not isinstance(raw_config, dict):
            raise ValueError("Configuration root must be a mapping")
        return raw_config

    def _expand_env_vars(self, obj: Any) -> Any:
        """Recursively expand ${VAR_NAME} references in configuration values."""
        if isinstance(obj, dict):
            return {key: self._expand_env_vars(value) for key, value in obj.items()}
        elif isinstance(obj, list):
            return [self._expand_env_vars(item) for item in obj]
        elif isinstance(obj, str):
            return _ENV_PATTERN.sub(self._env_value, obj)
        else:
            return obj

    @staticmethod
    def _env_value(match: "re.Match") -> str:
        var_name = match.group(1)
        env_value = os.getenv(var_name)
        if env_value is None:
            raise ValueError(f"Environment variable '{var_name}' not found")
        return env_value

    def _parse_filter_config(self, data: Dict[str, Any]) -> FilterConfig:
        return FilterConfig(
            search_term=data["search_term"],
            include_keywords=list(data.get("include_keywords") or []),
            exclude_keywords=list(data.get("exclude_keywords") or []),
            case_sensitive=bool(data.get("case_sensitive", False)),
            max_price=data.get("max_price"),
            min_discount=data.get("min_discount"),
            enabled=bool(data.get("enabled", True)),
            exact_phrase=bool(data.get("exact_phrase", False)),
        )

    def _parse_channel(self, data: Dict[str, Any]) -> Channel:
        quiet_data = data.get("quiet_hours") or {}
        quiet_hours = QuietHoursSchedule(
            enabled=bool(quiet_data.get("enabled", False)),
            start=quiet_data.get("start"),
            end=quiet_data.get("end"),
            timezone=quiet_data.get("timezone", "UTC"),
        )

        return Channel(
            channel_id=str(data["channel_id"]),
            name=data.get("name", str(data["channel_id"])),
            webhook_url=data["webhook_url"],
            platform=str(data.get("platform", "discord")).lower(),
            quiet_hours=quiet_hours,
            configs=[self._parse_filter_config(c) for c in data.get("configs") or []],
        )

    def _parse_config(self, raw_config: Dict[str, Any]) -> Configuration:
        """Parse raw configuration dictionary into Configuration object."""
        try:
            database_data = raw_config.get("database") or {}
            database = DatabaseConfig(
                path=database_data.get("path", "data/deals.db"),
                timeout=database_data.get("timeout", 5.0),
            )

            delivery_data = raw_config.get("delivery") or {}
            delivery = DeliveryConfig(
                max_retries=delivery_data.get("max_retries", 2),
                retry_delay=delivery_data.get("retry_delay", 1.0),
            )

            # Parse system settings
            system_data = raw_config.get("system") or {}

            return Configuration(
                channels=[self._parse_channel(c) for c in raw_config.get("channels") or []],
                database=database,
                delivery=delivery,
                sweep_interval=system_data.get("sweep_interval", 60),
                log_level=system_data.get("log_level", "INFO"),
                log_dir=system_data.get("log_dir", "logs"),
            )

        except KeyError as e:
            raise ValueError(f"Missing required configuration key: {e}")
        except Exception as e:
            raise ValueError(f"Error parsing configuration: {e}")

    def get_config(self) -> Configuration:
        """
        Get current configuration, loading if necessary.

        Returns:
            Current configuration object.
        """
        if self._config is None:
            return self.load_config()
        return self._config

    def reload_if_changed(self) -> bool:
        """
        Reload configuration if file has been modified.

        Returns:
            True if configuration was reloaded, False otherwise.
        """
        if not os.path.exists(self.config_path):
            return False

        current_modified = os.path.getmtime(self.config_path)

        if self._last_modified is None or current_modified > self._last_modified:
            try:
                self.load_config()
                return True
            except ValueError as e:
                # If reload fails, keep current config
                self.logger.warning(
                    "Configuration reload failed, keeping current configuration",
                    extra={"path": self.config_path, "error": str(e)},
                )
                return False

        return False

    def validate_config_file(self, config_path: str) -> bool:
        """
        Validate a configuration file without loading it.

        Args:
            config_path: Path to configuration file to validate.

        Returns:
            True if configuration is valid.

        Raises:
            ValueError: If configuration is invalid with detailed error message.
        """
        if not os.path.exists(config_path):
            raise ValueError(f"Configuration file not found: {config_path}")

        try:
            raw_config = self._read_file(config_path)

            # Missing environment variables are not a structural problem
            try:
                raw_config = self._expand_env_vars(raw_config)
            except ValueError:
                pass

            config = self._parse_config(raw_config)
            config.validate()

            return True

        except Exception as e:
            raise ValueError(f"Configuration validation failed: {e}")

    def get_config_template(self) -> Dict[str, Any]:
        """
        Get a template configuration dictionary.

        Returns:
            Dictionary with example configuration structure.
        """
        return {
            "database": {"path": "data/deals.db", "timeout": 5.0},
            "system": {"sweep_interval": 60, "log_level": "INFO", "log_dir": "logs"},
            "delivery": {"max_retries": 2, "retry_delay": 1.0},
            "channels": [
                {
                    "channel_id": "gaming",
                    "name": "Gaming",
                    "webhook_url": "${DISCORD_WEBHOOK_URL}",
                    "platform": "discord",
                    "quiet_hours": {
                        "enabled": True,
                        "start": "22:00",
                        "end": "08:00",
                        "timezone": "Europe/London",
                    },
                    "configs": [
                        {
                            "search_term": "steam deck",
                            "include_keywords": [],
                            "exclude_keywords": ["refurbished"],
                            "case_sensitive": False,
                            "max_price": 400,
                            "min_discount": 10,
                        }
                    ],
                }
            ],
        }


class YamlChannelSource:
    """Channel lookup backed by the configuration file."""

    def __init__(self, config_manager: ConfigurationManager):
        self.config_manager = config_manager

    def list_channels(self) -> List[Channel]:
        return list(self.config_manager.get_config().channels)

    def get_channel(self, channel_id: str) -> Optional[Channel]:
        for channel in self.config_manager.get_config().channels:
            if channel.channel_id == channel_id:
                return channel
        return None
