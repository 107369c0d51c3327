"""
Message dispatching components for the HotUKDeals Deal Filter system.

This module delivers batches of deals to channel webhooks with error
handling. A batch is formatted once and sent as one or more
messages, depending on the platform's per-message limits.
"""

import logging
from abc import abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..interfaces import IAlertFormatter, IMessageDispatcher
from ..models.channel import Channel
from ..models.config import DeliveryConfig
from ..models.delivery import Deliverable, DeliveryResult
from .alert_formatter import MAX_DEALS_PER_MESSAGE, AlertFormatter


logger = logging.getLogger(__name__)


class BaseMessageDispatcher(IMessageDispatcher):
    """Base class for message dispatchers with common delivery logic."""

    platform = ""

    def __init__(
        self,
        max_retries: int = 2,
        retry_delay: float = 1.0,
        formatter: Optional[IAlertFormatter] = None,
    ):
        """
        Initialize base dispatcher.

        Args:
            max_retries: Transport retries for webhook checks (GET/HEAD)
            retry_delay: Backoff factor for those retries in seconds
            formatter: Alert formatter, defaults to AlertFormatter
        """
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.formatter = formatter or AlertFormatter()
        self.session = self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a requests session with retry configuration."""
        session = requests.Session()

        # Webhook POSTs are not idempotent; only checks are retried here
        retry_strategy = Retry(
            total=self.max_retries,
            backoff_factor=self.retry_delay,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["HEAD", "GET"],
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        return session

    @staticmethod
    def _deals_per_payload(deal_count: int, payload_count: int) -> List[int]:
        """Number of deals each payload carries, in send order."""
        chunk_count = (deal_count + MAX_DEALS_PER_MESSAGE - 1) // MAX_DEALS_PER_MESSAGE
        if payload_count == chunk_count:
            return [
                min(MAX_DEALS_PER_MESSAGE, deal_count - index * MAX_DEALS_PER_MESSAGE)
                for index in range(payload_count)
            ]
        # Unchunked payloads only count once the whole batch is out
        return [0] * (payload_count - 1) + [deal_count]

    def send_deals(self, deals: List[Deliverable]) -> DeliveryResult:
        """
        Send a batch of deals, one attempt per message.

        Sending stops at the first message that fails. A failed delivery is
        left to the caller's next scheduled run; delivered_count reports the
        deals in messages that did go out, which are always a prefix of the
        batch.

        Args:
            deals: Deals to deliver as one notification

        Returns:
            DeliveryResult: Result of delivery attempt
        """
        start_time = datetime.now()

        if not deals:
            return DeliveryResult(
                success=True, delivery_time=start_time, error_message=None
            )

        alert = self.formatter.format_alert(deals)
        payloads = alert.platform_specific_data.get(self.platform) or [
            self._fallback_payload(alert.message)
        ]
        deal_counts = self._deals_per_payload(len(deals), len(payloads))

        delivered = 0
        logger.info(f"Sending {len(deals)} deal(s) in {len(payloads)} message(s)")

        for index, payload in enumerate(payloads):
            try:
                self._send_payload(payload)
            except Exception as e:
                error_msg = (
                    f"Message {index + 1}/{len(payloads)} failed after "
                    f"{delivered} deal(s) were delivered: {e}"
                )[:500]
                logger.error(error_msg)

                result = DeliveryResult(
                    success=False,
                    delivery_time=datetime.now(),
                    error_message=error_msg,
                    delivered_count=delivered,
                )
                result.validate()
                return result

            delivered += deal_counts[index]

        delivery_time = datetime.now()
        logger.info(
            f"Deals sent successfully in {(delivery_time - start_time).total_seconds():.2f}s"
        )

        result = DeliveryResult(
            success=True,
            delivery_time=delivery_time,
            error_message=None,
            delivered_count=len(deals),
        )
        result.validate()
        return result

    @abstractmethod
    def _fallback_payload(self, message: str) -> Dict[str, Any]:
        """Plain-text payload used when the alert has no platform data."""
        pass

    @abstractmethod
    def _send_payload(self, payload: Dict[str, Any]) -> None:
        """
        Platform-specific message sending implementation.

        Args:
            payload: One message of a formatted alert

        Raises:
            Exception: If sending fails
        """
        pass

    @abstractmethod
    def test_connection(self) -> bool:
        """Test connection to the messaging platform."""
        pass


class DiscordDispatcher(BaseMessageDispatcher):
    """Discord webhook message dispatcher."""

    platform = "discord"

    def __init__(
        self,
        webhook_url: str,
        max_retries: int = 2,
        retry_delay: float = 1.0,
        formatter: Optional[IAlertFormatter] = None,
    ):
        """
        Initialize Discord dispatcher.

        Args:
            webhook_url: Discord webhook URL
            max_retries: Transport retries for webhook checks (GET/HEAD)
            retry_delay: Backoff factor for those retries in seconds
            formatter: Alert formatter, defaults to AlertFormatter
        """
        super().__init__(max_retries, retry_delay, formatter)
        self.webhook_url = webhook_url

    def _fallback_payload(self, message: str) -> Dict[str, Any]:
        return {"content": message}

    def _send_payload(self, payload: Dict[str, Any]) -> None:
        """Send message via Discord webhook."""
        response = self.session.post(self.webhook_url, json=payload, timeout=30)
        response.raise_for_status()

        logger.info("Message sent to Discord webhook")

    def test_connection(self) -> bool:
        """Test connection to Discord webhook."""
        try:
            # A GET on a webhook returns its metadata without posting
            response = self.session.get(self.webhook_url, timeout=10)
            response.raise_for_status()

            logger.info("Discord webhook connection test successful")
            return True

        except Exception as e:
            logger.error(f"Failed to connect to Discord webhook: {e}")
            return False


class SlackDispatcher(BaseMessageDispatcher):
    """Slack webhook message dispatcher."""

    platform = "slack"

    def __init__(
        self,
        webhook_url: str,
        max_retries: int = 2,
        retry_delay: float = 1.0,
        formatter: Optional[IAlertFormatter] = None,
    ):
        """
        Initialize Slack dispatcher.

        Args:
            webhook_url: Slack webhook URL
            max_retries: Transport retries for webhook checks (GET/HEAD)
            retry_delay: Backoff factor for those retries in seconds
            formatter: Alert formatter, defaults to AlertFormatter
        """
        super().__init__(max_retries, retry_delay, formatter)
        self.webhook_url = webhook_url

    def _fallback_payload(self, message: str) -> Dict[str, Any]:
        return {"text": message}

    def _send_payload(self, payload: Dict[str, Any]) -> None:
        """Send message via Slack webhook."""
        response = self.session.post(self.webhook_url, json=payload, timeout=30)
        response.raise_for_status()

        # Slack returns "ok" for successful webhook calls
        if response.text.strip() != "ok":
            raise Exception(f"Slack webhook error: {response.text}")

        logger.info("Message sent to Slack webhook")

    def test_connection(self) -> bool:
        """Test connection to Slack webhook."""
        try:
            test_payload = {"text": "🔧 HotUKDeals Deal Filter connection test"}

            response = self.session.post(
                self.webhook_url, json=test_payload, timeout=10
            )
            response.raise_for_status()

            if response.text.strip() == "ok":
                logger.info("Slack webhook connection test successful")
                return True
            else:
                logger.error(f"Slack webhook test failed: {response.text}")
                return False

        except Exception as e:
            logger.error(f"Failed to connect to Slack webhook: {e}")
            return False


class MessageDispatcherFactory:
    """Factory for creating message dispatchers."""

    @staticmethod
    def create_dispatcher(platform: str, config: Dict[str, Any]) -> IMessageDispatcher:
        """
        Create a message dispatcher for the specified platform.

        Args:
            platform: Platform name (discord, slack)
            config: Platform-specific configuration

        Returns:
            IMessageDispatcher: Configured message dispatcher

        Raises:
            ValueError: If platform is not supported or config is invalid
        """
        platform = platform.lower()

        if platform == "discord":
            if "webhook_url" not in config:
                raise ValueError("Missing required Discord config: webhook_url")

            return DiscordDispatcher(
                webhook_url=config["webhook_url"],
                max_retries=config.get("max_retries", 2),
                retry_delay=config.get("retry_delay", 1.0),
            )

        elif platform == "slack":
            if "webhook_url" not in config:
                raise ValueError("Missing required Slack config: webhook_url")

            return SlackDispatcher(
                webhook_url=config["webhook_url"],
                max_retries=config.get("max_retries", 2),
                retry_delay=config.get("retry_delay", 1.0),
            )

        else:
            raise ValueError(f"Unsupported messaging platform: {platform}")

    @classmethod
    def for_channel(
        cls, channel: Channel, delivery: Optional[DeliveryConfig] = None
    ) -> IMessageDispatcher:
        """Create the dispatcher that delivers to a channel's webhook."""
        delivery = delivery or DeliveryConfig()
        return cls.create_dispatcher(
            channel.platform,
            {
                "webhook_url": channel.webhook_url,
                "max_retries": delivery.max_retries,
                "retry_delay": delivery.retry_delay,
            },
        )
