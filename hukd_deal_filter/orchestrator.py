"""
Main application orchestrator for the HotUKDeals Deal Filter system.

This module provides the central coordination point for all system components,
managing their lifecycle, the periodic queue sweep, expiry purges and
graceful shutdown.
"""

import asyncio
import signal
import sys
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from .components.message_dispatcher import MessageDispatcherFactory
from .components.queue_dispatcher import QueueDispatcher, SweepResult
from .interfaces import IConfigurationManager, IDealSource, IMessageDispatcher
from .models.channel import Channel
from .models.config import Configuration
from .services.config_manager import ConfigurationManager, YamlChannelSource
from .services.notification_service import ChannelProcessingResult, NotificationService
from .storage.deal_store import DealStore
from .utils.error_handling import (
    ErrorCategory,
    ErrorSeverity,
    get_error_tracker,
    with_error_handling,
)
from .utils.logging import get_logger

PURGE_INTERVAL = timedelta(hours=1)


class ApplicationOrchestrator:
    """
    Main application orchestrator that coordinates all system components.

    This class manages the lifecycle of all components, runs the periodic
    sweep loop and handles system startup and shutdown.
    """

    def __init__(
        self,
        config_path: Optional[str] = None,
        deal_source: Optional[IDealSource] = None,
    ):
        """
        Initialize the application orchestrator.

        Args:
            config_path: Path to configuration file. If None, uses default paths.
            deal_source: Scraper to poll each cycle; without one the loop
                only flushes queues and purges expired records.
        """
        self.logger = get_logger("orchestrator")

        self.config_path = config_path
        self.deal_source = deal_source
        self._running = False
        self._shutdown_event = asyncio.Event()

        self.error_tracker = get_error_tracker()

        # Component instances
        self._config_manager: Optional[IConfigurationManager] = None
        self._store: Optional[DealStore] = None
        self._channel_source: Optional[YamlChannelSource] = None
        self._queue_dispatcher: Optional[QueueDispatcher] = None
        self._notification_service: Optional[NotificationService] = None

        # System state
        self._config: Optional[Configuration] = None
        self._startup_time: Optional[datetime] = None
        self._last_purge: Optional[datetime] = None
        self._component_health: Dict[str, bool] = {}
        self._error_counts: Dict[str, int] = {}

    @property
    def config(self) -> Optional[Configuration]:
        return self._config

    def _setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        if sys.platform != "win32":
            loop = asyncio.get_running_loop()
            for signum in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(signum, self._signal_handler, signum)
        else:
            signal.signal(signal.SIGINT, lambda signum, frame: self._signal_handler(signum))

    def _signal_handler(self, signum: int) -> None:
        """Handle shutdown signals."""
        self.logger.info(
            "Received shutdown signal, initiating graceful shutdown",
            extra={"signal": signum},
        )
        asyncio.ensure_future(self.shutdown())

    @with_error_handling(
        component="orchestrator",
        category=ErrorCategory.CONFIGURATION,
        severity=ErrorSeverity.CRITICAL,
        fallback_value=False,
        suppress_exceptions=True,
    )
    def initialize(self) -> bool:
        """
        Load configuration and initialize all system components.

        Returns:
            True if initialization successful, False otherwise.
        """
        self.logger.info("Initializing HotUKDeals Deal Filter system...")

        self._config_manager = ConfigurationManager(self.config_path)
        self._config = self._config_manager.load_config()
        self._component_health["config_manager"] = True

        self._store = DealStore(self._config.database.path, self._config.database.timeout)
        self._store.init_db()
        self._component_health["deal_store"] = True

        self._channel_source = YamlChannelSource(self._config_manager)
        self._queue_dispatcher = QueueDispatcher(
            self._store, self._channel_source, self._dispatcher_for_channel
        )
        self._notification_service = NotificationService(
            self._store, dispatcher_factory=self._dispatcher_for_channel
        )
        self._component_health["queue_dispatcher"] = True

        self._startup_time = datetime.now()
        self.logger.info(
            "System initialization completed successfully",
            extra={"channels": len(self._config.channels)},
        )
        return True

    def _dispatcher_for_channel(self, channel: Channel) -> IMessageDispatcher:
        """Build a transport using the current delivery settings."""
        return MessageDispatcherFactory.for_channel(channel, self._config.delivery)

    def sweep_once(self, now: Optional[datetime] = None) -> SweepResult:
        """Run a single quiet-hours queue sweep."""
        return self._queue_dispatcher.sweep(now)

    def purge_once(self) -> Dict[str, int]:
        """Delete expired deal records and queue entries."""
        counts = self._store.purge_expired()
        self._last_purge = datetime.now()
        return counts

    def scan_channels(self, now: Optional[datetime] = None) -> List[ChannelProcessingResult]:
        """Process current listing results for every configured channel."""
        results = []
        for channel in self._channel_source.list_channels():
            try:
                results.append(
                    self._notification_service.scan_channel(channel, self.deal_source, now)
                )
            except Exception as e:
                self.error_tracker.record_error(
                    component="orchestrator",
                    category=ErrorCategory.SYSTEM,
                    severity=ErrorSeverity.HIGH,
                    message=f"Failed to process channel {channel.channel_id}: {e}",
                    exception=e,
                    context={"channel_id": channel.channel_id},
                )
        return results

    async def _run_cycle(self) -> None:
        """One iteration of the main loop."""
        loop = asyncio.get_running_loop()

        self._check_config_reload()

        if self.deal_source is not None:
            await loop.run_in_executor(None, self.scan_channels)

        await loop.run_in_executor(None, self.sweep_once)

        if self._last_purge is None or datetime.now() - self._last_purge >= PURGE_INTERVAL:
            await loop.run_in_executor(None, self.purge_once)

    async def start(self) -> None:
        """Start the main application loop."""
        if self._running:
            self.logger.warning("System is already running")
            return

        try:
            self._running = True
            self.logger.info(
                "Starting main application loop...",
                extra={"sweep_interval": self._config.sweep_interval},
            )

            while self._running and not self._shutdown_event.is_set():
                try:
                    await self._run_cycle()
                except Exception as e:
                    self.logger.error(f"Error in main loop: {e}", exc_info=True)
                    self._increment_error_count("main_loop")

                # Wait for the next cycle or a shutdown request
                try:
                    await asyncio.wait_for(
                        self._shutdown_event.wait(), timeout=self._config.sweep_interval
                    )
                except asyncio.TimeoutError:
                    pass

        finally:
            self._running = False

    def _check_config_reload(self) -> None:
        """Pick up configuration changes without a restart."""
        if self._config_manager.reload_if_changed():
            new_config = self._config_manager.get_config()
            if new_config.database != self._config.database:
                self.logger.warning("Database settings changed; restart to apply them")
            self._config = new_config
            self.logger.info(
                "Configuration reloaded", extra={"channels": len(new_config.channels)}
            )

    def _increment_error_count(self, error_type: str) -> None:
        """Increment error count for a specific error type."""
        self._error_counts[error_type] = self._error_counts.get(error_type, 0) + 1

        # Log if error count is getting high
        if self._error_counts[error_type] % 10 == 0:
            self.logger.warning(
                f"High error count for {error_type}: {self._error_counts[error_type]}"
            )

    async def shutdown(self) -> None:
        """Gracefully shutdown the system."""
        if self._shutdown_event.is_set():
            return

        self.logger.info("Initiating graceful shutdown...")
        self._running = False
        self._shutdown_event.set()

        uptime = datetime.now() - self._startup_time if self._startup_time else None
        self.logger.info(f"System shutdown complete. Uptime: {uptime}")

    def get_system_status(self) -> Dict[str, Any]:
        """Get current system status information."""
        return {
            "running": self._running,
            "startup_time": self._startup_time.isoformat() if self._startup_time else None,
            "uptime": str(datetime.now() - self._startup_time) if self._startup_time else None,
            "last_purge": self._last_purge.isoformat() if self._last_purge else None,
            "component_health": self._component_health.copy(),
            "error_counts": self._error_counts.copy(),
            "error_stats": self.error_tracker.get_error_stats(),
            "config_loaded": self._config is not None,
        }

    async def run(self) -> None:
        """Run the complete application lifecycle."""
        try:
            if not self.initialize():
                self.logger.error("System initialization failed")
                return

            self._setup_signal_handlers()
            await self.start()

        except Exception as e:
            self.logger.error(f"Unexpected error in application: {e}", exc_info=True)
        finally:
            await self.shutdown()
