"""
Main application orchestrator.

Handles:
- Configuration loading
- Periodic snapshot collection (off the event loop)
- MQTT publishing
- Graceful shutdown
"""

import asyncio
import signal

from .aggregator import Aggregator, CollectionError
from .config.loader import ConfigLoader
from .config.schema import Config, LoggingConfig
from .logging import LogConfig, get_logger, setup_logging
from .models.snapshot import Snapshot
from .mqtt.client import MQTTClient, build_topic

logger = get_logger("app")

SNAPSHOT_TOPIC = "snapshot"


def log_config_from(logging_config: LoggingConfig) -> LogConfig:
    """Translate the 'logging' block into handler settings."""
    log_config = LogConfig(
        console_level=logging_config.level,
        console_colors=logging_config.colors,
        file_enabled=logging_config.file is not None,
        file_level=logging_config.file_level,
        file_max_bytes=logging_config.file_max_size * 1024 * 1024,
        file_backup_count=logging_config.file_keep,
        format=logging_config.format,
    )
    if logging_config.file:
        log_config.file_path = logging_config.file
    return log_config


def merge_log_config(cli: LogConfig, logging_config: LoggingConfig) -> LogConfig:
    """CLI flags win; a log file from the config is kept when the CLI sets none."""
    if not cli.file_enabled and logging_config.file:
        cli.file_enabled = True
        cli.file_path = logging_config.file
        cli.file_level = logging_config.file_level
        cli.file_max_bytes = logging_config.file_max_size * 1024 * 1024
        cli.file_backup_count = logging_config.file_keep
    return cli


class Application:
    """
    Collects snapshots on a fixed interval and publishes them over MQTT.

    Each collection blocks for the CPU settle interval, so it runs in a
    worker thread through asyncio.to_thread.
    """

    def __init__(
        self,
        config: Config,
        aggregator: Aggregator | None = None,
        mqtt: MQTTClient | None = None,
    ):
        """
        Initialize application.

        Args:
            config: Application configuration
            aggregator: Snapshot source (built from config when None)
            mqtt: Publisher (built from config when None)
        """
        self.config = config
        self.aggregator = aggregator or Aggregator(config.collector)
        self.mqtt = mqtt or MQTTClient(
            config.mqtt,
            availability_topic=build_topic(config.mqtt.topic_prefix, "status"),
        )

        self._running = False
        self._task: asyncio.Task | None = None
        self._shutdown_event = asyncio.Event()

    def topic(self, *parts: str) -> str:
        return build_topic(self.config.mqtt.topic_prefix, *parts)

    async def collect(self) -> Snapshot | None:
        """Collect one snapshot in a worker thread; None if collection failed."""
        try:
            return await asyncio.to_thread(self.aggregator.collect)
        except CollectionError as e:
            logger.error(f"Collection failed: {e}")
            return None

    def publish_snapshot(self, snapshot: Snapshot) -> int:
        """
        Queue a snapshot for publishing.

        The full document goes to {prefix}/snapshot; with split_topics each
        top-level section also goes to {prefix}/{section}.

        Returns:
            Number of messages queued
        """
        document = snapshot.to_dict()
        queued = int(self.mqtt.publish(self.topic(SNAPSHOT_TOPIC), document))

        if self.config.publish.split_topics:
            for section, value in document.items():
                queued += int(self.mqtt.publish(self.topic(section), value))

        return queued

    async def _collect_loop(self) -> None:
        interval = self.config.publish.interval
        loop = asyncio.get_running_loop()
        logger.info(f"Publishing snapshots every {interval}s to {self.topic(SNAPSHOT_TOPIC)}")

        while self._running and not self._shutdown_event.is_set():
            started = loop.time()

            try:
                snapshot = await self.collect()
                if snapshot is not None:
                    self.publish_snapshot(snapshot)
                    logger.debug(f"Published {snapshot!r}")
            except Exception as e:
                logger.error(f"Error in collection loop: {e}")

            delay = max(interval - (loop.time() - started), 0.0)
            try:
                await asyncio.wait_for(self._shutdown_event.wait(), timeout=delay)
            except asyncio.TimeoutError:
                continue

    def _setup_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._signal_handler)

    def _signal_handler(self) -> None:
        logger.info("Received shutdown signal")
        self.request_stop()

    def request_stop(self) -> None:
        """Ask a running application to shut down."""
        self._shutdown_event.set()

    async def start(self) -> None:
        """Start publishing and wait until shutdown is requested."""
        logger.info("Starting HostPulse")

        await self.mqtt.start()
        if not await self.mqtt.wait_connected(timeout=30.0):
            logger.error("Failed to connect to MQTT broker")
            await self.mqtt.stop()
            self.aggregator.close()
            return

        self._setup_signal_handlers()

        self._running = True
        self._task = asyncio.create_task(self._collect_loop())
        logger.info("HostPulse started")

        await self._shutdown_event.wait()
        await self.stop()

    async def stop(self) -> None:
        """Stop the collection loop, the publisher and the probe pool."""
        logger.info("Stopping HostPulse")
        self._running = False

        if self._task:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None

        await self.mqtt.stop()
        self.aggregator.close()
        logger.info("HostPulse stopped")


async def run_app(config_path: str, cli_log_config: LogConfig | None = None) -> None:
    """
    Load configuration and run the application.

    Args:
        config_path: Path to configuration file
        cli_log_config: Logging config from CLI args (overrides file config)
    """
    loader = ConfigLoader()
    config = loader.load_file(config_path)

    if cli_log_config is None:
        setup_logging(log_config_from(config.logging))
    else:
        setup_logging(merge_log_config(cli_log_config, config.logging))

    logger.info(f"Loaded configuration from {config_path}")
    logger.debug(f"MQTT: {config.mqtt.host}:{config.mqtt.port}")

    for warning in loader.validate(config):
        logger.warning(f"Config warning: {warning}")

    app = Application(config)
    await app.start()
