"""
MQTT publisher using aiomqtt.

Features:
- Automatic reconnection with exponential backoff
- Last Will and Testament (LWT) on the availability topic
- Bounded outgoing queue, so a slow broker never blocks collection
"""

import asyncio
import json
import uuid
from typing import Any

import aiomqtt

from ..config.schema import MQTTConfig
from ..logging import get_logger

logger = get_logger("mqtt")

ONLINE = "online"
OFFLINE = "offline"

QueuedMessage = tuple[str, str, int, bool]


def encode_payload(payload: Any) -> str:
    """
    Convert a payload to the string sent on the wire.

    Strings pass through, booleans become true/false, numbers use str(),
    everything else is JSON encoded.
    """
    if isinstance(payload, str):
        return payload
    if isinstance(payload, bool):
        return "true" if payload else "false"
    if isinstance(payload, (int, float)):
        return str(payload)
    return json.dumps(payload)


def build_topic(prefix: str, *parts: str) -> str:
    """Join topic levels, ignoring stray slashes."""
    levels = [prefix.strip("/")] + [part.strip("/") for part in parts]
    return "/".join(level for level in levels if level)


class MQTTClient:
    """
    Async MQTT publisher with reconnection support.

    publish() only enqueues; a background task owns the broker connection
    and drains the queue, reconnecting when the connection drops.
    """

    def __init__(
        self,
        config: MQTTConfig,
        availability_topic: str | None = None,
        queue_size: int = 100,
    ):
        """
        Initialize MQTT client.

        Args:
            config: MQTT configuration
            availability_topic: Topic for online/offline messages (LWT)
            queue_size: Maximum queued outgoing messages
        """
        self.config = config
        self.availability_topic = availability_topic or build_topic(config.topic_prefix, "status")

        self._client: aiomqtt.Client | None = None
        self._connected = asyncio.Event()
        self._reconnect_interval = 5.0
        self._max_reconnect_interval = 60.0

        self._client_id = config.client_id or f"hostpulse_{uuid.uuid4().hex[:8]}"

        self._queue: asyncio.Queue[QueuedMessage] = asyncio.Queue(maxsize=queue_size)
        self._publisher_task: asyncio.Task | None = None
        self._running = False

    @property
    def connected(self) -> bool:
        return self._connected.is_set()

    @property
    def queued(self) -> int:
        """Number of messages waiting to be sent."""
        return self._queue.qsize()

    def _create_client(self) -> aiomqtt.Client:
        will = aiomqtt.Will(
            topic=self.availability_topic,
            payload=OFFLINE,
            qos=1,
            retain=self.config.should_retain_status(),
        )
        return aiomqtt.Client(
            hostname=self.config.host,
            port=self.config.port,
            username=self.config.username,
            password=self.config.password,
            identifier=self._client_id,
            keepalive=self.config.keepalive,
            will=will,
        )

    async def connect(self) -> None:
        """
        Connect to the broker and announce availability.

        Raises:
            aiomqtt.MqttError: If connection fails
        """
        logger.debug(f"Connecting to {self.config.host}:{self.config.port} as {self._client_id}")

        client = self._create_client()
        await client.__aenter__()
        self._client = client
        self._connected.set()

        await self._send(self.availability_topic, ONLINE, 1, self.config.should_retain_status())
        logger.info(f"Connected to MQTT broker at {self.config.host}:{self.config.port}")

    async def disconnect(self) -> None:
        """Announce offline status and close the connection."""
        client = self._client
        if client is None or not self.connected:
            return

        try:
            await self._send(self.availability_topic, OFFLINE, 1, self.config.should_retain_status())
        except aiomqtt.MqttError as e:
            logger.debug(f"Could not publish offline status: {e}")

        try:
            await client.__aexit__(None, None, None)
        except aiomqtt.MqttError as e:
            logger.debug(f"Error while disconnecting: {e}")

        self._connected.clear()
        self._client = None
        logger.info("Disconnected from MQTT broker")

    async def _send(self, topic: str, payload: str, qos: int, retain: bool) -> None:
        if self._client is None:
            raise aiomqtt.MqttError("Not connected")
        suffix = "..." if len(payload) > 100 else ""
        logger.debug(f"Publishing to {topic}: {payload[:100]}{suffix}")
        await self._client.publish(topic, payload, qos=qos, retain=retain)

    def publish(
        self,
        topic: str,
        payload: Any,
        qos: int | None = None,
        retain: bool | None = None,
    ) -> bool:
        """
        Queue a message for publishing.

        Args:
            topic: Full MQTT topic
            payload: Message payload (encoded with encode_payload)
            qos: QoS level (default from config)
            retain: Retain flag (default from the retain mode)

        Returns:
            False if the queue is full and the message was dropped
        """
        message = (
            topic,
            encode_payload(payload),
            self.config.qos if qos is None else qos,
            self.config.should_retain_data() if retain is None else retain,
        )
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning(f"Message queue full, dropping message for {topic}")
            return False
        return True

    async def _publisher_loop(self) -> None:
        """Background task: keep a connection and drain the queue."""
        reconnect_interval = self._reconnect_interval

        while self._running:
            if not self.connected:
                try:
                    await self.connect()
                    reconnect_interval = self._reconnect_interval
                except aiomqtt.MqttError as e:
                    logger.error(
                        f"Failed to connect to MQTT: {e}; retrying in {reconnect_interval:.0f}s"
                    )
                    await asyncio.sleep(reconnect_interval)
                    reconnect_interval = min(reconnect_interval * 2, self._max_reconnect_interval)
                    continue

            try:
                message = await asyncio.wait_for(self._queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue

            try:
                await self._send(*message)
            except aiomqtt.MqttError as e:
                logger.error(f"MQTT error: {e}")
                self._connected.clear()
                self._client = None
                # Keep the message for the next connection
                try:
                    self._queue.put_nowait(message)
                except asyncio.QueueFull:
                    logger.warning(f"Message queue full, dropping message for {message[0]}")

    async def start(self) -> None:
        """Start the background publisher."""
        self._running = True
        self._publisher_task = asyncio.create_task(self._publisher_loop())
        logger.debug("MQTT publisher started")

    async def stop(self) -> None:
        """Stop the publisher and disconnect."""
        self._running = False

        if self._publisher_task:
            self._publisher_task.cancel()
            try:
                await self._publisher_task
            except asyncio.CancelledError:
                pass
            self._publisher_task = None

        await self.disconnect()

    async def wait_connected(self, timeout: float = 30.0) -> bool:
        """
        Wait for the broker connection.

        Returns:
            True if connected, False on timeout
        """
        try:
            await asyncio.wait_for(self._connected.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True
