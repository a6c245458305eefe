"""MQTT subscriber for scanner detections via aiomqtt.

Scanners publish to ``{prefix}/{scannerId}``; the backend subscribes once
to ``{prefix}/+`` and receives every scanner's traffic on one channel.
Connection loss is retried forever at a fixed interval.
"""

import asyncio
import logging
import ssl
import time

import aiomqtt

from campusnav.ingest.base import BaseIngestSource, MessageCallback

logger = logging.getLogger(__name__)


def _payload_bytes(payload: object) -> bytes:
    if isinstance(payload, bytes | bytearray):
        return bytes(payload)
    if payload is None:
        return b""
    return str(payload).encode("utf-8")


class MqttIngestSource(BaseIngestSource):
    """Subscribes to all scanner topics and hands messages to callbacks."""

    def __init__(
        self,
        host: str,
        port: int = 8883,
        username: str | None = None,
        password: str | None = None,
        tls: bool = True,
        topic_prefix: str = "campusnav/faculty",
        qos: int = 1,
        reconnect_interval: int = 10,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.tls = tls
        self.topic = f"{topic_prefix.rstrip('/')}/+"
        self.qos = qos
        self.reconnect_interval = reconnect_interval
        self._callbacks: list[MessageCallback] = []
        self._running = False
        self._connected = False
        self._task: asyncio.Task[None] | None = None
        self._pending: set[asyncio.Task[None]] = set()

    async def start(self) -> None:
        logger.info("Starting MQTT ingest from %s:%d on %s", self.host, self.port, self.topic)
        self._running = True
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        logger.info("Stopping MQTT ingest")
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        self._connected = False

    def on_message(self, callback: MessageCallback) -> None:
        self._callbacks.append(callback)

    @property
    def is_connected(self) -> bool:
        return self._connected

    def _make_client(self) -> aiomqtt.Client:
        return aiomqtt.Client(
            hostname=self.host,
            port=self.port,
            username=self.username,
            password=self.password,
            identifier=f"campusnav_backend_{int(time.time() * 1000)}",
            tls_context=ssl.create_default_context() if self.tls else None,
            clean_session=True,
        )

    async def _run(self) -> None:
        while self._running:
            try:
                async with self._make_client() as client:
                    self._connected = True
                    logger.info("MQTT connected to %s:%d", self.host, self.port)
                    await client.subscribe(self.topic, qos=self.qos)
                    logger.info("Subscribed to %s (QoS %d)", self.topic, self.qos)

                    async for message in client.messages:
                        self._dispatch(str(message.topic), _payload_bytes(message.payload))
            except asyncio.CancelledError:
                raise
            except aiomqtt.MqttError as e:
                logger.error("MQTT connection error: %s", e)
            except Exception:
                logger.exception("MQTT subscriber error")
            finally:
                self._connected = False

            if self._running:
                logger.info("Reconnecting to MQTT in %ds", self.reconnect_interval)
                await asyncio.sleep(self.reconnect_interval)

    def _dispatch(self, topic: str, payload: bytes) -> None:
        """Run each callback in a worker thread so slow writes don't stall the loop."""
        for cb in self._callbacks:
            task = asyncio.create_task(asyncio.to_thread(cb, topic, payload))
            self._pending.add(task)
            task.add_done_callback(self._handler_done)

    def _handler_done(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Message handler raised: %r", exc)
