"""Scanner-side transport: hand one cycle's detections to the backend.

Delivery is bounded: a few attempts with a fixed delay, after which the
cycle's detections are dropped. There is no local queue; the next cycle's
readings supersede anything lost.
"""

import asyncio
import json
import logging
import ssl
from abc import ABC, abstractmethod

import aiomqtt
import httpx

from campusnav.ingest.base import Detection

logger = logging.getLogger(__name__)


class DetectionPublisher(ABC):
    """Retry wrapper around a single delivery attempt."""

    def __init__(self, retry_max: int = 5, retry_delay: float = 2.0) -> None:
        self.retry_max = max(1, retry_max)
        self.retry_delay = retry_delay

    async def publish(self, detections: list[Detection]) -> bool:
        """Deliver ``detections``; returns False if they were dropped."""
        if not detections:
            return True

        for attempt in range(1, self.retry_max + 1):
            try:
                await self._send(detections)
                logger.info("Published %d detection(s)", len(detections))
                return True
            except Exception as e:
                logger.warning("Publish attempt %d/%d failed: %s", attempt, self.retry_max, e)
                if attempt < self.retry_max:
                    await asyncio.sleep(self.retry_delay)

        logger.error(
            "Dropping %d detection(s) after %d failed attempt(s)",
            len(detections),
            self.retry_max,
        )
        return False

    @abstractmethod
    async def _send(self, detections: list[Detection]) -> None:
        """One delivery attempt; raise on failure."""


class MqttDetectionPublisher(DetectionPublisher):
    """Publishes to ``{prefix}/{scannerId}`` on the shared broker."""

    def __init__(
        self,
        scanner_id: str,
        host: str,
        port: int = 8883,
        username: str | None = None,
        password: str | None = None,
        tls: bool = True,
        topic_prefix: str = "campusnav/faculty",
        qos: int = 1,
        retry_max: int = 5,
        retry_delay: float = 2.0,
    ) -> None:
        super().__init__(retry_max=retry_max, retry_delay=retry_delay)
        self.scanner_id = scanner_id
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.tls = tls
        self.topic = f"{topic_prefix.rstrip('/')}/{scanner_id}"
        self.qos = qos

    async def _send(self, detections: list[Detection]) -> None:
        async with aiomqtt.Client(
            hostname=self.host,
            port=self.port,
            username=self.username,
            password=self.password,
            identifier=f"campusnav_{self.scanner_id}",
            tls_context=ssl.create_default_context() if self.tls else None,
        ) as client:
            for detection in detections:
                await client.publish(
                    self.topic,
                    json.dumps(detection.to_payload()),
                    qos=self.qos,
                )
                logger.debug(
                    "Sent %s (RSSI %d) to %s", detection.faculty_id, detection.rssi, self.topic
                )


class HttpDetectionPublisher(DetectionPublisher):
    """POSTs each detection to the backend's scanner endpoint."""

    def __init__(
        self,
        base_url: str,
        retry_max: int = 5,
        retry_delay: float = 2.0,
        timeout: float = 10.0,
    ) -> None:
        super().__init__(retry_max=retry_max, retry_delay=retry_delay)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def _send(self, detections: list[Detection]) -> None:
        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout) as client:
            for detection in detections:
                resp = await client.post("/api/scanner/update", json=detection.to_payload())
                if resp.status_code == 400:
                    # Validator rejection, not retried
                    logger.warning("Backend rejected %s: %s", detection.faculty_id, resp.text)
                    continue
                resp.raise_for_status()
