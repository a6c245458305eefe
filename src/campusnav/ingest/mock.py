"""Mock ingest source for development and testing.

Produces fake scanner payloads on a timer: a few faculty members who
wander between rooms, plus the occasional malformed message a flaky
scanner might send.
"""

import asyncio
import json
import logging
import random

from campusnav.ingest.base import BaseIngestSource, Detection, MessageCallback

logger = logging.getLogger(__name__)

_SCANNERS = [
    ("SC_D103", "D103"),
    ("SC_A201", "A201"),
    ("SC_LIB1", "Library"),
]

_FACULTY = [
    ("FAC_101", "TAG_01", -55),
    ("FAC_102", "TAG_02", -62),
    ("FAC_103", "TAG_03", -70),
]

# Payloads the validator must reject
_MALFORMED = [
    b"{not json",
    b'{"facultyId": "101", "scannerId": "SC_D103", "room": "D103", "rssi": -60}',
    b'{"facultyId": "FAC_101", "scannerId": "SC_D103", "room": "D103", "rssi": 15}',
    b'{"facultyId": "FAC_102", "room": "A201", "rssi": -70}',
]


class MockIngestSource(BaseIngestSource):
    """Generates fake scanner traffic for development."""

    def __init__(self, poll_interval: int = 5, topic_prefix: str = "campusnav/faculty") -> None:
        self.poll_interval = poll_interval
        self.topic_prefix = topic_prefix.rstrip("/")
        self._callbacks: list[MessageCallback] = []
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._tick = 0

    async def start(self) -> None:
        logger.info("Starting mock ingest (interval=%ds)", self.poll_interval)
        self._running = True
        self._task = asyncio.create_task(self._poll_loop())

    async def stop(self) -> None:
        logger.info("Stopping mock ingest")
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    def on_message(self, callback: MessageCallback) -> None:
        self._callbacks.append(callback)

    @property
    def is_connected(self) -> bool:
        return self._running

    async def _poll_loop(self) -> None:
        while self._running:
            try:
                for topic, payload in self._generate_messages():
                    for cb in self._callbacks:
                        cb(topic, payload)
                self._tick += 1
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Mock ingest error")

            await asyncio.sleep(self.poll_interval)

    def _generate_messages(self) -> list[tuple[str, bytes]]:
        messages: list[tuple[str, bytes]] = []

        for i, (faculty_id, tag_id, base_rssi) in enumerate(_FACULTY):
            # Each person moves to the next room every 4 ticks, with some boundary flicker
            scanner_id, room = _SCANNERS[(self._tick // 4 + i) % len(_SCANNERS)]
            if random.random() < 0.2:
                scanner_id, room = random.choice(_SCANNERS)
            detection = Detection(
                faculty_id=faculty_id,
                tag_id=tag_id,
                scanner_id=scanner_id,
                room=room,
                rssi=max(-120, min(0, base_rssi + random.randint(-8, 8))),
            )
            messages.append(
                (f"{self.topic_prefix}/{scanner_id}", json.dumps(detection.to_payload()).encode())
            )

        if random.random() < 0.25:
            scanner_id, _room = random.choice(_SCANNERS)
            messages.append((f"{self.topic_prefix}/{scanner_id}", random.choice(_MALFORMED)))

        return messages
