"""Room scanner agent: scan, deduplicate, emit, sleep, repeat.

Run one process per room::

    CAMPUSNAV_SCANNER_ID=SC_D103 CAMPUSNAV_SCANNER_ROOM=D103 campusnav-scanner
"""

import asyncio
import logging
import sys

from campusnav.config import Settings, load_config
from campusnav.ingest.base import Detection
from campusnav.scanner.buffer import DetectionBuffer
from campusnav.scanner.payload import parse_tag_payload
from campusnav.scanner.publisher import (
    DetectionPublisher,
    HttpDetectionPublisher,
    MqttDetectionPublisher,
)
from campusnav.scanner.sources import (
    AdvertisementSource,
    BleAdvertisementSource,
    MockAdvertisementSource,
    ScannerStartupError,
)

logger = logging.getLogger(__name__)


class RoomScanner:
    """A single sequential scan loop bound to one room."""

    def __init__(
        self,
        scanner_id: str,
        room: str,
        source: AdvertisementSource,
        publisher: DetectionPublisher,
        scan_time: float = 5.0,
        cycle_period: float = 60.0,
        buffer_size: int = 10,
        tag_prefix: str = "FAC_",
    ) -> None:
        self.scanner_id = scanner_id
        self.room = room
        self.source = source
        self.publisher = publisher
        self.scan_time = scan_time
        self.cycle_period = cycle_period
        self.tag_prefix = tag_prefix
        self.buffer = DetectionBuffer(buffer_size)
        self._running = False

    async def run_cycle(self) -> list[Detection]:
        """One scan window followed by one emit phase."""
        self.buffer.reset()
        adverts = await self.source.collect(self.scan_time)

        for adv in adverts:
            reading = parse_tag_payload(adv.payload, self.tag_prefix)
            if reading is None:
                continue
            if not self.buffer.add(reading.faculty_id, reading.tag_id, adv.rssi):
                logger.debug("Buffer full, dropping %s", reading.faculty_id)

        if self.buffer.dropped:
            logger.warning(
                "Buffer capacity %d reached; %d sighting(s) of new faculty dropped",
                self.buffer.capacity,
                self.buffer.dropped,
            )

        detections = [
            Detection(
                faculty_id=r.faculty_id,
                tag_id=r.tag_id,
                scanner_id=self.scanner_id,
                room=self.room,
                rssi=r.rssi,
            )
            for r in self.buffer.readings()
        ]
        logger.info(
            "Scan complete: %d advertisement(s), %d faculty in %s",
            len(adverts),
            len(detections),
            self.room,
        )

        if detections:
            await self.publisher.publish(detections)
        return detections

    async def run_forever(self) -> None:
        """Open the radio (fatal on failure), then cycle until stopped."""
        await self.source.open()
        logger.info(
            "Scanner %s ready in %s (scan %.1fs every %.1fs)",
            self.scanner_id,
            self.room,
            self.scan_time,
            self.cycle_period,
        )

        loop = asyncio.get_running_loop()
        self._running = True
        while self._running:
            started = loop.time()
            try:
                await self.run_cycle()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Scan cycle failed")

            remaining = self.cycle_period - (loop.time() - started)
            if self._running and remaining > 0:
                await asyncio.sleep(remaining)

    def stop(self) -> None:
        self._running = False


def _create_source(cfg: Settings) -> AdvertisementSource:
    if cfg.scanner_source == "mock":
        return MockAdvertisementSource()
    if cfg.scanner_source != "ble":
        logger.warning("Unknown scanner source '%s', using ble", cfg.scanner_source)
    return BleAdvertisementSource()


def _create_publisher(cfg: Settings) -> DetectionPublisher:
    if cfg.scanner_transport == "http":
        return HttpDetectionPublisher(
            base_url=cfg.backend_url,
            retry_max=cfg.publish_retry_max,
            retry_delay=cfg.publish_retry_delay,
        )
    if cfg.scanner_transport != "mqtt":
        logger.warning("Unknown scanner transport '%s', using mqtt", cfg.scanner_transport)
    if not cfg.mqtt_host:
        raise ScannerStartupError("MQTT transport selected but mqtt_host not configured")
    return MqttDetectionPublisher(
        scanner_id=cfg.scanner_id,
        host=cfg.mqtt_host,
        port=cfg.mqtt_port,
        username=cfg.mqtt_username,
        password=cfg.mqtt_password,
        tls=cfg.mqtt_tls,
        topic_prefix=cfg.mqtt_topic_prefix,
        qos=cfg.mqtt_qos,
        retry_max=cfg.publish_retry_max,
        retry_delay=cfg.publish_retry_delay,
    )


def build_scanner(cfg: Settings) -> RoomScanner:
    """Factory: wire a scanner from configuration."""
    return RoomScanner(
        scanner_id=cfg.scanner_id,
        room=cfg.scanner_room,
        source=_create_source(cfg),
        publisher=_create_publisher(cfg),
        scan_time=cfg.scan_time,
        cycle_period=cfg.cycle_period,
        buffer_size=cfg.scanner_buffer_size,
        tag_prefix=cfg.tag_payload_prefix,
    )


def main() -> None:
    cfg = load_config()
    logging.basicConfig(level=cfg.log_level.upper())

    try:
        scanner = build_scanner(cfg)
        asyncio.run(scanner.run_forever())
    except ScannerStartupError as e:
        logger.critical("Scanner %s cannot start: %s", cfg.scanner_id, e)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Scanner %s stopped", cfg.scanner_id)


if __name__ == "__main__":
    main()
