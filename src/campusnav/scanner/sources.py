"""BLE advertisement sources for the room scanner.

A source collects every advertisement heard during one bounded scan
window and returns them as a list; there is no open-ended subscription.
"""

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass

from bleak import BleakScanner
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData
from bleak.exc import BleakError

logger = logging.getLogger(__name__)


class ScannerStartupError(RuntimeError):
    """The BLE adapter could not be opened. Fatal for the scanner process."""


@dataclass
class Advertisement:
    payload: bytes  # manufacturer data, company id stripped
    rssi: int


class AdvertisementSource(ABC):
    """Abstract base for advertisement capture backends."""

    async def open(self) -> None:
        """Check the radio is usable; raise ScannerStartupError if not."""

    @abstractmethod
    async def collect(self, duration: float) -> list[Advertisement]:
        """Scan for ``duration`` seconds and return everything heard."""


class BleAdvertisementSource(AdvertisementSource):
    """Scans with bleak and keeps the manufacturer data of every advertisement."""

    def __init__(self, adapter: str | None = None) -> None:
        self.adapter = adapter

    def _make_scanner(self, sink: list[Advertisement]) -> BleakScanner:
        def _on_advertisement(device: BLEDevice, adv: AdvertisementData) -> None:
            for data in adv.manufacturer_data.values():
                sink.append(Advertisement(payload=bytes(data), rssi=adv.rssi))

        kwargs = {"adapter": self.adapter} if self.adapter else {}
        return BleakScanner(detection_callback=_on_advertisement, **kwargs)

    async def open(self) -> None:
        logger.info("Initializing BLE adapter %s", self.adapter or "(default)")
        try:
            scanner = self._make_scanner([])
            await scanner.start()
            await scanner.stop()
        except (BleakError, OSError) as e:
            raise ScannerStartupError(f"BLE initialization failed: {e}") from e

    async def collect(self, duration: float) -> list[Advertisement]:
        heard: list[Advertisement] = []
        scanner = self._make_scanner(heard)
        try:
            async with scanner:
                await asyncio.sleep(duration)
        except (BleakError, OSError):
            # Keep whatever arrived before the failure; next cycle starts fresh
            logger.exception("BLE scan failed after %d advertisement(s)", len(heard))
        return heard


# Tags in range of the mock room, with their base RSSI
_MOCK_TAGS = [
    ("FAC_101|TAG_01", -55),
    ("FAC_102|TAG_02", -68),
    ("FAC_103|TAG_03", -80),
]

# Everyday BLE traffic that must be filtered out
_MOCK_NOISE = [
    b"\x02\x15\xfd\xa5\x06\x93\xa4\xe2",
    b"AirPods",
    b"FAC_999",  # prefix but no separator
    b"STAFF_7|TAG_99",  # separator but wrong prefix
]


class MockAdvertisementSource(AdvertisementSource):
    """Fake advertisements for running a scanner without a radio."""

    def __init__(self, repeats: int = 3) -> None:
        self.repeats = repeats

    async def collect(self, duration: float) -> list[Advertisement]:
        await asyncio.sleep(duration)
        heard: list[Advertisement] = []
        for payload, base_rssi in _MOCK_TAGS:
            for _ in range(random.randint(1, self.repeats)):
                rssi = max(-120, min(0, base_rssi + random.randint(-10, 10)))
                heard.append(Advertisement(payload=payload.encode(), rssi=rssi))
        for noise in random.sample(_MOCK_NOISE, k=2):
            heard.append(Advertisement(payload=noise, rssi=random.randint(-95, -40)))
        random.shuffle(heard)
        return heard
