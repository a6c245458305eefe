"""Detection record and base interface for ingestion sources."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

# (topic, raw payload) as received from the transport
MessageCallback = Callable[[str, bytes], None]


@dataclass
class Detection:
    """One scanner's report of one faculty member during one scan cycle."""

    faculty_id: str
    tag_id: str | None
    scanner_id: str
    room: str
    rssi: int  # dBm (negative, e.g. -55)

    def to_payload(self) -> dict[str, Any]:
        """Wire representation published by scanners."""
        return {
            "facultyId": self.faculty_id,
            "tagId": self.tag_id,
            "scannerId": self.scanner_id,
            "room": self.room,
            "rssi": self.rssi,
        }


class BaseIngestSource(ABC):
    """Abstract base for everything that delivers raw scanner payloads."""

    @abstractmethod
    async def start(self) -> None:
        """Start receiving messages."""

    @abstractmethod
    async def stop(self) -> None:
        """Stop receiving."""

    @abstractmethod
    def on_message(self, callback: MessageCallback) -> None:
        """Register a callback for inbound messages."""

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether the source currently has a live upstream connection."""
