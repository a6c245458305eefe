"""Per-cycle detection buffer with strongest-signal deduplication."""

from dataclasses import dataclass


@dataclass
class BufferedReading:
    faculty_id: str
    tag_id: str | None
    rssi: int


class DetectionBuffer:
    """Holds at most ``capacity`` distinct faculty for one scan cycle.

    Repeat sightings keep the strongest RSSI (closest to zero) together
    with the tag id that produced it. New faculty beyond capacity are
    counted in ``dropped`` and otherwise ignored.
    """

    def __init__(self, capacity: int = 10) -> None:
        if capacity < 1:
            raise ValueError(f"Buffer capacity must be positive, got {capacity}")
        self.capacity = capacity
        self.dropped = 0
        self._readings: dict[str, BufferedReading] = {}

    def __len__(self) -> int:
        return len(self._readings)

    def add(self, faculty_id: str, tag_id: str | None, rssi: int) -> bool:
        """Record a sighting. Returns False only when it was dropped for capacity."""
        existing = self._readings.get(faculty_id)
        if existing is not None:
            if rssi > existing.rssi:
                existing.rssi = rssi
                existing.tag_id = tag_id
            return True

        if len(self._readings) >= self.capacity:
            self.dropped += 1
            return False

        self._readings[faculty_id] = BufferedReading(faculty_id, tag_id, rssi)
        return True

    def readings(self) -> list[BufferedReading]:
        """Buffered readings in first-seen order."""
        return list(self._readings.values())

    def reset(self) -> None:
        self._readings.clear()
        self.dropped = 0
