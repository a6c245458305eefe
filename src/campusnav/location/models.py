"""Last-known-location record, one row per tracked faculty member."""

from datetime import UTC, datetime

from sqlmodel import Field, SQLModel


class FacultyLocation(SQLModel, table=True):
    faculty_id: str = Field(primary_key=True)  # BLE personId, e.g. "FAC_101"
    tag_id: str | None = None
    scanner_id: str
    room: str
    rssi: int  # dBm, strongest reading of the scanner's cycle
    last_seen: datetime = Field(default_factory=lambda: datetime.now(UTC), index=True)
