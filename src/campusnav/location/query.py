"""Read-side lookups for chat and directory consumers.

Each lookup resolves to one of four outcomes so callers can tell
"never detected" apart from "no such person" and from a storage outage:

- ``found``: a location record exists
- ``no_data``: the person is in the directory but no scanner has reported them
- ``not_found``: neither the directory nor the store knows the identity
- ``unavailable``: the database could not be read
"""

import enum
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from campusnav.directory.models import Faculty
from campusnav.directory.store import find_faculty_by_name, get_faculty, get_faculty_by_person_id
from campusnav.location.models import FacultyLocation
from campusnav.location.store import get_location

logger = logging.getLogger(__name__)


class LookupStatus(enum.StrEnum):
    found = "found"
    no_data = "no_data"
    not_found = "not_found"
    unavailable = "unavailable"


def _iso(ts: datetime | None) -> str | None:
    if ts is None:
        return None
    ts = ts.replace(tzinfo=UTC) if ts.tzinfo is None else ts.astimezone(UTC)
    return ts.isoformat()


@dataclass
class LocationLookup:
    status: LookupStatus
    faculty: Faculty | None = None
    location: FacultyLocation | None = None

    def to_dict(self) -> dict[str, Any]:
        faculty_id = self.location.faculty_id if self.location else None
        if faculty_id is None and self.faculty is not None:
            faculty_id = self.faculty.faculty_id
        return {
            "status": str(self.status),
            "facultyId": faculty_id,
            "name": self.faculty.name if self.faculty else None,
            "department": self.faculty.department if self.faculty else None,
            "room": self.location.room if self.location else None,
            "scannerId": self.location.scanner_id if self.location else None,
            "rssi": self.location.rssi if self.location else None,
            "lastSeen": _iso(self.location.last_seen) if self.location else None,
        }


def _lookup_for_faculty(session: Session, faculty: Faculty) -> LocationLookup:
    if not faculty.faculty_id:
        return LocationLookup(LookupStatus.no_data, faculty=faculty)
    location = get_location(session, faculty.faculty_id)
    if location is None:
        return LocationLookup(LookupStatus.no_data, faculty=faculty)
    return LocationLookup(LookupStatus.found, faculty=faculty, location=location)


def locate_by_person_id(session: Session, faculty_id: str) -> LocationLookup:
    """Look up by raw BLE personId (e.g. "FAC_101")."""
    try:
        location = get_location(session, faculty_id)
        faculty = get_faculty_by_person_id(session, faculty_id)
    except SQLAlchemyError:
        logger.exception("Location lookup failed for %s", faculty_id)
        return LocationLookup(LookupStatus.unavailable)

    if location is not None:
        return LocationLookup(LookupStatus.found, faculty=faculty, location=location)
    if faculty is not None:
        return LocationLookup(LookupStatus.no_data, faculty=faculty)
    return LocationLookup(LookupStatus.not_found)


def locate_by_key(session: Session, key: str) -> LocationLookup:
    """Look up by raw personId first, then by directory primary key."""
    result = locate_by_person_id(session, key)
    if result.status != LookupStatus.not_found or not key.strip().isdigit():
        return result

    try:
        faculty = get_faculty(session, int(key))
        if faculty is None:
            return LocationLookup(LookupStatus.not_found)
        return _lookup_for_faculty(session, faculty)
    except SQLAlchemyError:
        logger.exception("Location lookup failed for directory key %s", key)
        return LocationLookup(LookupStatus.unavailable)


def locate_by_name(session: Session, name: str) -> LocationLookup:
    """Resolve a faculty name through the directory, then read the location."""
    try:
        faculty = find_faculty_by_name(session, name)
        if faculty is None:
            return LocationLookup(LookupStatus.not_found)
        return _lookup_for_faculty(session, faculty)
    except SQLAlchemyError:
        logger.exception("Location lookup failed for name %r", name)
        return LocationLookup(LookupStatus.unavailable)
