"""Location store: upsert-by-faculty and read queries."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from campusnav.ingest.base import Detection
from campusnav.location.models import FacultyLocation

logger = logging.getLogger(__name__)

_UPDATED_FIELDS = ("tag_id", "scanner_id", "room", "rssi", "last_seen")
_table = FacultyLocation.__table__  # type: ignore[attr-defined]


@dataclass
class UpsertResult:
    """Outcome of a single upsert; failures leave the previous record intact."""

    success: bool
    updated: bool = False
    location: FacultyLocation | None = None
    error: str | None = None


def _as_utc(ts: datetime) -> datetime:
    # Values read back from SQLite may have lost their tzinfo; they are always UTC
    return ts.replace(tzinfo=UTC) if ts.tzinfo is None else ts.astimezone(UTC)


def upsert_location(
    session: Session,
    detection: Detection,
    now: datetime | None = None,
) -> UpsertResult:
    """Create or overwrite the record for ``detection.faculty_id``.

    Every field is replaced unconditionally (no RSSI comparison across
    cycles) and ``last_seen`` is set to the processing time, bumped past
    the stored value if the clock has not moved on. The write is a single
    ``INSERT ... ON CONFLICT DO UPDATE`` guarded on ``last_seen`` so that
    concurrent writers for the same faculty can never roll a record back.
    """
    seen = _as_utc(now or datetime.now(UTC))
    try:
        previous = session.get(FacultyLocation, detection.faculty_id)
        if previous is not None:
            prev_seen = _as_utc(previous.last_seen)
            if seen <= prev_seen:
                seen = prev_seen + timedelta(microseconds=1)

        stmt = sqlite_insert(_table).values(
            faculty_id=detection.faculty_id,
            tag_id=detection.tag_id,
            scanner_id=detection.scanner_id,
            room=detection.room,
            rssi=detection.rssi,
            last_seen=seen,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["faculty_id"],
            set_={name: stmt.excluded[name] for name in _UPDATED_FIELDS},
            where=_table.c.last_seen < stmt.excluded.last_seen,
        )
        result = session.exec(stmt)  # type: ignore[call-overload]
        session.commit()
        location = session.get(FacultyLocation, detection.faculty_id, populate_existing=True)
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Location upsert failed for %s", detection.faculty_id)
        return UpsertResult(success=False, error=str(e))

    updated = result.rowcount > 0
    if updated:
        logger.info(
            "Updated: %s -> %s (RSSI: %d) via %s",
            detection.faculty_id,
            detection.room,
            detection.rssi,
            detection.scanner_id,
        )
    else:
        logger.debug("Skipped %s: a newer sighting was stored concurrently", detection.faculty_id)
    return UpsertResult(success=True, updated=updated, location=location)


def get_location(session: Session, faculty_id: str) -> FacultyLocation | None:
    """Get the current location record for a faculty member, or None."""
    return session.get(FacultyLocation, faculty_id.strip())


def list_locations(session: Session) -> list[FacultyLocation]:
    """All location records, most recently seen first."""
    stmt = select(FacultyLocation).order_by(col(FacultyLocation.last_seen).desc())
    return list(session.exec(stmt).all())


def get_recent_locations(session: Session, grace_seconds: int = 180) -> list[FacultyLocation]:
    """Records seen within the grace period."""
    cutoff = datetime.now(UTC) - timedelta(seconds=grace_seconds)
    stmt = (
        select(FacultyLocation)
        .where(col(FacultyLocation.last_seen) >= cutoff)
        .order_by(col(FacultyLocation.last_seen).desc())
    )
    return list(session.exec(stmt).all())
