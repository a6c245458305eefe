"""Directory lookups that resolve a human-facing identity to a faculty record."""

import logging
import re

from sqlmodel import Session, col, select

from campusnav.directory.models import Faculty

logger = logging.getLogger(__name__)


def _like_pattern(name: str) -> str:
    """Build a LIKE pattern matching the words in order, with anything between them."""
    words = name.split()
    escaped = [re.sub(r"([\\%_])", r"\\\1", w) for w in words]
    return "%" + "%".join(escaped) + "%"


def create_faculty(
    session: Session,
    name: str,
    faculty_id: str | None = None,
    department: str | None = None,
    designation: str | None = None,
    email: str | None = None,
    room_id: str | None = None,
) -> Faculty:
    """Add a faculty member to the directory."""
    faculty = Faculty(
        name=name.strip(),
        faculty_id=faculty_id.strip() if faculty_id else None,
        department=department,
        designation=designation,
        email=email,
        room_id=room_id,
    )
    session.add(faculty)
    session.commit()
    session.refresh(faculty)
    logger.info("Created faculty: %s (id=%s, tag=%s)", faculty.name, faculty.id, faculty.faculty_id)
    return faculty


def list_faculty(session: Session, department: str | None = None) -> list[Faculty]:
    """List directory entries, optionally restricted to one department."""
    stmt = select(Faculty)
    if department:
        stmt = stmt.where(col(Faculty.department).ilike(_like_pattern(department), escape="\\"))
    stmt = stmt.order_by(Faculty.name)
    return list(session.exec(stmt).all())


def get_faculty(session: Session, key: int) -> Faculty | None:
    """Get a directory entry by its primary key."""
    return session.get(Faculty, key)


def get_faculty_by_person_id(session: Session, faculty_id: str) -> Faculty | None:
    """Reverse lookup: which directory entry carries this BLE personId?"""
    stmt = select(Faculty).where(Faculty.faculty_id == faculty_id.strip())
    return session.exec(stmt).first()


def find_faculty_by_name(session: Session, name: str) -> Faculty | None:
    """Case-insensitive, whitespace-tolerant match on the name; first hit wins."""
    if not name.strip():
        return None
    stmt = (
        select(Faculty)
        .where(col(Faculty.name).ilike(_like_pattern(name), escape="\\"))
        .order_by(Faculty.name)
    )
    return session.exec(stmt).first()
