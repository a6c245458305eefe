"""REST API endpoints."""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from sqlmodel import Session

from campusnav.config import settings
from campusnav.database import get_session
from campusnav.directory.models import Faculty
from campusnav.directory.store import create_faculty, list_faculty
from campusnav.ingest.service import IngestionService
from campusnav.ingest.validator import Rejection
from campusnav.location.models import FacultyLocation
from campusnav.location.query import LocationLookup, LookupStatus, locate_by_key, locate_by_name
from campusnav.location.store import get_recent_locations, list_locations

router = APIRouter(prefix="/api")

_NOT_FOUND_DETAIL = {
    LookupStatus.no_data: "No tracking data: faculty has not been detected by any scanner",
    LookupStatus.not_found: "Faculty not found",
}


def get_ingest_service(request: Request) -> IngestionService:
    """The app-wide ingestion service created in the lifespan."""
    return request.app.state.ingest


def _raise_for_lookup(lookup: LocationLookup, allow_no_data: bool = False) -> None:
    if lookup.status == LookupStatus.unavailable:
        raise HTTPException(status_code=503, detail="Location store temporarily unavailable")
    if lookup.status == LookupStatus.not_found:
        raise HTTPException(status_code=404, detail=_NOT_FOUND_DETAIL[lookup.status])
    if lookup.status == LookupStatus.no_data and not allow_no_data:
        raise HTTPException(status_code=404, detail=_NOT_FOUND_DETAIL[lookup.status])


# Request models
class CreateFacultyRequest(BaseModel):
    name: str
    faculty_id: str | None = None
    department: str | None = None
    designation: str | None = None
    email: str | None = None
    room_id: str | None = None


# --- Scanner ingestion (HTTP transport) ---


@router.post("/scanner/update")
def scanner_update(
    payload: dict[str, Any],
    session: Session = Depends(get_session),
    ingest: IngestionService = Depends(get_ingest_service),
) -> dict[str, Any]:
    result = ingest.ingest(session, payload, source="http")
    if isinstance(result, Rejection):
        raise HTTPException(
            status_code=400,
            detail={"reason": str(result.reason), "detail": result.detail},
        )
    if not result.success or result.location is None:
        raise HTTPException(status_code=500, detail=result.error or "Failed to update location")
    return {
        "success": True,
        "updated": result.updated,
        "facultyId": result.location.faculty_id,
        "room": result.location.room,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/scanner/health")
def scanner_health() -> dict[str, str]:
    return {"status": "ok", "timestamp": datetime.now(UTC).isoformat()}


# --- Location reads ---


@router.get("/locations")
def list_all_locations(
    session: Session = Depends(get_session),
) -> list[FacultyLocation]:
    return list_locations(session)


@router.get("/presence")
def presence_summary(
    session: Session = Depends(get_session),
) -> dict[str, int | list[FacultyLocation]]:
    grace = settings.presence_grace_period
    locations = get_recent_locations(session, grace_seconds=grace)
    return {
        "present_count": len(locations),
        "grace_seconds": grace,
        "locations": locations,
    }


# --- Faculty directory ---


@router.get("/faculty")
def list_all_faculty(
    department: str | None = None,
    session: Session = Depends(get_session),
) -> list[Faculty]:
    return list_faculty(session, department=department)


@router.post("/faculty", status_code=201)
def create_new_faculty(
    request: CreateFacultyRequest,
    session: Session = Depends(get_session),
) -> Faculty:
    return create_faculty(session, **request.model_dump())


@router.get("/faculty/locate")
def locate_faculty_by_name(
    name: str,
    session: Session = Depends(get_session),
) -> dict[str, Any]:
    lookup = locate_by_name(session, name)
    _raise_for_lookup(lookup, allow_no_data=True)
    return lookup.to_dict()


@router.get("/faculty/location/{key}")
def faculty_location(
    key: str,
    session: Session = Depends(get_session),
) -> dict[str, Any]:
    lookup = locate_by_key(session, key)
    _raise_for_lookup(lookup)
    return lookup.to_dict()
