"""Gate between untrusted scanner payloads and the location store.

Every inbound message is parsed, checked for required fields, types,
identifier formats and the physical RSSI range, then trimmed into a
:class:`Detection`. Bad input never raises: it comes back as a
:class:`Rejection` carrying the specific reason.
"""

import enum
import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from campusnav.config import Settings
from campusnav.ingest.base import Detection

REQUIRED_FIELDS = ("facultyId", "room", "rssi", "scannerId")
_STRING_FIELDS = ("facultyId", "room", "scannerId")


class RejectReason(enum.StrEnum):
    invalid_payload = "invalid_payload"
    missing_field = "missing_field"
    wrong_type = "wrong_type"
    bad_format = "bad_format"
    out_of_range = "out_of_range"


@dataclass
class Rejection:
    reason: RejectReason
    detail: str


def _is_number(value: object) -> bool:
    # bool is an int subclass but never a valid RSSI
    return isinstance(value, int | float) and not isinstance(value, bool)


def _is_missing(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _has_prefixed_id(value: str, prefix: str) -> bool:
    return value.startswith(prefix) and len(value) > len(prefix)


class DetectionValidator:
    """Validates and normalizes scanner payloads."""

    def __init__(
        self,
        faculty_id_prefix: str = "FAC_",
        scanner_id_prefix: str = "SC_",
        rssi_min: int = -120,
        rssi_max: int = 0,
    ) -> None:
        self.faculty_id_prefix = faculty_id_prefix
        self.scanner_id_prefix = scanner_id_prefix
        self.rssi_min = rssi_min
        self.rssi_max = rssi_max

    @classmethod
    def from_settings(cls, cfg: Settings) -> "DetectionValidator":
        return cls(
            faculty_id_prefix=cfg.faculty_id_prefix,
            scanner_id_prefix=cfg.scanner_id_prefix,
            rssi_min=cfg.rssi_min,
            rssi_max=cfg.rssi_max,
        )

    def validate(self, raw: bytes | str | Mapping[str, Any]) -> Detection | Rejection:
        """Return a normalized Detection, or a Rejection explaining why not."""
        data = self._parse(raw)
        if isinstance(data, Rejection):
            return data

        missing = [name for name in REQUIRED_FIELDS if _is_missing(data.get(name))]
        if missing:
            return Rejection(
                RejectReason.missing_field,
                f"missing required field(s): {', '.join(missing)}",
            )

        wrong = [name for name in _STRING_FIELDS if not isinstance(data[name], str)]
        if not _is_number(data["rssi"]):
            wrong.append("rssi")
        if data.get("tagId") is not None and not isinstance(data["tagId"], str):
            wrong.append("tagId")
        if wrong:
            return Rejection(
                RejectReason.wrong_type,
                f"wrong type for field(s): {', '.join(wrong)} "
                "(facultyId, room, scannerId must be strings; tagId a string or null; "
                "rssi must be numeric)",
            )

        faculty_id = data["facultyId"].strip()
        scanner_id = data["scannerId"].strip()
        room = data["room"].strip()

        if not _has_prefixed_id(faculty_id, self.faculty_id_prefix):
            return Rejection(
                RejectReason.bad_format,
                f'invalid facultyId format: "{faculty_id}" '
                f"(must be {self.faculty_id_prefix} followed by an id)",
            )
        if not _has_prefixed_id(scanner_id, self.scanner_id_prefix):
            return Rejection(
                RejectReason.bad_format,
                f'invalid scannerId format: "{scanner_id}" '
                f"(must be {self.scanner_id_prefix} followed by an id)",
            )

        rssi = data["rssi"]
        # NaN fails every comparison, so it lands here too
        if not self.rssi_min <= rssi <= self.rssi_max:
            return Rejection(
                RejectReason.out_of_range,
                f"invalid RSSI value ({rssi}): must be between "
                f"{self.rssi_min} and {self.rssi_max}",
            )

        tag_id = data.get("tagId")
        if tag_id is not None:
            tag_id = tag_id.strip() or None

        return Detection(
            faculty_id=faculty_id,
            tag_id=tag_id,
            scanner_id=scanner_id,
            room=room,
            rssi=int(round(rssi)),
        )

    @staticmethod
    def _parse(raw: bytes | str | Mapping[str, Any]) -> Mapping[str, Any] | Rejection:
        if isinstance(raw, Mapping):
            return raw
        try:
            text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
            data = json.loads(text)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            return Rejection(RejectReason.invalid_payload, f"invalid JSON: {e}")
        if not isinstance(data, dict):
            return Rejection(
                RejectReason.invalid_payload,
                f"payload must be a JSON object, got {type(data).__name__}",
            )
        return data
