"""Tag advertisement payload parsing.

Tags advertise manufacturer data of the form ``<prefix><id>|<tagId>``,
e.g. ``FAC_101|TAG_01``. Anything else (phones, headphones, other
beacons) is ignored.
"""

from dataclasses import dataclass

SEPARATOR = "|"


@dataclass
class TagReading:
    faculty_id: str  # includes the prefix, e.g. "FAC_101"
    tag_id: str | None


def parse_tag_payload(raw: bytes | str, prefix: str = "FAC_") -> TagReading | None:
    """Return the tag reading, or None if this is not one of our tags."""
    text = raw.decode("utf-8", errors="ignore") if isinstance(raw, bytes) else raw
    text = text.strip().strip("\x00")
    if SEPARATOR not in text:
        return None

    faculty_id, _, tag_id = text.partition(SEPARATOR)
    faculty_id = faculty_id.strip()
    if not faculty_id.startswith(prefix) or len(faculty_id) == len(prefix):
        return None
    return TagReading(faculty_id=faculty_id, tag_id=tag_id.strip() or None)
