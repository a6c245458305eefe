"""Faculty directory model."""

from sqlmodel import Field, SQLModel


class Faculty(SQLModel, table=True):
    """A faculty member in the campus directory."""

    id: int | None = Field(default=None, primary_key=True)
    faculty_id: str | None = Field(default=None, index=True)  # BLE tag mapping, e.g. "FAC_101"
    name: str = Field(index=True)
    designation: str | None = None
    email: str | None = None
    department: str | None = None
    room_id: str | None = None  # assigned cabin, not the live location
