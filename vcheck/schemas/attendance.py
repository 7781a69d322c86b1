import datetime  # module import avoids a clash with the 'date' fields
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from vcheck.models.enums import Decision, Facet

from .common import Coordinate

NonBlank = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


# --- Requests ---
class CheckInRequest(Coordinate):
    office_id: int
    photo: Optional[str] = Field(None, description="Base64 encoded photo")


class CheckOutRequest(CheckInRequest):
    pass


class ReasonRequest(BaseModel):
    attendance_id: int
    type: Facet
    reason: NonBlank
    reason_photo: Optional[str] = None


class ApprovalRequest(BaseModel):
    attendance_id: int
    action: Decision
    type: Facet
    rejection_reason: Optional[str] = None


# --- Read Schema (Output) ---
class AttendanceRead(BaseModel):
    id: int
    user_id: int
    office_id: int
    officer_name: str
    office_name: str
    checkin_date: datetime.date

    checkin_time: datetime.datetime
    checkin_lat: float
    checkin_lng: float
    distance: float
    status: str
    checkin_status: str
    checkin_approved_by: Optional[int] = None
    checkin_approved_at: Optional[datetime.datetime] = None
    checkin_rejection_reason: Optional[str] = None
    checkin_photo: Optional[str] = None
    checkin_reason: Optional[str] = None
    checkin_reason_photo: Optional[str] = None

    checkout_time: Optional[datetime.datetime] = None
    checkout_lat: Optional[float] = None
    checkout_lng: Optional[float] = None
    checkout_distance: Optional[float] = None
    checkout_status: Optional[str] = None
    checkout_approved_by: Optional[int] = None
    checkout_approved_at: Optional[datetime.datetime] = None
    checkout_rejection_reason: Optional[str] = None
    checkout_photo: Optional[str] = None
    checkout_reason: Optional[str] = None
    checkout_reason_photo: Optional[str] = None
    total_hours: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)


class AttendanceOutcome(BaseModel):
    """Check-in / check-out result with the geofence verdict."""

    attendance: AttendanceRead
    distance: float
    max_distance: float
    needs_reason: bool


class ReasonAck(BaseModel):
    attendance_id: int
    type: Facet
    reason: str
    has_reason_photo: bool


class ResolutionRead(BaseModel):
    attendance_id: int
    type: Facet
    status: str
    approved_by: str
    approved_by_id: int
    approved_at: datetime.datetime
    rejection_reason: Optional[str] = None


class AttendancePage(BaseModel):
    items: List[AttendanceRead]
    total: int
    page: int
    limit: int
    total_pages: int
