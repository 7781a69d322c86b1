from .attendance import (
    ApprovalRequest,
    AttendanceOutcome,
    AttendancePage,
    AttendanceRead,
    CheckInRequest,
    CheckOutRequest,
    ReasonAck,
    ReasonRequest,
    ResolutionRead,
)
from .common import ApiResponse, Coordinate, ErrorResponse
from .office import MemberAdd, OfficeCreate, OfficeMembers, OfficeRead, OfficeUpdate, UserRead

__all__ = [
    "ApiResponse",
    "ErrorResponse",
    "Coordinate",
    "CheckInRequest",
    "CheckOutRequest",
    "ReasonRequest",
    "ApprovalRequest",
    "AttendanceRead",
    "AttendanceOutcome",
    "AttendancePage",
    "ReasonAck",
    "ResolutionRead",
    "OfficeCreate",
    "OfficeUpdate",
    "OfficeRead",
    "OfficeMembers",
    "MemberAdd",
    "UserRead",
]
