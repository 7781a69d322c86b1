from .attendance import Attendance
from .base import Base
from .enums import Decision, Facet, FacetStatus, UserRole, Validity
from .office import Office, OfficeMember
from .user import User

# for wildcard imports
__all__ = [
    "Base",
    "Attendance",
    "Office",
    "OfficeMember",
    "User",
    "UserRole",
    "Validity",
    "FacetStatus",
    "Facet",
    "Decision",
]
