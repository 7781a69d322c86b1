import enum


class UserRole(str, enum.Enum):
    OFFICER = "officer"
    SUPERVISOR = "supervisor"
    ADMIN = "admin"


class Validity(str, enum.Enum):
    """Geofence outcome, frozen at the moment of the event."""

    VALID = "Valid"
    INVALID = "Invalid"


class FacetStatus(str, enum.Enum):
    """Approval workflow state of one facet (check-in or check-out)."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Facet(str, enum.Enum):
    CHECKIN = "checkin"
    CHECKOUT = "checkout"


class Decision(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"

    @property
    def outcome(self) -> FacetStatus:
        if self is Decision.APPROVE:
            return FacetStatus.APPROVED
        return FacetStatus.REJECTED
