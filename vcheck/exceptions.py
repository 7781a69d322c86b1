class VCheckError(Exception):
    """
    Base class for every business-rule failure raised by the services.

    ``kind`` is the machine-readable discriminator sent to clients and
    ``status_code`` the HTTP status the API layer maps it to.
    """

    status_code: int = 400
    kind: str = "VCheckError"
    default_message: str = "Request could not be processed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if "kind" not in cls.__dict__:
            cls.kind = cls.__name__


# --- Input validation (400) ---
class InputError(VCheckError):
    status_code = 400


class MissingReason(InputError):
    default_message = "Rejection reason is required when rejecting"


# --- Authorization (403) ---
class AuthorizationError(VCheckError):
    status_code = 403
    default_message = "You are not allowed to perform this action"


class AccountInactive(AuthorizationError):
    default_message = "Account is deactivated"


class NoOfficeAssigned(AuthorizationError):
    default_message = (
        "You have not been assigned to any office. Please contact your supervisor."
    )


class OfficeInactive(AuthorizationError):
    default_message = "Office is not active"


class NotAMember(AuthorizationError):
    default_message = "User is not a member of this office"


class Forbidden(AuthorizationError):
    pass


class WrongJurisdiction(AuthorizationError):
    default_message = "You can only manage attendance for your own office"


# --- Not found (404) ---
class NotFound(VCheckError):
    status_code = 404
    default_message = "Resource not found"


class OfficeNotFound(NotFound):
    default_message = "Office not found"


class UserNotFound(NotFound):
    default_message = "User not found"


# --- State conflicts (400 / 409) ---
class StateConflict(VCheckError):
    status_code = 400


class AlreadyCheckedInToday(StateConflict):
    default_message = "You have already checked in today. Only one check-in per day is allowed."


class NoCheckinFound(StateConflict):
    default_message = "No check-in record found for today. Please check in first."


class AlreadyCheckedOut(StateConflict):
    default_message = "You have already checked out today."


class AlreadyResolved(StateConflict):
    pass


class CheckoutNotSubmitted(StateConflict):
    default_message = "There is no check-out to resolve on this record yet"


class AlreadyMember(StateConflict):
    default_message = "User is already a member of this office"


class AlreadyExists(StateConflict):
    status_code = 409
    default_message = "A record with the same unique value already exists"
