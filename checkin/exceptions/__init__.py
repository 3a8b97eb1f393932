"""
Custom exceptions for the check-in backend.
These provide consistent error handling across the application.
"""


class CheckInException(Exception):
    """Base exception for all check-in backend exceptions."""

    status_code = 500

    @property
    def message(self) -> str:
        return self.args[0] if self.args else self.__class__.__name__


class StoreUnavailableException(CheckInException):
    """Raised when the record store cannot be reached."""

    status_code = 503


class StoreNotConfiguredException(StoreUnavailableException):
    """Raised when SUPABASE_URL or SUPABASE_KEY is missing."""

    pass


class ConfigurationException(CheckInException):
    """Raised when a configuration value cannot be used."""

    pass


class StoreQueryException(CheckInException):
    """Raised for any other record store failure."""

    status_code = 502


class UniqueViolation(StoreQueryException):
    """Raised when an insert or update hits a unique index."""

    status_code = 409


class ValidationException(CheckInException):
    """Raised for validation errors."""

    status_code = 400


class GuardianRequiredException(ValidationException):
    """Raised when a child has no active guardian to check in or out with."""

    pass


class DuplicateGuardianException(CheckInException):
    """Raised when an active guardian with the same name and phone already exists."""

    status_code = 409


class ConflictException(CheckInException):
    """Base exception for attendance conflicts."""

    status_code = 409


class AlreadyCheckedInException(ConflictException):
    """Raised when a child already has a record for the service date."""

    pass


class GuardianNotAuthorizedException(CheckInException):
    """Raised when a guardian is not actively linked to the child."""

    status_code = 403


class NotFoundException(CheckInException):
    """Raised when required data is not found."""

    status_code = 404


class NotAuthenticatedException(CheckInException):
    """Raised when there is no valid caller and the login flow must take over."""

    status_code = 401


class InvalidTransitionException(CheckInException):
    """Raised when a check-in session is asked to do something its state does not allow."""

    status_code = 409
