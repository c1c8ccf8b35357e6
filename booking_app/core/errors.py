"""Error taxonomy shared by the services, the REST layer and the remote client."""


class BookingAppError(Exception):
    """Base class; ``status_code`` is the HTTP status the API answers with."""

    status_code = 500

    def __init__(self, message: str = "Unexpected error"):
        super().__init__(message)
        self.message = message


class NotFoundError(BookingAppError):
    status_code = 404


class ValidationError(BookingAppError):
    status_code = 400


class InvalidTransitionError(ValidationError):
    pass


class DuplicateAccountError(ValidationError):
    pass


class UnauthorizedError(BookingAppError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ForbiddenError(BookingAppError):
    status_code = 403

    def __init__(self, message: str = "Forbidden - Admin only"):
        super().__init__(message)


class RecordStoreError(BookingAppError):
    status_code = 500


class VerificationDecodeError(BookingAppError):
    status_code = 404

    def __init__(self, message: str = "Booking not found"):
        super().__init__(message)


class ConnectivityError(BookingAppError):
    status_code = 503

    def __init__(
        self,
        message: str = "Cannot connect to server. Please log in with a local account to keep working offline.",
    ):
        super().__init__(message)
