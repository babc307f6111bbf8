"""Error kinds raised by the stores and mapped to HTTP responses in main.py."""


class ServiceError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(ServiceError):
    status_code = 400
    default_message = "Invalid input"


class InvalidReference(ServiceError):
    """A referenced id exists nowhere it is allowed to point to."""
    status_code = 400
    default_message = "Invalid reference"


class Forbidden(ServiceError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(ServiceError):
    status_code = 404
    default_message = "Not found"


class Conflict(ServiceError):
    status_code = 409
    default_message = "Conflict"


class InvalidState(ServiceError):
    status_code = 409
    default_message = "Invalid state"


class Internal(ServiceError):
    pass
