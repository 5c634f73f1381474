"""Custom application exceptions."""


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class UnauthorizedException(AppException):
    """Missing or invalid credential."""

    def __init__(self, message: str = "Unauthorized"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class ForbiddenException(AppException):
    """Valid credential, but wrong role or not the owner of the resource."""

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class ValidationException(AppException):
    """Malformed input: bad date/time, missing field, disallowed value."""

    def __init__(self, message: str = "Validation error"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class InvalidStatusException(ValidationException):
    """Requested status value or transition is not allowed."""

    def __init__(self, message: str = "Invalid status"):
        """Initialize with 400 status code."""
        super().__init__(message)


class SlotUnavailableException(AppException):
    """Requested time range overlaps an existing commitment."""

    def __init__(self, message: str = "Time slot not available"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class ConflictException(AppException):
    """Concurrent booking on the same doctor/date could not be serialized."""

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class DependencyFailureException(AppException):
    """Store or another collaborator is unreachable or failed."""

    def __init__(self, message: str = "Dependency failure"):
        """Initialize with 503 status code."""
        super().__init__(message, status_code=503)


class DependencyTimeoutException(AppException):
    """A call to an external collaborator exceeded its time budget."""

    def __init__(self, message: str = "Dependency timed out"):
        """Initialize with 504 status code."""
        super().__init__(message, status_code=504)
