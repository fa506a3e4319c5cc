"""Custom exception classes for the application.

Every exception carries the HTTP status and error code the request layer
answers with, so handlers registered in ``stacks.main`` stay generic.
"""

from typing import Optional


class StacksException(Exception):
    """Base exception for all Stacks errors."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str = "An unexpected error occurred", field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(self.message)


class ValidationError(StacksException):
    """Raised when a request is malformed or violates a business rule."""

    status_code = 422
    code = "validation_error"


class DisallowedFieldError(ValidationError):
    """Raised when an update names a field outside the resource's allow-list."""

    status_code = 400
    code = "disallowed_field"

    def __init__(self, field: str):
        super().__init__(f"Invalid {field} field in request body", field=field)


class MissingFilterError(ValidationError):
    """Raised when a deal listing is requested without any category."""

    status_code = 400
    code = "missing_filter"

    def __init__(self, field: str = "category"):
        super().__init__(f"At least one `{field}` must be specified", field=field)


class InvalidQueryError(ValidationError):
    """Raised when listing query parameters are unknown or incomplete."""

    status_code = 400
    code = "invalid_query"


class AuthenticationError(StacksException):
    """Raised on bad credentials or an invalid/expired token."""

    status_code = 401
    code = "authentication_failed"

    def __init__(self, message: str = "Incorrect email or password"):
        super().__init__(message)


class AuthorizationDenied(StacksException):
    """Raised when a mutation targets a resource the caller does not own.

    Missing and foreign resources produce the same denial.
    """

    status_code = 401
    code = "cannot_mutate"


class NotFoundError(StacksException):
    """Raised when a requested resource is not found."""

    status_code = 404
    code = "not_found"

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} with identifier '{identifier}' not found")


class StoreFailure(StacksException):
    """Raised when the backing store errors. The cause is logged, never returned."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
