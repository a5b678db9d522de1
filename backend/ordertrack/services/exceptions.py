"""Base service exceptions.

These exceptions are raised by the service layer and should be caught
by the API layer and converted to appropriate HTTP responses.
"""


class ServiceError(Exception):
    """Base service exception."""

    pass


class NotFoundError(ServiceError):
    """Resource not found."""

    pass


class ValidationError(ServiceError):
    """Validation error. Raised before anything is persisted."""

    pass


class ConflictError(ServiceError):
    """A generated value collided with one written concurrently.

    The whole operation may be retried by the caller.
    """

    pass


class StorageError(ServiceError):
    """Underlying persistence failure unrelated to serial allocation."""

    pass


class AuthenticationError(ServiceError):
    """Credentials were rejected."""

    pass
