"""Order domain exceptions."""

from ordertrack.services.exceptions import ConflictError, NotFoundError, ValidationError


class OrderNotFound(NotFoundError):
    """Order not found."""

    pass


class InvalidOrderLines(ValidationError):
    """Machine lines are empty, mint nothing, or carry a quantity out of range."""

    pass


class UnknownCountry(ValidationError):
    """Order references a country that does not exist."""

    pass


class UnknownMachine(ValidationError):
    """Order line references a machine that does not exist."""

    pass


class InvalidOrderUpdate(ValidationError):
    """Update names a field that cannot be changed."""

    pass


class SerialConflictError(ConflictError):
    """A minted serial or counter row collided with a concurrent order."""

    pass
