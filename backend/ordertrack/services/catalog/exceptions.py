"""Catalog domain exceptions."""

from ordertrack.services.exceptions import NotFoundError, ValidationError


class MachineNotFound(NotFoundError):
    """Machine not found."""

    pass


class PanelNotFound(NotFoundError):
    """Panel not found."""

    pass


class UnknownParentMachine(ValidationError):
    """Panel references a machine that does not exist."""

    pass


class DuplicateProductCode(ValidationError):
    """Product code already used by a machine or a panel."""

    pass


class CatalogItemInUse(ValidationError):
    """Machine or panel is still referenced by panels or serials."""

    pass
