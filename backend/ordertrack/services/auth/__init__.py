"""Users and authentication."""

from ordertrack.services.auth.user_service import UserService

__all__ = ["UserService"]
