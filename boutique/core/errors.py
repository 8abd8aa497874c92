"""Domain error taxonomy.

Services raise these instead of HTTP exceptions; ``boutique.main`` renders
them as ``{"error": message}`` with the status each class carries.
"""

from fastapi import status


class BoutiqueError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(BoutiqueError):
    status_code = status.HTTP_400_BAD_REQUEST


class UserError(ValidationError):
    """Non-fatal rejection of a cart action (out of stock, limit reached)."""


class AuthenticationError(BoutiqueError):
    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionDenied(BoutiqueError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(BoutiqueError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(BoutiqueError):
    """Unique-constraint or state conflict; the caller should reload."""

    status_code = status.HTTP_409_CONFLICT


class TransientError(BoutiqueError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
