"""Custom exception classes for the Volunteer Connect API."""

from typing import Optional

from fastapi import HTTPException, status


class VolunteerConnectError(Exception):
    """Base exception for Volunteer Connect.

    Every subclass carries the HTTP status the API layer answers with.
    """

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "An error occurred", status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(VolunteerConnectError):
    """Raised when input validation fails."""
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(VolunteerConnectError):
    """Raised when authentication fails."""
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(VolunteerConnectError):
    """Raised when user lacks permission."""
    status_code = status.HTTP_403_FORBIDDEN


class ResourceNotFoundError(VolunteerConnectError):
    """Raised when a requested resource is not found."""
    status_code = status.HTTP_404_NOT_FOUND


class ResourceConflictError(VolunteerConnectError):
    """Raised when a resource already exists."""
    status_code = status.HTTP_409_CONFLICT


class CapacityExceededError(VolunteerConnectError):
    """Raised when an activity has reached max_participants."""
    status_code = status.HTTP_400_BAD_REQUEST


class UpstreamServiceError(VolunteerConnectError):
    """Raised when the chat provider or another upstream call fails."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


# HTTP exception shortcuts
def unauthorized(detail: str = "Not authenticated") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )
