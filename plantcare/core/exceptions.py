"""
Custom application exceptions.
"""

from typing import Optional

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    def __init__(self, detail: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR):
        super().__init__(status_code=status_code, detail=detail)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(detail=detail, status_code=status.HTTP_404_NOT_FOUND)


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, detail: str = "Bad request"):
        super().__init__(detail=detail, status_code=status.HTTP_400_BAD_REQUEST)


class ForbiddenException(AppException):
    """Forbidden exception."""

    def __init__(self, detail: str = "Forbidden"):
        super().__init__(detail=detail, status_code=status.HTTP_403_FORBIDDEN)


class ProviderError(Exception):
    """
    An external provider could not be reached or answered with an error.

    Raised by the HTTP helpers and always caught inside the service layer;
    callers of the public services only ever see an absent result.
    """

    def __init__(self, provider: str, detail: str, status_code: Optional[int] = None):
        super().__init__(f"{provider}: {detail}")
        self.provider = provider
        self.detail = detail
        self.status_code = status_code

    @property
    def is_throttled(self) -> bool:
        """429 or any 5xx: the provider should be backed off."""
        code = self.status_code or 0
        return code == 429 or code >= 500
