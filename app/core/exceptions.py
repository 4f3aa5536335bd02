"""
Domain error taxonomy.

Every error is an HTTPException so services can keep the
``except HTTPException: raise`` / ``except Exception`` split and routes need
no translation layer. ``main.py`` renders them as ``{"error": detail}``.
"""

from typing import Optional
from fastapi import HTTPException, status


class HaloError(HTTPException):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Something went wrong."

    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=type(self).status_code, detail=detail or self.default_detail)


class Unauthorized(HaloError):
    """No principal could be resolved for the request."""
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Unauthorized"


class Forbidden(HaloError):
    """Principal resolved but lacks membership or authorship."""
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Forbidden"


class InvalidArgument(HaloError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request."


class NotFound(HaloError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."


class Unavailable(HaloError):
    """The datastore failed for reasons outside the caller's control. Never retried here."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Service unavailable."
