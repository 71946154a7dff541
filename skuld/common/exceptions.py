"""
Application error taxonomy.

Services raise these; the handlers installed in ``skuld.main`` render them
as ``{"detail": <message>, "code": <code>}`` with the matching status.
"""
from typing import Any, Optional

from fastapi import HTTPException, status


class AppError(HTTPException):
    """Base class for errors that carry a machine readable code"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, errors: Optional[Any] = None, headers: Optional[dict] = None):
        super().__init__(status_code=self.status_code, detail=message, headers=headers)
        self.message = message
        self.errors = errors

    def to_dict(self) -> dict:
        body = {"detail": self.message, "code": self.code}
        if self.errors is not None:
            body["errors"] = self.errors
        return body


class ValidationError(AppError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "VALIDATION_ERROR"


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found")


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class InternalError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INTERNAL_ERROR"

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)


class SequencingError(InternalError):
    """The atomic reference increment could not be performed"""

    code = "SEQUENCING_ERROR"

    def __init__(self, message: str = "numbering failed"):
        super().__init__(message)
