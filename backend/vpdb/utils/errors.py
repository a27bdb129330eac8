"""API error types.

Every client-facing failure is an :class:`ApiError`, a ``HTTPException`` that
additionally knows whether it should be logged and what to show the client.
The exception handlers in ``vpdb.main`` turn them into the response envelope:

    {"error": "<message>"}                               most errors
    {"errors": [{"path": .., "message": .., "value": ..}]}  validation errors
"""
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status


class ApiError(HTTPException):
    """An error that is converted into an ``{"error": ...}`` response.

    ``detail`` is the full message and is what gets logged. ``display``, if
    set, replaces it in the response body so internals don't leak.
    """

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "Internal server error.",
        display: Optional[str] = None,
        log: bool = False,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.display = display
        self.log = log

    @property
    def message(self) -> str:
        return self.display or self.detail


class ApiValidationError(ApiError):
    """Field-level validation failure, rendered as ``{"errors": [...]}``."""

    def __init__(self, errors: List[Dict[str, Any]], detail: str = "Validation failed."):
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)
        self.errors = errors


def field_error(path: str, message: str, value: Any = None) -> Dict[str, Any]:
    return {"path": path, "message": message, "value": value}
