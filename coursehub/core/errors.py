"""
Typed errors raised by the services.

Routers never build error envelopes by hand: the exception handlers in
``coursehub.main`` call ``to_response()`` on whatever reaches them.
"""

from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse


class CourseHubError(Exception):
    """Base error with an HTTP status and a stable error label"""

    status_code = 500
    error = "Internal Error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_response(self) -> JSONResponse:
        content = {
            "success": False,
            "error": self.error,
            "message": self.message,
        }
        if self.details:
            content["details"] = self.details
        return JSONResponse(status_code=self.status_code, content=content)


class NotFoundError(CourseHubError):
    """An id or natural key has no document anywhere we know to look"""

    status_code = 404
    error = "Not Found"


class ConflictError(CourseHubError):
    """Duplicate natural key (email, course name, module id) or enrollment"""

    status_code = 409
    error = "Conflict"


class ValidationError(CourseHubError):
    status_code = 400
    error = "Validation Failed"


class StoreUnavailableError(CourseHubError):
    """The document store failed for a reason other than a missing document.

    Never retried here; retry policy belongs to the store client."""

    status_code = 503
    error = "Store Unavailable"
