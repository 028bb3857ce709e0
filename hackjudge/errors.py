"""
hackjudge/errors.py
Centralized HTTP error handling for the judge queue API.

ERROR RESPONSE STRUCTURE:
{
    "success": false,
    "error": "ErrorType",
    "message": "Human-readable description",
    "code": "UNIQUE_ERROR_CODE",
    "details": {} (optional)
}

HTTP STATUS CODES:
- 400: Invalid input (bad score, bad round)
- 401: Judge identity missing
- 403: Not a judge / not an admin
- 404: Assignment does not exist
- 409: Duplicate assignment detected
- 423: Judging or round locked by the organizers
- 429: Rate limit exceeded
- 503: Queue busy, retry later
- 500: Internal only, never caused by user input
"""

import logging
from typing import Any, Dict, Optional

from fastapi import status
from fastapi.responses import JSONResponse

from hackjudge.services.queue_orchestrator import (
    AssignmentNotFoundError,
    DuplicateAssignmentError,
    QueueBusyError,
    QueueEngineError,
)

logger = logging.getLogger(__name__)


class ErrorCode:
    """Unique error codes for machine-readable error handling"""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_SCORE = "INVALID_SCORE"

    AUTH_REQUIRED = "AUTH_REQUIRED"
    FORBIDDEN = "FORBIDDEN"
    JUDGE_NOT_ELIGIBLE = "JUDGE_NOT_ELIGIBLE"

    NOT_FOUND = "NOT_FOUND"
    ASSIGNMENT_NOT_FOUND = "ASSIGNMENT_NOT_FOUND"

    DUPLICATE_ASSIGNMENT = "DUPLICATE_ASSIGNMENT"

    JUDGING_LOCKED = "JUDGING_LOCKED"
    ROUND_LOCKED = "ROUND_LOCKED"

    RATE_LIMITED = "RATE_LIMITED"

    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    ASSIGNMENT_FAILED = "ASSIGNMENT_FAILED"


class APIError(Exception):
    """Base API exception with consistent structure"""

    def __init__(
        self,
        status_code: int,
        error: str,
        message: str,
        code: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.status_code = status_code
        self.error = error
        self.message = message
        self.code = code
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "success": False,
            "error": self.error,
            "message": self.message,
            "code": self.code
        }
        if self.details:
            result["details"] = self.details
        return result

    def to_response(self) -> JSONResponse:
        """Convert to FastAPI JSONResponse"""
        return JSONResponse(status_code=self.status_code, content=self.to_dict())


class BadRequestError(APIError):
    """400 Bad Request - Invalid input"""
    def __init__(self, message: str, code: str = ErrorCode.INVALID_INPUT, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error="Bad Request",
            message=message,
            code=code,
            details=details
        )


class UnauthorizedError(APIError):
    """401 Unauthorized - Judge identity required"""
    def __init__(self, message: str = "Judge identity required", code: str = ErrorCode.AUTH_REQUIRED):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error="Unauthorized",
            message=message,
            code=code
        )


class ForbiddenError(APIError):
    """403 Forbidden - Access denied"""
    def __init__(self, message: str, code: str = ErrorCode.FORBIDDEN, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error="Forbidden",
            message=message,
            code=code,
            details=details
        )


class NotFoundError(APIError):
    """404 Not Found - Resource does not exist"""
    def __init__(self, message: str, code: str = ErrorCode.NOT_FOUND):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error="Not Found",
            message=message,
            code=code
        )


class ConflictError(APIError):
    """409 Conflict - Request contradicts recorded state"""
    def __init__(self, message: str, code: str = ErrorCode.DUPLICATE_ASSIGNMENT, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error="Conflict",
            message=message,
            code=code,
            details=details
        )


class LockedError(APIError):
    """423 Locked - Judging closed by the organizers"""
    def __init__(self, message: str, code: str = ErrorCode.JUDGING_LOCKED):
        super().__init__(
            status_code=status.HTTP_423_LOCKED,
            error="Locked",
            message=message,
            code=code
        )


class ServiceUnavailableError(APIError):
    """503 Service Unavailable - Temporary, safe to retry"""
    def __init__(self, message: str, code: str = ErrorCode.SERVICE_UNAVAILABLE, retry_after: int = 2):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error="Service Unavailable",
            message=message,
            code=code,
            details={"retry_after_seconds": retry_after}
        )


class InternalError(APIError):
    """500 Internal Server Error - Only for true internal failures"""
    def __init__(self, message: str = "An internal error occurred. Please try again later.", log_id: Optional[str] = None):
        details = {"log_id": log_id} if log_id else None
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error="Internal Error",
            message=message,
            code=ErrorCode.INTERNAL_ERROR,
            details=details
        )


def from_queue_error(error: QueueEngineError) -> APIError:
    """Map a queue engine exception to its HTTP error."""
    if isinstance(error, AssignmentNotFoundError):
        return NotFoundError(error.message, ErrorCode.ASSIGNMENT_NOT_FOUND)
    if isinstance(error, DuplicateAssignmentError):
        return ConflictError(error.message, ErrorCode.DUPLICATE_ASSIGNMENT)
    if isinstance(error, QueueBusyError):
        return ServiceUnavailableError(error.message)
    return BadRequestError(error.message, error.code)

