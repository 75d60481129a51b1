"""
Custom Exceptions for the Campus Portal Gateway
===============================================

Every failure that can reach a caller is one of these types. The handlers
registered in ``portal.main`` turn them into the JSON envelope:

    {"success": false, "error": "<title>", "message": "...", "code": "...", "details": {...}}

Usage:
    from portal.core.exceptions import NotFoundError, BadRequestError

    if not period.is_complete:
        raise BadRequestError("Missing academic period")

    try:
        await upstream.get_faculty(faculty_id)
    except NotFoundError:
        ...
"""

from typing import Optional, Any, Dict, List


GENERIC_ERROR_MESSAGE = "Something went wrong, please try again"


class PortalError(Exception):
    """Base exception for all gateway errors"""

    status_code: int = 500
    title: str = "Internal Server Error"

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    @property
    def public_message(self) -> str:
        """Message safe to show to the caller"""
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Caller Errors (4xx)
# ============================================

class BadRequestError(PortalError):
    """Caller supplied invalid or missing input"""

    status_code = 400
    title = "Bad Request"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="BAD_REQUEST", details=details)


class UnauthorizedError(PortalError):
    """No valid session"""

    status_code = 401
    title = "Unauthorized"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, code="UNAUTHORIZED")


class ForbiddenError(PortalError):
    """Session is valid but the role may not perform this action"""

    status_code = 403
    title = "Forbidden"

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, code="FORBIDDEN")


class NotFoundError(PortalError):
    """Referenced resource (faculty, class, student) does not exist"""

    status_code = 404
    title = "Not Found"

    def __init__(self, resource_kind: str, resource_id: Any):
        self.resource_kind = resource_kind
        self.resource_id = str(resource_id)
        super().__init__(
            f"{resource_kind.capitalize()} not found: {resource_id}",
            code=f"{resource_kind.upper()}_NOT_FOUND",
            details={"resource_kind": resource_kind, "resource_id": self.resource_id}
        )


class ValidationError(PortalError):
    """Upstream rejected a write because of field-level rules"""

    status_code = 422
    title = "Validation Error"

    def __init__(
        self,
        message: str = "The given data was invalid.",
        field_errors: Optional[Dict[str, List[str]]] = None
    ):
        self.field_errors = field_errors or {}
        super().__init__(message, code="VALIDATION_ERROR", details={"field_errors": self.field_errors})


# ============================================
# Upstream Errors
# ============================================

class UpstreamError(PortalError):
    """
    Any other non-2xx answer from the academic-records backend.

    4xx answers refuse the caller's own request, so their status and message
    are passed through. 5xx answers are reported as a generic 500.
    """

    title = "Upstream Error"

    def __init__(self, status: int, message: str, endpoint: Optional[str] = None):
        self.status = status
        self.endpoint = endpoint
        super().__init__(
            message,
            code="UPSTREAM_ERROR",
            details={"upstream_status": status}
        )

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status < 500

    @property
    def status_code(self) -> int:
        return self.status if self.is_client_error else 500

    @property
    def public_message(self) -> str:
        return self.message if self.is_client_error else GENERIC_ERROR_MESSAGE


class UpstreamUnavailableError(PortalError):
    """Network-level failure reaching the backend (refused, reset, timeout)"""

    status_code = 502
    title = "Bad Gateway"

    def __init__(self, message: str = "Academic records service is unavailable", endpoint: Optional[str] = None):
        self.endpoint = endpoint
        super().__init__(message, code="UPSTREAM_UNAVAILABLE")

    @property
    def public_message(self) -> str:
        return "Academic records service is unavailable, please try again"


class BatchWriteError(PortalError):
    """Some writes of a fan-out mutation failed"""

    def __init__(self, message: str, failed_ids: List[str], succeeded: int):
        super().__init__(
            message,
            code="BATCH_WRITE_FAILED",
            details={"failedEnrollmentIds": failed_ids, "succeeded": succeeded}
        )


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: PortalError) -> Dict[str, Any]:
    """Convert exception to the API error envelope"""
    body: Dict[str, Any] = {
        "success": False,
        "error": error.title,
        "message": error.public_message,
        "code": error.code,
    }
    if isinstance(error, ValidationError):
        body["validationErrors"] = error.field_errors
    elif error.details and not isinstance(error, (UpstreamError, UpstreamUnavailableError)):
        body["details"] = error.details
    return body
