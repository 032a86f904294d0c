"""
Domain exceptions for CareConnect.

Services raise these instead of HTTP errors; the API layer converts them
to JSON responses with the matching status code (see ``careconnect.main``).

Usage:
    from careconnect.core.exceptions import NotFoundError

    if post is None:
        raise NotFoundError("Post not found")
"""

from typing import Any, Dict


class CareConnectError(Exception):
    """Base exception for all CareConnect errors"""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str = "Internal server error"):
        self.message = message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "code": self.code}


class ValidationError(CareConnectError):
    """Missing or malformed input"""

    status_code = 400
    code = "VALIDATION_ERROR"


class AuthenticationError(CareConnectError):
    """Caller is not authenticated"""

    status_code = 401
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ForbiddenError(CareConnectError):
    """Authenticated but not entitled to the resource"""

    status_code = 403
    code = "FORBIDDEN"

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class NotFoundError(CareConnectError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(CareConnectError):
    """Duplicate resource or invalid state transition"""

    status_code = 409
    code = "CONFLICT"
