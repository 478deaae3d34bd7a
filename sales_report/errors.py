"""API error taxonomy.

Every rejection the API produces is rendered as

    {"error": {"code": "<STABLE_CODE>", "message": "...", "details": [...]}}

with `details` present only when there is something to list. The frontend
branches on `code`; `message` is for humans.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class ErrorCode:
    AUTH_INVALID_CREDENTIALS = "AUTH_INVALID_CREDENTIALS"
    AUTH_UNAUTHORIZED = "AUTH_UNAUTHORIZED"
    AUTH_FORBIDDEN = "AUTH_FORBIDDEN"
    REFRESH_TOKEN_MISSING = "REFRESH_TOKEN_MISSING"
    REFRESH_TOKEN_INVALID = "REFRESH_TOKEN_INVALID"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


_DEFAULT_MESSAGES = {
    ErrorCode.AUTH_INVALID_CREDENTIALS: "Email address or password is incorrect",
    ErrorCode.AUTH_UNAUTHORIZED: "Authentication required",
    ErrorCode.AUTH_FORBIDDEN: "Manager permission required",
    ErrorCode.REFRESH_TOKEN_MISSING: "Refresh token not found",
    ErrorCode.REFRESH_TOKEN_INVALID: "Refresh token is invalid",
    ErrorCode.USER_NOT_FOUND: "User not found",
    ErrorCode.VALIDATION_ERROR: "Invalid input",
    ErrorCode.INTERNAL_ERROR: "An internal server error occurred",
}


class ApiError(Exception):
    """An expected, client-visible failure with an HTTP status and stable code."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: Optional[str] = None,
        details: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        self.status_code = int(status_code)
        self.code = code
        self.message = message or _DEFAULT_MESSAGES.get(code, code)
        self.details = details
        super().__init__(f"{self.code}: {self.message}")

    def to_body(self) -> Dict[str, Any]:
        return error_body(self.code, self.message, self.details)


def error_body(code: str, message: Optional[str] = None, details: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    err: Dict[str, Any] = {"code": code, "message": message or _DEFAULT_MESSAGES.get(code, code)}
    if details:
        err["details"] = details
    return {"error": err}


def unauthorized(message: Optional[str] = None) -> ApiError:
    return ApiError(401, ErrorCode.AUTH_UNAUTHORIZED, message)


def forbidden(message: Optional[str] = None) -> ApiError:
    return ApiError(403, ErrorCode.AUTH_FORBIDDEN, message)
