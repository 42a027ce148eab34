"""
Jokebox Backend — Custom Exception Hierarchy
==============================================

What:  Defines application-specific exceptions for different error scenarios.
Why:   Custom exceptions enable targeted error handling with appropriate HTTP
       status codes and user-friendly messages.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services and routes; caught by global handlers.

Exception Hierarchy:
    JokeboxError (base)
    ├── ValidationError      → 400 Bad Request (client can fix)
    ├── NotFoundError        → 404 Not Found
    ├── UnauthorizedError    → 401 Unauthorized
    ├── DatabaseError        → 500 Internal Server Error
    └── ChannelWriteError    → never leaves the broadcast registry
"""

from typing import Any, Dict, List, Optional


class JokeboxError(Exception):
    """
    Base exception for all Jokebox application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(JokeboxError):
    """
    Raised when client input fails validation.

    When:    Required joke fields missing or blank, malformed request body.
    HTTP:    400 Bad Request

    Example response:
        {
            "error": "validation_error",
            "message": "Missing required fields: setup, punchline",
            "details": {"missing_fields": ["setup", "punchline"]}
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        missing_fields: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if missing_fields:
            ctx["missing_fields"] = list(missing_fields)
        super().__init__(message=message, context=ctx)
        self.missing_fields = list(missing_fields or [])


class NotFoundError(JokeboxError):
    """
    Raised when a requested resource does not exist.

    When:    GET /jokes/{id} with an unknown id, or a random pick on an empty store.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"The requested {resource} was not found"
            if resource_id:
                message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class UnauthorizedError(JokeboxError):
    """
    Raised when the shared-secret header is missing or does not match.

    HTTP:    401 Unauthorized
    Raised before the store is touched, so a rejected request never writes.
    """

    def __init__(
        self,
        message: str = "Missing or invalid auth-key header",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(JokeboxError):
    """
    Raised when database operations fail unexpectedly.

    When:    Connection lost mid-query, constraint violation, deadlock, etc.
    HTTP:    500 Internal Server Error

    Security Note:
        The message returned to the client is always generic.
        Detailed error info is logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ChannelWriteError(JokeboxError):
    """
    Raised when a message cannot be delivered to a subscriber channel.

    Local to the broadcast registry: it is caught there and only causes the
    offending channel to be dropped. Publishers never see it.
    """

    def __init__(
        self,
        message: str = "Subscriber channel is not writable",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
