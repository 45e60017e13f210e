"""Application error types.

`ApiError` is raised by request handlers for ordinary HTTP failures.
`AIError` and its subclasses are raised by the AI assist core and carry a
stable error code the client can branch on; the HTTP status for each is
decided by the exception handlers in `app.main`.
"""

from typing import Optional

from fastapi import HTTPException


class ApiError(HTTPException):
    """HTTPException carrying a machine-readable error code."""

    def __init__(self, status_code: int, message: str, code: str):
        super().__init__(status_code=status_code, detail=message)
        self.code = code


# ─── AI assist ───────────────────────────────────────────────────────────────

class AIError(Exception):
    """Base class for AI assist failures."""

    code = "AI_ERROR"
    default_message = "AI service error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ConfigurationError(AIError):
    """The completion API credential is not configured."""

    code = "CONFIG_ERROR"
    default_message = "OpenAI API key not configured"


class UserNotFound(AIError):
    """The requesting user has no quota record."""

    code = "USER_NOT_FOUND"
    default_message = "User not found"


class QuotaExceeded(AIError):
    """The user has used up their AI token allowance."""

    code = "AI_LIMIT_EXCEEDED"
    default_message = "AI token limit exceeded. Please upgrade your plan."


class RateLimited(AIError):
    """The upstream completion API is rate limiting us."""

    code = "RATE_LIMIT_EXCEEDED"
    default_message = "OpenAI rate limit exceeded. Please try again later."


class IncompleteResponse(AIError):
    """The upstream call succeeded but omitted token usage."""

    code = "AI_INCOMPLETE_RESPONSE"
    default_message = "Failed to get token usage from OpenAI"


class UpstreamError(AIError):
    """Any other upstream failure, including timeouts."""

    code = "AI_ERROR"

    def __init__(self, message: Optional[str] = None):
        super().__init__(f"AI service error: {message}" if message else None)
