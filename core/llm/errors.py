"""Typed failures of the completion backend."""
from typing import Optional


class CompletionError(Exception):
    """Base class for every completion failure. `str(err)` is user-facing."""

    default_message = "Failed to get response from the LLM backend."

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.code = code


class NotConfigured(CompletionError):
    default_message = "OpenAI API key is not configured."


class QuotaExceeded(CompletionError):
    default_message = "OpenAI API quota exceeded. Please check your OpenAI billing settings."


class InvalidCredentials(CompletionError):
    default_message = "Invalid OpenAI API key. Please check your configuration."


class RateLimited(CompletionError):
    default_message = "OpenAI API rate limit exceeded. Please try again later."


class BackendUnavailable(CompletionError):
    default_message = "OpenAI service is currently unavailable. Please try again later."


class UnknownBackendError(CompletionError):
    default_message = "OpenAI API error: Unknown error"


class MalformedBackendResponse(CompletionError):
    default_message = "Invalid response format from OpenAI."


# backend `error.code` -> failure class
ERROR_CODES = {
    "insufficient_quota": QuotaExceeded,
    "invalid_api_key": InvalidCredentials,
    "rate_limit_exceeded": RateLimited,
    "internal_error": BackendUnavailable,
    "service_unavailable": BackendUnavailable,
}


# codes sharing a failure class but with their own wording
ERROR_MESSAGES = {
    "internal_error": "OpenAI service is temporarily unavailable. Please try again in a few moments.",
}


def classify_backend_error(code: Optional[str], message: Optional[str] = None) -> CompletionError:
    """Map a backend error code to its typed failure."""
    error_cls = ERROR_CODES.get(code or "")
    if error_cls is not None:
        return error_cls(ERROR_MESSAGES.get(code), code=code)
    if message:
        return UnknownBackendError(f"OpenAI API error: {message}", code=code)
    return UnknownBackendError(code=code)
