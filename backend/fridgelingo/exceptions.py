"""
FridgeLingo Backend — Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for the acquisition pipeline and API.
How:   Each exception carries a user-facing message and an optional context
       dict. Global handlers in main.py map them to HTTP responses.
Who:   Raised by services; caught either by the pipeline itself (upstream
       failures it can degrade around) or by the global handlers.

Exception Hierarchy:
    FridgeLingoError (base)
    ├── ValidationError          → 400 Bad Request (empty/unreadable image)
    ├── NotFoundError            → 404 Not Found (unknown word, tiny catalog)
    ├── FileStorageError         → 500 Internal Server Error
    ├── LLMServiceError          → 503 Service Unavailable
    │   └── CircuitBreakerOpenError → 503 (circuit open)
    ├── MalformedResponseError   → never surfaced; repaired or absorbed
    └── DatabaseError            → 500 Internal Server Error

Propagation policy:
    LabelResolver and ContentEnricher absorb LLMServiceError and
    MalformedResponseError and degrade the result. Only a failing label
    detector lets LLMServiceError reach the client.
"""

from typing import Any, Dict, Optional


class FridgeLingoError(Exception):
    """
    Base exception for all FridgeLingo application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned for 5xx errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(FridgeLingoError):
    """
    Raised when client input fails validation.

    When:    Empty upload, unsupported extension, size exceeded, content that
             is not a PNG/JPEG image.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(FridgeLingoError):
    """
    Raised when a requested resource does not exist.

    When:    Review/quiz for an unknown word id, or a quiz requested while the
             catalog holds too few other words to build distractors.
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


class FileStorageError(FridgeLingoError):
    """
    Raised when the image could not be written to or read from storage.

    HTTP:    500 Internal Server Error (file system paths are never returned)
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class LLMServiceError(FridgeLingoError):
    """
    Raised when a Gemini call fails (network error, timeout, API error).

    Who handles it:
        - LabelResolver: falls back to the denylist scan
        - ContentEnricher: leaves the concept without a translation
        - AcquisitionService: lets it through when the *detector* fails
    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        message: str = "AI service is temporarily unavailable",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class CircuitBreakerOpenError(LLMServiceError):
    """
    Raised when the circuit breaker is OPEN and Gemini calls are rejected.

    A subclass of LLMServiceError so every component that degrades around
    an unavailable provider also degrades around an open circuit.
    HTTP:    503 Service Unavailable with Retry-After
    """

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"AI service is temporarily unavailable due to repeated failures. "
            f"It will be retried in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, retry_after=recovery_time, context=ctx)
        self.recovery_time = recovery_time


class MalformedResponseError(FridgeLingoError):
    """
    Raised when Gemini answered but the body is not the expected JSON shape.

    Never reaches the client: the resolver falls back, the enricher returns
    no result.
    """

    def __init__(
        self,
        message: str = "AI service returned an unreadable response",
        raw_text: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if raw_text is not None:
            # Truncated; full responses can be long
            ctx["raw_preview"] = raw_text[:200]
        super().__init__(message=message, context=ctx)


class DatabaseError(FridgeLingoError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error. Details stay in the server log.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
