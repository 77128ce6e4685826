"""
RiskVanguard - Custom exceptions for error handling.
"""

from typing import Any, Optional


class RiskVanguardError(Exception):
    """Base exception for all RiskVanguard errors."""

    code = "riskvanguard_error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Optional[dict[str, Any]] = None,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response
        if code is not None:
            self.code = code


class ValidationError(RiskVanguardError):
    """Raised when a document input or record fails validation."""

    code = "validation_error"

    def __init__(self, message: str, errors: Optional[list[Any]] = None, **kwargs: Any) -> None:
        kwargs.setdefault("status_code", 422)
        super().__init__(message, **kwargs)
        self.errors = errors or []


class NotFoundError(RiskVanguardError):
    """Raised when a vertical, agent or record cannot be found."""

    code = "not_found"

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("status_code", 404)
        super().__init__(message, **kwargs)


class ProcessingError(RiskVanguardError):
    """Raised when a pipeline stage fails unexpectedly."""

    code = "processing_error"

    def __init__(self, message: str, cause: Optional[BaseException] = None, **kwargs: Any) -> None:
        kwargs.setdefault("status_code", 500)
        super().__init__(message, **kwargs)
        self.cause = cause
