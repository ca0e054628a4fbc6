"""
Centralized exception hierarchy for Arrival Console.

Every failure a page can hit (bad input, a closed checklist gate, a backend
that is down or answers with something unexpected) is one of these. Pages
catch ``ArrivalError`` at the action boundary and show ``str(exc)`` in the
error banner.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

logger = logging.getLogger(__name__)


# =============================================================================
# Base Exception
# =============================================================================


class ArrivalError(RuntimeError):
    """
    Base exception for all Arrival Console errors.

    Attributes:
        message: Human-readable error message.
        detail: Additional error details (optional).
        error_code: Machine-readable error code.
        request_id: Unique identifier for correlation (optional).
    """

    def __init__(
        self,
        message: str,
        *,
        detail: str | None = None,
        error_code: str | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail
        self.error_code = error_code or f"arrival_{self.__class__.__name__.lower()}"
        self.request_id = request_id or str(uuid.uuid4())

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response format."""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.detail:
            result["detail"] = self.detail
        if self.request_id:
            result["request_id"] = self.request_id
        return result

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message

    def log(self, level: int = logging.ERROR) -> None:
        """Log the exception with structured data."""
        logger.log(
            level,
            self.message,
            extra={
                "error_code": self.error_code,
                "detail": self.detail,
                "request_id": self.request_id,
                "exception_type": self.__class__.__name__,
            },
        )


# =============================================================================
# Input Validation Errors
# =============================================================================


class ValidationError(ArrivalError):
    """
    Raised when client-side validation fails. No request is sent.

    HTTP Status: 400 Bad Request
    """

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        detail: str | None = None,
        request_id: str | None = None,
    ) -> None:
        self.field = field
        super().__init__(
            message,
            detail=detail,
            error_code="validation_error",
            request_id=request_id,
        )


class MissingRequiredFieldError(ValidationError):
    """Raised when a required form field is blank."""

    def __init__(
        self,
        field_name: str,
        *,
        label: str | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(
            message=f"{label or field_name.replace('_', ' ').capitalize()} is required",
            field=field_name,
            request_id=request_id,
        )


class ChecklistGateError(ValidationError):
    """Raised when a checklist item cannot be completed in its current state."""

    def __init__(
        self,
        checklist_step_id: str,
        *,
        reason: str,
        request_id: str | None = None,
    ) -> None:
        super().__init__(
            message=reason,
            field="checklist_step_id",
            request_id=request_id,
        )
        self.checklist_step_id = checklist_step_id


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(ArrivalError):
    """
    Raised when configuration is missing or invalid.

    HTTP Status: 500 Internal Server Error
    """

    def __init__(
        self,
        message: str,
        *,
        setting_name: str | None = None,
        request_id: str | None = None,
    ) -> None:
        self.setting_name = setting_name
        super().__init__(
            message,
            detail=f"set {setting_name}" if setting_name else None,
            error_code="configuration_error",
            request_id=request_id,
        )


# =============================================================================
# Backend Errors
# =============================================================================


class BackendError(ArrivalError):
    """
    Base class for failures talking to the backend.

    HTTP Status: 502 Bad Gateway
    """

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        detail: str | None = None,
        error_code: str = "backend_error",
        request_id: str | None = None,
    ) -> None:
        self.path = path
        super().__init__(
            message,
            detail=detail,
            error_code=error_code,
            request_id=request_id,
        )


class BackendConnectionError(BackendError):
    """Raised when the request never got an HTTP response."""

    def __init__(
        self,
        action: str,
        *,
        path: str | None = None,
        reason: str | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(
            f"{action} failed: could not reach the backend",
            path=path,
            detail=reason,
            error_code="backend_unreachable",
            request_id=request_id,
        )
        self.action = action


class BackendHTTPError(BackendError):
    """
    Raised for a non-2xx response.

    ``str(exc)`` is the backend's ``detail`` when it sent one, otherwise
    ``"<action> failed (<status>)"``.
    """

    def __init__(
        self,
        action: str,
        status_code: int,
        *,
        path: str | None = None,
        backend_detail: str | None = None,
        request_id: str | None = None,
    ) -> None:
        self.action = action
        self.status_code = status_code
        self.backend_detail = backend_detail
        super().__init__(
            backend_detail or f"{action} failed ({status_code})",
            path=path,
            error_code="backend_http_error",
            request_id=request_id,
        )


class UnexpectedContentTypeError(BackendError):
    """Raised when the backend answers with something other than JSON."""

    def __init__(
        self,
        resource: str,
        *,
        content_type: str | None = None,
        path: str | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(
            f"Backend did not return JSON for {resource}",
            path=path,
            detail=f"content-type {content_type!r}" if content_type else None,
            error_code="backend_not_json",
            request_id=request_id,
        )
        self.resource = resource
        self.content_type = content_type


class UnexpectedShapeError(BackendError):
    """Raised when a JSON body is neither a list nor the expected envelope."""

    def __init__(
        self,
        resource: str,
        *,
        path: str | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(
            f"Unexpected {resource} response shape",
            path=path,
            error_code="backend_unexpected_shape",
            request_id=request_id,
        )
        self.resource = resource


# =============================================================================
# Utility Functions
# =============================================================================


def exception_to_http_status(exc: ArrivalError) -> int:
    """
    Map exception type to HTTP status code.

    Args:
        exc: The exception to map.

    Returns:
        Appropriate HTTP status code.
    """
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, BackendError):
        return 502
    return 500
