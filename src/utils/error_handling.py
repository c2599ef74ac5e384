"""Custom exceptions and helpers for consistent error responses."""

from typing import Any, Dict

from models.response import ApiResponse


class AppError(Exception):
    """Base class for application errors."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(AppError):
    """Raised when a requested customer is missing."""

    def __init__(self, message: str = "Customer not found"):
        super().__init__(message, status_code=404)


class ValidationError(AppError):
    """Raised when input validation fails."""

    def __init__(self, message: str = "Invalid input"):
        super().__init__(message, status_code=400)


class DeliveryError(AppError):
    """Provider or network failure while sending a nudge.

    Recorded as a failed log entry by the nudge service; never surfaced to
    API callers as a failed request.
    """

    def __init__(self, message: str = "Delivery failed"):
        super().__init__(message, status_code=502)


class UnexpectedError(AppError):
    """Store or sink unavailable, or any other unplanned failure."""

    def __init__(self, message: str = "Unexpected error"):
        super().__init__(message, status_code=500)


def _http_response(status: int, body: str) -> Dict[str, Any]:
    """Format a JSON API Gateway HTTP API response."""
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": body,
    }


def success_response(data: Any, status: int = 200) -> Dict[str, Any]:
    """Wrap ``data`` (models included) in the ``{success, data}`` envelope."""
    envelope = ApiResponse(success=True, data=data)
    return _http_response(status, envelope.model_dump_json(by_alias=True, exclude={"error"}))


def error_response(status: int, message: str) -> Dict[str, Any]:
    envelope = ApiResponse(success=False, error=message)
    return _http_response(status, envelope.model_dump_json(exclude={"data"}))


def to_response(error: AppError) -> Dict[str, Any]:
    """Convert an AppError into a Lambda proxy integration response."""
    return error_response(error.status_code, str(error))
