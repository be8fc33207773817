"""Application errors and the uniform error envelope.

Every error returned to a client has the shape:

    {"error": {"message": "...", "code": "..."}}
"""

import json


class AppError(Exception):
    """Base error carrying an error code and the HTTP status to surface."""

    def __init__(self, message: str, code: str, status_code: int, details: object = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details


class ValidationError(AppError):
    def __init__(self, message: str, details: object = None) -> None:
        super().__init__(message, "VALIDATION_ERROR", 400, details)


class ConfigurationError(AppError):
    def __init__(self, message: str) -> None:
        super().__init__(message, "CONFIGURATION_ERROR", 500)


class ExternalServiceError(AppError):
    """An upstream (target site or LLM provider) failed or returned nothing usable."""

    def __init__(self, service: str, message: str, details: object = None, code: str = "EXTERNAL_SERVICE_ERROR") -> None:
        super().__init__(message, code, 502, details)
        self.service = service


class FetchError(ExternalServiceError):
    """The target URL answered with a non-success HTTP status."""

    def __init__(self, url: str, status: int, reason: str = "") -> None:
        message = f"Failed to fetch URL: {status} {reason}".strip()
        super().__init__("target site", message, details={"url": url, "status": status}, code="FETCH_ERROR")
        self.status = status


class AIResponseParseError(AppError):
    def __init__(self, details: object = None) -> None:
        super().__init__(
            "Failed to parse AI response. The AI may have returned invalid JSON.",
            "PARSE_ERROR",
            500,
            details,
        )


class GenerationError(AppError):
    def __init__(self) -> None:
        super().__init__("Failed to generate metadata. Please try again.", "GENERATION_ERROR", 500)


def error_body(message: str, code: str) -> dict:
    return {"error": {"message": message, "code": code}}


def to_error_response(exc: BaseException) -> tuple[dict, int]:
    """Map any exception to (envelope, http_status)."""
    if isinstance(exc, AppError):
        return error_body(exc.message, exc.code), exc.status_code

    if isinstance(exc, json.JSONDecodeError):
        return error_body("Invalid JSON in request or response", "PARSE_ERROR"), 400

    return error_body("An unexpected error occurred", "INTERNAL_ERROR"), 500
