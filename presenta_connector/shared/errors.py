"""
Error hierarchy for the Presenta connector.

Every error carries a stable machine-readable code, a human-readable
message and the HTTP status the API layer should answer with.
"""

from typing import Any


class PresentaError(Exception):
    """Base error for all connector failures."""

    code = "PRESENTA_ERROR"
    http_status = 500

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON error responses."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class InvalidPayloadFormatError(PresentaError):
    """Payload string is not valid JSON."""

    code = "INVALID_PAYLOAD_FORMAT"
    http_status = 400

    def __init__(self, reason: str):
        super().__init__(
            f"Payload is not valid JSON: {reason}",
            details={"reason": reason},
        )


class InvalidPayloadShapeError(PresentaError):
    """Parsed payload is not a JSON object."""

    code = "INVALID_PAYLOAD_SHAPE"
    http_status = 400

    def __init__(self, actual_type: str):
        super().__init__(
            f"Payload must be a JSON object, got {actual_type}",
            details={"actual_type": actual_type},
        )


class MissingCredentialError(PresentaError):
    """No usable bearer token was supplied."""

    code = "MISSING_CREDENTIAL"
    http_status = 401

    def __init__(self, message: str = "No Presenta API token found. Set PRESENTA_API_TOKEN or pass credentials explicitly."):
        super().__init__(message)


class UpstreamRequestFailedError(PresentaError):
    """The Presenta API answered with a non-2xx status or could not be reached."""

    code = "UPSTREAM_REQUEST_FAILED"
    http_status = 502

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
    ):
        details: dict[str, Any] = {}
        if status_code is not None:
            details["status_code"] = status_code
        if body:
            details["body"] = body
        super().__init__(message, details=details)
        self.status_code = status_code
        self.body = body
