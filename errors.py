"""
Typed errors for the country cache.

Every error that can reach a client carries a stable ``code`` so callers can
branch on the kind of failure instead of parsing the message.
"""
from typing import Optional


class CountryCacheError(Exception):
    """Base class for all country cache errors."""

    status_code = 500
    code = "internal_error"
    error = "Internal server error"

    def __init__(self, details: Optional[str] = None):
        super().__init__(details or self.error)
        self.details = details

    def to_payload(self) -> dict:
        payload = {"error": self.error, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class SourceUnavailableError(CountryCacheError):
    """An external provider failed, timed out or returned an unusable payload."""

    status_code = 503
    code = "source_unavailable"
    error = "External data source unavailable"


class CountryNotFoundError(CountryCacheError):
    status_code = 404
    code = "country_not_found"
    error = "Country not found"


class SummaryImageNotFoundError(CountryCacheError):
    status_code = 404
    code = "image_not_found"
    error = "Summary image not found"


class RefreshInProgressError(CountryCacheError):
    status_code = 409
    code = "refresh_in_progress"
    error = "A refresh is already in progress"


class RenderError(CountryCacheError):
    """Raised by the summary renderer; the orchestrator logs it and carries on."""

    code = "render_failure"
    error = "Summary image rendering failed"


class ValidationFailedError(CountryCacheError):
    status_code = 400
    code = "validation_error"
    error = "Validation failed"
