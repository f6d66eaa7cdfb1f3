"""Exception hierarchy for the ROI Brain pipeline.

Lower layers raise these; only the orchestrator turns them into a status code
and response body.
"""

from typing import Any

INTERNAL_ERROR_TYPE = "InternalError"
INTERNAL_ERROR_MESSAGE = "Unexpected error while generating report"


class ROIBrainError(Exception):
    """Base class for expected pipeline failures."""

    status_code: int = 500

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class InputValidationError(ROIBrainError):
    """Malformed request shape."""

    status_code = 400


class GenerationError(ROIBrainError):
    """The generative call failed or returned unusable output."""

    status_code = 500


class UpstreamModelError(GenerationError):
    """The outbound model call itself failed (network, API error, empty content)."""

    status_code = 500


class OutputParseError(GenerationError):
    """No JSON object could be recovered from the model text."""

    status_code = 400


class OutputValidationError(GenerationError):
    """The model output parsed but none of its parts passed validation."""

    status_code = 400


class CachedFailureError(GenerationError):
    """A recent failure for this cache key is still within its negative TTL."""

    def __init__(self, message: str, status_code: int = 500, details: Any = None):
        super().__init__(message, details)
        self.status_code = status_code


class RequestCancelled(ROIBrainError):
    """The caller aborted before a result was available."""

    status_code = 499
