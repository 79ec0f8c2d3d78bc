"""Error taxonomy for slop-meter and its user-facing categories."""

from typing import Optional


class SlopMeterError(Exception):
    """Base class for all slop-meter errors."""


class RateLimited(SlopMeterError):
    """The remote API refused the request because of rate limiting."""


class AuthRequiredOrNotFound(SlopMeterError):
    """The repository is private, missing, or needs a token."""


class RemoteApiError(SlopMeterError):
    """Any other non-2xx response."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class TransportError(SlopMeterError):
    """Network-level failure before a response was received."""


class SampledFileFetchError(SlopMeterError):
    """A single sampled file could not be fetched. Never fatal."""

    def __init__(self, path: str, message: str = ""):
        super().__init__(message or f"Failed to fetch {path}")
        self.path = path


class DeepPassFailure(SlopMeterError):
    """The expensive analysis pass failed; a degraded final is published instead."""


class AnalysisRequestError(SlopMeterError):
    """The request failed before a provisional result could be built.

    The message is always the categorized, user-facing string.
    """


def describe_error(error: BaseException) -> str:
    """Map an exception to a short categorized message for users."""
    if isinstance(error, AnalysisRequestError):
        return str(error)
    if isinstance(error, RateLimited):
        return "RATE_LIMIT: GitHub API rate limit reached. Add a token."
    if isinstance(error, AuthRequiredOrNotFound):
        return "AUTH_REQUIRED: Repository may be private or requires a token."
    if isinstance(error, RemoteApiError):
        return f"API_ERROR: {error}"
    return f"NETWORK_ERROR: {error}"
