"""Error taxonomy for the B2 API client."""

from __future__ import annotations


class B2Error(Exception):
    """Base exception for B2 client errors."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(B2Error):
    """Raised when a file does not exist in the bucket."""

    status_code = 404


class ServiceUnavailableError(B2Error):
    """Raised on transport failures, bad responses and exhausted retries."""

    status_code = 503


class InvalidResponseError(ServiceUnavailableError):
    """Raised when the B2 API returns a body that is not valid JSON."""

    pass


class ResponseFieldError(InvalidResponseError):
    """Raised when a JSON response lacks a required field."""

    pass


class StorageApiDisabledError(ServiceUnavailableError):
    """Raised when the storage API is not enabled for the application key."""

    pass
