"""Backblaze B2 storage for an image server.

This package provides:
- Account authorization against the B2 native API
- A client bound to one bucket: upload with retries, version-aware delete,
  bucket emptying, download, file info and a status probe
- An image storage adapter mapping ``user/image_identifier`` paths onto it
"""

from b2storage.client import Client
from b2storage.errors import (
    B2Error,
    InvalidResponseError,
    NotFoundError,
    ResponseFieldError,
    ServiceUnavailableError,
    StorageApiDisabledError,
)
from b2storage.models import Credentials
from b2storage.storage import B2Storage, ImageStorage, StorageError

__all__ = [
    "Client",
    "Credentials",
    "B2Storage",
    "ImageStorage",
    "StorageError",
    "B2Error",
    "NotFoundError",
    "ServiceUnavailableError",
    "InvalidResponseError",
    "ResponseFieldError",
    "StorageApiDisabledError",
]
