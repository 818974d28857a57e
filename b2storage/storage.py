"""Image storage backed by a B2 bucket.

Maps the ``(user, image_identifier)`` storage contract onto ``Client`` calls
and turns client errors into ``StorageError`` with an HTTP-like status code.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from requests.structures import CaseInsensitiveDict

from b2storage.client import Client
from b2storage.config import load_credentials
from b2storage.errors import B2Error, NotFoundError
from b2storage.models import Credentials

logger = logging.getLogger(__name__)

UPLOAD_TIMESTAMP_HEADER = "X-Bz-Upload-Timestamp"


class ImageStorage(ABC):
    """Contract a host application expects from an image storage backend."""

    @abstractmethod
    def store(self, user: str, image_identifier: str, image_data: bytes) -> bool:
        """Store an image.

        Raises:
            StorageError: If the image could not be stored
        """
        pass

    @abstractmethod
    def delete(self, user: str, image_identifier: str) -> bool:
        """Delete an image.

        Raises:
            StorageError: 404 if the image does not exist, 503 otherwise
        """
        pass

    @abstractmethod
    def get_image(self, user: str, image_identifier: str) -> bytes:
        """Fetch the raw image bytes.

        Raises:
            StorageError: 404 if the image does not exist, 503 otherwise
        """
        pass

    @abstractmethod
    def get_last_modified(self, user: str, image_identifier: str) -> datetime:
        """Return when the image was last modified, in UTC."""
        pass

    @abstractmethod
    def get_status(self) -> bool:
        """Return whether the backend is reachable."""
        pass

    @abstractmethod
    def image_exists(self, user: str, image_identifier: str) -> bool:
        pass


class B2Storage(ImageStorage):
    """ImageStorage implementation on top of the B2 API client."""

    def __init__(
        self,
        key_id: str,
        application_key: str,
        bucket_id: str,
        bucket_name: str,
        client: Client | None = None,
    ):
        """Initialize B2 storage.

        When no client is given one is created here, which authorizes the
        account and can raise a B2Error.

        Args:
            key_id: B2 application key ID
            application_key: B2 application key
            bucket_id: ID of the bucket to store images in
            bucket_name: Name of the same bucket
            client: Optional pre-configured client
        """
        self._credentials = Credentials(key_id, application_key, bucket_id, bucket_name)
        self._client = client or Client(credentials=self._credentials)

    @classmethod
    def from_env(cls, prefix: str = "B2_") -> B2Storage:
        creds = load_credentials(prefix=prefix)
        return cls(creds.key_id, creds.application_key, creds.bucket_id, creds.bucket_name)

    @staticmethod
    def image_path(user: str, image_identifier: str) -> str:
        return f"{user}/{image_identifier}"

    def store(self, user: str, image_identifier: str, image_data: bytes) -> bool:
        path = self.image_path(user, image_identifier)
        try:
            self._client.upload_file(path, image_data)
        except B2Error as e:
            raise StorageError("Unable to upload image to B2", 503) from e
        logger.info(f"Stored image: {path}")
        return True

    def delete(self, user: str, image_identifier: str) -> bool:
        path = self.image_path(user, image_identifier)
        try:
            self._client.delete_file(path)
        except NotFoundError as e:
            raise StorageError("File not found", 404) from e
        except B2Error as e:
            raise StorageError("Unable to delete image", 503) from e
        logger.info(f"Deleted image: {path}")
        return True

    def get_image(self, user: str, image_identifier: str) -> bytes:
        try:
            return self._client.get_file(self.image_path(user, image_identifier))
        except NotFoundError as e:
            raise StorageError("File not found", 404) from e
        except B2Error as e:
            raise StorageError("Unable to get image", 503) from e

    def get_last_modified(self, user: str, image_identifier: str) -> datetime:
        try:
            info = CaseInsensitiveDict(
                self._client.get_file_info(self.image_path(user, image_identifier))
            )
        except NotFoundError as e:
            raise StorageError("File not found", 404) from e
        except B2Error as e:
            raise StorageError("Unable to get image info", 503) from e

        try:
            millis = int(info[UPLOAD_TIMESTAMP_HEADER])
        except (KeyError, ValueError) as e:
            raise StorageError(f"Missing or invalid {UPLOAD_TIMESTAMP_HEADER} header", 503) from e
        return datetime.fromtimestamp(millis // 1000, tz=timezone.utc)

    def get_status(self) -> bool:
        return self._client.get_status()

    def image_exists(self, user: str, image_identifier: str) -> bool:
        try:
            return self._client.file_exists(self.image_path(user, image_identifier))
        except B2Error as e:
            raise StorageError("Unable to check if image exists", 503) from e


class StorageError(Exception):
    """Raised by ImageStorage implementations; carries an HTTP-like status code."""

    def __init__(self, message: str, status_code: int = 503):
        super().__init__(message)
        self.status_code = status_code
