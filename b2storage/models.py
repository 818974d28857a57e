"""Typed views of the B2 API payloads.

Every model is decoded with ``from_json`` which checks that the required
fields are present, so a partial response fails loudly at the boundary
instead of leaking ``None`` into the client.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from b2storage.errors import ResponseFieldError, StorageApiDisabledError


def _require(payload: Any, *keys: str, what: str) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise ResponseFieldError(f"Expected a JSON object for {what}, got {type(payload).__name__}")
    missing = [k for k in keys if k not in payload or payload[k] is None]
    if missing:
        raise ResponseFieldError(f"{what} response is missing: {', '.join(missing)}")
    return payload


@dataclass(frozen=True)
class Credentials:
    """Account credentials and the bucket they operate on."""

    key_id: str
    application_key: str
    bucket_id: str
    bucket_name: str

    def __repr__(self) -> str:
        return (
            f"Credentials(key_id={self.key_id!r}, application_key='***', "
            f"bucket_id={self.bucket_id!r}, bucket_name={self.bucket_name!r})"
        )


@dataclass(frozen=True)
class AccountAuthorization:
    """Session obtained from ``b2_authorize_account``."""

    authorization_token: str = field(repr=False)
    api_url: str
    download_url: str

    @classmethod
    def from_json(cls, payload: Any) -> AccountAuthorization:
        data = _require(payload, what="b2_authorize_account")
        storage_api = (data.get("apiInfo") or {}).get("storageApi")
        if not storage_api:
            raise StorageApiDisabledError(
                "The B2 storage API is not enabled for the specified API key"
            )
        _require(data, "authorizationToken", what="b2_authorize_account")
        _require(storage_api, "apiUrl", "downloadUrl", what="b2_authorize_account storageApi")
        return cls(
            authorization_token=data["authorizationToken"],
            api_url=storage_api["apiUrl"].rstrip("/"),
            download_url=storage_api["downloadUrl"].rstrip("/"),
        )


@dataclass(frozen=True)
class UploadTicket:
    """Single-use upload URL and token from ``b2_get_upload_url``."""

    upload_url: str
    authorization_token: str = field(repr=False)

    @classmethod
    def from_json(cls, payload: Any) -> UploadTicket:
        data = _require(payload, "uploadUrl", "authorizationToken", what="b2_get_upload_url")
        return cls(upload_url=data["uploadUrl"], authorization_token=data["authorizationToken"])


@dataclass(frozen=True)
class FileVersion:
    file_id: str
    file_name: str

    @classmethod
    def from_json(cls, payload: Any) -> FileVersion:
        data = _require(payload, "fileId", "fileName", what="file version")
        return cls(file_id=data["fileId"], file_name=data["fileName"])


@dataclass(frozen=True)
class ListCursor:
    """Where a ``b2_list_file_versions`` call starts."""

    start_file_name: str | None = None
    start_file_id: str | None = None

    @property
    def at_end(self) -> bool:
        # A listing cannot be resumed without both halves of the pair.
        return self.start_file_name is None or self.start_file_id is None


@dataclass(frozen=True)
class FileVersionPage:
    files: list[FileVersion]
    next_cursor: ListCursor

    @classmethod
    def from_json(cls, payload: Any) -> FileVersionPage:
        data = _require(payload, "files", what="b2_list_file_versions")
        return cls(
            files=[FileVersion.from_json(item) for item in data["files"]],
            next_cursor=ListCursor(data.get("nextFileName"), data.get("nextFileId")),
        )

    @property
    def is_last(self) -> bool:
        return self.next_cursor.at_end
