from __future__ import annotations

import hashlib
import logging
import time
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from b2storage.auth import API_PATH, authorize_account, build_auth_headers, response_json
from b2storage.config import load_credentials
from b2storage.errors import NotFoundError, ResponseFieldError, ServiceUnavailableError
from b2storage.models import Credentials, FileVersionPage, ListCursor, UploadTicket

logger = logging.getLogger(__name__)

UPLOAD_ATTEMPTS = 5


def _session_without_retries() -> requests.Session:
    # Transport-level retries stay off: only uploads are retried, by the client.
    sess = requests.Session()
    adapter = HTTPAdapter(max_retries=Retry(total=0, raise_on_status=False))
    sess.mount("http://", adapter)
    sess.mount("https://", adapter)
    return sess


def _is_not_found(error: requests.RequestException) -> bool:
    return error.response is not None and error.response.status_code == 404


@dataclass
class Client:
    """Client for the B2 native API, bound to a single bucket.

    Construction authorizes the account; a failure there raises and no
    client is returned. The session is never refreshed, so a new client
    has to be created once the authorization token expires.

    ``session`` is used for all API and download calls. ``auth_session``,
    when given, is used for the one authorization call instead.
    """

    credentials: Credentials
    session: requests.Session | None = None
    auth_session: requests.Session | None = None
    timeout: float = 30.0

    def __post_init__(self) -> None:
        owns_session = self.session is None
        if owns_session:
            self.session = _session_without_retries()
        try:
            self.authorization = authorize_account(
                self.credentials.key_id,
                self.credentials.application_key,
                session=self.auth_session or self.session,
                timeout=self.timeout,
            )
        except Exception:
            if owns_session:
                self.session.close()
            raise
        self.headers = build_auth_headers(self.authorization.authorization_token)

    @classmethod
    def from_env(cls, **kwargs: Any) -> Client:
        return cls(credentials=load_credentials(), **kwargs)

    @property
    def bucket_id(self) -> str:
        return self.credentials.bucket_id

    @property
    def bucket_name(self) -> str:
        return self.credentials.bucket_name

    def api_url(self, operation: str) -> str:
        return f"{self.authorization.api_url}{API_PATH}/{operation}"

    def file_url(self, file_name: str) -> str:
        # B2 expects names percent-encoded as UTF-8, with "/" left as is.
        path = quote(file_name, safe="/")
        return f"{self.authorization.download_url}/file/{self.bucket_name}/{path}"

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        headers = {**self.headers, **kwargs.pop("headers", {})}
        res = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        res.raise_for_status()
        return res

    # Upload

    def _get_upload_ticket(self) -> UploadTicket:
        res = self._request(
            "GET", self.api_url("b2_get_upload_url"), params={"bucketId": self.bucket_id}
        )
        return UploadTicket.from_json(response_json(res))

    def upload_file(self, file_name: str, data: bytes) -> bool:
        """Upload ``data`` as ``file_name``.

        Each attempt fetches a fresh upload ticket and posts the body to it.
        Up to ``UPLOAD_ATTEMPTS`` attempts are made back to back. When they
        are all used up, ServiceUnavailableError is raised with the last
        transport error as its cause, or with no cause if every attempt got
        an incomplete ticket.
        """
        last_error: requests.RequestException | None = None
        sha1 = hashlib.sha1(data).hexdigest()

        for attempt in range(1, UPLOAD_ATTEMPTS + 1):
            try:
                ticket = self._get_upload_ticket()
            except ResponseFieldError as e:
                logger.warning(f"Upload attempt {attempt}/{UPLOAD_ATTEMPTS} for {file_name}: {e}")
                continue
            except requests.RequestException as e:
                last_error = e
                logger.warning(
                    f"Upload attempt {attempt}/{UPLOAD_ATTEMPTS} for {file_name}: "
                    f"could not get upload URL: {e}"
                )
                continue

            try:
                self._request(
                    "POST",
                    ticket.upload_url,
                    headers={
                        "Authorization": ticket.authorization_token,
                        "Content-Type": "b2/x-auto",
                        "Content-Length": str(len(data)),
                        "X-Bz-Content-Sha1": sha1,
                        "X-Bz-File-Name": quote(file_name, safe="/"),
                        "X-Bz-Info-src_last_modified_millis": str(int(time.time() * 1000)),
                    },
                    data=data,
                )
            except requests.RequestException as e:
                last_error = e
                logger.warning(
                    f"Upload attempt {attempt}/{UPLOAD_ATTEMPTS} for {file_name} failed: {e}"
                )
                continue

            logger.info(f"Uploaded {file_name} ({len(data)} bytes, attempt {attempt})")
            return True

        raise ServiceUnavailableError("Unable to upload file") from last_error

    # Listing and deletion

    def _list_file_versions(self, cursor: ListCursor) -> FileVersionPage:
        params = {
            "bucketId": self.bucket_id,
            "startFileName": cursor.start_file_name,
            "startFileId": cursor.start_file_id,
        }
        try:
            res = self._request(
                "GET",
                self.api_url("b2_list_file_versions"),
                params={k: v for k, v in params.items() if v is not None},
            )
        except requests.RequestException as e:
            raise ServiceUnavailableError("Unable to list file versions") from e
        page = FileVersionPage.from_json(response_json(res))
        logger.debug(f"Listed {len(page.files)} file versions from {cursor}")
        return page

    def iter_file_versions(
        self, start_file_name: str | None = None, start_file_id: str | None = None
    ) -> Iterator[FileVersionPage]:
        """Yield pages of file versions until the listing is exhausted.

        Pages are fetched lazily, one request per page, so work done on a
        page happens before the next one is requested.
        """
        cursor = ListCursor(start_file_name, start_file_id)
        while True:
            page = self._list_file_versions(cursor)
            yield page
            if page.is_last:
                return
            cursor = page.next_cursor

    def _delete_file_version(self, file_id: str, file_name: str) -> None:
        try:
            self._request(
                "POST",
                self.api_url("b2_delete_file_version"),
                json={"fileId": file_id, "fileName": file_name},
            )
        except requests.RequestException as e:
            raise ServiceUnavailableError("Unable to delete file version") from e

    def delete_file(self, file_name: str) -> bool:
        """Delete every version of ``file_name``.

        Versions are collected first, then deleted one by one. A failed
        delete stops the operation and earlier deletions are not undone.
        """
        if not self.file_exists(file_name):
            raise NotFoundError("File does not exist")

        file_ids: list[str] = []
        for page in self.iter_file_versions(file_name):
            for version in page.files:
                if version.file_name != file_name:
                    break
                file_ids.append(version.file_id)
            if page.next_cursor.start_file_name != file_name:
                break

        for file_id in file_ids:
            self._delete_file_version(file_id, file_name)

        logger.info(f"Deleted {len(file_ids)} versions of {file_name}")
        return True

    def empty_bucket(self) -> bool:
        """Delete every file version in the bucket."""
        deleted = 0
        for page in self.iter_file_versions():
            for version in page.files:
                self._delete_file_version(version.file_id, version.file_name)
                deleted += 1

        logger.info(f"Emptied bucket {self.bucket_name} ({deleted} file versions deleted)")
        return True

    # Downloads and status

    def get_status(self) -> bool:
        try:
            self._request(
                "GET",
                self.api_url("b2_list_file_names"),
                params={"bucketId": self.bucket_id, "maxFileCount": 1},
            )
        except requests.RequestException as e:
            logger.warning(f"B2 status check failed: {e}")
            return False
        return True

    def file_exists(self, file_name: str) -> bool:
        try:
            self._request("HEAD", self.file_url(file_name))
        except requests.RequestException as e:
            if _is_not_found(e):
                return False
            raise ServiceUnavailableError("Unable to check if file exists") from e
        return True

    def get_file(self, file_name: str) -> bytes:
        try:
            res = self._request("GET", self.file_url(file_name))
        except requests.RequestException as e:
            if _is_not_found(e):
                raise NotFoundError("File does not exist") from e
            raise ServiceUnavailableError("Unable to get file") from e
        return res.content

    def get_file_info(self, file_name: str) -> dict[str, str]:
        """Return the response headers of a HEAD on the file."""
        try:
            res = self._request("HEAD", self.file_url(file_name))
        except requests.RequestException as e:
            if _is_not_found(e):
                raise NotFoundError("File does not exist") from e
            raise ServiceUnavailableError("Unable to get file info") from e
        return dict(res.headers.items())
