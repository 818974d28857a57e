from __future__ import annotations

import json
from unittest.mock import Mock

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from b2storage.client import Client
from b2storage.models import Credentials

API_URL = "https://api001.backblazeb2.test"
DOWNLOAD_URL = "https://f001.backblazeb2.test"
AUTH_TOKEN = "account_token"


def build_response(
    status_code: int = 200,
    json_body=None,
    content: bytes = b"",
    headers: dict[str, str] | None = None,
    url: str = "https://example.test",
) -> requests.Response:
    """Build a real requests.Response so raise_for_status() and json() behave."""
    res = requests.Response()
    res.status_code = status_code
    res._content = json.dumps(json_body).encode() if json_body is not None else content
    res.headers = CaseInsensitiveDict(headers or {})
    res.url = url
    res.encoding = "utf-8"
    return res


@pytest.fixture
def make_response():
    return build_response


@pytest.fixture
def credentials():
    return Credentials(
        key_id="keyId",
        application_key="applicationKey",
        bucket_id="bucketId",
        bucket_name="bucketName",
    )


@pytest.fixture
def auth_payload():
    """Successful b2_authorize_account body, trailing slashes included."""
    return {
        "accountId": "account",
        "authorizationToken": AUTH_TOKEN,
        "apiInfo": {
            "storageApi": {
                "apiUrl": API_URL + "/",
                "downloadUrl": DOWNLOAD_URL + "/",
                "bucketId": None,
            }
        },
    }


@pytest.fixture
def auth_session(auth_payload):
    sess = Mock(spec=requests.Session)
    sess.request.return_value = build_response(json_body=auth_payload)
    return sess


@pytest.fixture
def http():
    """Session used by the client for everything after authorization."""
    return Mock(spec=requests.Session)


@pytest.fixture
def client(credentials, auth_session, http):
    return Client(credentials=credentials, session=http, auth_session=auth_session)
