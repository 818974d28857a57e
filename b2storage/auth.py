from __future__ import annotations

import logging

import requests
from requests.auth import HTTPBasicAuth

from b2storage.errors import InvalidResponseError, ServiceUnavailableError
from b2storage.models import AccountAuthorization

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://api.backblazeb2.com/b2api/v3/b2_authorize_account"
API_PATH = "/b2api/v3"


def response_json(res: requests.Response):
    """Decode a JSON body, mapping parser failures to InvalidResponseError."""
    try:
        return res.json()
    except ValueError as e:
        raise InvalidResponseError(f"B2 API returned invalid JSON: {e}") from e


def authorize_account(
    key_id: str,
    application_key: str,
    session: requests.Session | None = None,
    timeout: float = 30.0,
    url: str = AUTHORIZE_URL,
) -> AccountAuthorization:
    """Exchange an application key for an account authorization.

    Calls ``b2_authorize_account`` once with HTTP Basic auth. There is no
    retry: any failure is fatal to the caller.

    Raises:
        ServiceUnavailableError: The call failed at the transport level.
        InvalidResponseError: The body is not valid JSON or lacks fields.
        StorageApiDisabledError: The key has no access to the storage API.
    """
    sess = session or requests.Session()
    try:
        res = sess.request(
            "GET", url, auth=HTTPBasicAuth(key_id, application_key), timeout=timeout
        )
        res.raise_for_status()
    except requests.RequestException as e:
        raise ServiceUnavailableError("Unable to authorize B2 account") from e

    authorization = AccountAuthorization.from_json(response_json(res))
    logger.info(f"Authorized B2 account for key {key_id} (api: {authorization.api_url})")
    return authorization


def build_auth_headers(authorization_token: str) -> dict[str, str]:
    # B2 takes the bare token, without a "Bearer" scheme.
    return {"Authorization": authorization_token}
