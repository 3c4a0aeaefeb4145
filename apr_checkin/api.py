"""HTTP client for the APR.IO wallet-collection API."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from apr_checkin import __version__
from apr_checkin.schema_utils import (
    CHECKIN_SCHEMA,
    LOGIN_SCHEMA,
    NONCE_SCHEMA,
    QUESTS_SCHEMA,
    WALLET_STATUS_SCHEMA,
    validate_schema,
)

USER_AGENT = f"AprCheckin/{__version__}"
REFERER = "https://of.apr.io/"
DEFAULT_TIMEOUT = 10

logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Raised when no session can be established with the API."""


def _build_retrying_session() -> requests.Session:
    retry = Retry(
        total=3,
        backoff_factor=0.5,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=("GET", "POST"),
    )
    adapter = HTTPAdapter(max_retries=retry)
    session = requests.Session()
    session.headers.update(
        {
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
            "Referer": REFERER,
        }
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def parse_timestamp_ms(value: Any) -> Optional[int]:
    """Return an epoch-millisecond int from a number or numeric string, else None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return None


class AprClient:
    """Thin wrapper over the API endpoints used by a check-in.

    The access token returned by ``login`` is kept on the session, so calls
    made after it are authenticated.
    """

    def __init__(
        self,
        base_url: str,
        timeout: int = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session if session is not None else _build_retrying_session()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        resp = self.session.request(method, self._url(path), timeout=self.timeout, **kwargs)
        logger.debug("%s %s -> %s %s", method, path, resp.status_code, resp.text[:300])
        resp.raise_for_status()
        return resp.json()

    def get_nonce(self, wallet_address: str) -> Dict[str, Any]:
        data = self._request("GET", f"/auth/nonce/{wallet_address}")
        validate_schema(data, NONCE_SCHEMA)
        return data

    def login(self, wallet_address: str, signature: str, message: str) -> Dict[str, Any]:
        """Exchange a signed sign-in message for an access token.

        Any transport, HTTP or schema failure is re-raised as AuthenticationError.
        """
        payload = {"walletAddress": wallet_address, "signature": signature, "message": message}
        try:
            data = self._request("POST", "/auth/login", json=payload)
            validate_schema(data, LOGIN_SCHEMA)
        except Exception as e:
            raise AuthenticationError(f"Login failed: {e}") from e
        self.session.headers["Authorization"] = f"Bearer {data['access_token']}"
        return data

    def get_wallet_status(self, wallet_address: str) -> Dict[str, Any]:
        data = self._request("GET", f"/wallets/{wallet_address}")
        validate_schema(data, WALLET_STATUS_SCHEMA)
        return data

    def check_in(self, wallet_address: str, transaction_hash: str, chain_id: int) -> Dict[str, Any]:
        payload = {
            "walletAddress": wallet_address,
            "transactionHash": transaction_hash,
            "chainId": chain_id,
        }
        data = self._request("POST", "/wallets/checkin", json=payload)
        validate_schema(data, CHECKIN_SCHEMA)
        return data

    def update_points(self) -> Dict[str, Any]:
        return self._request("POST", "/wallets/update-points", json={})

    def collect_wallet_data(self, wallet_address: str) -> Any:
        data = self._request("GET", f"/wallets/{wallet_address}/quests")
        validate_schema(data, QUESTS_SCHEMA)
        return data
