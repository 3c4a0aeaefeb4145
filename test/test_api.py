import jsonschema
import pytest
import requests

from apr_checkin import api
from apr_checkin.api import AprClient, AuthenticationError, parse_timestamp_ms

BASE = "https://api.example.test"
ADDRESS = "0x" + "ab" * 20


class FakeResponse:
    def __init__(self, status_code=200, data=None):
        self.status_code = status_code
        self._data = data if data is not None else {}
        self.text = str(self._data)

    def json(self):
        return self._data

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []
        self.headers = {}

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        return self.responses.pop(0)


def client_with(*responses):
    session = FakeSession(*responses)
    return AprClient(BASE + "/", timeout=7, session=session), session


def test_get_nonce_hits_address_endpoint():
    client, session = client_with(FakeResponse(data={"nonce": "n-1", "message": "hello"}))

    assert client.get_nonce(ADDRESS) == {"nonce": "n-1", "message": "hello"}
    method, url, kwargs = session.requests[0]
    assert (method, url) == ("GET", f"{BASE}/auth/nonce/{ADDRESS}")
    assert kwargs["timeout"] == 7


def test_get_nonce_rejects_malformed_response():
    client, _ = client_with(FakeResponse(data={"unexpected": True}))
    with pytest.raises(jsonschema.ValidationError):
        client.get_nonce(ADDRESS)


def test_login_stores_bearer_token():
    client, session = client_with(FakeResponse(data={"access_token": "tok", "user": {"id": 42}}))

    data = client.login(ADDRESS, "0xsig", "msg")

    assert data["user"]["id"] == 42
    assert session.headers["Authorization"] == "Bearer tok"
    method, url, kwargs = session.requests[0]
    assert (method, url) == ("POST", f"{BASE}/auth/login")
    assert kwargs["json"] == {"walletAddress": ADDRESS, "signature": "0xsig", "message": "msg"}


@pytest.mark.parametrize(
    "response",
    [
        FakeResponse(status_code=401, data={"message": "bad signature"}),
        FakeResponse(data={"user": {"id": 1}}),
    ],
)
def test_login_failures_raise_authentication_error(response):
    client, session = client_with(response)
    with pytest.raises(AuthenticationError):
        client.login(ADDRESS, "0xsig", "msg")
    assert "Authorization" not in session.headers


def test_check_in_posts_transaction():
    client, session = client_with(FakeResponse(data={"message": "ok", "lastCheckinTime": "1700000000000"}))

    result = client.check_in(ADDRESS, "0xhash", 10143)

    assert result["lastCheckinTime"] == "1700000000000"
    method, url, kwargs = session.requests[0]
    assert (method, url) == ("POST", f"{BASE}/wallets/checkin")
    assert kwargs["json"] == {"walletAddress": ADDRESS, "transactionHash": "0xhash", "chainId": 10143}


def test_check_in_duplicate_raises_http_error():
    client, _ = client_with(FakeResponse(status_code=409, data={"message": "already checked in"}))
    with pytest.raises(requests.HTTPError):
        client.check_in(ADDRESS, "0xhash", 10143)


def test_secondary_endpoints():
    client, session = client_with(
        FakeResponse(data={"checkInCount": 3, "points": 12.5, "lastCheckinTime": 1}),
        FakeResponse(data={"points": 20}),
        FakeResponse(data={"quests": 2}),
    )

    assert client.get_wallet_status(ADDRESS)["checkInCount"] == 3
    client.update_points()
    assert client.collect_wallet_data(ADDRESS) == {"quests": 2}
    urls = [(m, u) for m, u, _ in session.requests]
    assert urls == [
        ("GET", f"{BASE}/wallets/{ADDRESS}"),
        ("POST", f"{BASE}/wallets/update-points"),
        ("GET", f"{BASE}/wallets/{ADDRESS}/quests"),
    ]


@pytest.mark.parametrize(
    "value, expected",
    [
        (1700000000000, 1700000000000),
        ("1700000000000", 1700000000000),
        (1.7e12, 1700000000000),
        (None, None),
        ("", None),
        ("soon", None),
        ("Infinity", None),
        ("1e400", None),
        ("nan", None),
        (True, None),
    ],
)
def test_parse_timestamp_ms(value, expected):
    assert parse_timestamp_ms(value) == expected


def test_retrying_session_configuration():
    session = api._build_retrying_session()
    retry = session.get_adapter("https://wallet-collection-api.apr.io").max_retries

    assert retry.total == 3
    assert 429 in retry.status_forcelist
    assert session.headers["User-Agent"].startswith("AprCheckin/")


def test_quest_data_accepts_list_and_rejects_scalars():
    client, _ = client_with(FakeResponse(data=[{"quest": 1}]), FakeResponse(data="nope"))

    assert client.collect_wallet_data(ADDRESS) == [{"quest": 1}]
    with pytest.raises(jsonschema.ValidationError):
        client.collect_wallet_data(ADDRESS)
