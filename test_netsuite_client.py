"""
NetSuiteClient against a recorded session: token refresh, 401 retry,
SuiteQL limits, record create/update.
"""

from __future__ import annotations

import json

import pytest
import requests

from config import Settings
from netsuite_client import NetSuiteClient


def _response(status: int, body=None, headers=None) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp._content = json.dumps(body).encode("utf-8") if body is not None else b""
    resp.headers.update(headers or {})
    return resp


class FakeSession:
    def __init__(self, responses) -> None:
        self.responses = list(responses)
        self.token_calls = 0
        self.requests: list[dict] = []

    def post(self, url, **kwargs):
        self.token_calls += 1
        return _response(200, {"access_token": f"token-{self.token_calls}"})

    def request(self, method, url, **kwargs):
        self.requests.append({"method": method, "url": url, **kwargs})
        return self.responses.pop(0)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        account_id="3392496_SB2",
        client_id="cid",
        client_secret="secret",
        refresh_token="refresh",
    )


def test_host_is_lowercased_and_hyphenated(settings):
    client = NetSuiteClient(settings, session=FakeSession([]))

    assert client.host == "3392496-sb2"
    assert client.token_url == "https://3392496-sb2.suitetalk.api.netsuite.com/services/rest/auth/oauth2/v1/token"


def test_suiteql_posts_query_and_clamps_limit(settings):
    session = FakeSession([_response(200, {"items": [{"id": "1"}]})])
    client = NetSuiteClient(settings, session=session)

    data = client.suiteql("SELECT id FROM employee", limit=5000)

    assert data["items"] == [{"id": "1"}]
    sent = session.requests[0]
    assert sent["method"] == "POST"
    assert sent["url"].endswith("/query/v1/suiteql")
    assert sent["params"] == {"limit": 1000, "offset": 0}
    assert sent["json"] == {"q": "SELECT id FROM employee"}
    assert sent["headers"]["Authorization"] == "Bearer token-1"
    assert sent["headers"]["Prefer"] == "transient"


def test_401_refreshes_token_and_retries_once(settings):
    session = FakeSession([_response(401, {}), _response(200, {"items": []})])
    client = NetSuiteClient(settings, session=session)

    client.suiteql("SELECT 1 FROM dual")

    assert session.token_calls == 2
    assert len(session.requests) == 2
    assert session.requests[1]["headers"]["Authorization"] == "Bearer token-2"


def test_token_is_reused_between_calls(settings):
    session = FakeSession([_response(200, {"items": []}), _response(200, {"items": []})])
    client = NetSuiteClient(settings, session=session)

    client.suiteql("SELECT 1 FROM dual")
    client.suiteql("SELECT 2 FROM dual")

    assert session.token_calls == 1


def test_http_errors_raise(settings):
    session = FakeSession([_response(403, {"o:errorDetails": [{"o:errorCode": "INSUFFICIENT_PERMISSION"}]})])
    client = NetSuiteClient(settings, session=session)

    with pytest.raises(requests.HTTPError) as excinfo:
        client.get_record("customrecord_nera_transaction_tracker", 5)
    assert excinfo.value.response.status_code == 403


def test_create_record_returns_id_from_location(settings):
    location = "https://3392496-sb2.suitetalk.api.netsuite.com/services/rest/record/v1/customrecord_x/812"
    session = FakeSession([_response(204, None, {"Location": location})])
    client = NetSuiteClient(settings, session=session)

    new_id = client.create_record("customrecord_x", {"name": "TT1"})

    assert new_id == "812"
    assert session.requests[0]["json"] == {"name": "TT1"}


def test_create_record_without_location_raises(settings):
    session = FakeSession([_response(204, None)])
    client = NetSuiteClient(settings, session=session)

    with pytest.raises(requests.HTTPError):
        client.create_record("customrecord_x", {"name": "TT1"})


def test_update_record_patches(settings):
    session = FakeSession([_response(204, None)])
    client = NetSuiteClient(settings, session=session)

    client.update_record("customrecord_x", 812, {"custrecord_tt_memo": "m"})

    sent = session.requests[0]
    assert sent["method"] == "PATCH"
    assert sent["url"].endswith("/record/v1/customrecord_x/812")
