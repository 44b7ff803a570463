"""
Shared fixtures: a stand-in for requests.Session that records calls and
replays queued responses, plus ready-made credential dicts.
"""

import json
from typing import Any, Dict, List, Optional

import pytest

from netsuite_node.config import Settings


class FakeResponse:
    def __init__(
        self,
        status_code: int = 200,
        body: Any = None,
        headers: Optional[Dict[str, str]] = None,
        reason: str = "",
        text: Optional[str] = None,
    ) -> None:
        self.status_code = status_code
        self.headers = headers or {}
        self.reason = reason or ("OK" if status_code < 400 else "Error")
        if text is not None:
            self.text = text
        elif body is None:
            self.text = ""
        else:
            self.text = json.dumps(body)
        self.content = self.text.encode("utf-8")

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        return json.loads(self.text)


class FakeSession:
    def __init__(self, responses: Optional[List[FakeResponse]] = None) -> None:
        self.responses = list(responses or [])
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def queue(self, *responses: FakeResponse) -> None:
        self.responses.extend(responses)

    def request(self, method: str, url: str, **kwargs) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self.responses:
            raise AssertionError(f"unexpected request: {method} {url}")
        return self.responses.pop(0)

    def post(self, url: str, **kwargs) -> FakeResponse:
        return self.request("POST", url, **kwargs)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def settings() -> Settings:
    return Settings(tunnel_domain="example.ngrok.app", authorization_timeout=2.0)


@pytest.fixture
def oauth1_credentials() -> Dict[str, Any]:
    return {
        "authentication": "oauth1",
        "hostname": "suitetalk.api.netsuite.com",
        "accountId": "1234567_SB1",
        "consumerKey": "ck",
        "consumerSecret": "cs",
        "tokenKey": "tk",
        "tokenSecret": "ts",
    }


@pytest.fixture
def oauth2_credentials() -> Dict[str, Any]:
    return {
        "authentication": "oauth2",
        "accountId": "1234567_SB1",
        "clientId": "client-id",
        "clientSecret": "client-secret",
    }
