import base64
from urllib.parse import parse_qs, urlsplit

import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from conftest import FakeResponse, FakeSession
from netsuite_node.auth.oauth2 import AuthorizationFlowState, InMemoryTokenStore, OAuth2TokenBroker, TokenPair
from netsuite_node.auth.token_exchange import build_client_assertion
from netsuite_node.credentials import parse_credentials
from netsuite_node.errors import (
    AuthorizationFlowError,
    NetSuiteApiError,
    NetSuiteAuthError,
    NetSuiteConfigError,
)

TOKEN_URL = "https://1234567-sb1.suitetalk.api.netsuite.com/services/rest/auth/oauth2/v1/token"


class FakeTransport:
    """Completes the authorization flow by calling the exchange directly."""

    def __init__(self, code="auth-code", fail=None):
        self.code = code
        self.fail = fail
        self.authorization_url = None
        self.states = []

    def callback_url(self):
        return "https://example.ngrok.app/oauth/callback"

    def authorize(self, authorization_url, state, exchange, timeout, on_state):
        self.authorization_url = authorization_url
        on_state(AuthorizationFlowState.SERVER_STARTED)
        on_state(AuthorizationFlowState.AWAITING_REDIRECT)
        if self.fail:
            raise self.fail
        return exchange(self.code)


def make_broker(oauth2_credentials, session=None, **kwargs):
    return OAuth2TokenBroker(parse_credentials(oauth2_credentials), session=session or FakeSession(), **kwargs)


def test_no_access_token_then_bearer(oauth2_credentials):
    broker = make_broker(oauth2_credentials)

    with pytest.raises(NetSuiteAuthError, match="No access token available"):
        broker.get_authorization_headers()

    broker.set_tokens("abc")
    headers = broker.get_authorization_headers()
    assert headers["Authorization"] == "Bearer abc"
    assert headers["Content-Type"] == "application/json"


def test_tokens_seeded_from_credentials(oauth2_credentials):
    broker = make_broker({**oauth2_credentials, "accessToken": "a1", "refreshToken": "r1"})
    assert broker.access_token == "a1"
    assert broker.refresh_token == "r1"
    assert not broker.is_expired()


def test_is_expired_refreshes_a_minute_early(oauth2_credentials):
    now = [1000.0]
    broker = make_broker(oauth2_credentials, clock=lambda: now[0])
    broker.set_tokens("abc", expires_in=3600)

    now[0] = 1000 + 3600 - 61
    assert not broker.is_expired()
    now[0] = 1000 + 3600 - 59
    assert broker.is_expired()


def test_refresh_grant_uses_basic_auth(oauth2_credentials):
    session = FakeSession([FakeResponse(200, {"access_token": "new", "expires_in": 3600})])
    broker = make_broker(oauth2_credentials, session=session, token_store=InMemoryTokenStore(TokenPair("", "r1")))

    assert broker.ensure_access_token() == "new"

    call = session.calls[0]
    assert call["url"] == TOKEN_URL
    assert call["data"] == {"grant_type": "refresh_token", "refresh_token": "r1", "scope": "rest_webservices"}
    expected = base64.b64encode(b"client-id:client-secret").decode()
    assert call["headers"]["Authorization"] == f"Basic {expected}"
    # refresh token survives a response without one
    assert broker.refresh_token == "r1"


def test_token_endpoint_failure_raises(oauth2_credentials):
    session = FakeSession([FakeResponse(400, {"error": "invalid_grant"})])
    broker = make_broker(oauth2_credentials, session=session, token_store=InMemoryTokenStore(TokenPair("", "r1")))

    with pytest.raises(NetSuiteAuthError, match="Token exchange failed: HTTP 400"):
        broker.refresh_access_token()


def test_token_url_placeholder(oauth2_credentials):
    broker = make_broker({
        **oauth2_credentials,
        "accessTokenUri": "https://{{accountId}}.suitetalk.api.netsuite.com/services/rest/auth/oauth2/v1/token",
    })
    assert broker.token_url == TOKEN_URL


def test_ensure_access_token_returns_valid_token_without_requests(oauth2_credentials):
    session = FakeSession()
    broker = make_broker({**oauth2_credentials, "accessToken": "a1"}, session=session)
    assert broker.ensure_access_token() == "a1"
    assert session.calls == []


def test_interactive_flow_stores_tokens(oauth2_credentials):
    session = FakeSession([FakeResponse(200, {"access_token": "at", "refresh_token": "rt"})])
    transport = FakeTransport()
    broker = make_broker(oauth2_credentials, session=session, transport=transport)
    states = []
    original = broker._set_state
    broker._set_state = lambda s: (states.append(s), original(s))

    assert broker.perform_authorization_flow() == {"accessToken": "at", "refreshToken": "rt"}

    query = parse_qs(urlsplit(transport.authorization_url).query)
    assert query["client_id"] == ["client-id"]
    assert query["response_type"] == ["code"]
    assert query["redirect_uri"] == ["https://example.ngrok.app/oauth/callback"]
    assert query["scope"] == ["rest_webservices"]
    assert session.calls[0]["data"] == {
        "grant_type": "authorization_code",
        "code": "auth-code",
        "redirect_uri": "https://example.ngrok.app/oauth/callback",
    }
    assert states == [
        AuthorizationFlowState.IDLE,
        AuthorizationFlowState.SERVER_STARTED,
        AuthorizationFlowState.AWAITING_REDIRECT,
        AuthorizationFlowState.CODE_RECEIVED,
        AuthorizationFlowState.EXCHANGING_TOKEN,
        AuthorizationFlowState.TOKEN_STORED,
    ]
    assert broker.flow_state == AuthorizationFlowState.TOKEN_STORED


def test_interactive_flow_requires_options(oauth2_credentials):
    broker = make_broker({**oauth2_credentials, "clientSecret": ""}, transport=FakeTransport())
    with pytest.raises(NetSuiteConfigError, match="Missing required OAuth2 options: clientSecret"):
        broker.perform_authorization_flow()


def test_interactive_flow_failure_marks_failed(oauth2_credentials):
    transport = FakeTransport(fail=AuthorizationFlowError("OAuth2 authentication timed out"))
    broker = make_broker(oauth2_credentials, transport=transport)

    with pytest.raises(AuthorizationFlowError, match="timed out"):
        broker.perform_authorization_flow()
    assert broker.flow_state == AuthorizationFlowState.FAILED


def test_headless_broker_refuses_interactive_flow(oauth2_credentials):
    broker = make_broker(oauth2_credentials)
    with pytest.raises(NetSuiteConfigError):
        broker.ensure_access_token()


def test_client_credentials_grant(oauth2_credentials):
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    session = FakeSession([FakeResponse(200, {"access_token": "m2m", "expires_in": 3600})])
    broker = make_broker(
        {**oauth2_credentials, "certificateId": "cert-1", "privateKey": pem},
        session=session,
        clock=lambda: 1700000000.0,
    )

    assert broker.ensure_access_token() == "m2m"

    data = session.calls[0]["data"]
    assert data["grant_type"] == "client_credentials"
    assert data["client_assertion_type"] == "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"
    assert jwt.get_unverified_header(data["client_assertion"])["kid"] == "cert-1"
    claims = jwt.decode(
        data["client_assertion"],
        key.public_key(),
        algorithms=["PS256"],
        audience=TOKEN_URL,
        options={"verify_exp": False, "verify_iat": False},
    )
    assert claims["iss"] == "client-id"
    assert claims["scope"] == ["rest_webservices"]
    assert claims["exp"] - claims["iat"] == 3600


def test_client_assertion_splits_scopes():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    token = build_client_assertion("cid", "kid", key, "aud", "restlets, rest_webservices", now=0)
    claims = jwt.decode(token, options={"verify_signature": False})
    assert claims["scope"] == ["restlets", "rest_webservices"]


def test_make_request_raises_on_401(oauth2_credentials):
    session = FakeSession([FakeResponse(401, {"title": "Invalid login attempt."})])
    broker = make_broker({**oauth2_credentials, "accessToken": "a1"}, session=session)

    with pytest.raises(NetSuiteAuthError, match=r"Authentication failed \(401 Unauthorized\): Invalid login attempt."):
        broker.make_request("GET", "services/rest/record/v1/customer")
    assert session.calls[0]["url"] == "https://1234567-sb1.suitetalk.api.netsuite.com/services/rest/record/v1/customer"
    assert session.calls[0]["headers"]["Authorization"] == "Bearer a1"


def test_broker_handle_response(oauth2_credentials):
    broker = make_broker(oauth2_credentials)
    ok = FakeResponse(200, {"id": "1"})
    bad = FakeResponse(404, {"error": {"message": "Record not found"}})

    assert broker.handle_netsuite_response(ok) == {"json": {"id": "1"}}
    assert broker.handle_netsuite_response(bad, continue_on_fail=True) == {"json": {"error": "Record not found"}}
    with pytest.raises(NetSuiteApiError, match="Record not found"):
        broker.handle_netsuite_response(bad)
