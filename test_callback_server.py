import threading

import pytest
from fastapi.testclient import TestClient

from netsuite_node.auth.transport import (
    AuthorizationFlowState,
    LoopbackAuthorizationTransport,
    NullAuthorizationTransport,
)
from netsuite_node.callback_server import PendingAuthorizations, create_callback_app
from netsuite_node.config import Settings
from netsuite_node.errors import AuthorizationFlowError, NetSuiteConfigError


@pytest.fixture
def pending():
    return PendingAuthorizations()


@pytest.fixture
def client(pending):
    return TestClient(create_callback_app(pending))


def test_successful_callback_runs_exchange(pending, client):
    codes = []
    pending.register("s1", lambda code: codes.append(code) or {"access_token": "at"})

    resp = client.get("/oauth/callback", params={"code": "abc", "state": "s1"})

    assert resp.status_code == 200
    assert "Authentication Successful" in resp.text
    assert codes == ["abc"]
    assert pending.wait("s1", timeout=1) == {"access_token": "at"}


def test_provider_error_fails_waiter(pending, client):
    pending.register("s1", lambda code: {})

    resp = client.get(
        "/oauth/callback",
        params={"error": "access_denied", "error_description": "User said no", "state": "s1"},
    )

    assert resp.status_code == 400
    assert "access_denied" in resp.text
    with pytest.raises(AuthorizationFlowError, match="OAuth error: access_denied. Description: User said no"):
        pending.wait("s1", timeout=1)


def test_missing_code(pending, client):
    pending.register("s1", lambda code: {})

    resp = client.get("/oauth/callback", params={"state": "s1"})

    assert resp.status_code == 400
    assert "No authorization code received" in resp.text
    with pytest.raises(AuthorizationFlowError, match="No authorization code received"):
        pending.wait("s1", timeout=1)


def test_unknown_state(client):
    resp = client.get("/oauth/callback", params={"code": "abc", "state": "nope"})
    assert resp.status_code == 400
    assert "Unknown or expired" in resp.text


def test_exchange_failure_returns_500(pending, client):
    def exchange(code):
        raise RuntimeError("token endpoint down")

    pending.register("s1", exchange)

    resp = client.get("/oauth/callback", params={"code": "abc", "state": "s1"})

    assert resp.status_code == 500
    with pytest.raises(AuthorizationFlowError, match="token endpoint down"):
        pending.wait("s1", timeout=1)


def test_wait_times_out(pending):
    pending.register("s1", lambda code: {})
    with pytest.raises(AuthorizationFlowError, match="OAuth2 authentication timed out"):
        pending.wait("s1", timeout=0.01)
    assert pending.get("s1") is None


class FakeServer:
    def __init__(self, app, port):
        self.app = app
        self.port = port
        self.started = False
        self.stopped = False

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True


def test_loopback_transport_full_flow():
    servers = []

    def server_factory(app, port):
        servers.append(FakeServer(app, port))
        return servers[-1]

    def notify(url):
        # simulate the browser redirect once the user was sent to NetSuite
        def redirect():
            TestClient(servers[0].app).get("/oauth/callback", params={"code": "xyz", "state": "st"})

        threading.Thread(target=redirect).start()

    transport = LoopbackAuthorizationTransport(
        Settings(tunnel_domain="https://example.ngrok.app/", callback_port=9999),
        notify=notify,
        server_factory=server_factory,
    )
    states = []

    result = transport.authorize(
        authorization_url="https://system.netsuite.com/app/login/oauth2/authorize.nl?state=st",
        state="st",
        exchange=lambda code: {"access_token": f"token-for-{code}"},
        timeout=5,
        on_state=states.append,
    )

    assert result == {"access_token": "token-for-xyz"}
    assert states == [AuthorizationFlowState.SERVER_STARTED, AuthorizationFlowState.AWAITING_REDIRECT]
    assert servers[0].port == 9999
    assert servers[0].started and servers[0].stopped
    assert transport.pending.get("st") is None


def test_loopback_transport_stops_server_on_timeout():
    servers = []
    transport = LoopbackAuthorizationTransport(
        Settings(tunnel_domain="example.ngrok.app"),
        notify=lambda url: None,
        server_factory=lambda app, port: servers.append(FakeServer(app, port)) or servers[-1],
    )

    with pytest.raises(AuthorizationFlowError, match="timed out"):
        transport.authorize("https://auth", "st", lambda code: {}, 0.01, lambda s: None)
    assert servers[0].stopped


def test_callback_url_requires_tunnel_domain():
    assert LoopbackAuthorizationTransport(
        Settings(tunnel_domain="https://example.ngrok.app/")
    ).callback_url() == "https://example.ngrok.app/oauth/callback"

    with pytest.raises(NetSuiteConfigError, match="NGROK_DOMAIN"):
        LoopbackAuthorizationTransport(Settings()).callback_url()


def test_null_transport_refuses():
    with pytest.raises(NetSuiteConfigError):
        NullAuthorizationTransport().callback_url()
