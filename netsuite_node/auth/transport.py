"""
transport.py

How the interactive leg of the OAuth2 authorization code flow reaches us.

- LoopbackAuthorizationTransport: serves callback_server's FastAPI app with
  uvicorn on a fixed local port. The port is expected to be exposed publicly
  through a tunnel (ngrok or similar) whose domain is Settings.tunnel_domain.
- NullAuthorizationTransport: headless use (refresh / client credentials only);
  refuses to run the interactive flow.
"""

import sys
import threading
import time
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol

import uvicorn
from fastapi import FastAPI

from ..callback_server import CALLBACK_PATH, PendingAuthorizations, create_callback_app
from ..config import Settings
from ..errors import AuthorizationFlowError, NetSuiteConfigError
from ..log import get_logger

logger = get_logger(__name__)


class AuthorizationFlowState(str, Enum):
    IDLE = "idle"
    SERVER_STARTED = "server_started"
    AWAITING_REDIRECT = "awaiting_redirect"
    CODE_RECEIVED = "code_received"
    EXCHANGING_TOKEN = "exchanging_token"
    TOKEN_STORED = "token_stored"
    FAILED = "failed"


ExchangeFn = Callable[[str], Dict[str, Any]]
StateFn = Callable[[AuthorizationFlowState], None]


class AuthorizationTransport(Protocol):
    def callback_url(self) -> str: ...

    def authorize(
        self,
        authorization_url: str,
        state: str,
        exchange: ExchangeFn,
        timeout: float,
        on_state: StateFn,
    ) -> Dict[str, Any]: ...


class NullAuthorizationTransport:
    MESSAGE = (
        "Interactive OAuth2 authorization is not available; "
        "provide an access token, a refresh token or client credentials"
    )

    def callback_url(self) -> str:
        raise NetSuiteConfigError(self.MESSAGE)

    def authorize(self, authorization_url, state, exchange, timeout, on_state) -> Dict[str, Any]:
        raise NetSuiteConfigError(self.MESSAGE)


class ServerHandle(Protocol):
    def start(self) -> None: ...

    def stop(self) -> None: ...


class UvicornServerHandle:
    """Runs a uvicorn server in a daemon thread."""

    def __init__(self, app: FastAPI, port: int, host: str = "127.0.0.1", startup_timeout: float = 10.0) -> None:
        self.server = uvicorn.Server(uvicorn.Config(app, host=host, port=port, log_level="warning"))
        self.startup_timeout = startup_timeout
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        self._thread = threading.Thread(target=self.server.run, name="netsuite-oauth-callback", daemon=True)
        self._thread.start()

        deadline = time.monotonic() + self.startup_timeout
        while not self.server.started:
            if not self._thread.is_alive():
                raise AuthorizationFlowError(
                    f"OAuth2 callback server failed to start on port {self.server.config.port}"
                )
            if time.monotonic() > deadline:
                self.stop()
                raise AuthorizationFlowError("OAuth2 callback server did not start in time")
            time.sleep(0.05)

        logger.info("OAuth2 callback server listening on port %s", self.server.config.port)

    def stop(self) -> None:
        self.server.should_exit = True
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None


def print_authorization_url(url: str) -> None:
    # stderr: stdout may be the MCP transport
    print(f"Open this URL to authorize NetSuite access:\n{url}", file=sys.stderr)


class LoopbackAuthorizationTransport:
    def __init__(
        self,
        settings: Settings,
        notify: Callable[[str], Any] = print_authorization_url,
        server_factory: Callable[[FastAPI, int], ServerHandle] = UvicornServerHandle,
    ) -> None:
        self.settings = settings
        self.notify = notify
        self.server_factory = server_factory
        self.pending = PendingAuthorizations()
        # one listener per port; flows on this transport run one at a time
        self._lock = threading.Lock()

    def callback_url(self) -> str:
        domain = (self.settings.tunnel_domain or "").strip()
        if not domain:
            raise NetSuiteConfigError(
                "Tunnel domain is not configured (set NGROK_DOMAIN to the public domain forwarding "
                f"to port {self.settings.callback_port})"
            )
        for prefix in ("https://", "http://"):
            if domain.startswith(prefix):
                domain = domain[len(prefix):]
        return f"https://{domain.rstrip('/')}{CALLBACK_PATH}"

    def authorize(
        self,
        authorization_url: str,
        state: str,
        exchange: ExchangeFn,
        timeout: float,
        on_state: StateFn,
    ) -> Dict[str, Any]:
        with self._lock:
            server = self.server_factory(create_callback_app(self.pending), self.settings.callback_port)
            self.pending.register(state, exchange)
            try:
                server.start()
                on_state(AuthorizationFlowState.SERVER_STARTED)

                logger.info("OAuth2 callback URL: %s", self.callback_url())
                self.notify(authorization_url)
                on_state(AuthorizationFlowState.AWAITING_REDIRECT)

                return self.pending.wait(state, timeout)
            finally:
                self.pending.discard(state)
                server.stop()
