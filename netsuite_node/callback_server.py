"""
callback_server.py

FastAPI app that receives the NetSuite OAuth2 redirect:

    GET /oauth/callback?code=...&state=...
    GET /oauth/callback?error=...&error_description=...&state=...

Each interactive authorization registers its `state` in PendingAuthorizations
together with the function that swaps the code for tokens. The route runs that
exchange and wakes up whoever is waiting on the state.
"""

import html
import threading
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse

from .errors import AuthorizationFlowError
from .log import get_logger

logger = get_logger(__name__)

CALLBACK_PATH = "/oauth/callback"


class PendingAuthorization:
    def __init__(self, exchange: Callable[[str], Dict[str, Any]]) -> None:
        self.exchange = exchange
        self.done = threading.Event()
        self.result: Optional[Dict[str, Any]] = None
        self.error: Optional[str] = None


class PendingAuthorizations:
    def __init__(self) -> None:
        self._pending: Dict[str, PendingAuthorization] = {}
        self._lock = threading.Lock()

    def register(self, state: str, exchange: Callable[[str], Dict[str, Any]]) -> PendingAuthorization:
        with self._lock:
            pending = PendingAuthorization(exchange)
            self._pending[state] = pending
            return pending

    def get(self, state: Optional[str]) -> Optional[PendingAuthorization]:
        if not state:
            return None
        with self._lock:
            return self._pending.get(state)

    def complete(self, state: str, result: Dict[str, Any]) -> None:
        pending = self.get(state)
        if pending:
            pending.result = result
            pending.done.set()

    def fail(self, state: Optional[str], error: str) -> None:
        pending = self.get(state)
        if pending:
            pending.error = error
            pending.done.set()

    def discard(self, state: str) -> None:
        with self._lock:
            self._pending.pop(state, None)

    def wait(self, state: str, timeout: float) -> Dict[str, Any]:
        """
        Block until the redirect for `state` was handled.

        Raises AuthorizationFlowError on provider/exchange errors or timeout.
        The state is forgotten either way.
        """
        pending = self.get(state)
        if pending is None:
            raise AuthorizationFlowError(f"Unknown OAuth2 state: {state}")
        try:
            if not pending.done.wait(timeout):
                raise AuthorizationFlowError("OAuth2 authentication timed out")
            if pending.error:
                raise AuthorizationFlowError(pending.error)
            return pending.result or {}
        finally:
            self.discard(state)


def _page(title: str, *lines: str) -> str:
    body = "".join(f"<p>{html.escape(line)}</p>" for line in lines)
    return f"<html><body><h1>{html.escape(title)}</h1>{body}</body></html>"


def create_callback_app(pending: PendingAuthorizations) -> FastAPI:
    app = FastAPI()

    @app.get(CALLBACK_PATH)
    def oauth_callback(request: Request):
        params = request.query_params
        code = params.get("code")
        state = params.get("state")
        error = params.get("error")
        error_description = params.get("error_description")

        logger.info("Received OAuth callback (state=%s, has_code=%s, error=%s)", state, bool(code), error)

        if error:
            pending.fail(state, f"OAuth error: {error}. Description: {error_description or 'No description provided'}")
            return HTMLResponse(
                _page(
                    "Authentication Error",
                    f"Error: {error}",
                    f"Description: {error_description or 'No description provided'}",
                    "Please close this window and try again.",
                ),
                status_code=400,
            )

        if not code:
            pending.fail(state, "No authorization code received")
            return HTMLResponse(
                _page("Authentication Error", "No authorization code received", "Please close this window and try again."),
                status_code=400,
            )

        authorization = pending.get(state)
        if authorization is None:
            return HTMLResponse(
                _page("Authentication Error", "Unknown or expired authorization request", "Please close this window and try again."),
                status_code=400,
            )

        try:
            result = authorization.exchange(code)
        except Exception as exc:
            logger.error("Error in OAuth callback: %s", exc)
            pending.fail(state, str(exc))
            return HTMLResponse(
                _page(
                    "Authentication Error",
                    f"An error occurred during the authentication process: {exc}",
                    "Please close this window and try again.",
                ),
                status_code=500,
            )

        pending.complete(state, result)
        return HTMLResponse(
            _page(
                "Authentication Successful",
                "You have successfully authenticated with NetSuite.",
                "You may close this window.",
            )
        )

    return app
