"""
oauth2.py

OAuth2TokenBroker: bearer tokens for the NetSuite REST API.

Where a token comes from, in order of preference:
1. an access token already in the token store
2. the refresh token grant
3. the client credentials grant (certificate + private key configured)
4. the interactive authorization code flow (needs an AuthorizationTransport
   that can receive the redirect, e.g. LoopbackAuthorizationTransport)

Tokens live in a TokenStore. The default InMemoryTokenStore keeps them for
the life of the broker only; nothing is written back to the host.
"""

import secrets
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol
from urllib.parse import urlencode

import requests

from ..config import Settings
from ..credentials import OAuth2Credentials
from ..errors import (
    AuthorizationFlowError,
    NetSuiteApiError,
    NetSuiteAuthError,
    NetSuiteConfigError,
    NetSuiteError,
)
from ..log import get_logger
from . import token_exchange
from .transport import (
    AuthorizationFlowState,
    AuthorizationTransport,
    NullAuthorizationTransport,
)

logger = get_logger(__name__)

JSON_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
    "X-NetSuite-PropertyNameValidation": "strict",
}


@dataclass
class TokenPair:
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "Bearer"
    expires_at: Optional[float] = None


class TokenStore(Protocol):
    def load(self) -> Optional[TokenPair]: ...

    def save(self, tokens: TokenPair) -> None: ...


class InMemoryTokenStore:
    def __init__(self, tokens: Optional[TokenPair] = None) -> None:
        self._tokens = tokens
        self._lock = threading.Lock()

    def load(self) -> Optional[TokenPair]:
        with self._lock:
            return self._tokens

    def save(self, tokens: TokenPair) -> None:
        with self._lock:
            self._tokens = tokens


class OAuth2TokenBroker:
    def __init__(
        self,
        credentials: OAuth2Credentials,
        settings: Optional[Settings] = None,
        session: Optional[requests.Session] = None,
        transport: Optional[AuthorizationTransport] = None,
        token_store: Optional[TokenStore] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.credentials = credentials
        self.settings = settings or Settings()
        self.session = session or requests.Session()
        self.transport = transport or NullAuthorizationTransport()
        self.clock = clock
        self.flow_state = AuthorizationFlowState.IDLE
        self._refresh_lock = threading.Lock()

        if token_store is None:
            token_store = InMemoryTokenStore()
            if credentials.access_token or credentials.refresh_token:
                token_store.save(
                    TokenPair(
                        access_token=credentials.access_token or "",
                        refresh_token=credentials.refresh_token,
                    )
                )
        self.token_store = token_store

        logger.debug(
            "OAuth2TokenBroker initialized: client_id=%s account_id=%s has_access_token=%s",
            credentials.client_id, credentials.account_id, bool(self.access_token),
        )

    # ---------------------------------------------------------
    # Token state
    # ---------------------------------------------------------
    @property
    def access_token(self) -> Optional[str]:
        tokens = self.token_store.load()
        return tokens.access_token if tokens and tokens.access_token else None

    @property
    def refresh_token(self) -> Optional[str]:
        tokens = self.token_store.load()
        return tokens.refresh_token if tokens else None

    def set_tokens(self, access_token: str, refresh_token: Optional[str] = None, expires_in: Optional[float] = None) -> None:
        expires_at = self.clock() + float(expires_in) if expires_in else None
        self.token_store.save(
            TokenPair(
                access_token=access_token,
                refresh_token=refresh_token or self.refresh_token,
                expires_at=expires_at,
            )
        )

    def _store_token_response(self, data: Dict[str, Any]) -> TokenPair:
        self.set_tokens(data["access_token"], data.get("refresh_token"), data.get("expires_in"))
        return self.token_store.load()

    def is_expired(self) -> bool:
        tokens = self.token_store.load()
        if not tokens or not tokens.access_token:
            return True
        if tokens.expires_at is None:
            return False
        # refresh a minute early
        return self.clock() >= tokens.expires_at - 60

    # ---------------------------------------------------------
    # Request helpers
    # ---------------------------------------------------------
    def get_authorization_headers(self) -> Dict[str, str]:
        token = self.access_token
        if not token:
            raise NetSuiteAuthError("No access token available")

        return {"Authorization": f"Bearer {token}", **JSON_HEADERS}

    def get_base_url(self) -> str:
        return f"https://{self.credentials.api_host}"

    def make_request(self, method: str, url: str, **kwargs) -> requests.Response:
        """
        Send a request with the bearer token.

        Relative URLs are resolved against get_base_url(). A 401 becomes a
        NetSuiteAuthError; every other response is returned as-is and
        transport errors propagate.
        """
        if not url.startswith("http"):
            url = f"{self.get_base_url()}/{url.lstrip('/')}"

        headers = dict(kwargs.pop("headers", None) or {})
        headers.update(self.get_authorization_headers())
        kwargs.setdefault("timeout", self.settings.request_timeout)

        logger.debug("Making OAuth2 request to: %s", url)
        resp = self.session.request(method.upper(), url, headers=headers, **kwargs)

        if resp.status_code == 401:
            detail = None
            try:
                payload = resp.json()
                if isinstance(payload, dict):
                    detail = payload.get("message") or payload.get("title")
            except ValueError:
                pass
            message = f"Authentication failed (401 Unauthorized): {detail or 'Invalid or expired token'}"
            logger.warning("OAuth2 authentication error: %s", message)
            raise NetSuiteAuthError(message, status_code=401)

        logger.debug("OAuth2 request finished, status: %s", resp.status_code)
        return resp

    def handle_netsuite_response(self, response: requests.Response, continue_on_fail: bool = False) -> Dict[str, Any]:
        status = response.status_code
        try:
            data = response.json() if response.content else {}
        except ValueError:
            data = {"raw": response.text}

        if 200 <= status < 300:
            return {"json": data}

        message = f"Request failed with status code {status}"
        if isinstance(data, dict) and isinstance(data.get("error"), dict):
            message = data["error"].get("message") or message

        if not continue_on_fail:
            raise NetSuiteApiError(message, body=data if isinstance(data, dict) else {}, status_code=status)

        return {"json": {"error": message}}

    # ---------------------------------------------------------
    # Grants
    # ---------------------------------------------------------
    @property
    def token_url(self) -> str:
        return self.credentials.token_url

    def refresh_access_token(self) -> str:
        refresh_token = self.refresh_token
        if not refresh_token:
            raise NetSuiteAuthError("No refresh token available")

        data = token_exchange.request_token(
            self.session,
            self.token_url,
            token_exchange.build_refresh_request_body(refresh_token, self.credentials.scope),
            token_exchange.build_headers(self.credentials.client_id, self.credentials.client_secret),
            timeout=self.settings.token_timeout,
        )
        return self._store_token_response(data).access_token

    def request_client_credentials_token(self) -> str:
        c = self.credentials
        if not (c.certificate_id and c.private_key):
            raise NetSuiteConfigError("Client credentials flow needs certificateId and privateKey")

        assertion = token_exchange.build_client_assertion(
            client_id=c.client_id,
            certificate_id=c.certificate_id,
            private_key=c.private_key,
            audience=self.token_url,
            scope=c.scope,
            now=self.clock(),
        )
        data = token_exchange.request_token(
            self.session,
            self.token_url,
            token_exchange.build_client_credentials_body(assertion),
            token_exchange.build_headers(),
            timeout=self.settings.token_timeout,
        )
        return self._store_token_response(data).access_token

    def exchange_authorization_code(self, code: str, redirect_uri: str) -> Dict[str, Any]:
        data = token_exchange.request_token(
            self.session,
            self.token_url,
            token_exchange.build_token_request_body(code, redirect_uri),
            token_exchange.build_headers(self.credentials.client_id, self.credentials.client_secret),
            timeout=self.settings.token_timeout,
        )
        self._store_token_response(data)
        return data

    def ensure_access_token(self) -> str:
        """Return a usable access token, obtaining one if needed."""
        with self._refresh_lock:
            if not self.is_expired():
                return self.access_token
            if self.refresh_token:
                return self.refresh_access_token()
            if self.credentials.certificate_id and self.credentials.private_key:
                return self.request_client_credentials_token()
            return self.perform_authorization_flow()["accessToken"]

    # ---------------------------------------------------------
    # Interactive authorization code flow
    # ---------------------------------------------------------
    def build_authorization_url(self, redirect_uri: str, state: str) -> str:
        params = {
            "client_id": self.credentials.client_id,
            "response_type": "code",
            "redirect_uri": redirect_uri,
            "scope": self.credentials.scope,
            "state": state,
        }
        separator = "&" if "?" in self.credentials.auth_uri else "?"
        return f"{self.credentials.auth_uri}{separator}{urlencode(params)}"

    def _set_state(self, state: AuthorizationFlowState) -> None:
        logger.debug("OAuth2 authorization flow: %s -> %s", self.flow_state.value, state.value)
        self.flow_state = state

    def perform_authorization_flow(self) -> Dict[str, Optional[str]]:
        c = self.credentials
        required = {
            "authUri": c.auth_uri,
            "accessTokenUri": self.token_url,
            "clientId": c.client_id,
            "clientSecret": c.client_secret,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise NetSuiteConfigError(f"Missing required OAuth2 options: {', '.join(missing)}")

        self._set_state(AuthorizationFlowState.IDLE)
        try:
            redirect_uri = self.transport.callback_url()
            state = secrets.token_urlsafe(24)

            def exchange(code: str) -> Dict[str, Any]:
                self._set_state(AuthorizationFlowState.CODE_RECEIVED)
                self._set_state(AuthorizationFlowState.EXCHANGING_TOKEN)
                return self.exchange_authorization_code(code, redirect_uri)

            self.transport.authorize(
                authorization_url=self.build_authorization_url(redirect_uri, state),
                state=state,
                exchange=exchange,
                timeout=self.settings.authorization_timeout,
                on_state=self._set_state,
            )
        except NetSuiteError:
            self._set_state(AuthorizationFlowState.FAILED)
            raise
        except Exception as exc:
            self._set_state(AuthorizationFlowState.FAILED)
            raise AuthorizationFlowError(f"OAuth2 authorization failed: {exc}") from exc

        if not self.access_token:
            self._set_state(AuthorizationFlowState.FAILED)
            raise AuthorizationFlowError("OAuth2 authorization finished without an access token")

        self._set_state(AuthorizationFlowState.TOKEN_STORED)
        return {"accessToken": self.access_token, "refreshToken": self.refresh_token}
