"""
oauth1.py

OAuth 1.0a (NetSuite token-based authentication) request signing.

Every HTTP call gets a fresh timestamp + nonce and its own HMAC-SHA256
signature, so callers refresh before signing each request.
"""

import secrets
import threading
import time
from typing import Callable, Dict, Optional

from oauthlib.oauth1 import SIGNATURE_HMAC_SHA256, Client

from ..credentials import OAuth1Credentials
from ..log import get_logger

logger = get_logger(__name__)


def generate_nonce() -> str:
    """Random nonce mixed with the current time so two calls in the same second never collide."""
    return f"{secrets.token_hex(8)}{time.time_ns():x}"[:32]


class OAuth1Signer:
    """
    Produces the NetSuite OAuth1 Authorization header.

    - clock: returns the current Unix time (seconds); injectable for tests
    - nonce_factory: returns a new nonce string per refresh
    """

    def __init__(
        self,
        credentials: OAuth1Credentials,
        clock: Callable[[], float] = time.time,
        nonce_factory: Callable[[], str] = generate_nonce,
    ) -> None:
        self.credentials = credentials
        self._clock = clock
        self._nonce_factory = nonce_factory
        self.timestamp: str = ""
        self.nonce: str = ""
        self._lock = threading.Lock()
        self.refresh_auth_params()

    @property
    def base_url(self) -> str:
        return f"https://{self.credentials.api_host}"

    def refresh_auth_params(self) -> None:
        self.timestamp = str(int(self._clock()))
        self.nonce = self._nonce_factory()

    def get_authorization_headers(self, method: str = "GET", url: Optional[str] = None) -> Dict[str, str]:
        """
        Sign `method url` with the current timestamp/nonce.

        Query parameters in `url` are part of the signature base string,
        so the URL must be the exact (already percent-encoded) one sent.
        """
        client = Client(
            client_key=self.credentials.consumer_key,
            client_secret=self.credentials.consumer_secret,
            resource_owner_key=self.credentials.token_key,
            resource_owner_secret=self.credentials.token_secret,
            signature_method=SIGNATURE_HMAC_SHA256,
            realm=self.credentials.account_id,
            nonce=self.nonce,
            timestamp=self.timestamp,
        )

        _, headers, _ = client.sign(url or f"{self.base_url}/", http_method=method.upper())
        return {"Authorization": headers["Authorization"]}

    def sign(self, method: str, url: str) -> Dict[str, str]:
        """Refresh timestamp/nonce, then sign one request."""
        with self._lock:
            self.refresh_auth_params()
            logger.debug("Signing %s %s with oauth_timestamp=%s", method, url, self.timestamp)
            return self.get_authorization_headers(method, url)
