"""
client.py

NetSuiteClient: the request executor.

- One HTTP call per execute(), returned as a ResponseEnvelope
- Authentication is delegated to an OAuth1Signer (fresh signature per call)
  or an OAuth2TokenBroker (bearer token)
- No retries and no status interpretation; see response.py for that
- Reuses HTTP connections via requests.Session
"""

import time
from typing import Any, Dict, Optional, Union
from urllib.parse import parse_qsl, quote, urlencode

import requests

from .auth.oauth1 import OAuth1Signer
from .auth.oauth2 import OAuth2TokenBroker, TokenStore
from .auth.transport import AuthorizationTransport
from .config import Settings
from .credentials import OAuth1Credentials, OAuth2Credentials, parse_credentials
from .log import get_logger
from .models import RequestDescriptor, RequestType, ResponseEnvelope

logger = get_logger(__name__)

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
    "X-NetSuite-PropertyNameValidation": "strict",
}

METADATA_CATALOG_PATH = "services/rest/record/v1/metadata-catalog"

_NO_BODY_METHODS = ("GET", "HEAD", "OPTIONS")


def encode_query(query: str) -> str:
    """Percent-encode a raw query string (`q=name IS "x"&limit=5`) the way it must be signed and sent."""
    pairs = parse_qsl(query.lstrip("?"), keep_blank_values=True)
    return urlencode(pairs, quote_via=quote, safe="")


def normalize_path(path: str) -> str:
    path = path.lstrip("/")
    if "?" not in path:
        return path
    base, query = path.split("?", 1)
    query = encode_query(query)
    return f"{base}?{query}" if query else base


class NetSuiteClient:
    def __init__(
        self,
        credentials: Union[Dict[str, Any], OAuth1Credentials, OAuth2Credentials],
        settings: Optional[Settings] = None,
        session: Optional[requests.Session] = None,
        transport: Optional[AuthorizationTransport] = None,
        token_store: Optional[TokenStore] = None,
        signer: Optional[OAuth1Signer] = None,
        broker: Optional[OAuth2TokenBroker] = None,
    ) -> None:
        self.credentials = parse_credentials(credentials)
        self.settings = settings or Settings()
        self._session = session or requests.Session()

        self.signer: Optional[OAuth1Signer] = None
        self.broker: Optional[OAuth2TokenBroker] = None
        if isinstance(self.credentials, OAuth2Credentials):
            self.broker = broker or OAuth2TokenBroker(
                self.credentials,
                settings=self.settings,
                session=self._session,
                transport=transport,
                token_store=token_store,
            )
        else:
            self.signer = signer or OAuth1Signer(self.credentials)

        # NetSuite host, e.g. 3392496-sb2.suitetalk.api.netsuite.com
        self.host = self.credentials.api_host
        logger.debug(
            "NetSuite config: host=%s account_id=%s authentication=%s",
            self.host, self.credentials.account_id, self.credentials.authentication,
        )

    @property
    def base_url(self) -> str:
        return f"https://{self.host}"

    def build_url(self, request: RequestDescriptor) -> str:
        if request.next_url:
            return request.next_url
        return f"{self.base_url}/{normalize_path(request.path)}"

    def _auth_headers(self, method: str, url: str) -> Dict[str, str]:
        if self.broker is not None:
            self.broker.ensure_access_token()
            return {"Authorization": self.broker.get_authorization_headers()["Authorization"]}
        return self.signer.sign(method, url)

    def _body_kwargs(self, request: RequestDescriptor) -> Dict[str, Any]:
        query = request.query
        if query is None or request.method in _NO_BODY_METHODS:
            return {}

        if request.request_type == RequestType.SUITEQL:
            if isinstance(query, str):
                query = {"q": query}
            return {"json": query}

        if isinstance(query, str):
            return {"data": query.encode("utf-8")}
        return {"json": query}

    def execute(self, request: RequestDescriptor) -> ResponseEnvelope:
        """
        Send one request and wrap the result.

        Transport errors (requests.RequestException) propagate unchanged.
        """
        url = self.build_url(request)
        headers = dict(DEFAULT_HEADERS)
        if request.request_type == RequestType.SUITEQL:
            headers["Prefer"] = "transient"
        headers.update(self._auth_headers(request.method, url))

        t0 = time.perf_counter()
        resp = self._session.request(
            request.method,
            url,
            headers=headers,
            timeout=self.settings.request_timeout,
            **self._body_kwargs(request),
        )
        logger.info(
            "[TIMING] %s %s took %.2fs status=%s",
            request.method, url, time.perf_counter() - t0, resp.status_code,
        )

        if resp.status_code >= 400:
            logger.debug("STATUS: %s BODY: %s", resp.status_code, resp.text)

        return ResponseEnvelope(
            status_code=resp.status_code,
            status_text=resp.reason or "",
            headers={k.lower(): v for k, v in resp.headers.items()},
            body=self._parse_body(resp),
            request={"method": request.method, "url": url},
        )

    @staticmethod
    def _parse_body(resp: requests.Response) -> Any:
        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError:
            # JSON decoding failed, fall back to raw text
            return {"raw": resp.text}

    def get_metadata_catalog(self) -> ResponseEnvelope:
        """
        Safe read-only call to confirm auth works.
        """
        return self.execute(
            RequestDescriptor(method="GET", request_type=RequestType.RECORD, path=METADATA_CATALOG_PATH)
        )

    def close(self) -> None:
        self._session.close()
