"""
token_exchange.py

Purpose:
- Talk to the NetSuite OAuth2 token endpoint
- Authorization code, refresh token and client credentials (JWT assertion) grants
- Used by OAuth2TokenBroker; never prints or logs token values
"""

import base64
import time
import uuid
from typing import Any, Dict, Optional, Sequence, Union

import jwt
import requests

from ..errors import NetSuiteAuthError
from ..log import get_logger

logger = get_logger(__name__)

CLIENT_ASSERTION_TYPE = "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"
ASSERTION_LIFETIME = 3600


def basic_auth_header(client_id: str, client_secret: str) -> str:
    raw = f"{client_id}:{client_secret}".encode("utf-8")
    encoded = base64.b64encode(raw).decode("utf-8")
    return f"Basic {encoded}"


def build_headers(client_id: Optional[str] = None, client_secret: Optional[str] = None) -> dict:
    headers = {
        "Content-Type": "application/x-www-form-urlencoded",
        "Accept": "application/json",
    }
    if client_id and client_secret:
        headers["Authorization"] = basic_auth_header(client_id, client_secret)
    return headers


def build_token_request_body(auth_code: str, redirect_uri: str) -> dict:
    """
    Build the form-encoded body for the authorization code exchange
    """
    return {
        "grant_type": "authorization_code",
        "code": auth_code,
        "redirect_uri": redirect_uri,
    }


def build_refresh_request_body(refresh_token: str, scope: Optional[str] = None) -> dict:
    body = {
        "grant_type": "refresh_token",
        "refresh_token": refresh_token,
    }
    if scope:
        body["scope"] = scope
    return body


def build_client_assertion(
    client_id: str,
    certificate_id: str,
    private_key: str,
    audience: str,
    scope: Union[str, Sequence[str]],
    now: Optional[float] = None,
    algorithm: str = "PS256",
) -> str:
    """
    Signed JWT for the client credentials (machine-to-machine) grant.

    The key id is the certificate id shown on the NetSuite
    "OAuth 2.0 Client Credentials (M2M) Setup" page.
    """
    issued_at = int(now if now is not None else time.time())
    scopes = scope.replace(",", " ").split() if isinstance(scope, str) else list(scope)

    return jwt.encode(
        {
            "iss": client_id,
            "scope": scopes,
            "aud": audience,
            "iat": issued_at,
            "exp": issued_at + ASSERTION_LIFETIME,
            "jti": str(uuid.uuid4()),
        },
        private_key,
        algorithm=algorithm,
        headers={"kid": certificate_id, "typ": "JWT"},
    )


def build_client_credentials_body(assertion: str) -> dict:
    return {
        "grant_type": "client_credentials",
        "client_assertion_type": CLIENT_ASSERTION_TYPE,
        "client_assertion": assertion,
    }


def request_token(
    session: requests.Session,
    token_url: str,
    body: dict,
    headers: dict,
    timeout: float = 30,
) -> Dict[str, Any]:
    """
    POST a grant to the token endpoint and return the JSON response.
    """
    t0 = time.perf_counter()
    resp = session.post(token_url, data=body, headers=headers, timeout=timeout)

    logger.info(
        "[TIMING] token request (%s) took %.2fs status=%s",
        body.get("grant_type"), time.perf_counter() - t0, resp.status_code,
    )

    if not resp.ok:
        logger.warning("TOKEN STATUS: %s", resp.status_code)
        logger.debug("TOKEN BODY: %s", resp.text)
        raise NetSuiteAuthError(
            f"Token exchange failed: HTTP {resp.status_code} - {resp.text}",
            status_code=resp.status_code,
        )

    try:
        data = resp.json()
    except ValueError as exc:
        raise NetSuiteAuthError(
            f"Token exchange failed: response is not JSON - {resp.text}",
            status_code=resp.status_code,
        ) from exc

    if "access_token" not in data:
        raise NetSuiteAuthError(
            "Token exchange failed: no access_token in response",
            body=data,
            status_code=resp.status_code,
        )

    return data
