"""
config.py

Purpose:
- Hold every tunable the node needs in one explicit object
- Read the environment (and .env) in exactly one place: Settings.from_env()
- Build NetSuite credentials from environment variables for scripts / MCP
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from dotenv import load_dotenv

DEFAULT_CALLBACK_PORT = 9999
DEFAULT_AUTHORIZATION_TIMEOUT = 180.0
DEFAULT_REQUEST_TIMEOUT = 120.0
DEFAULT_TOKEN_TIMEOUT = 30.0


def _env_bool(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Runtime configuration passed explicitly to the node, broker and transports."""

    tunnel_domain: Optional[str] = None
    callback_port: int = DEFAULT_CALLBACK_PORT
    authorization_timeout: float = DEFAULT_AUTHORIZATION_TIMEOUT
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    token_timeout: float = DEFAULT_TOKEN_TIMEOUT
    debug: bool = False
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()

        return cls(
            tunnel_domain=os.getenv("NGROK_DOMAIN") or os.getenv("ngrok_domain") or None,
            callback_port=int(os.getenv("NETSUITE_CALLBACK_PORT", DEFAULT_CALLBACK_PORT)),
            authorization_timeout=float(os.getenv("NETSUITE_AUTH_TIMEOUT", DEFAULT_AUTHORIZATION_TIMEOUT)),
            request_timeout=float(os.getenv("NETSUITE_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT)),
            token_timeout=float(os.getenv("NETSUITE_TOKEN_TIMEOUT", DEFAULT_TOKEN_TIMEOUT)),
            debug=_env_bool(os.getenv("NETSUITE_DEBUG")),
            log_file=os.getenv("NETSUITE_LOG_FILE") or None,
        )


# env var -> credential field
_CREDENTIAL_ENV = {
    "NETSUITE_AUTHENTICATION": "authentication",
    "NETSUITE_ACCOUNT_ID": "accountId",
    "NETSUITE_HOSTNAME": "hostname",
    "NETSUITE_CONSUMER_KEY": "consumerKey",
    "NETSUITE_CONSUMER_SECRET": "consumerSecret",
    "NETSUITE_TOKEN_KEY": "tokenKey",
    "NETSUITE_TOKEN_SECRET": "tokenSecret",
    "NETSUITE_CLIENT_ID": "clientId",
    "NETSUITE_CLIENT_SECRET": "clientSecret",
    "NETSUITE_AUTH_URI": "authUri",
    "NETSUITE_TOKEN_URL": "accessTokenUri",
    "NETSUITE_SCOPE": "scope",
    "NETSUITE_ACCESS_TOKEN": "accessToken",
    "NETSUITE_REFRESH_TOKEN": "refreshToken",
    "NETSUITE_CERTIFICATE_ID": "certificateId",
    "NETSUITE_PRIVATE_KEY": "privateKey",
}


def credentials_from_env() -> Dict[str, Any]:
    """
    Collect NetSuite credential fields from the environment.

    Only variables that are set are returned, so model defaults
    (hostname, scope, auth/token URIs) still apply.
    """
    load_dotenv()

    data: Dict[str, Any] = {}
    for env_name, field_name in _CREDENTIAL_ENV.items():
        value = os.getenv(env_name)
        if value:
            data[field_name] = value

    if not data.get("authentication"):
        data["authentication"] = "oauth2" if data.get("clientId") else "oauth1"

    return data
