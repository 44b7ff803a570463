from .client import NetSuiteClient
from .config import Settings, credentials_from_env
from .credentials import OAuth1Credentials, OAuth2Credentials, parse_credentials
from .errors import (
    AuthorizationFlowError,
    NetSuiteApiError,
    NetSuiteAuthError,
    NetSuiteConfigError,
    NetSuiteError,
    UnsupportedOperationError,
)
from .node import ExecutionContext, NetSuiteNode

__all__ = [
    "AuthorizationFlowError",
    "ExecutionContext",
    "NetSuiteApiError",
    "NetSuiteAuthError",
    "NetSuiteClient",
    "NetSuiteConfigError",
    "NetSuiteError",
    "NetSuiteNode",
    "OAuth1Credentials",
    "OAuth2Credentials",
    "Settings",
    "UnsupportedOperationError",
    "credentials_from_env",
    "parse_credentials",
]
