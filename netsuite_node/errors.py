from typing import Any, Dict, Optional


class NetSuiteError(Exception):
    """Base class for every error raised by netsuite_node."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class NetSuiteApiError(NetSuiteError):
    """A NetSuite response that was not successful (status outside 200..399)."""

    def __init__(
        self,
        message: str,
        body: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.body = body or {}
        self.status_code = status_code


class NetSuiteAuthError(NetSuiteApiError):
    """Authentication against NetSuite or its token endpoint failed."""


class NetSuiteConfigError(NetSuiteError):
    """Credentials or settings are incomplete or invalid."""


class UnsupportedOperationError(NetSuiteError):
    def __init__(self, operation: str) -> None:
        super().__init__(f'The operation "{operation}" is not supported!')
        self.operation = operation


class AuthorizationFlowError(NetSuiteError):
    """The interactive OAuth2 authorization flow failed or timed out."""
