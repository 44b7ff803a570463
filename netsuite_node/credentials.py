"""
credentials.py

NetSuite credential shapes, validated at the boundary.

Two variants share one dict shape coming from the host, told apart by the
"authentication" field:
- oauth1: token-based authentication (TBA), signed per request
- oauth2: bearer tokens from the NetSuite token endpoint
"""

from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .errors import NetSuiteConfigError

DEFAULT_HOSTNAME = "suitetalk.api.netsuite.com"
DEFAULT_AUTH_URI = "https://system.netsuite.com/app/login/oauth2/authorize.nl"
DEFAULT_SCOPE = "rest_webservices"
ACCOUNT_PLACEHOLDER = "{{accountId}}"


def account_host(account_id: str) -> str:
    """NetSuite host format: 3392496_SB2 -> 3392496-sb2"""
    return account_id.strip().lower().replace("_", "-")


def default_token_url(account_id: str) -> str:
    return (
        f"https://{account_host(account_id)}.suitetalk.api.netsuite.com"
        "/services/rest/auth/oauth2/v1/token"
    )


class OAuth1Credentials(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    authentication: Literal["oauth1"] = "oauth1"
    hostname: str = DEFAULT_HOSTNAME
    account_id: str = Field(alias="accountId", min_length=1)
    consumer_key: str = Field(alias="consumerKey", min_length=1)
    consumer_secret: str = Field(alias="consumerSecret", min_length=1)
    token_key: str = Field(alias="tokenKey", min_length=1)
    token_secret: str = Field(alias="tokenSecret", min_length=1)

    @property
    def api_host(self) -> str:
        hostname = (self.hostname or DEFAULT_HOSTNAME).strip()
        for prefix in ("https://", "http://"):
            if hostname.startswith(prefix):
                hostname = hostname[len(prefix):]
        hostname = hostname.rstrip("/")

        host = account_host(self.account_id)
        if self.account_id in hostname or host in hostname:
            return hostname
        return f"{host}.{hostname}"


class OAuth2Credentials(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    authentication: Literal["oauth2"] = "oauth2"
    account_id: str = Field(alias="accountId", min_length=1)
    client_id: str = Field(alias="clientId", min_length=1)
    client_secret: str = Field(default="", alias="clientSecret")
    auth_uri: str = Field(default=DEFAULT_AUTH_URI, alias="authUri")
    access_token_uri: str = Field(default="", alias="accessTokenUri")
    scope: str = DEFAULT_SCOPE
    access_token: Optional[str] = Field(default=None, alias="accessToken")
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")
    certificate_id: Optional[str] = Field(default=None, alias="certificateId")
    private_key: Optional[str] = Field(default=None, alias="privateKey")

    @property
    def api_host(self) -> str:
        return f"{account_host(self.account_id)}.suitetalk.api.netsuite.com"

    @property
    def token_url(self) -> str:
        if not self.access_token_uri:
            return default_token_url(self.account_id)
        return self.access_token_uri.replace(ACCOUNT_PLACEHOLDER, account_host(self.account_id))


NetSuiteCredentials = Annotated[
    Union[OAuth1Credentials, OAuth2Credentials],
    Field(discriminator="authentication"),
]

_adapter: TypeAdapter = TypeAdapter(NetSuiteCredentials)


def parse_credentials(data: Union[Dict[str, Any], OAuth1Credentials, OAuth2Credentials]):
    """
    Validate a host credential dict into OAuth1Credentials / OAuth2Credentials.

    A missing "authentication" field means oauth1, matching the credential
    type's default. Blank optional values are treated as absent.
    """
    if isinstance(data, (OAuth1Credentials, OAuth2Credentials)):
        return data

    payload = {k: v for k, v in dict(data).items() if v not in (None, "")}
    payload.setdefault("authentication", "oauth1")

    try:
        return _adapter.validate_python(payload)
    except ValidationError as exc:
        fields = sorted({str(err["loc"][-1]) for err in exc.errors() if err.get("loc")})
        raise NetSuiteConfigError(
            f"Invalid NetSuite credentials: {', '.join(fields) or exc}"
        ) from exc
