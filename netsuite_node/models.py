"""
models.py

Request / response shapes exchanged between the node, the executor and the
normalizer. NetSuite bodies are parsed explicitly into one of:
- PagedBody  (record listing, SuiteQL)
- ErrorBody  (non-2xx responses)
- plain dict (single records, anything else)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import NetSuiteApiError


class RequestType(str, Enum):
    RECORD = "record"
    SUITEQL = "suiteql"
    WORKBOOK = "workbook"
    RAW = "raw"


@dataclass
class RequestDescriptor:
    method: str
    request_type: RequestType
    path: str
    query: Optional[Union[Dict[str, Any], List[Any], str]] = None
    next_url: Optional[str] = None

    def __post_init__(self) -> None:
        self.method = self.method.upper()
        self.request_type = RequestType(self.request_type)


@dataclass
class ResponseEnvelope:
    status_code: int
    status_text: str
    headers: Dict[str, str]
    body: Any
    request: Dict[str, Any] = field(default_factory=dict)

    @property
    def method(self) -> str:
        return str(self.request.get("method", "GET")).upper()

    @property
    def url(self) -> str:
        return str(self.request.get("url", ""))

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())


class Link(BaseModel):
    model_config = ConfigDict(extra="allow")

    rel: Optional[str] = None
    href: Optional[str] = None


class PagedBody(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    items: List[Any] = Field(default_factory=list)
    has_more: bool = Field(default=False, alias="hasMore")
    offset: Optional[int] = None
    count: Optional[int] = None
    total_results: Optional[int] = Field(default=None, alias="totalResults")
    links: List[Link] = Field(default_factory=list)

    @field_validator("items", "links", mode="before")
    @classmethod
    def _null_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("has_more", mode="before")
    @classmethod
    def _null_flag(cls, value: Any) -> Any:
        return False if value is None else value

    @property
    def next_url(self) -> Optional[str]:
        for link in self.links:
            if link.rel == "next":
                return link.href
        return None


class ErrorDetail(BaseModel):
    model_config = ConfigDict(extra="allow")

    detail: Optional[str] = None


class ErrorBody(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    title: Optional[str] = None
    message: Optional[str] = None
    error_code: Optional[str] = Field(default=None, alias="o:errorCode")
    error_details: List[ErrorDetail] = Field(default_factory=list, alias="o:errorDetails")


def parse_paged_body(body: Any) -> PagedBody:
    if not isinstance(body, dict):
        return PagedBody()
    try:
        return PagedBody.model_validate(body)
    except ValidationError as exc:
        fields = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
        raise NetSuiteApiError(
            f"Unexpected page shape from NetSuite: {', '.join(fields) or exc}",
            body=body,
        ) from exc


def parse_error_body(body: Any) -> ErrorBody:
    if not isinstance(body, dict):
        return ErrorBody()
    payload = dict(body)
    # restlets and some record errors send a bare string here
    if not isinstance(payload.get("o:errorDetails"), list):
        payload.pop("o:errorDetails", None)
    for key in ("title", "message", "o:errorCode"):
        if key in payload and payload[key] is not None and not isinstance(payload[key], str):
            payload[key] = str(payload[key])
    return ErrorBody.model_validate(payload)
