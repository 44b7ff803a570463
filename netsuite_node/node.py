"""
node.py

NetSuiteNode: turns host parameters + input items into NetSuite REST calls.

Operations:
- getRecord, listRecords, insertRecord, updateRecord, removeRecord
- runSuiteQL
- rawRequest (escape hatch: any method / path)

The host supplies an ExecutionContext per run. Parameters are looked up per
item; `operation` and `options` come from the first item, like the node's
other host integrations expect.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union
from urllib.parse import urlencode, urlsplit

from .auth.oauth2 import TokenStore
from .auth.transport import AuthorizationTransport
from .client import NetSuiteClient
from .config import Settings
from .errors import NetSuiteConfigError, UnsupportedOperationError
from .fanout import run_bounded
from .log import configure_logging, get_logger
from .models import RequestDescriptor, RequestType
from .pagination import collect
from .response import handle_netsuite_response

logger = get_logger(__name__)

# NetSuite enforces 1..1000 rows per page for records and SuiteQL
MAX_PAGE_SIZE = 1000
DEFAULT_RECORD_LIMIT = 100
DEFAULT_SUITEQL_LIMIT = 1000
DEFAULT_API_VERSION = "v1"

Item = Dict[str, Any]


@dataclass
class ExecutionContext:
    """
    What the host hands the node for one execution.

    - items: input items, each {"json": {...}}
    - parameters: one dict for every item, or one dict per item
    - node_context: per-node bag updated after every page (hasMore, count,
      offset, totalResults, nextUrl); for host-side introspection only
    """

    items: List[Item] = field(default_factory=lambda: [{"json": {}}])
    parameters: Union[Mapping[str, Any], Sequence[Mapping[str, Any]]] = field(default_factory=dict)
    continue_on_fail: bool = False
    node_context: Dict[str, Any] = field(default_factory=dict)

    def get_node_parameter(self, name: str, item_index: int = 0, default: Any = None) -> Any:
        params = self.parameters
        if not isinstance(params, Mapping):
            if not params:
                return default
            params = params[item_index] if item_index < len(params) else params[0]
        value = params.get(name, default)
        return default if value is None else value


def _int_parameter(ctx: "ExecutionContext", name: str, item_index: int, default: int) -> int:
    value = ctx.get_node_parameter(name, item_index, default)
    if value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise NetSuiteConfigError(f"Parameter \"{name}\" must be a number, got {value!r}") from None


def _request_type(value: Any) -> RequestType:
    if isinstance(value, RequestType):
        return value
    try:
        return RequestType(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(t.value for t in RequestType)
        raise NetSuiteConfigError(f"Unknown request type {value!r} (expected one of: {allowed})") from None


def _page_size(limit: int) -> int:
    return max(1, min(int(limit), MAX_PAGE_SIZE))


def _join_query(*parts: str) -> str:
    query = "&".join(p.lstrip("?") for p in parts if p)
    return f"?{query}" if query else ""


class NetSuiteNode:
    name = "netsuite"
    display_name = "NetSuite"

    def __init__(
        self,
        credentials: Any,
        settings: Optional[Settings] = None,
        client: Optional[NetSuiteClient] = None,
        transport: Optional[AuthorizationTransport] = None,
        token_store: Optional[TokenStore] = None,
    ) -> None:
        self.settings = settings or Settings()
        configure_logging(self.settings)
        self.client = client or NetSuiteClient(
            credentials,
            settings=self.settings,
            transport=transport,
            token_store=token_store,
        )
        self._operations: Dict[str, Callable[[ExecutionContext, int, Item], Any]] = {
            "getRecord": self.get_record,
            "listRecords": self.list_records,
            "removeRecord": self.remove_record,
            "insertRecord": self.insert_record,
            "updateRecord": self.update_record,
            "rawRequest": self.raw_request,
            "runSuiteQL": self.run_suiteql,
        }

    @property
    def operations(self) -> List[str]:
        return list(self._operations)

    # ---------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------
    def _request(self, ctx: ExecutionContext, request: RequestDescriptor) -> Item:
        envelope = self.client.execute(request)
        return handle_netsuite_response(
            envelope,
            continue_on_fail=ctx.continue_on_fail,
            account_id=self.client.credentials.account_id,
        )

    @staticmethod
    def get_record_type(ctx: ExecutionContext, item_index: int) -> str:
        record_type = ctx.get_node_parameter("recordType", item_index)
        if record_type == "custom":
            record_type = ctx.get_node_parameter("customRecordTypeScriptId", item_index)
        if not record_type:
            raise NetSuiteConfigError("recordType is required")
        return record_type

    @staticmethod
    def _version(ctx: ExecutionContext, item_index: int) -> str:
        return ctx.get_node_parameter("version", item_index, DEFAULT_API_VERSION)

    def _record_path(self, ctx: ExecutionContext, item_index: int, with_id: bool = False) -> str:
        path = f"services/rest/record/{self._version(ctx, item_index)}/{self.get_record_type(ctx, item_index)}"
        if with_id:
            path = f"{path}/{ctx.get_node_parameter('internalId', item_index)}"
        return path

    # ---------------------------------------------------------
    # Operations
    # ---------------------------------------------------------
    def list_records(self, ctx: ExecutionContext, item_index: int, item: Item) -> List[Item]:
        return_all = bool(ctx.get_node_parameter("returnAll", item_index, False))
        query = ctx.get_node_parameter("query", item_index, "")
        limit = DEFAULT_RECORD_LIMIT
        offset = 0
        params = ""

        if not return_all:
            limit = _int_parameter(ctx, "limit", item_index, limit) or limit
            offset = _int_parameter(ctx, "offset", item_index, offset)
            params = urlencode({"limit": _page_size(limit), "offset": offset})

        request = RequestDescriptor(
            method="GET",
            request_type=RequestType.RECORD,
            path=f"{self._record_path(ctx, item_index)}{_join_query(query, params)}",
        )
        ctx.node_context["offset"] = offset
        return collect(
            lambda req: self._request(ctx, req),
            request,
            return_all=return_all,
            limit=limit,
            node_context=ctx.node_context,
        )

    def run_suiteql(self, ctx: ExecutionContext, item_index: int, item: Item) -> List[Item]:
        return_all = bool(ctx.get_node_parameter("returnAll", item_index, False))
        query = ctx.get_node_parameter("query", item_index, "")
        limit = DEFAULT_SUITEQL_LIMIT
        offset = 0
        params: Dict[str, Any] = {}

        if not return_all:
            limit = _int_parameter(ctx, "limit", item_index, limit) or limit
            offset = _int_parameter(ctx, "offset", item_index, offset)
            params["offset"] = offset
        params["limit"] = _page_size(limit)

        request = RequestDescriptor(
            method="POST",
            request_type=RequestType.SUITEQL,
            path=f"services/rest/query/{self._version(ctx, item_index)}/suiteql?{urlencode(params)}",
            query=query,
        )
        logger.debug("SuiteQL request: %s", request)
        ctx.node_context["offset"] = offset
        return collect(
            lambda req: self._request(ctx, req),
            request,
            return_all=return_all,
            limit=limit,
            node_context=ctx.node_context,
        )

    def get_record(self, ctx: ExecutionContext, item_index: int, item: Item) -> Item:
        params = {}
        if ctx.get_node_parameter("expandSubResources", item_index, False):
            params["expandSubResources"] = "true"
        if ctx.get_node_parameter("simpleEnumFormat", item_index, False):
            params["simpleEnumFormat"] = "true"

        request = RequestDescriptor(
            method="GET",
            request_type=RequestType.RECORD,
            path=f"{self._record_path(ctx, item_index, with_id=True)}{_join_query(urlencode(params))}",
        )
        return self._request(ctx, request)

    def remove_record(self, ctx: ExecutionContext, item_index: int, item: Item) -> Item:
        request = RequestDescriptor(
            method="DELETE",
            request_type=RequestType.RECORD,
            path=self._record_path(ctx, item_index, with_id=True),
        )
        return self._request(ctx, request)

    def insert_record(self, ctx: ExecutionContext, item_index: int, item: Item) -> Item:
        request = RequestDescriptor(
            method="POST",
            request_type=RequestType.RECORD,
            path=self._record_path(ctx, item_index),
            query=(item or {}).get("json") or None,
        )
        return self._request(ctx, request)

    def update_record(self, ctx: ExecutionContext, item_index: int, item: Item) -> Item:
        request = RequestDescriptor(
            method="PATCH",
            request_type=RequestType.RECORD,
            path=self._record_path(ctx, item_index, with_id=True),
            query=(item or {}).get("json") or None,
        )
        return self._request(ctx, request)

    def raw_request(self, ctx: ExecutionContext, item_index: int, item: Item) -> Item:
        path = ctx.get_node_parameter("path", item_index, "")
        method = str(ctx.get_node_parameter("method", item_index, "GET")).upper()
        body = ctx.get_node_parameter("body", item_index, "")
        request_type = _request_type(ctx.get_node_parameter("requestType", item_index, RequestType.RAW.value))
        options = ctx.get_node_parameter("options", 0, {}) or {}
        query = body or (item or {}).get("json") or None

        if path.startswith(("https://", "http://")):
            url = urlsplit(path)
            path = url.path.lstrip("/") + (f"?{url.query}" if url.query else "")

        request = RequestDescriptor(method=method, request_type=request_type, path=path)
        if query and method not in ("GET", "HEAD", "OPTIONS"):
            request.query = query

        response = self.client.execute(request)

        if isinstance(response.body, dict):
            for key in ("hasMore", "count", "offset", "totalResults"):
                ctx.node_context[key] = response.body.get(key)

        if options.get("fullResponse"):
            return {
                "json": {
                    "statusCode": response.status_code,
                    "headers": response.headers,
                    "body": response.body,
                }
            }
        return {"json": response.body}

    # ---------------------------------------------------------
    # Entry point
    # ---------------------------------------------------------
    def execute(self, ctx: ExecutionContext) -> List[Item]:
        operation = ctx.get_node_parameter("operation", 0)
        options = ctx.get_node_parameter("options", 0, {}) or {}
        concurrency = int(options.get("concurrency") or 1)
        items = list(ctx.items)
        total = len(items)

        def make_task(item_index: int, item: Item) -> Callable[[], Any]:
            def task() -> Any:
                logger.debug("Processing %s for %s of %s", operation, item_index + 1, total)
                handler = self._operations.get(operation)
                if handler is None:
                    raise UnsupportedOperationError(str(operation))
                return handler(ctx, item_index, item)

            return task

        results = run_bounded(
            [make_task(i, item) for i, item in enumerate(items)],
            concurrency=concurrency,
            continue_on_fail=ctx.continue_on_fail,
        )

        return_data: List[Item] = []
        for result in results:
            if not result:
                continue
            if isinstance(result, list):
                return_data.extend(result)
            else:
                return_data.append(result)
        return return_data
