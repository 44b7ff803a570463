"""
MCP Server for the NetSuite node

This file exposes the node operations as MCP tools,
so that an AI client (Claude / ChatGPT) can call them.

Credentials come from the environment (NETSUITE_* variables, or a .env file);
the node is built once, on the first tool call.
"""

from typing import Any, Dict, List, Optional

# FastMCP is a lightweight helper that makes it easy
# to create an MCP-compatible tool server
from mcp.server.fastmcp import FastMCP

from .auth.transport import LoopbackAuthorizationTransport
from .config import Settings, credentials_from_env
from .node import ExecutionContext, NetSuiteNode

mcp = FastMCP("netsuite-node")

_node: Optional[NetSuiteNode] = None


def get_node() -> NetSuiteNode:
    global _node
    if _node is None:
        settings = Settings.from_env()
        transport = LoopbackAuthorizationTransport(settings) if settings.tunnel_domain else None
        _node = NetSuiteNode(credentials_from_env(), settings=settings, transport=transport)
    return _node


def _run(parameters: Dict[str, Any], items: Optional[List[Dict[str, Any]]] = None) -> dict:
    ctx = ExecutionContext(
        items=[{"json": item} for item in (items or [{}])],
        parameters={k: v for k, v in parameters.items() if v is not None},
    )
    return {"items": [entry["json"] for entry in get_node().execute(ctx)]}


@mcp.tool()
def get_record(
    record_type: str,
    internal_id: str,
    expand_sub_resources: bool = False,
    simple_enum_format: bool = False,
    version: str = "v1",
) -> dict:
    """Fetch one record by type and internal id (e.g. salesOrder, customrecord_x)."""
    return _run({
        "operation": "getRecord",
        "recordType": record_type,
        "internalId": internal_id,
        "expandSubResources": expand_sub_resources,
        "simpleEnumFormat": simple_enum_format,
        "version": version,
    })


@mcp.tool()
def list_records(
    record_type: str,
    query: str = "",
    return_all: bool = False,
    limit: int = 100,
    offset: int = 0,
    version: str = "v1",
) -> dict:
    """
    List records of a type. `query` is a raw query string, e.g. q=email START_WITH "barry"
    """
    return _run({
        "operation": "listRecords",
        "recordType": record_type,
        "query": query,
        "returnAll": return_all,
        "limit": limit,
        "offset": offset,
        "version": version,
    })


@mcp.tool()
def insert_record(record_type: str, record: dict, version: str = "v1") -> dict:
    """Create a record; the result carries the new id from the Location header."""
    return _run(
        {"operation": "insertRecord", "recordType": record_type, "version": version},
        items=[record],
    )


@mcp.tool()
def update_record(record_type: str, internal_id: str, record: dict, version: str = "v1") -> dict:
    return _run(
        {
            "operation": "updateRecord",
            "recordType": record_type,
            "internalId": internal_id,
            "version": version,
        },
        items=[record],
    )


@mcp.tool()
def remove_record(record_type: str, internal_id: str, version: str = "v1") -> dict:
    return _run({
        "operation": "removeRecord",
        "recordType": record_type,
        "internalId": internal_id,
        "version": version,
    })


@mcp.tool()
def run_suiteql(query: str, return_all: bool = False, limit: int = 1000, offset: int = 0) -> dict:
    """
    MCP Tool: run_suiteql

    Parameters:
    - query (str): SuiteQL statement
    - return_all (bool): follow every page instead of stopping at `limit`
    - limit / offset (int): window when return_all is False

    Returns:
    - {"items": [...rows]}
    """
    return _run({
        "operation": "runSuiteQL",
        "query": query,
        "returnAll": return_all,
        "limit": limit,
        "offset": offset,
    })


@mcp.tool()
def raw_request(
    path: str,
    method: str = "GET",
    body: Optional[Any] = None,
    request_type: str = "raw",
    full_response: bool = False,
) -> dict:
    """Send any request to the NetSuite REST API (path relative to the account host, or a full URL)."""
    return _run({
        "operation": "rawRequest",
        "path": path,
        "method": method,
        "body": body,
        "requestType": request_type,
        "options": {"fullResponse": full_response},
    })


if __name__ == "__main__":
    # Run MCP server using stdio (standard input/output)
    mcp.run(transport="stdio")
