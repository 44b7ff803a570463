from conftest import FakeResponse, FakeSession
from netsuite_node import mcp_server
from netsuite_node.client import NetSuiteClient
from netsuite_node.node import NetSuiteNode


def test_run_suiteql_tool(oauth1_credentials, monkeypatch):
    session = FakeSession([FakeResponse(200, {"items": [{"id": "1"}], "hasMore": False})])
    node = NetSuiteNode(oauth1_credentials, client=NetSuiteClient(oauth1_credentials, session=session))
    monkeypatch.setattr(mcp_server, "_node", node)

    assert mcp_server.run_suiteql("SELECT id FROM customer", limit=10) == {"items": [{"id": "1"}]}
    assert session.calls[0]["json"] == {"q": "SELECT id FROM customer"}


def test_insert_record_tool_sends_record(oauth1_credentials, monkeypatch):
    session = FakeSession([FakeResponse(204, headers={"Location": "https://x/services/rest/record/v1/customer/77"})])
    node = NetSuiteNode(oauth1_credentials, client=NetSuiteClient(oauth1_credentials, session=session))
    monkeypatch.setattr(mcp_server, "_node", node)

    result = mcp_server.insert_record("customer", {"companyName": "Acme"})

    assert result["items"][0]["id"] == "77"
    assert session.calls[0]["json"] == {"companyName": "Acme"}


def test_server_is_a_fastmcp_instance():
    from mcp.server.fastmcp import FastMCP

    assert isinstance(mcp_server.mcp, FastMCP)
    assert mcp_server.mcp.name == "netsuite-node"
