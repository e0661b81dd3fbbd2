"""Tests for MCP server tool wrappers.

Mocks at PlatformClient level. Verifies each tool issues the right request
and that errors are converted to dicts.
"""

import pytest

mcp_mod = pytest.importorskip("platform_cli.mcp_server", reason="mcp package not installed")

from unittest.mock import MagicMock, patch  # noqa: E402

from platform_cli.exceptions import LoginError, StatusError, TransportError  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_client_cache():
    """Reset the cached PlatformClient between tests."""
    mcp_mod._client = None
    yield
    mcp_mod._client = None


@pytest.fixture
def client():
    mock = MagicMock()
    with patch.object(mcp_mod, "_get_client", return_value=mock):
        yield mock


class TestTools:
    def test_get_success_envelope(self, client):
        client.request.return_value = {"items": [1]}
        result = mcp_mod.api_get("/objects")
        assert result["ok"] is True
        assert result["data"] == {"items": [1]}
        assert client.request.call_args.args[:3] == ("GET", "/objects", None)

    def test_post_passes_body(self, client):
        client.request.return_value = {"id": "x"}
        mcp_mod.api_post("/objects", {"a": 1})
        assert client.request.call_args.args[:3] == ("POST", "/objects", {"a": 1})

    def test_patch_and_put(self, client):
        client.request.return_value = None
        mcp_mod.api_patch("/objects/1", {"a": 2})
        assert client.request.call_args.args[0] == "PATCH"
        mcp_mod.api_put("/objects/1", {"a": 3})
        assert client.request.call_args.args[0] == "PUT"

    def test_delete_expected_statuses(self, client):
        client.request.return_value = None
        mcp_mod.api_delete("/objects/1", expected_statuses=[404])
        options = client.request.call_args.args[3]
        assert options.expected_errors == (404,)

    def test_status_error(self, client):
        client.request.side_effect = StatusError("Not Found", 404)
        result = mcp_mod.api_get("/objects/x")
        assert result["ok"] is False
        assert result["error_detail"] == {"type": "status", "message": "Not Found", "status": 404}

    def test_login_error(self, client):
        client.request.side_effect = LoginError("[TOKEN_EXPIRED] x")
        assert mcp_mod.api_get("/objects")["error_detail"]["type"] == "setup"

    def test_transport_error(self, client):
        client.request.side_effect = TransportError("[ERROR] refused")
        assert mcp_mod.api_get("/objects")["error_detail"]["type"] == "error"


class TestClientCache:
    def test_cached_client_is_quiet(self):
        first = mcp_mod._get_client()
        assert first is mcp_mod._get_client()
        assert first.quiet is True
