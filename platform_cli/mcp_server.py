"""MCP server exposing the platform API verbs as tools.

Run: python -m platform_cli.mcp_server
Requires: pip install .[mcp]
"""

from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import FastMCP

from platform_cli import config
from platform_cli.api import Options
from platform_cli.client import PlatformClient
from platform_cli.exceptions import CliError, SetupError, StatusError

mcp = FastMCP(
    "platform",
    instructions=(
        "Raw observability platform API access. Paths are relative to the "
        "configured platform URL and may include a ?query. Bodies are JSON. "
        "Errors come back as {ok: false, error_detail: {...}}; a 'status' "
        "field carries the HTTP status when the platform rejected the call."
    ),
)

_client: PlatformClient | None = None


def _get_client() -> PlatformClient:
    """Return a cached quiet PlatformClient, creating one on first use."""
    global _client
    if _client is None:
        _client = PlatformClient(quiet=True)
    return _client


def _contract_error(message: str, error_type: str = "error", status: int | None = None) -> dict:
    """Return a stable MCP error envelope."""
    detail: dict[str, Any] = {"type": error_type, "message": message}
    if status is not None:
        detail["status"] = status
    return {
        "ok": False,
        "schema_version": config.CONTRACT_SCHEMA_VERSION,
        "error_detail": detail,
    }


def _call(method: str, path: str, body: Any = None, expected: list[int] | None = None) -> dict:
    """Run one API call, converting exceptions to error dicts."""
    try:
        options = Options(expected_errors=tuple(expected or ()))
        data = _get_client().request(method, path, body, options)
    except StatusError as e:
        return _contract_error(str(e), "status", e.status_code)
    except SetupError as e:
        return _contract_error(str(e), "setup")
    except CliError as e:
        return _contract_error(str(e), "error")
    return {"ok": True, "schema_version": config.CONTRACT_SCHEMA_VERSION, "data": data}


def api_get(path: str) -> dict:
    """GET a platform API path.

    Args:
        path: API path, e.g. /knowledge-store/v1/objects/extensibility:solution
    """
    return _call("GET", path)


def api_post(path: str, body: dict | list) -> dict:
    """POST a JSON body to a platform API path."""
    return _call("POST", path, body)


def api_put(path: str, body: dict | list) -> dict:
    """PUT a JSON body to a platform API path."""
    return _call("PUT", path, body)


def api_patch(path: str, body: dict) -> dict:
    """PATCH a platform API path with a JSON merge patch."""
    return _call("PATCH", path, body)


def api_delete(path: str, expected_statuses: list[int] | None = None) -> dict:
    """DELETE a platform API path.

    Args:
        expected_statuses: Statuses (e.g. [404]) that are a normal outcome.
    """
    return _call("DELETE", path, expected=expected_statuses)


for _tool in (api_get, api_post, api_put, api_patch, api_delete):
    mcp.tool()(_tool)


def main():
    """Run the MCP server (stdio transport)."""
    mcp.run()


if __name__ == "__main__":
    main()
