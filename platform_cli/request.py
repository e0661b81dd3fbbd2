"""
Request construction for the platform API: URL composition, body encoding,
header precedence, local-auth headers, and the curl diagnostic.
"""

import json
import re
import shlex
import sys
import urllib.parse
import urllib.request

from platform_cli import config
from platform_cli.exceptions import CliError, ContractError
from platform_cli.log import null_log

JSON_CONTENT_TYPE = "application/json"
MERGE_PATCH_CONTENT_TYPE = "application/merge-patch+json"
REDACTED_BEARER = "Bearer REDACTED"
REDACTED_UPLOAD = "@/file/path/REDACTED"

# Reserved characters and existing %XX escapes pass through untouched.
_PATH_SAFE = "/%:@!$&'()*+,;=~"
_QUERY_SAFE = _PATH_SAFE + "?"


class _Headers:
    """Ordered header map with case-insensitive keys; last write wins."""

    def __init__(self):
        self._items = {}

    def set(self, name, value):
        self._items[name.lower()] = (name, value)

    def get(self, name, default=None):
        item = self._items.get(name.lower())
        return item[1] if item else default

    def items(self):
        return list(self._items.values())


def _lookup(headers, name):
    """Case-insensitive lookup in a caller-supplied header dict."""
    if not headers:
        return ""
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return ""


# ---------------------------------------------------------------------------
# URL composition
# ---------------------------------------------------------------------------


def _parse_base_url(url):
    """Validate the profile URL. A broken one means a broken installation."""
    parsed = urllib.parse.urlsplit(url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        sys.exit(f"[FATAL] Failed to parse the url provided in context ({url!r}).")
    return parsed


def join_url(base_url, path):
    """Join *path* (which may carry ``?query``) onto *base_url*.

    Characters that cannot appear in a URL (spaces, non-ASCII) are
    percent-encoded; existing escapes are kept, so identifiers that already
    contain escaped reserved characters reach the server intact.
    """
    path, _, query = path.partition("?")
    path = urllib.parse.quote(path, safe=_PATH_SAFE)
    query = urllib.parse.quote(query, safe=_QUERY_SAFE)
    base = _parse_base_url(base_url)
    joined = re.sub(r"/{2,}", "/", base.path.rstrip("/") + "/" + path.lstrip("/"))
    if joined != "/" and not path.endswith("/"):
        joined = joined.rstrip("/")
    return urllib.parse.urlunsplit((base.scheme, base.netloc, joined, query, ""))


# ---------------------------------------------------------------------------
# Local auth
# ---------------------------------------------------------------------------


def local_auth_headers(options):
    """Headers asserting the caller's identity to a local platform stack."""
    pairs = (
        ("appd-pty", options.principal_type),
        ("appd-pid", options.principal_id),
        ("appd-tid", options.tenant_id),
    )
    return {name: value for name, value in pairs if value}


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


def _encode_body(method, body, headers):
    """Return (bytes-or-None, synthesized content type or None)."""
    if body is None:
        return None, None
    if _lookup(headers, "Content-Type"):
        if not isinstance(body, (bytes, bytearray)):
            raise ContractError(
                "[BUG] HTTP request body must be bytes when Content-Type is provided, "
                f"found {type(body).__name__} instead"
            )
        return bytes(body), None
    try:
        data = json.dumps(body, allow_nan=False).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise CliError(f"[ERROR] Failed to JSON-encode request body: {e}") from e
    content_type = MERGE_PATCH_CONTENT_TYPE if method == "PATCH" else JSON_CONTENT_TYPE
    return data, content_type


def build_request(cfg, method, path, body=None, headers=None, log=null_log):
    """Build the outbound request for one attempt.

    Header precedence, lowest first: synthesized Content-Type, Accept,
    Authorization, local-auth headers, then the caller's explicit headers.
    """
    method = method.upper()
    data, content_type = _encode_body(method, body, headers)
    url = join_url(cfg.url, path)

    merged = _Headers()
    if content_type:
        merged.set("Content-Type", content_type)
    merged.set("Accept", JSON_CONTENT_TYPE)
    merged.set("Authorization", f"Bearer {cfg.token}")
    if cfg.auth_method == config.AUTH_METHOD_LOCAL:
        for name, value in local_auth_headers(cfg.local_auth).items():
            merged.set(name, value)
    for name, value in (headers or {}).items():
        merged.set(name, value)

    try:
        req = urllib.request.Request(url, data=data, method=method)
    except ValueError as e:
        raise CliError(f"[ERROR] Failed to create a request for {url!r}: {e}") from e
    for name, value in merged.items():
        req.add_header(name, value)

    if cfg.curlify:
        log("info", "curl command equivalent", command=curl_command(req))
    return req


# ---------------------------------------------------------------------------
# Curl diagnostic
# ---------------------------------------------------------------------------


def curl_command(req):
    """Render *req* as a copy-paste-runnable, redacted curl command.

    Reads ``req.data`` without touching it; the request is sent unchanged.
    """
    parts = ["curl", "-X", shlex.quote(req.get_method())]
    headers = sorted(req.header_items())
    content_type = ""
    for name, value in headers:
        if name.lower() == "content-type":
            content_type = value
    if content_type.startswith("multipart/form-data"):
        parts += ["-d", shlex.quote(REDACTED_UPLOAD)]
    elif req.data is not None:
        parts += ["-d", shlex.quote(bytes(req.data).decode("utf-8", errors="replace"))]
    for name, value in headers:
        if name.lower() == "authorization":
            value = REDACTED_BEARER
        parts += ["-H", shlex.quote(f"{name}: {value}")]
    parts.append(shlex.quote(req.full_url))
    return " ".join(parts)
