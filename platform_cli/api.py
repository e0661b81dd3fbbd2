"""
HTTP request layer for the platform API.

One logical call runs through a small state machine:

    SENDING(1) -> SUCCESS | FAILURE | AUTH_RETRY -> SENDING(2) -> SUCCESS | FAILURE

AUTH_RETRY is only reachable from the first attempt, so a persistently
rejected token costs exactly one login and one retry.
"""

from __future__ import annotations

import enum
import json
import threading
import time
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass, field

from platform_cli import auth, config
from platform_cli.auth import AuthGate
from platform_cli.config import ConfigContext
from platform_cli.exceptions import (
    CliError,
    ContractError,
    ResponseDecodeError,
    TransportError,
)
from platform_cli.log import null_log
from platform_cli.problems import classify_error
from platform_cli.request import build_request
from platform_cli.spinner import Spinner

ELLIPSIS = "…"
MAX_ATTEMPTS = 2

_SEE_OTHER = 303
_FORBIDDEN = 403
_FILE_CONTENT_TYPES = frozenset({"application/octet-stream", "application/zip"})
_FILE_NAME_HEADER = "solutionFileName"
_DECODE_EXCERPT_BYTES = 200
_DISPLAY_PATH_CHARS = 50
_DISPLAY_QUERY_CHARS = 6


# ---------------------------------------------------------------------------
# Public types
# ---------------------------------------------------------------------------


@dataclass
class Options:
    """Per-call options. ``response_headers`` is filled in by the call.

    ``timeout`` bounds the whole call, login and retry included. ``cancel`` is
    checked before each attempt; an attempt already on the wire runs until it
    completes or its timeout expires.
    """

    headers: dict = field(default_factory=dict)
    expected_errors: tuple = ()
    quiet: bool = False
    timeout: float | None = None
    cancel: threading.Event | None = None
    response_headers: dict | None = None


@dataclass
class CallContext:
    """State for one logical call and its single retry."""

    cfg: ConfigContext
    spinner: Spinner
    deadline: float | None = None
    cancel: threading.Event | None = None

    def attempt_timeout(self):
        if self.deadline is None:
            return self.cfg.timeout
        return min(self.cfg.timeout, self.deadline - time.monotonic())


@dataclass
class Response:
    status: int
    headers: object
    body: bytes


class CallState(enum.Enum):
    SENDING = "sending"
    AUTH_RETRY = "auth_retry"
    SUCCESS = "success"
    FAILURE = "failure"


def next_state(attempt, status):
    """Classify a response received on *attempt* (1-based)."""
    if 200 <= status < 300 or status == _SEE_OTHER:
        return CallState.SUCCESS
    if status == _FORBIDDEN and attempt < MAX_ATTEMPTS:
        return CallState.AUTH_RETRY
    return CallState.FAILURE


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------


def abbreviate_string(s, n):
    """Cap *s* at *n* characters, ending in an ellipsis when cut."""
    if len(s) <= n:
        return s
    if n == 0:
        return ""
    if n == 1:
        return ELLIPSIS
    return s[: n - 1] + ELLIPSIS


def url_display_path(url):
    """Abbreviated ``path?query`` of *url* for the spinner label."""
    parsed = urllib.parse.urlsplit(url)
    shown = abbreviate_string(parsed.path, _DISPLAY_PATH_CHARS)
    if not parsed.query:
        return shown
    return shown + "?" + abbreviate_string(parsed.query, _DISPLAY_QUERY_CHARS)


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


class _NoRedirect(urllib.request.HTTPRedirectHandler):
    """Surface 3xx as responses; 303 after an update carries the new identity."""

    def redirect_request(self, req, fp, code, msg, headers, newurl):
        return None


_OPENER = urllib.request.build_opener(_NoRedirect)


def _send(call, req):
    """Send *req* and fully buffer the response, whatever its status."""
    method, url = req.get_method(), req.full_url
    if call.cancel is not None and call.cancel.is_set():
        raise TransportError(f"[ERROR] {method} request to {url!r} was cancelled")
    timeout = call.attempt_timeout()
    if timeout <= 0:
        raise TransportError(f"[ERROR] {method} request to {url!r} failed: deadline exceeded")
    try:
        with _OPENER.open(req, timeout=timeout) as resp:
            return Response(resp.status, resp.headers, resp.read())
    except urllib.error.HTTPError as e:
        try:
            body = e.read() if e.fp else b""
        except OSError as read_err:
            raise TransportError(
                f"[ERROR] Failed reading response to {method} {url!r} (status {e.code}): {read_err}"
            ) from read_err
        return Response(e.code, e.headers, body)
    except TimeoutError as e:
        raise TransportError(
            f"[ERROR] {method} request to {url!r} timed out after {timeout:g} seconds"
        ) from e
    except urllib.error.URLError as e:
        raise TransportError(f"[ERROR] {method} request to {url!r} failed: {e.reason}") from e
    except ValueError as e:
        raise CliError(f"[ERROR] Invalid {method} request to {url!r}: {e}") from e
    except OSError as e:
        raise TransportError(f"[ERROR] {method} request to {url!r} failed: {e}") from e


# ---------------------------------------------------------------------------
# Success path
# ---------------------------------------------------------------------------


def _media_type(content_type):
    return (content_type or "").split(";", 1)[0].strip().lower()


def _header_map(headers):
    if headers is None:
        return None
    out = {}
    for name, value in headers.items():
        out.setdefault(name, []).append(value)
    return out


def _excerpt(body):
    if len(body) <= _DECODE_EXCERPT_BYTES:
        return body
    return body[:_DECODE_EXCERPT_BYTES] + b"..."


def _save_file(body, headers, content_type):
    path = (headers or {}).get(_FILE_NAME_HEADER)
    if not path:
        raise ContractError(f"[BUG] Filename not provided for response type {content_type!r}")
    try:
        with open(path, "wb") as f:
            f.write(body)
    except OSError as e:
        raise CliError(f"[ERROR] Failed to save the solution archive file as {path!r}: {e}") from e


def _reject_constant(name):
    raise ValueError(f"{name} is not valid JSON")


def _decode_json(body):
    try:
        return json.loads(body.decode("utf-8"), parse_constant=_reject_constant)
    except (ValueError, RecursionError) as e:
        raise ResponseDecodeError(
            f"[ERROR] Failed to JSON-parse the response: {e} ({_excerpt(body)!r})"
        ) from e


def _process_success(method, resp, options):
    """Decode or persist a 2xx/303 body according to its content type."""
    options.response_headers = _header_map(resp.headers)
    if method == "DELETE":
        return None
    content_type = _media_type(resp.headers.get("Content-Type") if resp.headers else "")
    if content_type in _FILE_CONTENT_TYPES:
        _save_file(resp.body, options.headers, content_type)
        return None
    if resp.body and resp.status != _SEE_OTHER:
        return _decode_json(resp.body)
    return None


# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------


def http_request(
    method,
    path,
    body=None,
    options=None,
    *,
    cfg=None,
    login=auth.login,
    log=null_log,
    spinner=None,
):
    """Run one platform API call, refreshing the token once on 403.

    Returns the decoded JSON body (or None when there is nothing to decode).
    Raises StatusError for non-success statuses, TransportError for network
    failures, LoginError when no token can be obtained, and ContractError
    when the caller misuses the API.
    """
    method = method.upper()
    options = options if options is not None else Options()
    cfg = cfg if cfg is not None else config.load_context()
    log("info", "Calling the observability platform API", method=method, path=path)

    call = CallContext(
        cfg=cfg,
        spinner=spinner if spinner is not None else Spinner(quiet=options.quiet),
        deadline=time.monotonic() + options.timeout if options.timeout else None,
        cancel=options.cancel,
    )
    gate = AuthGate(cfg, login=login, log=log, time_left=call.attempt_timeout)
    try:
        gate.ensure_token()

        label = "Platform API call"
        attempt = 0
        state = CallState.SENDING
        while state is CallState.SENDING:
            attempt += 1
            req = build_request(cfg, method, path, body, options.headers, log=log)
            call.spinner.start(f"{label} ({method} {url_display_path(req.full_url)})")
            resp = _send(call, req)
            state = next_state(attempt, resp.status)
            if state is CallState.AUTH_RETRY:
                call.spinner.stop_hidden()
                gate.refresh()
                log("info", "Retrying the request with the refreshed token")
                label = "Platform API call, retry after login"
                state = CallState.SENDING

        if state is CallState.FAILURE:
            call.spinner.stop(False)
            if resp.status in options.expected_errors:
                log("info", "Platform API call failed with expected error", status=resp.status)
            else:
                log("error", "Platform API call failed", status=resp.status)
            raise classify_error(resp.status, resp.body)

        call.spinner.stop(True)
        return _process_success(method, resp, options)
    finally:
        call.spinner.stop(False)


# ---------------------------------------------------------------------------
# Verbs
# ---------------------------------------------------------------------------


def json_get(path, options=None, **kwargs):
    """GET and decode the JSON response."""
    return http_request("GET", path, None, options, **kwargs)


def json_delete(path, options=None, **kwargs):
    """DELETE; the response body is never decoded."""
    return http_request("DELETE", path, None, options, **kwargs)


def json_post(path, body, options=None, **kwargs):
    """POST *body* as JSON and decode the JSON response."""
    return http_request("POST", path, body, options, **kwargs)


def json_put(path, body, options=None, **kwargs):
    """PUT *body* as JSON and decode the JSON response."""
    return http_request("PUT", path, body, options, **kwargs)


def json_patch(path, body, options=None, **kwargs):
    """PATCH *body* as a JSON merge patch and decode the JSON response."""
    return http_request("PATCH", path, body, options, **kwargs)


def json_request(method, path, body=None, options=None, **kwargs):
    """Like the verbs above, with the HTTP method given by the caller."""
    return http_request(method, path, body, options, **kwargs)


def http_get(path, options=None, **kwargs):
    """GET where the caller supplies Accept (e.g. for archive downloads)."""
    return http_request("GET", path, None, options, **kwargs)


def http_post(path, body, options=None, **kwargs):
    """POST raw *body* bytes; the caller supplies Content-Type."""
    return http_request("POST", path, body, options, **kwargs)
