"""
Credential acquisition for platform API calls.

``AuthGate`` makes sure a token exists before the first attempt and performs
the one-shot refresh on the 403 retry path. The actual login procedure is
pluggable; ``login`` dispatches on the profile's auth method.

Concurrent calls that all see an expired token each log in on their own.
There is no single-flight guard across calls.
"""

import base64
import json
import sys
import urllib.error
import urllib.parse
import urllib.request

from platform_cli import config
from platform_cli.exceptions import LoginError
from platform_cli.log import null_log
from platform_cli.request import join_url

# ---------------------------------------------------------------------------
# Login procedures (mutate cfg.token in place)
# ---------------------------------------------------------------------------


def _persist_token(cfg, token):
    cfg.token = token
    if not cfg.persist:
        return
    try:
        config.save_env_value("PLATFORM_TOKEN", token)
    except OSError as e:
        raise LoginError(f"[ERROR] Failed to save the token to {config.ENV_PATH}: {e}") from e


def _login_service_principal(cfg, timeout=None):
    """Exchange client credentials for an access token."""
    if not (cfg.client_id and cfg.client_secret and cfg.tenant_id):
        raise LoginError(
            "[SETUP_NEEDED] Service principal login needs PLATFORM_CLIENT_ID, "
            "PLATFORM_CLIENT_SECRET and PLATFORM_TENANT_ID in .env."
        )
    url = join_url(cfg.url, f"/auth/{cfg.tenant_id}/default/oauth2/token")
    body = urllib.parse.urlencode({"grant_type": "client_credentials"}).encode("utf-8")
    basic = base64.b64encode(f"{cfg.client_id}:{cfg.client_secret}".encode()).decode("ascii")
    req = urllib.request.Request(url, data=body, method="POST")
    req.add_header("Content-Type", "application/x-www-form-urlencoded")
    req.add_header("Accept", "application/json")
    req.add_header("Authorization", f"Basic {basic}")
    try:
        with urllib.request.urlopen(req, timeout=timeout or cfg.timeout) as resp:
            payload = json.loads(resp.read().decode("utf-8"))
    except urllib.error.HTTPError as e:
        raise LoginError(f"[TOKEN_EXPIRED] Service principal login rejected: HTTP {e.code}") from e
    except (urllib.error.URLError, TimeoutError) as e:
        raise LoginError(f"[ERROR] Service principal login failed: {e}") from e
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise LoginError("[ERROR] Service principal login returned invalid JSON.") from e
    token = payload.get("access_token") if isinstance(payload, dict) else None
    if not token:
        raise LoginError("[ERROR] Service principal login response has no access_token.")
    _persist_token(cfg, token)


def _login_token(cfg, timeout=None):
    """Ask the operator for a fresh token. Only possible on a terminal."""
    if not sys.stdin.isatty():
        raise LoginError(
            "[TOKEN_EXPIRED] The platform token is missing or expired. "
            "Set PLATFORM_TOKEN in .env or run: platform-cli login"
        )
    token = input("Paste a platform API token: ").strip().strip('"').strip("'")
    if token.lower().startswith("bearer "):
        token = token[7:].strip()
    if not token:
        raise LoginError("[ERROR] Token cannot be empty.")
    _persist_token(cfg, token)


def _login_local(cfg, timeout=None):
    """Local stacks trust the appd-* identity headers; nothing to fetch."""


_LOGIN_BY_METHOD = {
    config.AUTH_METHOD_SERVICE_PRINCIPAL: _login_service_principal,
    config.AUTH_METHOD_TOKEN: _login_token,
    config.AUTH_METHOD_LOCAL: _login_local,
}


def login(cfg, timeout=None):
    """Obtain a token for *cfg* according to its auth method.

    *timeout* caps any network exchange; it defaults to ``cfg.timeout``.
    """
    procedure = _LOGIN_BY_METHOD.get(cfg.auth_method)
    if procedure is None:
        raise LoginError(
            f"[SETUP_NEEDED] Unsupported auth method {cfg.auth_method!r}. "
            f"Valid: {', '.join(sorted(config.VALID_AUTH_METHODS))}"
        )
    procedure(cfg, timeout)


# ---------------------------------------------------------------------------
# Gate
# ---------------------------------------------------------------------------


class AuthGate:
    """Token checks around a single API call.

    *time_left* returns the seconds remaining for the call; a login never
    gets more than that, and none is attempted once it reaches zero.
    """

    def __init__(self, cfg, login=login, log=null_log, time_left=None):
        self.cfg = cfg
        self._login = login
        self._log = log
        self._time_left = time_left

    def _run_login(self):
        timeout = self.cfg.timeout
        if self._time_left is not None:
            timeout = self._time_left()
            if timeout <= 0:
                raise LoginError("[ERROR] Login skipped: the call deadline has passed")
        self._login(self.cfg, timeout=timeout)

    def ensure_token(self):
        if self.cfg.token:
            return
        self._log("info", "No auth token available, trying to log in")
        self._run_login()

    def refresh(self):
        self._log("warn", "Current token is no longer valid; trying to refresh")
        try:
            self._run_login()
        except LoginError as e:
            raise LoginError(f"failed to login: {e}") from e
