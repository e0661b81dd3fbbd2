"""
platform-cli shared configuration, constants, and the per-profile context.
Standalone module — no imports from other project files.
"""

import os
import tempfile
from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# .env path and helpers
# ---------------------------------------------------------------------------

_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))
_PROJECT_ROOT = os.path.dirname(_PACKAGE_DIR)

ENV_PATH = os.environ.get("PLATFORM_ENV_FILE") or os.path.join(_PROJECT_ROOT, ".env")


def load_env():
    env = {}
    if os.path.exists(ENV_PATH):
        with open(ENV_PATH) as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#") and "=" in line:
                    key, val = line.split("=", 1)
                    env[key.strip()] = val.strip()
    return env


def save_env_value(key, value):
    """Update or add a key in the .env file (atomic write-then-rename)."""
    lines = []
    found = False
    if os.path.exists(ENV_PATH):
        with open(ENV_PATH) as f:
            lines = f.readlines()
    for i, line in enumerate(lines):
        if line.strip().startswith(f"{key}="):
            lines[i] = f"{key}={value}\n"
            found = True
            break
    if not found:
        lines.append(f"{key}={value}\n")
    env_dir = os.path.dirname(ENV_PATH) or "."
    fd, tmp_path = tempfile.mkstemp(dir=env_dir, prefix=".env_tmp_")
    try:
        with os.fdopen(fd, "w") as f:
            f.writelines(lines)
        os.replace(tmp_path, ENV_PATH)
    except Exception:
        try:
            os.remove(tmp_path)
        except OSError:
            pass
        raise
    # Owner-only on Unix/Mac. No-op on Windows.
    try:
        os.chmod(ENV_PATH, 0o600)
    except (OSError, NotImplementedError):
        pass


def _env_bool(key, default=False):
    """Parse common boolean env formats."""
    raw = env.get(key)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(key, default):
    """Parse float env values with fallback."""
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

VERSION = "0.1.0"
CONTRACT_SCHEMA_VERSION = "1.0"

AUTH_METHOD_TOKEN = "token"
AUTH_METHOD_SERVICE_PRINCIPAL = "service-principal"
AUTH_METHOD_LOCAL = "local"
VALID_AUTH_METHODS = {AUTH_METHOD_TOKEN, AUTH_METHOD_SERVICE_PRINCIPAL, AUTH_METHOD_LOCAL}

DEFAULT_URL = "https://localhost"

# ---------------------------------------------------------------------------
# Module-level state (loaded from .env)
# ---------------------------------------------------------------------------

env = load_env()

URL = env.get("PLATFORM_URL", DEFAULT_URL)
TOKEN = env.get("PLATFORM_TOKEN", "")
AUTH_METHOD = env.get("PLATFORM_AUTH_METHOD", AUTH_METHOD_TOKEN)
CLIENT_ID = env.get("PLATFORM_CLIENT_ID", "")
CLIENT_SECRET = env.get("PLATFORM_CLIENT_SECRET", "")
TENANT_ID = env.get("PLATFORM_TENANT_ID", "")
PRINCIPAL_TYPE = env.get("PLATFORM_PRINCIPAL_TYPE", "")
PRINCIPAL_ID = env.get("PLATFORM_PRINCIPAL_ID", "")
HTTP_TIMEOUT_SECONDS = _env_float("PLATFORM_HTTP_TIMEOUT_SECONDS", 60.0)
HTTP_LOG_ENABLED = _env_bool("PLATFORM_HTTP_LOG", False)
CURLIFY = _env_bool("PLATFORM_CURL", False)

# ---------------------------------------------------------------------------
# Per-profile context passed explicitly into each API call
# ---------------------------------------------------------------------------


@dataclass
class LocalAuthOptions:
    """Identity asserted to a locally running platform stack."""

    principal_type: str = ""
    principal_id: str = ""
    tenant_id: str = ""


@dataclass
class ConfigContext:
    """Resolved access profile. ``token`` is overwritten by login."""

    url: str = DEFAULT_URL
    token: str = ""
    auth_method: str = AUTH_METHOD_TOKEN
    client_id: str = ""
    client_secret: str = ""
    tenant_id: str = ""
    local_auth: LocalAuthOptions = field(default_factory=LocalAuthOptions)
    timeout: float = 60.0
    curlify: bool = False
    persist: bool = True


def load_context():
    """Snapshot the module-level settings into a fresh ConfigContext."""
    return ConfigContext(
        url=URL,
        token=TOKEN,
        auth_method=AUTH_METHOD,
        client_id=CLIENT_ID,
        client_secret=CLIENT_SECRET,
        tenant_id=TENANT_ID,
        local_auth=LocalAuthOptions(
            principal_type=PRINCIPAL_TYPE,
            principal_id=PRINCIPAL_ID,
            tenant_id=TENANT_ID,
        ),
        timeout=max(1.0, HTTP_TIMEOUT_SECONDS),
        curlify=CURLIFY,
    )
