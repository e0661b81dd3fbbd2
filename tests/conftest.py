"""
Shared test fixtures for platform-cli tests.
Patches the config module so tests never read a real .env or write outside tmp.
"""

import os
import sys

import pytest

# Add project root to path so imports work
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch, tmp_path):
    """Ensure every test starts with a clean config state."""
    from platform_cli import config

    monkeypatch.setattr(config, "ENV_PATH", str(tmp_path / ".env"))
    monkeypatch.setattr(config, "env", {})
    monkeypatch.setattr(config, "URL", "https://platform.test")
    monkeypatch.setattr(config, "TOKEN", "fake-token")
    monkeypatch.setattr(config, "AUTH_METHOD", config.AUTH_METHOD_TOKEN)
    monkeypatch.setattr(config, "CLIENT_ID", "")
    monkeypatch.setattr(config, "CLIENT_SECRET", "")
    monkeypatch.setattr(config, "TENANT_ID", "")
    monkeypatch.setattr(config, "PRINCIPAL_TYPE", "")
    monkeypatch.setattr(config, "PRINCIPAL_ID", "")
    monkeypatch.setattr(config, "HTTP_LOG_ENABLED", False)
    monkeypatch.setattr(config, "CURLIFY", False)


@pytest.fixture
def cfg():
    from platform_cli.config import ConfigContext

    return ConfigContext(url="https://platform.test", token="fake-token", persist=False)
