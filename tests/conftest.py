"""
Pytest configuration for amaise agent tests.
"""
import pytest

AGENT_ENV_VARS = [
    "LEGALI_AUTH_URL",
    "LEGALI_API_URL",
    "LEGALI_CLIENT_ID",
    "LEGALI_CLIENT_SECRET",
    "TENANT_ID",
    "HEARTBEAT_INTERVAL_MS",
    "HANDLER_TIMEOUT_S",
    "HTTP_TIMEOUT_S",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Keep host credentials and any local .env file out of the tests."""
    import os

    for name in AGENT_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    for name in list(os.environ):
        if name.startswith("LEGALI_TENANTS_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def required_env(monkeypatch):
    """Set the four required credentials to valid defaults."""
    monkeypatch.setenv("LEGALI_AUTH_URL", "https://auth.example.com")
    monkeypatch.setenv("LEGALI_API_URL", "https://api.example.com")
    monkeypatch.setenv("LEGALI_CLIENT_ID", "test-client-id")
    monkeypatch.setenv("LEGALI_CLIENT_SECRET", "test-client-secret")
