"""
Tests for agent configuration loading.
"""
import pytest

from amaise_agent import __version__
from amaise_agent.config import (
    DEFAULT_HEARTBEAT_INTERVAL_MS,
    Settings,
    check_required_settings,
    get_settings,
)


class TestRequiredSettings:
    """Missing credentials are a fatal configuration error."""

    def test_missing_required_env_raises(self):
        with pytest.raises(ValueError, match="Missing required environment variable: LEGALI_AUTH_URL"):
            check_required_settings(Settings())

    def test_error_message_mentions_env_example(self):
        with pytest.raises(ValueError, match=r"\.env\.example"):
            check_required_settings(Settings())

    def test_reports_first_missing_variable(self, required_env, monkeypatch):
        monkeypatch.delenv("LEGALI_CLIENT_SECRET")
        with pytest.raises(ValueError, match="LEGALI_CLIENT_SECRET"):
            check_required_settings(Settings())

    def test_complete_settings_pass(self, required_env):
        check_required_settings(Settings())

    def test_get_settings_validates(self):
        get_settings.cache_clear()
        try:
            with pytest.raises(ValueError):
                get_settings()
        finally:
            get_settings.cache_clear()

    def test_settings_read_from_env_file(self, tmp_path):
        (tmp_path / ".env").write_text(
            "LEGALI_AUTH_URL=https://auth.example.com\n"
            "LEGALI_API_URL=https://api.example.com/agents/v1\n"
            "LEGALI_CLIENT_ID=file-client\n"
            "LEGALI_CLIENT_SECRET=file-secret\n"
        )

        settings = Settings()

        assert settings.client_id == "file-client"
        assert settings.api_url == "https://api.example.com"


class TestApiUrl:
    """Tests for /agents/v1 suffix stripping."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("https://api.example.com/agents/v1", "https://api.example.com"),
            ("https://api.example.com/agents/v1/", "https://api.example.com"),
            ("https://api.example.com", "https://api.example.com"),
            ("https://api.example.com/agents/v1/extra", "https://api.example.com/agents/v1/extra"),
        ],
    )
    def test_suffix_stripping(self, required_env, monkeypatch, raw, expected):
        monkeypatch.setenv("LEGALI_API_URL", raw)
        assert Settings().api_url == expected


class TestTenantId:
    """Tests for the tenant fallback chain."""

    def test_uses_tenant_id_when_set(self, required_env, monkeypatch):
        monkeypatch.setenv("TENANT_ID", "tenant-direct")
        assert Settings().tenant_id == "tenant-direct"

    def test_falls_back_to_legali_tenants_var(self, required_env, monkeypatch):
        monkeypatch.setenv("LEGALI_TENANTS_DEV", "tenant-fallback")
        assert Settings().tenant_id == "tenant-fallback"

    def test_prefers_tenant_id(self, required_env, monkeypatch):
        monkeypatch.setenv("TENANT_ID", "preferred")
        monkeypatch.setenv("LEGALI_TENANTS_DEV", "fallback")
        assert Settings().tenant_id == "preferred"

    def test_falls_back_to_legali_tenants_var_in_dotenv(self, tmp_path):
        (tmp_path / ".env").write_text(
            "LEGALI_AUTH_URL=https://auth.example.com\n"
            "LEGALI_API_URL=https://api.example.com\n"
            "LEGALI_CLIENT_ID=client-id\n"
            "LEGALI_CLIENT_SECRET=client-secret\n"
            "LEGALI_TENANTS_ACME=tenant-acme\n"
        )
        assert Settings().tenant_id == "tenant-acme"

    def test_environment_tenant_var_wins_over_dotenv(self, required_env, monkeypatch, tmp_path):
        (tmp_path / ".env").write_text("LEGALI_TENANTS_ACME=from-file\n")
        monkeypatch.setenv("LEGALI_TENANTS_DEV", "from-env")
        assert Settings().tenant_id == "from-env"

    def test_none_when_unset(self, required_env):
        assert Settings().tenant_id is None


class TestHeartbeatInterval:
    """Tests for the heartbeat interval default and override."""

    def test_override_from_env(self, required_env, monkeypatch):
        monkeypatch.setenv("HEARTBEAT_INTERVAL_MS", "5000")
        settings = Settings()
        assert settings.heartbeat_interval_ms == 5000
        assert settings.heartbeat_interval == 5.0

    def test_defaults_to_ten_minutes(self, required_env):
        settings = Settings()
        assert settings.heartbeat_interval_ms == DEFAULT_HEARTBEAT_INTERVAL_MS == 600_000
        assert settings.heartbeat_interval == 600.0

    def test_zero_falls_back_to_default(self, required_env, monkeypatch):
        monkeypatch.setenv("HEARTBEAT_INTERVAL_MS", "0")
        assert Settings().heartbeat_interval_ms == 600_000


class TestSdkVersion:
    def test_reports_package_version(self, required_env):
        settings = Settings()
        assert settings.sdk_version == __version__
        assert settings.sdk_version.count(".") >= 2
