"""Tests for configuration models."""

import os
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from policy_migrate.models.config import (
    MigrationConfig,
    PolicyKind,
    RetrySettings,
    TenantConfig,
    sanitize_filename,
)


class TestSanitizeFilename:
    """Tests for sanitize_filename."""

    def test_replaces_invalid_characters(self) -> None:
        assert sanitize_filename("A/B:C*D") == "A_B_C_D"

    def test_replaces_full_character_set(self) -> None:
        assert sanitize_filename('a<b>c:d"e/f\\g|h?i*j') == "a_b_c_d_e_f_g_h_i_j"

    def test_keeps_other_characters(self) -> None:
        assert sanitize_filename("Wi-Fi:Profile") == "Wi-Fi_Profile"
        assert sanitize_filename("Baseline (v2) 2024") == "Baseline (v2) 2024"

    def test_empty_name(self) -> None:
        assert sanitize_filename("") == "unnamed"


class TestPolicyKind:
    """Tests for PolicyKind dispatch properties."""

    def test_settings_catalog(self) -> None:
        kind = PolicyKind.SETTINGS_CATALOG

        assert kind.subdir == "SettingsCatalog"
        assert kind.collection_path == "deviceManagement/configurationPolicies"
        assert kind.create_path == "deviceManagement/configurationPolicies"
        assert kind.display_name({"name": "Edge", "displayName": "ignored"}) == "Edge"

    def test_device_configuration(self) -> None:
        kind = PolicyKind.DEVICE_CONFIGURATION

        assert kind.subdir == "DeviceConfiguration"
        assert kind.collection_path == "deviceManagement/deviceConfigurations"
        assert kind.create_path == "deviceManagement/deviceconfigurations"
        assert kind.display_name({"displayName": "OMA Custom"}) == "OMA Custom"

    def test_display_name_missing(self) -> None:
        assert PolicyKind.DEVICE_CONFIGURATION.display_name({}) == ""


class TestRetrySettings:
    """Tests for backoff calculation."""

    def test_exponential_backoff(self) -> None:
        retry = RetrySettings(max_retries=5, backoff_seconds=1.0, max_backoff_seconds=5.0)

        assert retry.delay_for(0) == 1.0
        assert retry.delay_for(1) == 2.0
        assert retry.delay_for(2) == 4.0
        assert retry.delay_for(3) == 5.0  # capped


class TestMigrationConfig:
    """Tests for MigrationConfig."""

    def test_defaults(self) -> None:
        config = MigrationConfig()

        assert config.api_version == "beta"
        assert config.create_if_missing is False
        assert config.continue_on_error is True
        assert config.platform is None

    def test_invalid_platform(self) -> None:
        with pytest.raises(ValueError, match="Unsupported platform"):
            MigrationConfig(platform="linux")

    def test_resource_url(self) -> None:
        config = MigrationConfig(graph_url="https://graph.microsoft.com/")

        url = config.resource_url("/deviceManagement/deviceConfigurations")
        assert url == "https://graph.microsoft.com/beta/deviceManagement/deviceConfigurations"

    def test_save_and_load(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "migration.yaml"
            config = MigrationConfig(
                export_root="/tmp/export",
                create_if_missing=True,
                platform="macOS",
                continue_on_error=False,
                source=TenantConfig("src-tenant", "source"),
                destination=TenantConfig("dst-tenant", "destination"),
                retry=RetrySettings(max_retries=1, backoff_seconds=0.5),
            )
            config.save(config_path)

            loaded = MigrationConfig.load(config_path)

            assert loaded.export_root == "/tmp/export"
            assert loaded.create_if_missing is True
            assert loaded.platform == "macOS"
            assert loaded.continue_on_error is False
            assert loaded.source.tenant_id == "src-tenant"
            assert loaded.destination.tenant_id == "dst-tenant"
            assert loaded.retry.max_retries == 1
            assert loaded.retry.backoff_seconds == 0.5

    def test_load_empty_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "migration.yaml"
            config_path.write_text("")

            with patch.dict(os.environ, {}, clear=True):
                config = MigrationConfig.load(config_path)

            assert config.export_root is None
            assert config.source.tenant_id == ""
            assert config.retry.max_retries == 3

    def test_tenant_id_from_environment(self) -> None:
        env = {"SOURCE_TENANT_ID": "env-src", "DESTINATION_TENANT_ID": "env-dst"}
        with patch.dict(os.environ, env, clear=True):
            config = MigrationConfig.from_dict({"destination": {"tenant_id": "file-dst"}})

        assert config.source.tenant_id == "env-src"
        assert config.destination.tenant_id == "file-dst"
