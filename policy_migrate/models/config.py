"""Configuration and data models for the policy migration tool."""

import os
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import yaml


SUPPORTED_PLATFORMS = ("windows10", "macOS")


def sanitize_filename(name: str) -> str:
    """Sanitize a display name for use in a filename.

    Replaces characters that are invalid on common filesystems with underscores.
    """
    sanitized = re.sub(r'[<>:"/\\|?*]', '_', name)
    return sanitized or "unnamed"


class PolicyKind(Enum):
    """The two kinds of policy this tool migrates."""

    SETTINGS_CATALOG = "SettingsCatalog"
    DEVICE_CONFIGURATION = "DeviceConfiguration"

    @property
    def subdir(self) -> str:
        """Staging subdirectory name under the export root."""
        return self.value

    @property
    def collection_path(self) -> str:
        """Graph resource path used to list policies of this kind."""
        if self is PolicyKind.SETTINGS_CATALOG:
            return "deviceManagement/configurationPolicies"
        return "deviceManagement/deviceConfigurations"

    @property
    def create_path(self) -> str:
        """Graph resource path that creation requests are POSTed to."""
        if self is PolicyKind.SETTINGS_CATALOG:
            return "deviceManagement/configurationPolicies"
        return "deviceManagement/deviceconfigurations"

    @property
    def name_field(self) -> str:
        """Field holding the policy's display name."""
        if self is PolicyKind.SETTINGS_CATALOG:
            return "name"
        return "displayName"

    def display_name(self, record: dict[str, Any]) -> str:
        """Get the display name of a record of this kind."""
        return str(record.get(self.name_field) or "")


@dataclass
class TenantConfig:
    """A tenant taking part in the migration."""

    tenant_id: str
    label: str  # "source" or "destination"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None, label: str) -> "TenantConfig":
        """Create from dictionary, falling back to <LABEL>_TENANT_ID."""
        data = data or {}
        tenant_id = data.get("tenant_id") or os.getenv(f"{label.upper()}_TENANT_ID", "")
        return cls(tenant_id=tenant_id, label=label)


@dataclass
class RetrySettings:
    """Retry behavior for transient Graph failures (429 and 5xx)."""

    max_retries: int = 3
    backoff_seconds: float = 2.0
    max_backoff_seconds: float = 60.0

    def delay_for(self, attempt: int) -> float:
        """Exponential backoff delay for a zero-based retry attempt."""
        return min(self.backoff_seconds * (2 ** attempt), self.max_backoff_seconds)


@dataclass
class MigrationConfig:
    """Run context threaded through every pipeline component."""

    export_root: str | None = None
    create_if_missing: bool = False
    api_version: str = "beta"
    graph_url: str = "https://graph.microsoft.com"
    # Optional settings catalog platform filter (windows10 or macOS)
    platform: str | None = None
    continue_on_error: bool = True
    source: TenantConfig = field(default_factory=lambda: TenantConfig("", "source"))
    destination: TenantConfig = field(default_factory=lambda: TenantConfig("", "destination"))
    retry: RetrySettings = field(default_factory=RetrySettings)

    def __post_init__(self) -> None:
        if self.platform is not None and self.platform not in SUPPORTED_PLATFORMS:
            raise ValueError(
                f"Unsupported platform '{self.platform}'. "
                f"Expected one of: {', '.join(SUPPORTED_PLATFORMS)}"
            )

    def resource_url(self, path: str) -> str:
        """Build a full Graph URL for a resource path."""
        return f"{self.graph_url.rstrip('/')}/{self.api_version}/{path.lstrip('/')}"

    @classmethod
    def load(cls, config_path: Path) -> "MigrationConfig":
        """Load configuration from YAML file."""
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MigrationConfig":
        """Create from dictionary. Missing keys take their defaults."""
        retry_data = data.get("retry") or {}
        retry = RetrySettings(
            max_retries=retry_data.get("max_retries", 3),
            backoff_seconds=retry_data.get("backoff_seconds", 2.0),
            max_backoff_seconds=retry_data.get("max_backoff_seconds", 60.0),
        )

        return cls(
            export_root=data.get("export_root"),
            create_if_missing=data.get("create_if_missing", False),
            api_version=data.get("api_version", "beta"),
            graph_url=data.get("graph_url", "https://graph.microsoft.com"),
            platform=data.get("platform"),
            continue_on_error=data.get("continue_on_error", True),
            source=TenantConfig.from_dict(data.get("source"), "source"),
            destination=TenantConfig.from_dict(data.get("destination"), "destination"),
            retry=retry,
        )

    def save(self, config_path: Path) -> None:
        """Save configuration to YAML file."""
        data: dict[str, Any] = {
            "export_root": self.export_root,
            "create_if_missing": self.create_if_missing,
            "api_version": self.api_version,
            "graph_url": self.graph_url,
            "platform": self.platform,
            "continue_on_error": self.continue_on_error,
            "source": {"tenant_id": self.source.tenant_id},
            "destination": {"tenant_id": self.destination.tenant_id},
            "retry": {
                "max_retries": self.retry.max_retries,
                "backoff_seconds": self.retry.backoff_seconds,
                "max_backoff_seconds": self.retry.max_backoff_seconds,
            },
        }

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
