"""Data models for the migration tool."""

from .config import (
    SUPPORTED_PLATFORMS,
    MigrationConfig,
    PolicyKind,
    RetrySettings,
    TenantConfig,
    sanitize_filename,
)

__all__ = [
    "SUPPORTED_PLATFORMS",
    "MigrationConfig",
    "PolicyKind",
    "RetrySettings",
    "TenantConfig",
    "sanitize_filename",
]
