"""Migrate Intune settings catalog and device configuration policies between tenants."""

__version__ = "0.1.0"
