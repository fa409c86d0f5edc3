"""Read-to-create transforms for settings catalog and device configuration policies.

Graph returns policies in a tenant-specific "read" shape. These transforms turn
a raw record into a body the creation endpoint of another tenant accepts.
"""

from typing import Any, Protocol

from ..models.config import PolicyKind
from .errors import ValidationError


# Server-assigned fields never sent in a create request
READ_ONLY_FIELDS = frozenset({
    "id",
    "createdDateTime",
    "lastModifiedDateTime",
    "version",
    "supportsScopeTags",
    "secretReferenceValueId",
})

OMA_SETTING_FIELDS = ("@odata.type", "displayName", "description", "omaUri")


class PolicySource(Protocol):
    """The reads a transform may need from the source tenant."""

    def get_policy_settings(self, policy_id: str) -> list[dict[str, Any]]: ...

    def get_oma_setting_plaintext(self, configuration_id: str, secret_reference_id: str) -> str: ...


def require(record: dict[str, Any], key: str, what: str) -> Any:
    """Get a required field, raising ValidationError when it is missing or empty."""
    value = record.get(key)
    if value is None or value == "":
        raise ValidationError(f"{what} is missing required field '{key}'")
    return value


def clean_for_creation(data: dict[str, Any]) -> dict[str, Any]:
    """Remove read-only fields that shouldn't be sent in create requests."""
    return {k: v for k, v in data.items() if k not in READ_ONLY_FIELDS}


class PolicyTransform:
    """Builds creation-ready policy bodies from raw Graph records."""

    def __init__(self, source: PolicySource) -> None:
        """Initialize transform.

        Args:
            source: Connected client for the source tenant
        """
        self.source = source

    def to_creatable(self, kind: PolicyKind, raw: dict[str, Any]) -> dict[str, Any]:
        """Transform a raw policy into its creation-ready form.

        Args:
            kind: Policy kind of the record
            raw: Policy as returned by the list endpoint

        Returns:
            Creation-ready policy body

        Raises:
            TransportError: If a follow-up read (settings, secret) fails
            ValidationError: If a field needed for the transform is missing
        """
        if kind is PolicyKind.SETTINGS_CATALOG:
            return self._settings_catalog(raw)
        return self._device_configuration(raw)

    def _settings_catalog(self, raw: dict[str, Any]) -> dict[str, Any]:
        settings = self.source.get_policy_settings(require(raw, "id", "Policy"))

        body: dict[str, Any] = {
            "name": raw.get("name"),
            "description": raw.get("description"),
            "platforms": raw.get("platforms"),
            "technologies": raw.get("technologies"),
        }

        template_reference = raw.get("templateReference")
        if isinstance(template_reference, dict) and template_reference.get("templateId"):
            body["templateReference"] = {"templateId": template_reference["templateId"]}

        body["settings"] = [
            {"settingInstance": require(setting, "settingInstance", "Setting")}
            for setting in settings
        ]
        return body

    def _device_configuration(self, raw: dict[str, Any]) -> dict[str, Any]:
        body = clean_for_creation(raw)

        oma_settings = raw.get("omaSettings")
        if not oma_settings:
            return body

        configuration_id = require(raw, "id", "Device configuration")
        body["omaSettings"] = [
            self._rebuild_oma_setting(configuration_id, setting)
            for setting in oma_settings
        ]
        return body

    def _rebuild_oma_setting(self, configuration_id: str, setting: dict[str, Any]) -> dict[str, Any]:
        """Rebuild one OMA setting, resolving its plaintext if encrypted."""
        rebuilt = {name: setting.get(name) for name in OMA_SETTING_FIELDS}

        if setting.get("isEncrypted"):
            rebuilt["value"] = self.source.get_oma_setting_plaintext(
                configuration_id,
                require(setting, "secretReferenceValueId", "Encrypted OMA setting"),
            )
        else:
            rebuilt["value"] = setting.get("value")
        return rebuilt
