"""Manifest schema — the admission-blocking fields of ``manifest.json``.

Only the identity fields are modelled.  Every other key is kept as an
extra so advisory checks and config synthesis can read it from the same
object.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rookery.models.extensions import EXTENSION_ID_PATTERN, EXTENSION_NAME_PATTERN

# MAJOR.MINOR.PATCH, optionally followed by a pre-release or build suffix.
MANIFEST_VERSION_PATTERN = r"^\d+\.\d+\.\d+"


class ExtensionManifest(BaseModel):
    """Schema for an extension's ``manifest.json``.

    Examples
    --------
    >>> manifest = ExtensionManifest.model_validate({
    ...     "manifestVersion": "1.0",
    ...     "id": "audit-log",
    ...     "name": "AuditLog",
    ...     "version": "1.2.0",
    ...     "main": "audit_log.py",
    ...     "license": "MIT",
    ... })
    >>> manifest.manifest_version, manifest.model_extra["license"]
    ('1.0', 'MIT')
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    manifest_version: Literal["1.0", "2.0"] = Field(alias="manifestVersion")
    id: str = Field(min_length=1, pattern=EXTENSION_ID_PATTERN.pattern)
    name: str = Field(min_length=1, pattern=EXTENSION_NAME_PATTERN.pattern)
    version: str = Field(min_length=1, pattern=MANIFEST_VERSION_PATTERN)
    main: str = Field(min_length=1)

    @field_validator("manifest_version", mode="before")
    @classmethod
    def _numeric_manifest_version(cls, value: Any) -> Any:
        # Hand-written manifests often carry 1.0 or 2.0 unquoted.
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return f"{float(value):.1f}"
        return value
