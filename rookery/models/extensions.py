"""Persisted extension models — records and per-environment enablement.

These models describe the shape of entries inside ``extensions.json``.
The store keeps the document itself as plain JSON (so hand edits and
unknown keys survive a round-trip) and uses the models to synthesize new
entries and to type-check existing ones.
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Admitted extension identifiers: lowercase slug, no leading digit or
# trailing dash.
EXTENSION_ID_PATTERN = re.compile(r"^[a-z][a-z0-9-]*[a-z0-9]$")

# Manifest ``name``: the extension's class-style name.
EXTENSION_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9]*$")


class ExtensionType(str, Enum):
    """Whether an extension ships with the host or is installed by an operator."""

    CORE = "core"
    OPTIONAL = "optional"


class EnvironmentEnablement(BaseModel):
    """Extensions active in one deployment environment.

    ``enabled_extensions`` is ordered and duplicate-free.  When an
    environment has this list, an extension is only effectively enabled
    if its record flag is set *and* its name is listed here.
    """

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    enabled_extensions: list[str] = Field(
        default_factory=list, alias="enabledExtensions"
    )
    autoload_dev: bool = False
    debug_mode: bool = False


# Environments created the first time an extension is enabled in a
# document that has no ``environments`` section.
DEFAULT_ENVIRONMENTS: dict[str, EnvironmentEnablement] = {
    "development": EnvironmentEnablement(autoload_dev=True, debug_mode=True),
    "production": EnvironmentEnablement(autoload_dev=False, debug_mode=False),
}


class ExtensionRecord(BaseModel):
    """Persisted metadata for one extension, keyed by name in the document.

    Created from the extension's manifest on first enable, then mutated by
    enable/disable and settings updates.  ``settings`` is opaque to
    rookery and is preserved across re-enables.

    Examples
    --------
    >>> record = ExtensionRecord(version="1.2.0", enabled=True)
    >>> record.type
    <ExtensionType.OPTIONAL: 'optional'>
    >>> record.model_dump(mode="json", by_alias=True)["installPath"]
    ''
    """

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    version: str = "1.0.0"
    enabled: bool = False
    type: ExtensionType = ExtensionType.OPTIONAL
    description: str = ""
    author: str = "Unknown"
    license: str = "MIT"
    install_path: str = Field(default="", alias="installPath")
    autoload: dict[str, str] = Field(default_factory=dict)
    dependencies: dict[str, Any] = Field(default_factory=dict)
    provides: dict[str, Any] = Field(default_factory=dict)
    config: dict[str, Any] = Field(default_factory=dict)
    settings: dict[str, Any] = Field(default_factory=dict)

    def to_document(self) -> dict[str, Any]:
        """Return the JSON-ready form stored under ``extensions.<name>``."""
        return self.model_dump(mode="json", by_alias=True)


class InstalledExtension(BaseModel):
    """A discovered extension directory and its current state."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    enabled: bool
    path: Path
