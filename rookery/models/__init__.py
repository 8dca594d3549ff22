"""Rookery data models — all Pydantic v2, all frozen (immutable)."""

from rookery.models.events import EventSubscription
from rookery.models.extensions import (
    DEFAULT_ENVIRONMENTS,
    EXTENSION_ID_PATTERN,
    EXTENSION_NAME_PATTERN,
    EnvironmentEnablement,
    ExtensionRecord,
    ExtensionType,
    InstalledExtension,
)
from rookery.models.manifest import ExtensionManifest
from rookery.models.reports import FindingCategory, SecurityFinding, ValidationReport
from rookery.models.versioning import VersionTriple

__all__ = [
    # versioning
    "VersionTriple",
    # extensions
    "EXTENSION_ID_PATTERN",
    "EXTENSION_NAME_PATTERN",
    "DEFAULT_ENVIRONMENTS",
    "ExtensionType",
    "EnvironmentEnablement",
    "ExtensionRecord",
    "InstalledExtension",
    # manifest
    "ExtensionManifest",
    # reports
    "FindingCategory",
    "SecurityFinding",
    "ValidationReport",
    # events
    "EventSubscription",
]
