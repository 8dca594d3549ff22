"""Extension manager — facade over discovery, validation and configuration.

Typical host usage::

    settings = RookerySettings(project_root=Path("/srv/app"))
    manager = ExtensionManager(settings)

    for row in manager.list_installed():
        print(row.name, row.version, row.enabled)

    report = manager.enable("audit-log")      # validates first
    manager.disable("payments-legacy")
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from rookery.config import RookerySettings
from rookery.extensions.config_store import ExtensionConfigStore
from rookery.extensions.exceptions import (
    ExtensionError,
    ExtensionNotFoundError,
    ExtensionValidationError,
)
from rookery.extensions.manifest import MANIFEST_FILENAME, load_manifest
from rookery.extensions.validator import ExtensionValidator
from rookery.models.extensions import EXTENSION_ID_PATTERN, InstalledExtension
from rookery.models.reports import ValidationReport

logger = logging.getLogger(__name__)


class ExtensionManager:
    """Install-side operations on the extensions directory.

    Parameters
    ----------
    settings:
        Shared settings; also used to build the default validator and
        store.
    validator:
        Optional pre-built validator.
    store:
        Optional pre-built configuration store.
    """

    def __init__(
        self,
        settings: RookerySettings | None = None,
        validator: ExtensionValidator | None = None,
        store: ExtensionConfigStore | None = None,
    ) -> None:
        self._settings = settings or RookerySettings()
        self._validator = validator or ExtensionValidator(self._settings)
        self._store = store or ExtensionConfigStore(self._settings)
        self._extensions_path = Path(self._settings.resolved_extensions_path)

    @property
    def validator(self) -> ExtensionValidator:
        return self._validator

    @property
    def store(self) -> ExtensionConfigStore:
        return self._store

    # -- Discovery ----------------------------------------------------------

    def discover_extensions(self) -> list[str]:
        """Names of directories under the extensions path holding a manifest."""
        if not self._extensions_path.is_dir():
            return []

        names: list[str] = []
        for directory in sorted(self._extensions_path.iterdir()):
            if not directory.is_dir() or not (directory / MANIFEST_FILENAME).is_file():
                continue
            if not EXTENSION_ID_PATTERN.match(directory.name):
                logger.debug("Ignoring extension directory with invalid name: %s", directory)
                continue
            names.append(directory.name)
        return names

    def get_extension_path(self, name: str) -> Path | None:
        """Directory for *name*, or ``None`` if absent or not a valid name."""
        if not EXTENSION_ID_PATTERN.match(name):
            return None
        path = self._extensions_path / name
        return path if path.is_dir() else None

    def get_extension_metadata(self, name: str) -> dict[str, Any] | None:
        """The parsed manifest for *name*, or ``None``."""
        path = self.get_extension_path(name)
        if path is None:
            return None
        return load_manifest(path)

    def is_installed(self, name: str) -> bool:
        path = self.get_extension_path(name)
        return path is not None and (path / MANIFEST_FILENAME).is_file()

    def is_enabled(self, name: str) -> bool:
        return self._store.is_enabled(name)

    def list_installed(self) -> list[InstalledExtension]:
        """One row per discovered extension with its version and state."""
        rows: list[InstalledExtension] = []
        for name in self.discover_extensions():
            manifest = self.get_extension_metadata(name) or {}
            rows.append(InstalledExtension(
                name=name,
                version=str(manifest.get("version") or "1.0.0"),
                enabled=self._store.is_enabled(name),
                path=self._extensions_path / name,
            ))
        return rows

    def list_enabled(self) -> list[str]:
        return self._store.get_enabled_extensions()

    # -- Validation ---------------------------------------------------------

    def validate(self, name: str) -> ValidationReport:
        """Validate the installed extension *name*.

        An unknown name yields an invalid report rather than an exception.
        """
        path = self.get_extension_path(name)
        if path is None:
            return ValidationReport(
                path=self._extensions_path / name,
                valid=False,
                issues=["Extension not found"],
            )
        return self._validator.validate_extension(path)

    def validate_dependencies(self, name: str) -> bool:
        """Whether the ``engines`` constraints of *name* hold on this host."""
        manifest = self.get_extension_metadata(name)
        if not manifest:
            return True
        return self._validator.check_compatibility(manifest)

    # -- Lifecycle ----------------------------------------------------------

    def enable(self, name: str) -> ValidationReport:
        """Validate *name* and mark it enabled.

        Returns
        -------
        ValidationReport
            The passing report (it may still carry warnings).

        Raises
        ------
        ExtensionNotFoundError
            If no extension directory exists for *name*.
        ExtensionValidationError
            If validation fails or the ``engines`` constraints are not met.
        ExtensionConfigError
            If the configuration could not be saved.
        """
        path = self.get_extension_path(name)
        if path is None:
            raise ExtensionNotFoundError(f"Extension not found: {name}")

        report = self._validator.validate_extension(path)
        if not report.valid:
            raise ExtensionValidationError(f"Extension validation failed: {name}", report)

        if not self.validate_dependencies(name):
            raise ExtensionValidationError(f"Dependency requirements not met: {name}", report)

        self._store.enable_extension(name)
        logger.info("Successfully enabled extension: %s", name)
        return report

    def disable(self, name: str) -> None:
        """Mark *name* disabled.  Unknown names are a no-op."""
        self._store.disable_extension(name)
        logger.info("Successfully disabled extension: %s", name)

    def enable_multiple(self, names: Iterable[str]) -> dict[str, bool]:
        """Enable each name independently; map name to success."""
        results: dict[str, bool] = {}
        for name in names:
            try:
                self.enable(name)
            except ExtensionError:
                logger.exception("Failed to enable extension %s.", name)
                results[name] = False
            else:
                results[name] = True
        return results

    def disable_multiple(self, names: Iterable[str]) -> dict[str, bool]:
        """Disable each name independently; map name to success."""
        results: dict[str, bool] = {}
        for name in names:
            try:
                self.disable(name)
            except ExtensionError:
                logger.exception("Failed to disable extension %s.", name)
                results[name] = False
            else:
                results[name] = True
        return results
