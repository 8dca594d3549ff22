"""Extension configuration store — the persisted ``extensions.json`` document.

The document is kept as plain JSON so that hand edits and unknown keys
survive a load/save round-trip::

    {
      "version": "1.0",
      "last_updated": "2026-01-01 00:00:00",
      "extensions": {"audit-log": {"enabled": true, "settings": {}, ...}},
      "environments": {"production": {"enabledExtensions": ["audit-log"], ...}},
      "settings": {"auto_update": false, "check_updates": true, "registry_url": "..."}
    }

Reads are served from an in-memory cache that is refreshed whenever the
file's modification time changes.  Writes take an exclusive advisory lock
on a sidecar ``.lock`` file, write a temporary file beside the target and
rename it into place, so readers never observe a partial document.
"""

from __future__ import annotations

import copy
import fcntl
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from rookery.config import RookerySettings
from rookery.extensions.exceptions import ExtensionConfigError
from rookery.extensions.manifest import author_name, load_manifest
from rookery.models.extensions import (
    DEFAULT_ENVIRONMENTS,
    ExtensionRecord,
    ExtensionType,
)

logger = logging.getLogger(__name__)

CONFIG_FORMAT_VERSION = "1.0"
DEFAULT_CATEGORIES: tuple[str, ...] = ("custom",)
DEFAULT_RUNTIME_CONSTRAINT = ">=3.10"


class ExtensionConfigStore:
    """Owns the extension configuration document and its cache.

    Parameters
    ----------
    settings:
        Supplies the document location, the extensions directory used to
        read manifests, the active environment, and registry defaults.

    Examples
    --------
    >>> store = ExtensionConfigStore(RookerySettings(project_root=Path("/tmp/app")))
    >>> store.config_path
    PosixPath('/tmp/app/extensions/extensions.json')
    """

    def __init__(self, settings: RookerySettings | None = None) -> None:
        self._settings = settings or RookerySettings()
        self._config_path = Path(self._settings.resolved_config_path)
        self._extensions_path = Path(self._settings.resolved_extensions_path)
        self._cache: dict[str, Any] | None = None
        self._cache_mtime: int | None = None

    # -- Location -----------------------------------------------------------

    @property
    def config_path(self) -> Path:
        return self._config_path

    def set_config_path(self, path: Path) -> None:
        """Point the store at another document and drop the cache."""
        self._config_path = Path(path)
        self.clear_cache()

    def clear_cache(self) -> None:
        self._cache = None
        self._cache_mtime = None
        logger.debug("Configuration cache cleared.")

    # -- Load / save --------------------------------------------------------

    def get_config(self) -> dict[str, Any]:
        """Return a deep copy of the current document.

        The file is re-read when nothing is cached or when its mtime no
        longer matches the one recorded at the last load/save.  A missing
        file is created with the default document.
        """
        if self._cache is None or self._current_mtime() != self._cache_mtime:
            self._load()
        return copy.deepcopy(self._cache)

    def save_config(self, config: dict[str, Any]) -> bool:
        """Persist *config* atomically.  Returns ``False`` on any failure."""
        try:
            payload = json.dumps(config, indent=2, ensure_ascii=False)
        except (TypeError, ValueError):
            logger.exception("Configuration is not JSON-serializable; not saving.")
            return False

        path = self._config_path
        lock_path = path.with_name(path.name + ".lock")
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(lock_path, "a", encoding="utf-8") as lock_fh:
                fcntl.flock(lock_fh.fileno(), fcntl.LOCK_EX)
                try:
                    with open(tmp_path, "w", encoding="utf-8") as fh:
                        fh.write(payload)
                        fh.write("\n")
                        fh.flush()
                        os.fsync(fh.fileno())
                    os.replace(tmp_path, path)
                finally:
                    fcntl.flock(lock_fh.fileno(), fcntl.LOCK_UN)
            mtime = path.stat().st_mtime_ns
        except OSError:
            logger.exception("Failed to write configuration to %s.", path)
            if tmp_path.exists():
                tmp_path.unlink()
            return False

        self._cache = copy.deepcopy(config)
        self._cache_mtime = mtime
        logger.debug("Configuration saved to %s.", path)
        return True

    def _current_mtime(self) -> int | None:
        try:
            return self._config_path.stat().st_mtime_ns
        except OSError:
            return None

    def _load(self) -> None:
        path = self._config_path
        if not path.exists():
            default = self._default_config()
            if self.save_config(default):
                logger.debug("Created default configuration file: %s", path)
            else:
                self._cache = default
                self._cache_mtime = None
            return

        mtime = self._current_mtime()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            data = None
            logger.debug("Failed to load config %s: %s", path, exc)

        if not isinstance(data, dict):
            # Not recording the mtime makes the next access retry the file.
            self._cache = {"extensions": {}}
            self._cache_mtime = None
            return

        self._cache = data
        self._cache_mtime = mtime
        logger.debug("Configuration loaded from: %s", path)

    def _default_config(self) -> dict[str, Any]:
        return {
            "version": CONFIG_FORMAT_VERSION,
            "last_updated": datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
            "extensions": {},
            "settings": {
                "auto_update": self._settings.auto_update,
                "check_updates": self._settings.check_updates,
                "registry_url": self._settings.registry_url,
            },
        }

    # -- Records ------------------------------------------------------------

    def _extensions(self) -> dict[str, Any]:
        extensions = self.get_config().get("extensions")
        return extensions if isinstance(extensions, dict) else {}

    @staticmethod
    def _extensions_section(config: dict[str, Any]) -> dict[str, Any]:
        # An empty section may have been written as ``[]``.
        if not isinstance(config.get("extensions"), dict):
            config["extensions"] = {}
        return config["extensions"]

    def get_extension_config(self, name: str) -> dict[str, Any]:
        """Return the stored record for *name*, or ``{}``."""
        record = self._extensions().get(name)
        return record if isinstance(record, dict) else {}

    def update_extension_config(self, name: str, extension_config: dict[str, Any]) -> None:
        """Shallow-merge *extension_config* into the record for *name*.

        Raises
        ------
        ExtensionConfigError
            If the updated document could not be saved.
        """
        config = self.get_config()
        extensions = self._extensions_section(config)
        existing = extensions.get(name)
        extensions[name] = {**(existing if isinstance(existing, dict) else {}), **extension_config}

        if not self.save_config(config):
            raise ExtensionConfigError(f"Failed to update configuration for extension: {name}")

    def add_extension(self, name: str, extension_data: dict[str, Any]) -> None:
        """Insert a record for *name*, filling in disabled/optional defaults."""
        config = self.get_config()
        self._extensions_section(config)[name] = {
            "enabled": False,
            "autoload": {},
            "type": ExtensionType.OPTIONAL.value,
            "settings": {},
            **extension_data,
        }

        if not self.save_config(config):
            raise ExtensionConfigError(f"Failed to add extension to config: {name}")
        logger.debug("Added extension to config: %s", name)

    def remove_extension(self, name: str) -> None:
        """Delete the record for *name*.  Unknown names are a no-op."""
        config = self.get_config()
        extensions = self._extensions_section(config)
        if name not in extensions:
            return

        del extensions[name]
        if not self.save_config(config):
            raise ExtensionConfigError(f"Failed to remove extension from config: {name}")
        logger.debug("Removed extension from config: %s", name)

    # -- Enablement ---------------------------------------------------------

    def get_enabled_extensions(self) -> list[str]:
        """Names whose ``enabled`` flag is ``True``, in document order.

        When the active environment has an ``enabledExtensions`` list the
        result is further restricted to names in that list.
        """
        config = self.get_config()
        extensions = self._extensions_section(config)
        enabled = [
            name for name, record in extensions.items()
            if isinstance(record, dict) and record.get("enabled") is True
        ]

        environments = config.get("environments")
        if not isinstance(environments, dict):
            return enabled

        environment = environments.get(self._settings.environment)
        if isinstance(environment, dict) and "enabledExtensions" in environment:
            allowed = environment["enabledExtensions"]
            if not isinstance(allowed, list):
                allowed = []
            return [name for name in enabled if name in allowed]
        return enabled

    def is_enabled(self, name: str) -> bool:
        """Whether *name* is effectively enabled in the active environment."""
        return name in self.get_enabled_extensions()

    def enable_extension(self, name: str) -> None:
        """Rebuild the record for *name* from its manifest and enable it.

        Stored ``settings`` are carried over; every environment list gains
        *name*.  Enabling twice leaves the document unchanged apart from
        manifest-derived fields.

        Raises
        ------
        ExtensionConfigError
            If the updated document could not be saved.
        """
        config = self.get_config()
        extensions = self._extensions_section(config)

        record = self.create_extension_config_from_manifest(name)
        existing = extensions.get(name)
        if isinstance(existing, dict) and "settings" in existing:
            record["settings"] = existing["settings"]
        extensions[name] = record

        self._update_environments(config, name, enabled=True)

        if not self.save_config(config):
            raise ExtensionConfigError(f"Failed to enable extension: {name}")
        logger.info("Enabled extension '%s'.", name)

    def disable_extension(self, name: str) -> None:
        """Clear the ``enabled`` flag and drop *name* from every environment list.

        Unknown names are a no-op.
        """
        config = self.get_config()
        record = self._extensions_section(config).get(name)
        if not isinstance(record, dict):
            return

        record["enabled"] = False
        self._update_environments(config, name, enabled=False)

        if not self.save_config(config):
            raise ExtensionConfigError(f"Failed to disable extension: {name}")
        logger.info("Disabled extension '%s'.", name)

    @staticmethod
    def _update_environments(config: dict[str, Any], name: str, *, enabled: bool) -> None:
        if not isinstance(config.get("environments"), dict):
            config["environments"] = {
                env: enablement.model_dump(mode="json", by_alias=True)
                for env, enablement in DEFAULT_ENVIRONMENTS.items()
            }

        for env_config in config["environments"].values():
            if not isinstance(env_config, dict):
                continue
            names = env_config.get("enabledExtensions")
            if not isinstance(names, list):
                names = env_config["enabledExtensions"] = []
            if enabled and name not in names:
                names.append(name)
            elif not enabled:
                env_config["enabledExtensions"] = [n for n in names if n != name]

    # -- Record synthesis ---------------------------------------------------

    def create_extension_config_from_manifest(self, name: str) -> dict[str, Any]:
        """Build an enabled record for *name* from its ``manifest.json``.

        A missing or unreadable manifest yields a minimal enabled record.
        """
        extension_path = self._extensions_path / name
        manifest = load_manifest(extension_path)
        if manifest is None:
            logger.debug("No readable manifest for %s; using minimal record.", name)
            return {"enabled": True, "autoload": {}, "settings": {}}

        framework = self._settings.framework_name
        runtime = self._settings.runtime_name
        engines = manifest.get("engines") if isinstance(manifest.get("engines"), dict) else {}
        declared = manifest.get("dependencies") if isinstance(manifest.get("dependencies"), dict) else {}
        provides = manifest.get("provides") if isinstance(manifest.get("provides"), dict) else {}
        author = author_name(manifest)

        dependencies: dict[str, Any] = {
            runtime: engines.get(runtime, DEFAULT_RUNTIME_CONSTRAINT),
        }
        if framework in engines:
            dependencies[framework] = engines[framework]
        dependencies["extensions"] = declared.get("extensions", [])
        dependencies["packages"] = declared.get("packages", {})

        config: dict[str, Any] = {
            "categories": manifest.get("categories", list(DEFAULT_CATEGORIES)),
            "publisher": author.lower(),
            "icon": f"extensions/{name}/assets/icon.png",
        }
        for key in ("features", "repository"):
            if key in manifest:
                config[key] = manifest[key]

        record = ExtensionRecord(
            version=str(manifest.get("version") or "1.0.0"),
            enabled=True,
            type=self._determine_extension_type(author),
            description=str(manifest.get("description") or ""),
            author=author,
            license=str(manifest.get("license") or "MIT"),
            install_path=f"extensions/{name}",
            autoload={f"extensions.{name}": f"extensions/{name}/src/"},
            dependencies=dependencies,
            provides={
                "main": f"extensions/{name}/{manifest.get('main') or name + '.py'}",
                "services": [],
                "routes": self._detect_routes(extension_path, name),
                "middleware": provides.get("middleware", []),
                "commands": provides.get("commands", []),
                "migrations": self._detect_migrations(extension_path, name),
            },
            config=config,
        )
        return record.to_document()

    def _determine_extension_type(self, author: str) -> ExtensionType:
        core_authors = {a.lower() for a in self._settings.core_authors}
        if author.lower() in core_authors:
            return ExtensionType.CORE
        return ExtensionType.OPTIONAL

    @staticmethod
    def _detect_routes(extension_path: Path, name: str) -> list[str]:
        if (extension_path / "src" / "routes.py").is_file():
            return [f"extensions/{name}/src/routes.py"]
        return []

    @staticmethod
    def _detect_migrations(extension_path: Path, name: str) -> list[str]:
        migrations_dir = extension_path / "migrations"
        if not migrations_dir.is_dir():
            return []
        return [
            f"extensions/{name}/migrations/{p.name}"
            for p in sorted(migrations_dir.glob("*.py"))
        ]

    # -- Settings -----------------------------------------------------------

    def get_extension_settings(self, name: str) -> dict[str, Any]:
        """Return the opaque per-extension settings map (``{}`` if none)."""
        settings = self.get_extension_config(name).get("settings")
        return settings if isinstance(settings, dict) else {}

    def update_extension_settings(self, name: str, settings: dict[str, Any]) -> None:
        """Replace the settings map for *name*."""
        self.update_extension_config(name, {"settings": settings})
        logger.debug("Updated settings for extension: %s", name)

    # -- Queries ------------------------------------------------------------

    def get_extensions_by_type(self, extension_type: ExtensionType | str) -> list[str]:
        wanted = ExtensionType(extension_type).value
        return [
            name for name, record in self._extensions().items()
            if isinstance(record, dict)
            and record.get("type", ExtensionType.OPTIONAL.value) == wanted
        ]

    def get_core_extensions(self) -> list[str]:
        return self.get_extensions_by_type(ExtensionType.CORE)

    def get_optional_extensions(self) -> list[str]:
        return self.get_extensions_by_type(ExtensionType.OPTIONAL)

    def is_core_extension(self, name: str) -> bool:
        record_type = self.get_extension_config(name).get("type", ExtensionType.OPTIONAL.value)
        return record_type == ExtensionType.CORE.value

    def get_extensions_by_environment(self, environment: str) -> list[str]:
        """Names whose record ``environments`` list includes *environment*.

        A record with no (or an empty) ``environments`` list applies to
        every environment.
        """
        names: list[str] = []
        for name, record in self._extensions().items():
            if not isinstance(record, dict):
                continue
            environments = record.get("environments") or []
            if not environments or environment in environments:
                names.append(name)
        return names

    # -- Validation ---------------------------------------------------------

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[str]:
        """Structural check of a configuration document.  Never raises."""
        errors: list[str] = []
        extensions = config.get("extensions")
        if extensions is None:
            errors.append("Missing 'extensions' section in configuration")
        elif not isinstance(extensions, dict) and extensions:
            errors.append("'extensions' section must be an object")
        if not isinstance(extensions, dict):
            return errors

        for name, record in extensions.items():
            if not isinstance(record, dict):
                errors.append(f"Extension '{name}' configuration must be an object")
                continue

            if "enabled" not in record:
                errors.append(f"Extension '{name}' is missing 'enabled' field")
            elif not isinstance(record["enabled"], bool):
                errors.append(f"Extension '{name}' 'enabled' field must be boolean")

            try:
                ExtensionRecord.model_validate(record)
            except ValidationError as exc:
                for error in exc.errors():
                    location = ".".join(str(part) for part in error["loc"])
                    if location == "enabled":
                        continue
                    errors.append(f"Extension '{name}' field '{location}': {error['msg']}")

        return errors
