"""Shared test fixtures for Rookery."""

from __future__ import annotations

import json
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from rookery.config import RookerySettings
from rookery.core.event_dispatcher import EventDispatcher
from rookery.extensions.config_store import ExtensionConfigStore
from rookery.extensions.event_registry import ExtensionEventRegistry
from rookery.extensions.manager import ExtensionManager
from rookery.extensions.validator import ExtensionValidator


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep ROOKERY_* variables from the developer's shell out of tests."""
    for key in list(os.environ):
        if key.startswith("ROOKERY_"):
            monkeypatch.delenv(key)


@pytest.fixture
def settings(tmp_path: Path) -> RookerySettings:
    """Provide settings rooted in a temp project directory."""
    return RookerySettings(project_root=tmp_path, _env_file=None)


@pytest.fixture
def make_settings(tmp_path: Path) -> Callable[..., RookerySettings]:
    """Factory fixture: settings rooted in the temp project with overrides."""

    def _factory(**overrides: Any) -> RookerySettings:
        overrides.setdefault("project_root", tmp_path)
        return RookerySettings(_env_file=None, **overrides)

    return _factory


@pytest.fixture
def extensions_dir(settings: RookerySettings) -> Path:
    """Provide the (created) extensions directory for *settings*."""
    path = settings.resolved_extensions_path
    path.mkdir(parents=True, exist_ok=True)
    return path


@pytest.fixture
def store(settings: RookerySettings) -> ExtensionConfigStore:
    """Provide a config store writing into the temp project."""
    return ExtensionConfigStore(settings)


@pytest.fixture
def validator(settings: RookerySettings) -> ExtensionValidator:
    """Provide a validator with default policy."""
    return ExtensionValidator(settings)


@pytest.fixture
def manager(settings: RookerySettings, store: ExtensionConfigStore) -> ExtensionManager:
    """Provide a manager sharing the test store."""
    return ExtensionManager(settings, store=store)


@pytest.fixture
def dispatcher() -> EventDispatcher:
    """Provide an empty event dispatcher."""
    return EventDispatcher()


@pytest.fixture
def event_registry(dispatcher: EventDispatcher) -> ExtensionEventRegistry:
    """Provide an event registry bound to the test dispatcher."""
    return ExtensionEventRegistry(dispatcher)


# ---------------------------------------------------------------------------
# Extension directory factory
# ---------------------------------------------------------------------------


def class_name_for(extension_id: str) -> str:
    """``audit-log`` -> ``AuditLog``."""
    return "".join(part.capitalize() for part in extension_id.split("-"))


def default_manifest(extension_id: str) -> dict[str, Any]:
    return {
        "manifestVersion": "1.0",
        "id": extension_id,
        "name": class_name_for(extension_id),
        "version": "1.2.0",
        "main": f"{extension_id.replace('-', '_')}.py",
        "description": f"The {extension_id} extension",
        "author": "Jane Dev",
        "license": "MIT",
        "engines": {"python": ">=3.8"},
    }


@pytest.fixture
def make_extension(extensions_dir: Path) -> Callable[..., Path]:
    """Factory fixture: write an extension directory and return its path.

    ``manifest`` replaces the default manifest entirely (pass a ``str`` to
    write raw text, or ``None`` with ``write_manifest=False`` to omit it);
    ``manifest_overrides`` are merged into the default.  Keys in
    ``manifest_overrides`` set to ``None`` are removed.  ``files`` maps
    relative paths to contents.  Every file is chmod'ed to ``0o644``.
    """

    def _factory(
        extension_id: str = "audit-log",
        *,
        manifest: dict[str, Any] | str | None = None,
        manifest_overrides: dict[str, Any] | None = None,
        files: dict[str, str] | None = None,
        write_manifest: bool = True,
        with_src: bool = True,
    ) -> Path:
        root = extensions_dir / extension_id
        root.mkdir(parents=True, exist_ok=True)

        data: dict[str, Any] | str = (
            manifest if manifest is not None else default_manifest(extension_id)
        )
        if isinstance(data, dict) and manifest_overrides:
            data = dict(data)
            for key, value in manifest_overrides.items():
                if value is None:
                    data.pop(key, None)
                else:
                    data[key] = value

        if write_manifest:
            text = data if isinstance(data, str) else json.dumps(data, indent=2)
            (root / "manifest.json").write_text(text, encoding="utf-8")

        contents: dict[str, str] = {}
        if isinstance(data, dict) and isinstance(data.get("main"), str):
            contents[data["main"]] = (
                f"class {class_name_for(extension_id)}:\n"
                "    def boot(self):\n"
                "        return True\n"
            )
        if with_src:
            contents["src/__init__.py"] = ""
        contents.update(files or {})

        for relative, body in contents.items():
            target = root / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(body, encoding="utf-8")

        for path in [root, *root.rglob("*")]:
            path.chmod(0o755 if path.is_dir() else 0o644)
        return root

    return _factory
