"""Manifest loading and schema validation for ``manifest.json``.

Manifests are authored by third parties, so nothing here raises on bad
input: ``load_manifest`` returns ``None`` for anything it cannot read as
a JSON object, and the validators return lists of human-readable issues.

Required keys, enforced by ``rookery.models.manifest.ExtensionManifest``::

    manifestVersion  "1.0" or "2.0"
    id               lowercase slug, e.g. "audit-log"
    name             class-style name, e.g. "AuditLog"
    version          MAJOR.MINOR.PATCH (suffixes allowed)
    main             entry file relative to the extension directory

Optional keys: ``description``, ``author`` (string or ``{name, email,
url}``), ``license``, ``engines.{python,rookery}``,
``dependencies.{extensions,packages}``, ``provides.{middleware,commands}``,
``categories``, ``keywords``, ``features``, ``repository``.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from rookery.models.manifest import ExtensionManifest

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "manifest.json"

_FIELD_MESSAGES: dict[str, str] = {
    "manifestVersion": "Unsupported manifest version: {value}",
    "id": "Invalid ID format: {value}",
    "name": "Invalid name format: {value}",
    "version": "Invalid version format: {value}",
}

_ENGINE_CONSTRAINT_RE = re.compile(r"^[><=~^]*\d+\.\d+(\.\d+)?")
_CATEGORY_RE = re.compile(r"^[a-z][a-z0-9-]*$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

KNOWN_LICENSES: frozenset[str] = frozenset({
    "MIT", "GPL-2.0", "GPL-3.0", "Apache-2.0", "BSD-2-Clause", "BSD-3-Clause", "ISC",
})
MAX_KEYWORD_LENGTH = 50


def load_manifest(path: Path) -> dict[str, Any] | None:
    """Read ``manifest.json`` from an extension directory (or the file itself).

    Returns ``None`` when the file is missing, unreadable, not valid JSON,
    or does not contain a JSON object.
    """
    path = Path(path)
    manifest_path = path / MANIFEST_FILENAME if path.is_dir() else path
    if not manifest_path.is_file():
        return None

    try:
        data = json.loads(manifest_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.debug("Could not parse manifest %s: %s", manifest_path, exc)
        return None

    if not isinstance(data, dict):
        logger.debug("Manifest %s is not a JSON object.", manifest_path)
        return None
    return data


def validate_manifest(manifest: dict[str, Any]) -> list[str]:
    """Check required fields and identity formats against ``ExtensionManifest``.

    Never raises: every schema error is returned as an issue naming the
    offending field.

    Examples
    --------
    >>> validate_manifest({"manifestVersion": "1.0", "id": "demo", "name": "Demo", "main": "demo.py"})
    ["Required field 'version' is missing or empty"]
    """
    try:
        ExtensionManifest.model_validate(manifest)
    except ValidationError as exc:
        return [_describe_error(error) for error in exc.errors()]
    return []


def _describe_error(error: dict[str, Any]) -> str:
    field = ".".join(str(part) for part in error["loc"])
    value = error.get("input")
    if error["type"] == "missing" or value is None or (isinstance(value, str) and not value):
        return f"Required field '{field}' is missing or empty"
    template = _FIELD_MESSAGES.get(field)
    if template is None:
        return f"Invalid value for '{field}': {error['msg']}"
    return template.format(value=value)


def manifest_warnings(manifest: dict[str, Any]) -> list[str]:
    """Advisory schema checks that do not block admission."""
    warnings: list[str] = []

    engines = manifest.get("engines")
    if engines is not None and not isinstance(engines, dict):
        warnings.append("'engines' should be an object mapping engine name to constraint")
    elif engines:
        for engine, constraint in engines.items():
            if not isinstance(constraint, str) or not _ENGINE_CONSTRAINT_RE.match(constraint):
                warnings.append(f"Invalid version constraint for engine '{engine}': {constraint}")

    license_id = manifest.get("license")
    if license_id is not None and license_id not in KNOWN_LICENSES:
        warnings.append(f"Unrecognised license: {license_id}")

    categories = manifest.get("categories")
    if categories is not None:
        if not isinstance(categories, list):
            warnings.append("'categories' should be a list")
        else:
            for category in categories:
                if not isinstance(category, str) or not _CATEGORY_RE.match(category):
                    warnings.append(f"Invalid category: {category}")

    keywords = manifest.get("keywords")
    if isinstance(keywords, list):
        for keyword in keywords:
            if isinstance(keyword, str) and len(keyword) > MAX_KEYWORD_LENGTH:
                warnings.append(
                    f"Keyword exceeds {MAX_KEYWORD_LENGTH} characters: {keyword[:20]}..."
                )

    author = manifest.get("author")
    if isinstance(author, dict):
        email = author.get("email")
        if email and not _EMAIL_RE.match(str(email)):
            warnings.append(f"Invalid author email: {email}")

    return warnings


def author_name(manifest: dict[str, Any], default: str = "Unknown") -> str:
    """Return the author as a plain string (manifest ``author`` may be an object)."""
    author = manifest.get("author")
    if isinstance(author, dict):
        author = author.get("name")
    if isinstance(author, str) and author:
        return author
    return default
