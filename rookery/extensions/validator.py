"""Extension validator — admission checks run before an extension is trusted.

``validate_extension`` runs five independent steps and always runs all of
them, so one report explains every reason an extension is rejected:

1. Structure     — the path is a directory holding ``manifest.json``.
2. Manifest      — required fields and formats, main file, ``engines``
                   constraints (recorded as dependency issues).
3. Permissions   — no group- or world-writable files and no symlinks
                   leading out of the extension directory.
4. Syntax        — every source file compiles, checked in a separate
                   interpreter process with a timeout.
5. Security      — the pattern scanner finds nothing.

A bad extension yields a report describing why; nothing here raises.
"""

from __future__ import annotations

import logging
import os
import platform
import stat
import subprocess
from pathlib import Path
from typing import Any

from rookery.config import RookerySettings
from rookery.core.version_constraint import parse_version, satisfies
from rookery.extensions.manifest import (
    MANIFEST_FILENAME,
    load_manifest,
    manifest_warnings,
    validate_manifest,
)
from rookery.extensions.scanner import SecurityScanner, resolves_within
from rookery.models.reports import SecurityFinding, ValidationReport

logger = logging.getLogger(__name__)

# Compiles (never executes) the file named in argv[1].
_SYNTAX_CHECK_SOURCE = (
    "import sys\n"
    "with open(sys.argv[1], 'rb') as fh:\n"
    "    compile(fh.read(), sys.argv[1], 'exec')\n"
)

_WRITABLE_BY_OTHERS = stat.S_IWOTH | stat.S_IWGRP

OPTIONAL_DIRECTORIES: tuple[str, ...] = ("src",)


class ExtensionValidator:
    """Validates extension directories before admission.

    Parameters
    ----------
    settings:
        Validation policy (source suffixes, syntax timeout, permission
        and dependency strictness) and host identity.
    scanner:
        Security scanner; built from ``settings.source_suffixes`` when
        omitted.
    runtime_version:
        Version of the host runtime matched against ``engines.python``.
        Defaults to the running interpreter's version.

    Examples
    --------
    >>> from pathlib import Path
    >>> validator = ExtensionValidator(RookerySettings())
    >>> report = validator.validate_extension(Path("/nonexistent"))
    >>> report.valid, report.structure_valid
    (False, False)
    """

    def __init__(
        self,
        settings: RookerySettings | None = None,
        scanner: SecurityScanner | None = None,
        *,
        runtime_version: str | None = None,
    ) -> None:
        self._settings = settings or RookerySettings()
        self._scanner = scanner or SecurityScanner(self._settings.source_suffixes)
        self._runtime_version = parse_version(runtime_version or platform.python_version())
        self._framework_version = parse_version(self._settings.framework_version)

    @property
    def settings(self) -> RookerySettings:
        return self._settings

    # -- Aggregate ----------------------------------------------------------

    def validate_extension(self, path: Path) -> ValidationReport:
        """Run every validation step against *path* and return the report."""
        path = Path(path)
        issues: list[str] = []
        warnings: list[str] = []
        dependency_issues: list[str] = []

        # 1. Structure
        structure_issues = self._validate_structure(path)
        issues.extend(structure_issues)

        # 2. Manifest
        manifest = load_manifest(path) if path.is_dir() else None
        if manifest is None and (path / MANIFEST_FILENAME).is_file():
            issues.append(f"{MANIFEST_FILENAME} could not be parsed")
        if manifest is not None:
            issues.extend(validate_manifest(manifest))
            warnings.extend(manifest_warnings(manifest))

            main_issue = self._main_file_issue(path, manifest)
            if main_issue:
                issues.append(main_issue)

            engines = manifest.get("engines")
            if isinstance(engines, dict):
                dependency_issues.extend(self.check_dependencies(engines))

        if not structure_issues:
            for directory in OPTIONAL_DIRECTORIES:
                if not (path / directory).is_dir():
                    warnings.append(f"Optional directory '{directory}' is missing")

        # 3. Permissions
        if not self.validate_permissions(path):
            message = "Invalid file permissions detected"
            if self._settings.enforce_file_permissions:
                issues.append(message)
            else:
                warnings.append(message)
        for link in self.find_external_links(path):
            issues.append(
                f"Symbolic link '{link.relative_to(path)}' points outside the extension directory"
            )

        # 4. Syntax
        syntax_issues = self.validate_syntax(path)
        issues.extend(syntax_issues)

        # 5. Security
        findings = self.validate_security(path)
        security_issues = [f.message for f in findings]
        issues.extend(security_issues)

        valid = not issues and not security_issues
        if self._settings.strict_dependencies and dependency_issues:
            valid = False

        report = ValidationReport(
            path=path,
            valid=valid,
            issues=issues,
            warnings=warnings,
            security_issues=security_issues,
            dependency_issues=dependency_issues,
            findings=findings,
            structure_valid=not structure_issues,
            syntax_valid=not syntax_issues,
        )
        logger.debug(
            "Validation completed for %s. Valid: %s (%d issue(s), %d security).",
            path, "Yes" if valid else "No", len(issues), len(security_issues),
        )
        return report

    # -- Dependencies -------------------------------------------------------

    def check_dependencies(self, engines: dict[str, Any]) -> list[str]:
        """Evaluate ``engines`` constraints; return one message per failure.

        Only the runtime key (``python``) and the framework key
        (``rookery``) are checked; other keys are ignored.
        """
        failures: list[str] = []
        for engine, constraint in engines.items():
            if engine == self._settings.framework_name:
                found = self._framework_version
            elif engine == self._settings.runtime_name:
                found = self._runtime_version
            else:
                continue

            if not satisfies(found, constraint):
                logger.debug("%s version constraint failed: %s", engine, constraint)
                failures.append(
                    f"{engine} version constraint '{constraint}' is not satisfied "
                    f"(found {found})"
                )
        return failures

    def validate_dependencies(self, engines: dict[str, Any]) -> bool:
        """Whether every runtime/framework constraint in *engines* holds."""
        return not self.check_dependencies(engines)

    def check_compatibility(self, metadata: dict[str, Any]) -> bool:
        """Whether extension *metadata* (a manifest) is compatible with this host."""
        engines = metadata.get("engines")
        if not isinstance(engines, dict):
            return True
        return self.validate_dependencies(engines)

    # -- Manifest & files ---------------------------------------------------

    @staticmethod
    def validate_manifest(manifest: dict[str, Any]) -> list[str]:
        """Schema-check a loaded manifest (see ``rookery.extensions.manifest``)."""
        return validate_manifest(manifest)

    def validate_files(self, path: Path, manifest: dict[str, Any]) -> bool:
        """Whether the manifest's main file exists inside *path*."""
        return self._main_file_issue(Path(path), manifest) is None

    @staticmethod
    def _main_file_issue(path: Path, manifest: dict[str, Any]) -> str | None:
        main = manifest.get("main")
        if not isinstance(main, str) or not main:
            return None

        try:
            main_path = (path / main).resolve()
            if not main_path.is_relative_to(path.resolve()):
                return f"Main file '{main}' is outside the extension directory"
            if not main_path.is_file():
                return f"Main file '{main}' does not exist"
        except (OSError, ValueError) as exc:
            logger.debug("Cannot resolve main file %r in %s: %s", main, path, exc)
            return f"Main file {main!r} is not a valid path"
        return None

    @staticmethod
    def _validate_structure(path: Path) -> list[str]:
        if not path.is_dir():
            return ["Extension path does not exist or is not a directory"]

        issues: list[str] = []
        if not (path / MANIFEST_FILENAME).is_file():
            issues.append(f"{MANIFEST_FILENAME} file is missing")
        return issues

    def check_name_conflicts(self, name: str) -> bool:
        """Return ``True`` if no installed extension already uses *name*."""
        return not (self._settings.resolved_extensions_path / name).is_dir()

    # -- Permissions --------------------------------------------------------

    def validate_permissions(self, path: Path) -> bool:
        """Root readable and no file under it writable by group or others."""
        path = Path(path)
        if not os.access(path, os.R_OK):
            return False
        offenders = self.find_permissive_files(path)
        for offender in offenders:
            logger.debug("Overly permissive permissions on: %s", offender)
        return not offenders

    @staticmethod
    def find_permissive_files(path: Path) -> list[Path]:
        """Regular files under *path* with the ``0o020`` or ``0o002`` bit set."""
        if not path.is_dir():
            return []

        offenders: list[Path] = []
        for file_path in sorted(path.rglob("*")):
            if not resolves_within(file_path, path):
                continue
            try:
                mode = file_path.lstat().st_mode
            except OSError:
                continue
            # Symlinks are skipped; their in-tree targets are audited directly.
            if stat.S_ISREG(mode) and mode & _WRITABLE_BY_OTHERS:
                offenders.append(file_path)
        return offenders

    @staticmethod
    def find_external_links(path: Path) -> list[Path]:
        """Symlinks under *path* that are broken or resolve outside it."""
        if not path.is_dir():
            return []
        return [
            link for link in sorted(path.rglob("*"))
            if link.is_symlink() and not resolves_within(link, path)
        ]

    # -- Syntax -------------------------------------------------------------

    def validate_syntax(self, path: Path) -> list[str]:
        """Compile every source file in a child interpreter; return failures."""
        issues: list[str] = []
        timeout = self._settings.syntax_check_timeout

        for file_path in self._scanner.find_source_files(Path(path)):
            cmd = [self._settings.python_executable, "-I", "-c", _SYNTAX_CHECK_SOURCE, str(file_path)]
            try:
                result = subprocess.run(
                    cmd,
                    capture_output=True,
                    text=True,
                    timeout=timeout,
                    check=False,
                )
            except subprocess.TimeoutExpired:
                issues.append(f"Syntax check timed out for {file_path} after {timeout:g} seconds")
                continue
            except OSError as exc:
                issues.append(f"Syntax check could not run for {file_path}: {exc}")
                continue

            if result.returncode != 0:
                output = f"{result.stdout}\n{result.stderr}"
                diagnostic = " ".join(
                    line.strip() for line in output.splitlines() if line.strip()
                )
                issues.append(f"Syntax error in {file_path}: {diagnostic}")

        return issues

    # -- Security -----------------------------------------------------------

    def validate_security(self, path: Path) -> list[SecurityFinding]:
        """Run the security scanner over every source file under *path*."""
        return self._scanner.scan_directory(Path(path))
