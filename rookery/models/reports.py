"""Validation report models — outputs of the extension validator and scanner."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict


class FindingCategory(str, Enum):
    """Pattern family a security finding belongs to."""

    DANGEROUS_FUNCTION = "dangerous_function"
    SQL_INJECTION = "sql_injection"
    XSS = "xss"
    FILE_INCLUSION = "file_inclusion"


class SecurityFinding(BaseModel):
    """A single security scanner match."""

    model_config = ConfigDict(frozen=True)

    category: FindingCategory
    file: str
    message: str
    line: int = 0  # line of the first match, 1-based


class ValidationReport(BaseModel):
    """Output of ``ExtensionValidator.validate_extension``.

    ``valid`` is true iff there are no issues and no security issues
    (and no dependency issues when strict dependency checking is on).
    ``structure_valid`` and ``syntax_valid`` reflect only their own step,
    so a manifest defect does not flip ``structure_valid``.

    Every security finding appears twice: as a message in
    ``security_issues`` and ``issues``, and as a structured entry in
    ``findings``.
    """

    model_config = ConfigDict(frozen=True)

    path: Path
    valid: bool = False
    issues: list[str] = []
    warnings: list[str] = []
    security_issues: list[str] = []
    dependency_issues: list[str] = []
    findings: list[SecurityFinding] = []
    structure_valid: bool = False
    syntax_valid: bool = False
