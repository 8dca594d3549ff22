"""Security pattern scanner — advisory static analysis of extension sources.

Each source file is read in full and tested against four curated pattern
families:

* ``dangerous_function`` — ``eval``/``exec``/``system``/``shell_exec``/
  ``passthru`` called as functions.
* ``sql_injection`` — request input concatenated into string literals,
  embedded in SQL statements, or handed to a legacy query function.
* ``xss`` — request input echoed/printed, assigned to ``innerHTML``/
  ``outerHTML``, or passed straight into an unescaped response.
* ``file_inclusion`` — ``include``/``require``/``__import__``/
  ``import_module`` whose argument is request input.

"Request input" covers PHP superglobals and the request objects of the
common Python web frameworks.  Matching is regex based: false negatives
are expected, and a clean scan is not a guarantee of safety.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from pathlib import Path

from rookery.models.reports import FindingCategory, SecurityFinding

logger = logging.getLogger(__name__)

# Tokens that carry attacker-controlled request data.
_REQUEST_INPUT = (
    r"(?:\$_(?:GET|POST|REQUEST|COOKIE)"
    r"|\brequest\.(?:args|form|values|cookies|GET|POST|COOKIES|query_params))"
)

DANGEROUS_FUNCTIONS: tuple[str, ...] = (
    "eval",
    "exec",
    "system",
    "shell_exec",
    "passthru",
)

_SQL_INJECTION_PATTERNS: list[str] = [
    # request input glued to a string literal
    _REQUEST_INPUT + r"(?:\[[^\]]*\]|\.get\([^)]*\))?\s*[.+]\s*['\"]",
    r"['\"]\s*[.+]\s*" + _REQUEST_INPUT,
    # request input inside a SQL statement
    r"(?:SELECT|INSERT|UPDATE|DELETE).*" + _REQUEST_INPUT,
    # legacy unescaped query functions
    r"\b(?:mysql_query|mysqli_query|pg_query)\b.*" + _REQUEST_INPUT,
]

_XSS_PATTERNS: list[str] = [
    r"\becho\s+" + _REQUEST_INPUT,
    r"\bprint\s*\(?\s*" + _REQUEST_INPUT,
    r"(?:innerHTML|outerHTML)\s*=.*" + _REQUEST_INPUT,
    r"\b(?:Markup|mark_safe|HttpResponse|make_response)\s*\(\s*" + _REQUEST_INPUT,
]

_FILE_INCLUSION_PATTERNS: list[str] = [
    r"\b(?:include|require)(?:_once)?\s*\(?\s*" + _REQUEST_INPUT,
    r"\b(?:__import__|import_module)\s*\(\s*" + _REQUEST_INPUT,
]

_CATEGORY_MESSAGES: dict[FindingCategory, str] = {
    FindingCategory.SQL_INJECTION: "Potential SQL injection vulnerability found in {file}",
    FindingCategory.XSS: "Potential XSS vulnerability found in {file}",
    FindingCategory.FILE_INCLUSION: "Potential file inclusion vulnerability found in {file}",
}


def _compile_rules() -> list[tuple[FindingCategory, str | None, re.Pattern[str]]]:
    rules: list[tuple[FindingCategory, str | None, re.Pattern[str]]] = []
    for name in DANGEROUS_FUNCTIONS:
        rules.append((
            FindingCategory.DANGEROUS_FUNCTION,
            name,
            re.compile(r"\b" + re.escape(name) + r"\s*\("),
        ))
    for category, patterns in (
        (FindingCategory.SQL_INJECTION, _SQL_INJECTION_PATTERNS),
        (FindingCategory.XSS, _XSS_PATTERNS),
        (FindingCategory.FILE_INCLUSION, _FILE_INCLUSION_PATTERNS),
    ):
        for pattern in patterns:
            rules.append((category, None, re.compile(pattern)))
    return rules


_RULES = _compile_rules()


def resolves_within(path: Path, root: Path) -> bool:
    """Whether *path*, with every symlink followed, stays inside *root*.

    Broken, looping or otherwise unresolvable links count as outside.
    """
    try:
        return path.resolve(strict=True).is_relative_to(root.resolve())
    except (OSError, RuntimeError, ValueError):
        return False


class SecurityScanner:
    """Scans source files against the curated pattern families.

    Parameters
    ----------
    source_suffixes:
        File suffixes treated as source when walking a directory.

    Examples
    --------
    >>> scanner = SecurityScanner()
    >>> [f.category.value for f in scanner.scan_text("x.py", "eval($_GET['x'])")]
    ['dangerous_function']
    """

    def __init__(self, source_suffixes: Iterable[str] = (".py",)) -> None:
        self._source_suffixes = tuple(source_suffixes)

    def find_source_files(self, root: Path) -> list[Path]:
        """Return every source file under *root*, sorted.  Missing root → ``[]``.

        Files reached through a symlink that resolves outside *root* are
        not part of the extension and are left out.
        """
        if not root.is_dir():
            return []
        return sorted(
            p for p in root.rglob("*")
            if p.suffix in self._source_suffixes and p.is_file() and resolves_within(p, root)
        )

    def scan(self, file_paths: Iterable[Path]) -> list[SecurityFinding]:
        """Scan every file and collect all findings across all files.

        Unreadable files are skipped.  Scanning never stops at the first
        match.
        """
        findings: list[SecurityFinding] = []
        for file_path in file_paths:
            try:
                content = Path(file_path).read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                logger.debug("Skipping unreadable file %s: %s", file_path, exc)
                continue
            findings.extend(self.scan_text(str(file_path), content))
        return findings

    def scan_directory(self, root: Path) -> list[SecurityFinding]:
        """Scan every source file under *root*."""
        return self.scan(self.find_source_files(root))

    @staticmethod
    def scan_text(file: str, content: str) -> list[SecurityFinding]:
        """Scan one file's text.  One finding per matching pattern."""
        findings: list[SecurityFinding] = []
        for category, function_name, regex in _RULES:
            match = regex.search(content)
            if match is None:
                continue
            if function_name is not None:
                message = f"Potentially dangerous function '{function_name}' found in {file}"
            else:
                message = _CATEGORY_MESSAGES[category].format(file=file)
            findings.append(SecurityFinding(
                category=category,
                file=file,
                message=message,
                line=content.count("\n", 0, match.start()) + 1,
            ))
        return findings
