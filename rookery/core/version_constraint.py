"""Version constraint evaluation for manifest ``engines`` entries.

Only ``>=`` is evaluated.  Every other operator (``^``, ``~``, ``<``,
``==``, bare versions, garbage) is treated as satisfied: constraints are
checked per dependency, never solved globally, and an unsupported
operator must not block admission of an otherwise valid extension.
Callers must not rely on strict matching for anything but ``>=``.
"""

from __future__ import annotations

import re

from rookery.models.versioning import VersionTriple

_SUFFIX_RE = re.compile(r"[-+].*$", re.DOTALL)
_LEADING_INT_RE = re.compile(r"^\s*(\d+)")

GTE = ">="


def _component(part: str) -> int:
    match = _LEADING_INT_RE.match(part)
    return int(match.group(1)) if match else 0


def parse_version(text: str) -> VersionTriple:
    """Parse a dotted version string into a ``VersionTriple``.

    Anything after the first ``-`` or ``+`` is discarded.  Each component
    is read as its leading integer; non-numeric or missing components
    become ``0``.

    Examples
    --------
    >>> parse_version("1.4.2-beta.1").as_tuple()
    (1, 4, 2)
    >>> parse_version("8.2").as_tuple()
    (8, 2, 0)
    >>> parse_version("x.y").as_tuple()
    (0, 0, 0)
    """
    stripped = _SUFFIX_RE.sub("", str(text))
    parts = stripped.split(".")
    values = [_component(p) for p in parts[:3]]
    values.extend([0] * (3 - len(values)))
    return VersionTriple(major=values[0], minor=values[1], patch=values[2])


def satisfies(version: VersionTriple, constraint: str) -> bool:
    """Return whether *version* satisfies *constraint*.

    ``>=a.b.c`` compares ``(major, minor, patch)`` lexicographically.
    Any other constraint returns ``True``.  Never raises.

    Examples
    --------
    >>> satisfies(parse_version("3.12.1"), ">=3.10")
    True
    >>> satisfies(parse_version("0.26.9"), ">=0.27.0")
    False
    >>> satisfies(parse_version("1.0.0"), "^2.0")
    True
    """
    if not isinstance(constraint, str):
        return True

    constraint = constraint.lstrip()
    if not constraint.startswith(GTE):
        return True

    required = parse_version(constraint[len(GTE):])
    return version.as_tuple() >= required.as_tuple()


def satisfies_version(version: str, constraint: str) -> bool:
    """String convenience wrapper around ``parse_version`` + ``satisfies``."""
    return satisfies(parse_version(version), constraint)
