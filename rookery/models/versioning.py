"""Version triple model — the parsed form of a dotted semver string."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class VersionTriple(BaseModel):
    """``major.minor.patch`` with pre-release and build suffixes dropped.

    Comparison is done on ``as_tuple()`` so ordering is numeric per
    component (``1.10.0`` > ``1.9.9``).
    """

    model_config = ConfigDict(frozen=True)

    major: int = 0
    minor: int = 0
    patch: int = 0

    def as_tuple(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"
