"""Tests for version parsing and ``>=`` constraint evaluation."""

from __future__ import annotations

import pytest

from rookery.core.version_constraint import parse_version, satisfies, satisfies_version
from rookery.models.versioning import VersionTriple


class TestParseVersion:
    def test_full_triple(self):
        assert parse_version("1.4.2").as_tuple() == (1, 4, 2)

    def test_missing_components_pad_with_zero(self):
        assert parse_version("8").as_tuple() == (8, 0, 0)
        assert parse_version("8.2").as_tuple() == (8, 2, 0)

    def test_prerelease_and_build_suffixes_dropped(self):
        assert parse_version("1.4.2-beta.1").as_tuple() == (1, 4, 2)
        assert parse_version("2.0.0+build.7").as_tuple() == (2, 0, 0)

    def test_non_numeric_components_become_zero(self):
        assert parse_version("x.y.z").as_tuple() == (0, 0, 0)
        assert parse_version("3.12rc1").as_tuple() == (3, 12, 0)

    def test_extra_components_ignored(self):
        assert parse_version("1.2.3.4").as_tuple() == (1, 2, 3)

    def test_empty_string(self):
        assert parse_version("").as_tuple() == (0, 0, 0)

    def test_str_round_trip(self):
        assert str(parse_version("10.0.1")) == "10.0.1"


class TestSatisfies:
    @pytest.mark.parametrize(
        ("version", "constraint", "expected"),
        [
            ("3.12.1", ">=3.10", True),
            ("3.10.0", ">=3.10.0", True),
            ("3.9.18", ">=3.10", False),
            ("0.26.9", ">=0.27.0", False),
            ("1.10.0", ">=1.9.9", True),
            ("2.0.0", ">= 1.0.0", True),
            ("2.0.0", "  >=3.0.0", False),
        ],
    )
    def test_greater_or_equal(self, version: str, constraint: str, expected: bool):
        assert satisfies(parse_version(version), constraint) is expected

    @pytest.mark.parametrize("constraint", ["^9.0", "~9.0", "<1.0", "==9.9.9", "9.9.9", "garbage", ""])
    def test_other_operators_always_satisfied(self, constraint: str):
        assert satisfies(VersionTriple(major=1), constraint) is True

    def test_non_string_constraint_satisfied(self):
        assert satisfies(VersionTriple(), None) is True  # type: ignore[arg-type]
        assert satisfies(VersionTriple(), 5) is True  # type: ignore[arg-type]

    def test_matches_tuple_ordering(self):
        versions = ["0.0.1", "0.1.0", "1.0.0", "1.0.1", "2.3.4"]
        for v in versions:
            for required in versions:
                expected = parse_version(v).as_tuple() >= parse_version(required).as_tuple()
                assert satisfies_version(v, f">={required}") is expected
