"""Unit tests for field path helpers and diff previews."""

import pytest

from blueprint_chat.core.field_paths import (
    diff_preview,
    format_value,
    get_value_at_path,
    has_path,
    parse_path,
    set_value_at_path,
)


@pytest.mark.parametrize(
    "path, expected",
    [
        ("recommendedPositioning", ["recommendedPositioning"]),
        ("painPoints.primary[0]", ["painPoints", "primary", 0]),
        ("competitors.1.name", ["competitors", 1, "name"]),
    ],
)
def test_parse_path(path, expected):
    assert parse_path(path) == expected


def test_parse_empty_path_raises():
    with pytest.raises(ValueError):
        parse_path("  ")


def test_get_value_at_path(blueprint):
    section = blueprint["industryMarketOverview"]

    assert get_value_at_path(section, "painPoints.primary[1]") == (
        "No pipeline visibility until quarter end"
    )
    assert get_value_at_path(section, "painPoints.primary.5") is None
    assert get_value_at_path(section, "painPoints.primary.0.x", "n/a") == "n/a"


def test_has_path_distinguishes_null_from_missing():
    data = {"a": None}
    assert has_path(data, "a")
    assert not has_path(data, "b")


def test_set_value_replaces_and_appends(blueprint):
    section = blueprint["industryMarketOverview"]

    set_value_at_path(section, "painPoints.primary[0]", "Churn")
    set_value_at_path(section, "painPoints.secondary.1", "Slow onboarding")
    set_value_at_path(section, "categorySnapshot.category", "B2B SaaS")

    assert section["painPoints"]["primary"][0] == "Churn"
    assert section["painPoints"]["secondary"] == ["Manual data entry", "Slow onboarding"]
    assert section["categorySnapshot"] == {"category": "B2B SaaS"}


def test_set_value_out_of_range_raises(blueprint):
    with pytest.raises(KeyError):
        set_value_at_path(blueprint["industryMarketOverview"], "painPoints.primary.7", "x")


def test_format_value_variants():
    assert format_value("short") == '"short"'
    assert format_value("x" * 120) == '"' + "x" * 97 + '..."'
    assert format_value(["a", "b"]) == '["a", "b"]'
    assert format_value([{"a": 1}, {"b": 2}]) == "[2 items]"
    assert format_value([]) == "[]"
    assert format_value({"a": 1}) == '{\n  "a": 1\n}'
    assert format_value(None) == "null"
    assert format_value(True) == "true"
    assert format_value(7) == "7"


def test_diff_preview():
    assert diff_preview("Old", "New") == '- Old: "Old"\n+ New: "New"'
