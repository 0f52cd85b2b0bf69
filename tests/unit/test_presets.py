"""Unit tests for preset enumerations and detail level parsing."""

import pytest

from chronolens.core.presets import (
    FILTER_OPTIONS,
    Era,
    ImageStyle,
    Resolution,
    coerce_detail_level,
)


class TestImageStyleCoerce:
    """Tests for ImageStyle.coerce."""

    def test_member_passes_through(self):
        assert ImageStyle.coerce(ImageStyle.CINEMATIC) is ImageStyle.CINEMATIC

    def test_value_matches(self):
        assert ImageStyle.coerce("Oil Painting") is ImageStyle.PAINTING

    def test_name_matches_case_insensitive(self):
        assert ImageStyle.coerce("art_deco") is ImageStyle.ART_DECO

    def test_unknown_falls_back_to_realistic(self):
        assert ImageStyle.coerce("Watercolor") is ImageStyle.REALISTIC

    def test_none_falls_back_to_realistic(self):
        assert ImageStyle.coerce(None) is ImageStyle.REALISTIC


class TestResolutionCoerce:
    """Tests for Resolution.coerce."""

    def test_value_matches(self):
        assert Resolution.coerce("4K Ultra") is Resolution.ULTRA_4K

    def test_unknown_falls_back_to_standard(self):
        assert Resolution.coerce("8K") is Resolution.STANDARD

    def test_non_string_falls_back(self):
        assert Resolution.coerce(42) is Resolution.STANDARD


class TestEraCoerce:
    """Tests for Era.coerce."""

    def test_value_matches(self):
        assert Era.coerce("Viking Age") is Era.VIKING

    def test_name_matches(self):
        assert Era.coerce("cyberpunk") is Era.CYBERPUNK

    def test_unknown_returns_none(self):
        assert Era.coerce("Jurassic") is None


class TestCoerceDetailLevel:
    """Tests for coerce_detail_level."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (0, 0),
            (50, 50),
            (100, 100),
            ("75", 75),
            (29.6, 30),
            (-10, 0),
            (250, 100),
        ],
    )
    def test_valid_values(self, value, expected):
        assert coerce_detail_level(value) == expected

    @pytest.mark.parametrize("value", [None, "", "abc", float("nan"), float("inf"), True])
    def test_invalid_values_use_default(self, value):
        assert coerce_detail_level(value, default=42) == 42


def test_filter_options_include_original():
    """The unfiltered option must always be available."""
    assert FILTER_OPTIONS["Original"] == "none"
