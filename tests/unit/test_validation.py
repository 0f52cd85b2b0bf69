"""Unit tests for session input validation."""

import pytest

from chronolens.core.errors import ValidationError
from chronolens.core.presets import Era
from chronolens.session.validation import (
    resolve_filter,
    result_filename,
    validate_eras,
    validate_instruction,
)


class TestValidateInstruction:
    """Tests for validate_instruction."""

    def test_strips_whitespace(self):
        assert validate_instruction("  make it snow \n") == "make it snow"

    @pytest.mark.parametrize("text", [None, "", "   ", "\t\n"])
    def test_blank_rejected(self, text):
        with pytest.raises(ValidationError, match="describe the edit"):
            validate_instruction(text)

    def test_too_long_rejected(self):
        with pytest.raises(ValidationError, match="too long"):
            validate_instruction("a" * 11, max_length=10)


class TestValidateEras:
    """Tests for validate_eras."""

    def test_keeps_selection_order(self):
        assert validate_eras(["Cyberpunk Future", Era.VIKING]) == [Era.CYBERPUNK, Era.VIKING]

    def test_duplicates_kept_once(self):
        assert validate_eras([Era.VIKING, "viking", Era.WESTERN]) == [Era.VIKING, Era.WESTERN]

    def test_unknown_entries_reject_selection(self):
        with pytest.raises(ValidationError, match="Unknown era: Jurassic, Stone Age"):
            validate_eras(["Jurassic", Era.MEDIEVAL, "Stone Age"])

    def test_empty_selection_rejected(self):
        with pytest.raises(ValidationError, match="at least one era"):
            validate_eras([])


class TestResolveFilter:
    """Tests for resolve_filter."""

    def test_css_value_passes_through(self):
        assert resolve_filter("none") == "none"

    def test_name_maps_to_value(self):
        assert resolve_filter("Original") == "none"

    def test_unknown_rejected(self):
        with pytest.raises(ValidationError):
            resolve_filter("Deep Fried")


class TestResultFilename:
    """Tests for result_filename."""

    def test_slugifies_label(self):
        assert result_filename("Viking Age") == "chronolens-viking-age.png"

    def test_unsafe_characters_replaced(self):
        assert result_filename("A/B: C") == "chronolens-a_b_-c.png"

    def test_missing_label(self):
        assert result_filename(None, extension="jpg") == "chronolens-image.jpg"
