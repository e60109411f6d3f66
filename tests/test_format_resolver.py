"""
Unit tests for format resolution and dimension parsing.
"""

import pytest

from core.exceptions import ErrorKind, UnknownFormatError
from models.trim import TrimSize
from modules import format_resolver
from modules.format_resolver import (
    FORMAT_CATALOG,
    format_name_for,
    parse_dimensions,
    parse_number,
    resolve,
)


class TestCatalogLookup:
    """Catalog tokens resolve to fixed trim sizes."""

    def test_every_catalog_token_resolves_consistently(self):
        """Resolving a token twice gives the same size."""
        for name, (width, height) in FORMAT_CATALOG.items():
            first = resolve(name)
            second = resolve(name)
            assert first == second
            assert first.width == width
            assert first.height == height

    def test_lookup_is_case_insensitive(self):
        """'a4' and 'A4' are the same format."""
        trim = resolve("a4")
        assert (trim.width, trim.height) == (210, 297)

    def test_unknown_token_raises(self):
        """An unknown token is an UnknownFormat error, not a default size."""
        with pytest.raises(UnknownFormatError) as exc_info:
            resolve("Z9")
        assert exc_info.value.kind is ErrorKind.UNKNOWN_FORMAT
        assert exc_info.value.retryable is False

    def test_missing_token_raises(self):
        """No token and no custom size cannot resolve."""
        with pytest.raises(UnknownFormatError):
            resolve(None)


class TestDimensionParsing:
    """Free-form 'WxH' strings."""

    @pytest.mark.parametrize("text", [
        "100x150",
        "100 x 150",
        "100×150",
        "100 × 150",
        "100*150",
        "100X150",
        "100 150",
        "100х150",
    ])
    def test_separators(self, text):
        """All supported separators give 100x150."""
        trim = parse_dimensions(text)
        assert trim is not None
        assert trim.width == 100
        assert trim.height == 150

    @pytest.mark.parametrize("text", ["abcx150", "0x150", "100x0", "-5x10", "100x", "", "A4"])
    def test_rejects_bad_strings(self, text):
        assert parse_dimensions(text) is None

    def test_decimal_comma(self):
        trim = parse_dimensions("99,5x210")
        assert trim.width == 99.5

    def test_dimension_token_resolves_like_custom_pair(self):
        """A token that is itself a size string is parsed, not looked up."""
        assert resolve("100x150") == resolve(None, 100, 150)

    def test_bad_dimension_token_raises(self):
        with pytest.raises(UnknownFormatError):
            resolve("abcx150")


class TestCustomSize:
    """Explicit width/height pairs."""

    def test_custom_pair_takes_precedence(self):
        """A valid custom pair wins over the catalog token."""
        trim = resolve("A4", 100, 150)
        assert (trim.width, trim.height) == (100, 150)

    def test_custom_pair_from_strings(self):
        trim = resolve(None, "120", "80.5")
        assert (trim.width, trim.height) == (120, 80.5)

    def test_incomplete_pair_falls_back_to_token(self):
        """Only one side given: the token is used."""
        trim = resolve("A5", 100, None)
        assert (trim.width, trim.height) == (148, 210)

    def test_unparseable_pair_falls_back_to_token(self):
        trim = resolve("A5", "abc", 150)
        assert (trim.width, trim.height) == (148, 210)

    @pytest.mark.parametrize("value", [0, -1, float("nan"), float("inf"), True, "x", None])
    def test_parse_number_rejects(self, value):
        assert parse_number(value) is None


class TestReverseLookup:
    """Trim size back to a catalog name."""

    def test_exact_match(self):
        assert format_name_for(TrimSize(105, 148)) == "A6"

    def test_match_within_tolerance(self):
        """Half a millimetre off still counts as A6."""
        assert format_name_for(TrimSize(105.5, 147.6)) == "A6"

    def test_no_match(self):
        assert format_name_for(TrimSize(100, 150)) is None

    def test_orientation_matters(self):
        """148x105 is landscape A6, not a catalog entry."""
        assert format_name_for(TrimSize(148, 105)) is None

    def test_display_name_falls_back_to_label(self):
        assert format_resolver.display_name(TrimSize(100, 150)) == "100×150"
        assert format_resolver.display_name(TrimSize(210, 297)) == "A4"


class TestTrimSize:
    """TrimSize value semantics."""

    def test_tolerant_equality(self):
        assert TrimSize(105, 148) == TrimSize(105.8, 147.2)
        assert TrimSize(105, 148) != TrimSize(107, 148)

    def test_unhashable(self):
        with pytest.raises(TypeError):
            hash(TrimSize(105, 148))

    def test_rejects_non_positive(self):
        with pytest.raises(ValueError):
            TrimSize(0, 10)
