"""
Tests for input validators.
"""

from datetime import date

import pytest

from clicktrail.core.exceptions import InvalidDateRangeError
from clicktrail.core.validators import (
    is_reserved_short_code,
    is_valid_short_code,
    is_valid_url,
    parse_date_range,
)


class TestURLValidation:
    """Test URL validation function."""

    def test_valid_urls(self):
        """Test that valid URLs are accepted."""
        valid_urls = [
            "http://example.com",
            "https://example.com",
            "https://www.example.com/path/to/page",
            "http://subdomain.example.com:8080/path?query=value",
            "https://example.com/a?b=c#fragment",
        ]
        for url in valid_urls:
            assert is_valid_url(url), f"Should be valid: {url}"

    def test_invalid_urls(self):
        """Test that invalid URLs are rejected."""
        invalid_urls = [
            "not-a-url",
            "ftp://example.com",
            "javascript:alert(1)",
            "data:text/html,hi",
            "example.com",
            "/relative/path",
            "",
            "http://",
            "https://exa mple.com",
            "http://example.com:99999",
            "https://example.com/" + "a" * 2048,
        ]
        for url in invalid_urls:
            assert not is_valid_url(url), f"Should be invalid: {url}"


class TestShortCodeValidation:
    def test_valid_codes(self):
        for code in ["abc", "my-code", "my_code", "A1b2C3", "a" * 20]:
            assert is_valid_short_code(code), code

    def test_invalid_codes(self):
        for code in ["", "ab", "a" * 21, "has space", "dot.code", "slash/code", "abc\n", "mycode\n", None]:
            assert not is_valid_short_code(code), code

    def test_reserved_codes_are_case_insensitive(self):
        assert is_reserved_short_code("health")
        assert is_reserved_short_code("API")
        assert not is_reserved_short_code("mycode")


class TestDateRange:
    def test_neither_given(self):
        assert parse_date_range(None, None) == (None, None)

    def test_valid_range(self):
        assert parse_date_range("2024-01-01", "2024-01-31") == (date(2024, 1, 1), date(2024, 1, 31))

    def test_single_day(self):
        assert parse_date_range("2024-02-29", "2024-02-29") == (date(2024, 2, 29), date(2024, 2, 29))

    @pytest.mark.parametrize("start,end", [
        ("2024-01-01", None),
        (None, "2024-01-31"),
        ("2024-02-01", "2024-01-01"),
        ("01/02/2024", "2024-03-01"),
        ("2024-13-01", "2024-12-31"),
    ])
    def test_invalid_ranges(self, start, end):
        with pytest.raises(InvalidDateRangeError):
            parse_date_range(start, end)
