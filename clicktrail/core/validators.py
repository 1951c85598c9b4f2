"""
Input Validators

This module provides validation functions for user inputs: destination
URLs, short codes and analytics date ranges. They are pure functions so
both the service layer and the API layer can use them.

Security Considerations:
- Only http/https destinations are accepted (no javascript:, data:, file:)
- Short codes are restricted to a URL-safe character set
- Length limits prevent DoS attacks
"""

import re
from datetime import date, datetime
from typing import Optional, Tuple
from urllib.parse import urlparse

from clicktrail.core.exceptions import InvalidDateRangeError

MAX_URL_LENGTH = 2048

ALLOWED_SCHEMES = {"http", "https"}

SHORT_CODE_PATTERN = re.compile(r"^[A-Za-z0-9_-]{3,20}$")

# Paths owned by the services themselves
RESERVED_SHORT_CODES = frozenset({
    "health", "api", "docs", "redoc", "openapi.json", "favicon.ico", "robots.txt",
})

DATE_FORMAT = "%Y-%m-%d"


def is_valid_url(url: str) -> bool:
    """
    Validate a destination URL.

    The URL must be absolute, use http or https and name a host. Anything
    else, including relative paths and the empty string, is rejected.

    Args:
        url: The URL string to validate

    Returns:
        True if valid, False otherwise
    """
    if not url or not isinstance(url, str):
        return False

    if len(url) > MAX_URL_LENGTH:
        return False

    if url != url.strip() or any(ch.isspace() for ch in url):
        return False

    try:
        result = urlparse(url)
        if result.scheme.lower() not in ALLOWED_SCHEMES:
            return False
        if not result.netloc or not result.hostname:
            return False
        # Accessing .port raises ValueError for malformed ports
        result.port
    except ValueError:
        return False

    return True


def is_valid_short_code(short_code: Optional[str]) -> bool:
    """Check a short code against ``^[A-Za-z0-9_-]{3,20}$``."""
    if not short_code or not isinstance(short_code, str):
        return False
    return SHORT_CODE_PATTERN.fullmatch(short_code) is not None


def is_reserved_short_code(short_code: str) -> bool:
    return short_code.lower() in RESERVED_SHORT_CODES


def parse_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` query value."""
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except (TypeError, ValueError):
        raise InvalidDateRangeError(
            f"Invalid date '{value}'. Expected format YYYY-MM-DD"
        )


def parse_date_range(
    start: Optional[str],
    end: Optional[str]
) -> Tuple[Optional[date], Optional[date]]:
    """
    Validate an optional ``startDate``/``endDate`` pair.

    Both or neither must be supplied, both must parse, and start must not
    be after end.

    Raises:
        InvalidDateRangeError: If any of the rules is broken
    """
    if start is None and end is None:
        return None, None

    if start is None or end is None:
        raise InvalidDateRangeError(
            "Both startDate and endDate must be provided together"
        )

    start_date = parse_date(start)
    end_date = parse_date(end)

    if start_date > end_date:
        raise InvalidDateRangeError("startDate must be on or before endDate")

    return start_date, end_date
