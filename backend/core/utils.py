"""
Utility functions for the lead outreach engine.

Includes:
- UTC datetime helpers
- Pagination helpers
- Phone number normalization
"""

import re
from datetime import datetime, timezone


def utc_now() -> datetime:
    """
    Get the current UTC datetime.

    Returns:
        Current datetime in UTC timezone
    """
    return datetime.now(timezone.utc)


def utcnow_naive() -> datetime:
    """Return the current UTC time as a **naive** datetime.

    Scheduling columns are ``TIMESTAMP WITHOUT TIME ZONE``, so all
    comparisons against them must also be naive-UTC.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def normalize_phone(number: str) -> str:
    """Strip non-digits; a bare 10-digit number gets the ``1`` country code.

    No further validation: malformed numbers are passed through and surface
    as provider errors.
    """
    digits = re.sub(r"\D", "", number or "")
    if len(digits) == 10:
        digits = "1" + digits
    return digits


def calculate_offset(page: int = 1, per_page: int = 20) -> int:
    """
    Calculate database offset from page and per_page values.

    Args:
        page: Page number (1-indexed)
        per_page: Items per page

    Returns:
        Offset for database queries
    """
    return (page - 1) * per_page
