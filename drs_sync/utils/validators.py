"""Data validation utilities."""
from datetime import date, datetime
from typing import Optional
import logging
import re

logger = logging.getLogger(__name__)

ISO_DATE_FORMAT = '%Y-%m-%d'
ISO_DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')


def parse_iso_date(date_str: str) -> Optional[date]:
    """
    Parse a zero-padded YYYY-MM-DD string.

    strptime alone accepts '2025-1-5'; the shape is checked first.

    Returns:
        The date, or None when the string is not a valid ISO calendar date
    """
    if not isinstance(date_str, str) or not ISO_DATE_PATTERN.match(date_str):
        return None
    try:
        return datetime.strptime(date_str, ISO_DATE_FORMAT).date()
    except ValueError:
        return None


def validate_date_format(date_str: str) -> bool:
    """True when date_str is a valid zero-padded YYYY-MM-DD date."""
    return parse_iso_date(date_str) is not None


def validate_date_range(start: str, end: str) -> bool:
    """True when both dates are YYYY-MM-DD and start <= end."""
    start_date, end_date = parse_iso_date(start), parse_iso_date(end)
    if start_date is None or end_date is None:
        return False
    return start_date <= end_date
