"""Date parsing utilities."""

import re
from datetime import date, timedelta
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

_AGO = re.compile(r"^(\d+)\s+(day|week|month)s?\s+ago$")


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Supports:
    - Absolute dates: "2024-01-15", "January 15, 2024", "15/01/2024"
    - "today", "yesterday"
    - "<n> days/weeks/months ago"

    Args:
        date_str: Date string

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = date.today()

    if date_str == "today":
        return today
    if date_str == "yesterday":
        return today - timedelta(days=1)

    match = _AGO.match(date_str)
    if match:
        count = int(match.group(1))
        unit = match.group(2)
        if unit == "day":
            return today - timedelta(days=count)
        if unit == "week":
            return today - timedelta(weeks=count)
        return today - relativedelta(months=count)

    try:
        return date_parser.parse(date_str, dayfirst=False).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")
