from __future__ import annotations

from datetime import date, datetime

REPORT_DATE_FORMAT = "%Y-%m-%d"


def report_date_today() -> str:
    """
    Return today's local date as YYYY-MM-DD, the key used for stored report rows.
    """
    return date.today().strftime(REPORT_DATE_FORMAT)


def parse_report_date(value: str) -> str:
    """
    Validate a YYYY-MM-DD string and return it normalized.
    Raises ValueError for anything else.
    """
    try:
        parsed = datetime.strptime(value.strip(), REPORT_DATE_FORMAT)
    except (AttributeError, ValueError) as e:
        raise ValueError(f"Report date must be YYYY-MM-DD, got {value!r}") from e
    return parsed.strftime(REPORT_DATE_FORMAT)
