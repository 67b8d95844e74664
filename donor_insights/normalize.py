"""Currency, date and month parsing for imported spreadsheet cells."""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any

import pandas as pd


DATE_FORMATS = (
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%Y-%m-%d",
    "%d/%m/%Y",
    "%Y/%m/%d",
    "%d-%m-%Y",
    "%b %d, %Y",
    "%d %b %Y",
)

RELATIVE_DATE_WORDS = frozenset({"now", "today", "tomorrow", "yesterday"})

MONTH_NAMES = (
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
)

_AMOUNT_STRIP_PATTERN = re.compile(r"[^0-9.\-]")


def parse_amount(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else 0.0
    if not isinstance(value, str):
        return 0.0

    cleaned = _AMOUNT_STRIP_PATTERN.sub("", value)
    if not cleaned:
        return 0.0
    try:
        number = float(cleaned)
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0


def parse_date(text: Any) -> date | None:
    """Parse a date string, trying the known export formats in order.

    Unpadded month/day values are accepted by every numeric format. When no
    explicit format matches, pandas gets a final attempt.
    """

    if isinstance(text, datetime):
        return text.date()
    if isinstance(text, date):
        return text
    if text is None:
        return None

    value = str(text).strip()
    if not value:
        return None

    for date_format in DATE_FORMATS:
        try:
            return datetime.strptime(value, date_format).date()
        except ValueError:
            continue

    # pandas resolves these relative to the clock, not the export.
    if value.lower() in RELATIVE_DATE_WORDS:
        return None

    parsed = pd.to_datetime(value, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.date()


def parse_month(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not value.is_integer():
            return None
        number = int(value)
        return number if 1 <= number <= 12 else None

    text = str(value).strip().lower()
    if not text:
        return None
    if text.isdigit():
        number = int(text)
        return number if 1 <= number <= 12 else None

    for index, month_name in enumerate(MONTH_NAMES):
        if month_name.startswith(text):
            return index + 1
    return None


def resolve_donation_date(
    date_value: Any,
    month_value: Any = None,
    today: date | None = None,
) -> date | None:
    """Return the donation date, or the 1st of a named month this year."""

    if date_value is not None:
        parsed = parse_date(date_value)
        if parsed is not None:
            return parsed

    month_number = parse_month(month_value)
    if month_number is not None:
        anchor = today or date.today()
        return date(anchor.year, month_number, 1)

    return None


def parse_donation_date(
    date_value: Any,
    month_value: Any = None,
    today: date | None = None,
) -> date:
    """Like :func:`resolve_donation_date` but falls back to ``today``.

    Rows dated this way are indistinguishable from real gifts made today,
    so the record builder only uses this when undated rows are allowed.
    """

    resolved = resolve_donation_date(date_value, month_value, today=today)
    if resolved is not None:
        return resolved
    return today or date.today()


def month_label(value: date) -> str:
    return value.strftime("%B %Y")


def short_month_label(year: int, month: int) -> str:
    return date(year, month, 1).strftime("%b %Y")
