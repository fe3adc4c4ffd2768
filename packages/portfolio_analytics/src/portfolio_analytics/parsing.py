"""Scalar parsing for raw spreadsheet values.

Every parser here is total: bad input degrades to a documented fallback
(absent date, zero premium, empty period) and never raises.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta

import pandas as pd

CANCELLED_TOKENS = ("anula", "baja")
ACTIVE_TOKENS = ("vigor", "pendien", "cartera", "cobro", "suspension")

# Excel serial day 0 (accounts for the 1900 leap-year bug).
EXCEL_EPOCH = date(1899, 12, 30)
_MAX_EXCEL_SERIAL = 2_958_465  # 9999-12-31

_DMY_RE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{2}|\d{4})$")
_ISO_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:[ T].*)?$")


def is_missing(value: object) -> bool:
    """True for None, NaN/NaT and blank strings."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def clean_text(value: object, default: str = "") -> str:
    """Stringify and trim a raw cell; missing cells become *default*."""
    if is_missing(value):
        return default
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_premium(value: object) -> float:
    """Parse a locale-decimal premium ("350,00", "1.234,56", 120.5) -> float, else 0.0."""
    if is_missing(value) or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().replace(" ", "")
    if "," in text and "." in text:
        text = text.replace(".", "")
    text = text.replace(",", ".")
    try:
        return float(text)
    except ValueError:
        return 0.0


def parse_date(value: object) -> date | None:
    """Parse datetimes, Excel serials, DD/MM/YYYY and ISO strings; None when unparseable."""
    if is_missing(value) or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        if not 0 < value <= _MAX_EXCEL_SERIAL:
            return None
        return EXCEL_EPOCH + timedelta(days=int(value))

    text = str(value).strip()
    try:
        match = _DMY_RE.match(text)
        if match:
            day, month, year = (int(g) for g in match.groups())
            if year < 100:
                year += 2000
            return date(year, month, day)
        match = _ISO_RE.match(text)
        if match:
            year, month, day = (int(g) for g in match.groups())
            return date(year, month, day)
    except ValueError:
        return None
    return None


def normalize_period(value: object) -> str:
    """Canonical string for a production year/month value: 2024.0 -> "2024", "03" -> "3"."""
    text = clean_text(value)
    if not text:
        return ""
    try:
        number = float(text.replace(",", "."))
    except ValueError:
        return text
    if number.is_integer():
        return str(int(number))
    return text


def is_cancelled_status(status: object) -> bool:
    lowered = clean_text(status).lower()
    return any(token in lowered for token in CANCELLED_TOKENS)


def is_active_status(status: object) -> bool:
    lowered = clean_text(status).lower()
    return any(token in lowered for token in ACTIVE_TOKENS)


def months_between(start: date, end: date, days_per_month: float = 30.44) -> float:
    """Fractional months between two dates using an average month length."""
    return (end - start).days / days_per_month


def next_anniversary(effective: date, as_of: date) -> date:
    """First anniversary of *effective* on or after *as_of* (Feb 29 falls back to Feb 28).

    A policy taking effect after *as_of* has its first anniversary a year after it starts.
    """
    if effective > as_of:
        return _anniversary_in(effective, effective.year + 1)
    candidate = _anniversary_in(effective, as_of.year)
    if candidate < as_of:
        candidate = _anniversary_in(effective, as_of.year + 1)
    return candidate


def _anniversary_in(effective: date, year: int) -> date:
    try:
        return effective.replace(year=year)
    except ValueError:
        return effective.replace(year=year, day=28)
