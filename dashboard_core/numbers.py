from __future__ import annotations

import logging
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

import pandas as pd


logger = logging.getLogger(__name__)

THOUSAND = 1_000
LAKH = 100_000
MILLION = 1_000_000
CRORE = 10_000_000

UNIT_DIVISORS = {
    "thousands": THOUSAND,
    "lakhs": LAKH,
    "millions": MILLION,
    "crores": CRORE,
}
UNIT_SUFFIXES = {"thousands": "K", "lakhs": "L", "millions": "M", "crores": "Cr"}

CURRENCY_SYMBOL = "₹"


class MalformedFieldError(ValueError):
    """A single field could not be read as a number.

    Raised only by `parse_number_strict`; `parse_number` absorbs it and
    returns None, which the builder treats as zero in sums and leaves out of
    averages.
    """


def is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def parse_number_strict(value: object) -> float:
    """Read `value` as a finite float.

    Accepted: ints, floats, decimals and strings holding a number. Strings may
    carry surrounding whitespace, "," thousands separators and one trailing
    "%". Booleans are rejected.
    """
    if is_blank(value):
        raise MalformedFieldError("value is missing")
    if isinstance(value, bool):
        raise MalformedFieldError("booleans are not numbers")
    if isinstance(value, str):
        text = value.strip().replace(",", "")
        if text.endswith("%"):
            text = text[:-1].rstrip()
        out = pd.to_numeric(text, errors="coerce")
    elif pd.api.types.is_number(value):
        out = value
    else:
        raise MalformedFieldError(f"unsupported type {type(value).__name__}")
    try:
        out = float(out)
    except (TypeError, ValueError) as exc:
        raise MalformedFieldError(str(exc)) from exc
    if math.isnan(out) or math.isinf(out):
        raise MalformedFieldError(f"{value!r} is not a finite number")
    return out


def parse_number(value: object, *, field: Optional[str] = None) -> Optional[float]:
    """Lenient form of `parse_number_strict`: None instead of an error."""
    try:
        return parse_number_strict(value)
    except MalformedFieldError as exc:
        if not is_blank(value):
            logger.debug("Ignoring non-numeric %s=%r (%s)", field or "value", value, exc)
        return None


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def convert_units(value: object, divisor: float, decimals: int = 1) -> float:
    """Divide by `divisor` and round half-up; unreadable input converts to 0.0."""
    number = parse_number(value)
    if number is None:
        return 0.0
    return round_half_up(number / float(divisor), decimals)


def format_count(value: object) -> str:
    number = parse_number(value)
    if number is None:
        return "N/A"
    return f"{round_half_up(number):,.0f}"


def format_percent(value: object, decimals: int = 2) -> str:
    """Format a 0-100 scale percentage."""
    number = parse_number(value)
    if number is None:
        return "N/A"
    return f"{round_half_up(number, decimals):.{decimals}f}%"


def format_currency(value: object, unit: Optional[str] = None, decimals: int = 2) -> str:
    number = parse_number(value)
    if number is None:
        return "N/A"
    if unit is None:
        return f"{CURRENCY_SYMBOL}{round_half_up(number, decimals):,.{decimals}f}"
    if unit not in UNIT_DIVISORS:
        raise ValueError(f"unknown unit {unit!r}")
    scaled = round_half_up(number / UNIT_DIVISORS[unit], decimals)
    return f"{CURRENCY_SYMBOL}{scaled:,.{decimals}f}{UNIT_SUFFIXES[unit]}"
