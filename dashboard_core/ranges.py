from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, Optional, Union

import pandas as pd

from dashboard_core.builder import InvalidCallError

DEFAULT_RANGE_DAYS = 30
PRESET_DAYS = (7, 30, 90)
DATE_FORMAT = "%Y-%m-%d"

DateLike = Union[date, str, None]


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days

    def to_params(self) -> Dict[str, str]:
        return {"start_date": self.start.strftime(DATE_FORMAT), "end_date": self.end.strftime(DATE_FORMAT)}

    def to_dict(self) -> Dict[str, object]:
        return {**self.to_params(), "days": self.days}


def _as_date(value: DateLike, name: str) -> Optional[date]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        ts = pd.Timestamp(str(value).strip())
    except (ValueError, TypeError) as exc:
        raise InvalidCallError(f"{name} is not a date: {value!r}") from exc
    if pd.isna(ts):
        raise InvalidCallError(f"{name} is not a date: {value!r}")
    return ts.date()


def preset_range(days: int, *, today: Optional[date] = None) -> DateRange:
    if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
        raise InvalidCallError(f"days must be a positive integer, got {days!r}")
    end = today or date.today()
    return DateRange(start=end - timedelta(days=days), end=end)


def normalize_date_range(
    start: DateLike = None,
    end: DateLike = None,
    *,
    today: Optional[date] = None,
    default_days: int = DEFAULT_RANGE_DAYS,
) -> DateRange:
    """Fill in a lead-performance date range.

    A missing end is today; a missing start is `default_days` before the end.
    A start after the end is swapped rather than rejected.
    """
    end_d = _as_date(end, "end_date") or today or date.today()
    start_d = _as_date(start, "start_date") or (end_d - timedelta(days=default_days))
    if start_d > end_d:
        start_d, end_d = end_d, start_d
    return DateRange(start=start_d, end=end_d)
