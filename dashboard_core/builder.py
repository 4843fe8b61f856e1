"""Aggregate view-model builder.

Backend endpoints return lists of flat, loosely typed rows (leads, campaigns,
university/course revenue, payment modes). Every dashboard view needs the same
few steps on those rows before they can be drawn: group them by a key, sum or
average a couple of columns, rank, keep the top N and shorten long labels.
This module is the single implementation of those steps; the `metrics_*`
modules only supply field names.

Parsing policy (applies to every numeric read in this module):
- values go through `numbers.parse_number`;
- a missing or unreadable value adds 0 to a sum and is left out of averages
  and "count" reducers;
- a missing key (None, NaN or a blank string) groups under "Unknown".

Nothing here keeps state between calls, and no call fails because of a bad
row. Only malformed calls raise `InvalidCallError`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Literal, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from dashboard_core.numbers import convert_units, is_blank, parse_number


RawRecord = Mapping[str, Any]
KeyFn = Callable[[RawRecord], Any]
LabelFn = Callable[[Any], Any]
Direction = Literal["asc", "desc"]
AggregatorSpec = Tuple[str, str]

UNKNOWN_LABEL = "Unknown"
ELLIPSIS = "..."
DEFAULT_MAX_LABEL_LENGTH = 9

REDUCERS = {"sum": "sum", "count": "count", "mean": "mean", "average": "mean", "avg": "mean"}
_RESERVED = {"key", "count"}
_BUCKET_COL = "__bucket__"


class InvalidCallError(ValueError):
    """The call itself is malformed (bad limit, missing key function, ...)."""


@dataclass(frozen=True)
class GroupBucket:
    key: Any
    count: int
    values: Dict[str, Optional[float]] = field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        if name == "key":
            return self.key
        if name == "count":
            return self.count
        return self.values.get(name, default)

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "count": self.count, **self.values}


@dataclass(frozen=True)
class ChartPoint:
    label: str
    full_label: str
    values: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "fullLabel": self.full_label, "values": dict(self.values)}


TablePoint = ChartPoint


def field_value(item: Any, name: str) -> Any:
    if isinstance(item, GroupBucket):
        return item.get(name)
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def _resolve_key(key: Union[str, KeyFn, None]) -> KeyFn:
    if key is None:
        raise InvalidCallError("group_by needs a key function or field name")
    if isinstance(key, str):
        if not key:
            raise InvalidCallError("group_by key field name is empty")
        return lambda record: field_value(record, key)
    if not callable(key):
        raise InvalidCallError(f"group_by key must be callable or a field name, got {type(key).__name__}")
    return key


def _resolve_aggregators(aggregators: Optional[Mapping[str, AggregatorSpec]]) -> Dict[str, AggregatorSpec]:
    out: Dict[str, AggregatorSpec] = {}
    for name, spec in (aggregators or {}).items():
        if name in _RESERVED or name == _BUCKET_COL:
            raise InvalidCallError(f"aggregator name {name!r} is reserved")
        try:
            source, reducer = spec
        except (TypeError, ValueError) as exc:
            raise InvalidCallError(f"aggregator {name!r} must be a (field, reducer) pair") from exc
        if reducer not in REDUCERS:
            raise InvalidCallError(f"aggregator {name!r} has unknown reducer {reducer!r}")
        out[name] = (source, REDUCERS[reducer])
    return out


def bucket_key(value: Any) -> Any:
    if is_blank(value):
        return UNKNOWN_LABEL
    try:
        hash(value)
    except TypeError:
        return str(value)
    return value


def group_by(
    records: Optional[Iterable[RawRecord]],
    key: Union[str, KeyFn, None],
    aggregators: Optional[Mapping[str, AggregatorSpec]] = None,
) -> List[GroupBucket]:
    """Group records by key, keeping keys in first-seen order.

    `aggregators` follows pandas named aggregation:
    ``{"leads": ("total_leads", "sum")}``. Reducers are "sum", "count"
    (records whose field is numeric) and "mean" (alias "average").
    """
    key_fn = _resolve_key(key)
    specs = _resolve_aggregators(aggregators)
    rows = list(records or [])
    if not rows:
        return []

    # keyed on (type, value) so 1, 1.0 and True stay separate groups
    order: Dict[Tuple[type, Any], int] = {}
    keys: List[Any] = []
    codes: List[int] = []
    for record in rows:
        k = bucket_key(key_fn(record))
        code = order.setdefault((type(k), k), len(order))
        if code == len(keys):
            keys.append(k)
        codes.append(code)

    frame = pd.DataFrame({_BUCKET_COL: codes})
    for name, (source, _) in specs.items():
        frame[name] = pd.Series(
            [parse_number(field_value(record, source), field=source) for record in rows],
            dtype="float64",
        )

    grouped = frame.groupby(_BUCKET_COL, sort=True)
    sizes = grouped.size()
    agg = grouped.agg(**{name: (name, reducer) for name, (_, reducer) in specs.items()}) if specs else None

    buckets: List[GroupBucket] = []
    for code, k in enumerate(keys):
        values: Dict[str, Optional[float]] = {}
        for name, (_, reducer) in specs.items():
            raw = agg.at[code, name]
            if reducer == "count":
                values[name] = int(raw)
            elif pd.isna(raw):
                values[name] = None if reducer == "mean" else 0.0
            else:
                values[name] = float(raw)
        buckets.append(GroupBucket(key=k, count=int(sizes.loc[code]), values=values))
    return buckets


def _check_limit(limit: Optional[int]) -> None:
    if limit is None:
        return
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise InvalidCallError(f"limit must be an integer, got {limit!r}")
    if limit <= 0:
        raise InvalidCallError(f"limit must be positive, got {limit}")


def rank(
    items: Optional[Iterable[Any]],
    by: str,
    direction: Direction = "desc",
    limit: Optional[int] = None,
) -> List[Any]:
    """Stable sort on a numeric field, then keep the first `limit` items.

    Ties keep their input order. Items whose field is not numeric go last in
    either direction.
    """
    if not by:
        raise InvalidCallError("rank needs a field name")
    if direction not in ("asc", "desc"):
        raise InvalidCallError(f"direction must be 'asc' or 'desc', got {direction!r}")
    _check_limit(limit)

    present: List[Tuple[float, Any]] = []
    missing: List[Any] = []
    for item in items or []:
        number = parse_number(field_value(item, by), field=by)
        if number is None:
            missing.append(item)
        else:
            present.append((number, item))
    # list.sort stays stable with reverse=True
    present.sort(key=lambda pair: pair[0], reverse=(direction == "desc"))
    ordered = [item for _, item in present] + missing
    return ordered[:limit] if limit is not None else ordered


def truncate_label(text: str, max_length: Optional[int], ellipsis: str = ELLIPSIS) -> str:
    """Cut to `max_length - len(ellipsis)` characters and append the marker."""
    if max_length is None or len(text) <= max_length:
        return text
    return text[: max_length - len(ellipsis)] + ellipsis


def label_text(value: Any) -> str:
    if is_blank(value):
        return UNKNOWN_LABEL
    return str(value).strip()


def _resolve_values(source: Any, values: Union[Sequence[str], Mapping[str, str], None]) -> Dict[str, str]:
    if values is None:
        if isinstance(source, GroupBucket):
            return {"count": "count", **{name: name for name in source.values}}
        raise InvalidCallError("values must be given when the source is a record")
    if isinstance(values, Mapping):
        return dict(values)
    if isinstance(values, str):
        return {values: values}
    return {name: name for name in values}


def _divisor_for(name: str, divisor: Union[float, Mapping[str, float], None]) -> Optional[float]:
    if divisor is None:
        return None
    if isinstance(divisor, Mapping):
        return divisor.get(name)
    return divisor


def _check_divisor(divisor: Union[float, Mapping[str, float], None]) -> None:
    if divisor is None:
        return
    factors = divisor.values() if isinstance(divisor, Mapping) else [divisor]
    for factor in factors:
        if not parse_number(factor):
            raise InvalidCallError(f"divisor must be a non-zero number, got {factor!r}")


def to_chart_point(
    source: Any,
    label: Union[str, LabelFn],
    max_label_length: Optional[int] = None,
    *,
    values: Union[Sequence[str], Mapping[str, str], None] = None,
    divisor: Union[float, Mapping[str, float], None] = None,
    decimals: int = 1,
    ellipsis: str = ELLIPSIS,
) -> ChartPoint:
    """Build a render-ready point from a bucket or a single record.

    `label` is a field name or a callable on the source. `values` picks the
    numeric series (list of names, or output name -> source field). When a
    `divisor` is given (one number, or per output name) the value is divided
    and rounded half-up to `decimals` places. Non-numeric values become 0.0.
    """
    if label is None or (isinstance(label, str) and not label):
        raise InvalidCallError("to_chart_point needs a label field or function")
    if max_label_length is not None:
        if isinstance(max_label_length, bool) or not isinstance(max_label_length, int):
            raise InvalidCallError(f"max_label_length must be an integer, got {max_label_length!r}")
        if max_label_length <= len(ellipsis):
            raise InvalidCallError(
                f"max_label_length must be longer than the ellipsis marker ({len(ellipsis)}), got {max_label_length}"
            )
    _check_divisor(divisor)

    raw_label = label(source) if callable(label) else field_value(source, label)
    full_label = label_text(raw_label)

    out: Dict[str, float] = {}
    for name, source_field in _resolve_values(source, values).items():
        number = parse_number(field_value(source, source_field), field=source_field)
        factor = _divisor_for(name, divisor)
        if factor is not None:
            number = convert_units(number, factor, decimals)
        out[name] = 0.0 if number is None else number
    return ChartPoint(
        label=truncate_label(full_label, max_label_length, ellipsis),
        full_label=full_label,
        values=out,
    )


def percentage_of(part: Any, whole: Any) -> float:
    """`part` as a percentage (0-100) of `whole`; 0.0 when `whole` is 0 or unreadable."""
    denominator = parse_number(whole)
    if not denominator:
        return 0.0
    numerator = parse_number(part) or 0.0
    return numerator / denominator * 100.0


def total(records: Optional[Iterable[Any]], name: str) -> float:
    return float(sum(parse_number(field_value(r, name), field=name) or 0.0 for r in records or []))


def mean(records: Optional[Iterable[Any]], name: str) -> Optional[float]:
    numbers = [parse_number(field_value(r, name), field=name) for r in records or []]
    numbers = [n for n in numbers if n is not None]
    if not numbers:
        return None
    return sum(numbers) / len(numbers)


def filter_records(
    records: Optional[Iterable[Any]],
    name: str,
    predicate: Optional[Callable[[float], bool]] = None,
) -> List[Any]:
    """Keep records whose `name` field is numeric and satisfies `predicate`.

    Without a predicate every record with a readable `name` field is kept.
    """
    kept: List[Any] = []
    for record in records or []:
        number = parse_number(field_value(record, name), field=name)
        if number is not None and (predicate is None or predicate(number)):
            kept.append(record)
    return kept


def to_dicts(items: Iterable[Any]) -> List[Dict[str, Any]]:
    return [item.to_dict() for item in items]


def records_of(payload: Optional[Mapping[str, Any]], name: str) -> List[Mapping[str, Any]]:
    """The list under `payload[name]`, keeping only mapping rows."""
    rows = (payload or {}).get(name)
    if not isinstance(rows, list):
        return []
    return [r for r in rows if isinstance(r, Mapping)]
