from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional

from dashboard_core.builder import (
    DEFAULT_MAX_LABEL_LENGTH,
    UNKNOWN_LABEL,
    ChartPoint,
    group_by,
    label_text,
    percentage_of,
    records_of,
    to_chart_point,
    to_dicts,
    total,
)
from dashboard_core.charts import bar_chart, chart_specs, grouped_bar_chart, pie_chart
from dashboard_core.numbers import format_count, format_currency, format_percent, is_blank, parse_number, round_half_up
from dashboard_core.ranges import DateRange


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = data.get(name)
    return section if isinstance(section, Mapping) else {}


def _metric(section: Mapping[str, Any], name: str) -> Optional[float]:
    return parse_number(section.get(name), field=name)


def _tile(section: str, title: str, value: str, subtitle: Optional[str] = None) -> Dict[str, Any]:
    return {"section": section, "title": title, "value": value, "subtitle": subtitle}


def compute_lead_summary(data: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """KPI tiles for the analytics summary endpoint."""
    data = data or {}
    leads = _section(data, "leads")
    admissions = _section(data, "admissions")
    revenue = _section(data, "revenue")
    performance = _section(data, "performance")

    kpis = {
        "leads": {
            "total": _metric(leads, "total"),
            "qualified": _metric(leads, "qualified"),
            "converted": _metric(leads, "converted"),
            "qualification_rate": _metric(leads, "qualification_rate"),
        },
        "admissions": {
            "total": _metric(admissions, "total"),
            "unique_courses": _metric(admissions, "unique_courses"),
            "unique_universities": _metric(admissions, "unique_universities"),
        },
        "revenue": {
            "total": _metric(revenue, "total"),
            "average": _metric(revenue, "average"),
            "transactions": _metric(revenue, "transactions"),
        },
        "performance": {
            "conversion_rate": _metric(performance, "conversion_rate"),
            "active_counselors": _metric(performance, "active_counselors"),
            "avg_calls_per_lead": _metric(performance, "avg_calls_per_lead"),
            "avg_emails_per_lead": _metric(performance, "avg_emails_per_lead"),
        },
    }

    transactions = kpis["revenue"]["transactions"]
    tiles = [
        _tile("Leads", "Total Leads", format_count(kpis["leads"]["total"])),
        _tile("Leads", "Qualified", format_count(kpis["leads"]["qualified"])),
        _tile("Leads", "Converted", format_count(kpis["leads"]["converted"])),
        _tile("Leads", "Qualification Rate", format_percent(kpis["leads"]["qualification_rate"])),
        _tile("Admissions", "Total Admissions", format_count(kpis["admissions"]["total"])),
        _tile("Admissions", "Unique Courses", format_count(kpis["admissions"]["unique_courses"])),
        _tile("Admissions", "Unique Universities", format_count(kpis["admissions"]["unique_universities"])),
        _tile(
            "Revenue",
            "Total Revenue",
            format_currency(kpis["revenue"]["total"], "millions"),
            f"{format_count(transactions)} transactions" if transactions is not None else None,
        ),
        _tile("Revenue", "Average Revenue", format_currency(kpis["revenue"]["average"])),
        _tile("Revenue", "Transactions", format_count(transactions)),
        _tile("Performance", "Conversion Rate", format_percent(kpis["performance"]["conversion_rate"])),
        _tile("Performance", "Active Counselors", format_count(kpis["performance"]["active_counselors"])),
        _tile("Performance", "Avg Calls/Lead", _plain(kpis["performance"]["avg_calls_per_lead"])),
        _tile("Performance", "Avg Emails/Lead", _plain(kpis["performance"]["avg_emails_per_lead"])),
    ]
    return {"empty": not any(section for section in (leads, admissions, revenue, performance)), "kpis": kpis, "tiles": tiles}


def _plain(value: Optional[float], decimals: int = 2) -> str:
    if value is None:
        return "N/A"
    return f"{round_half_up(value, decimals):.{decimals}f}"


def source_name(value: Any) -> str:
    """Display name of a lead source.

    `source_medium` is sometimes a JSON object string such as
    ``{"name": "Google Ads", "medium": "cpc"}``; plain strings are used as-is.
    """
    if isinstance(value, Mapping):
        return label_text(value.get("name"))
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            return label_text(value)
        if isinstance(parsed, Mapping):
            return label_text(parsed.get("name"))
    return label_text(value)


def owner_name(record: Mapping[str, Any]) -> str:
    parts = [str(record.get(k)).strip() for k in ("first_name", "last_name") if not is_blank(record.get(k))]
    return " ".join(parts) if parts else UNKNOWN_LABEL


def _with_rate(point: ChartPoint, name: str, part: str, whole: str) -> ChartPoint:
    values = dict(point.values)
    values[name] = percentage_of(values.get(part), values.get(whole))
    return ChartPoint(label=point.label, full_label=point.full_label, values=values)


def status_points(rows: List[Mapping[str, Any]]) -> List[ChartPoint]:
    buckets = group_by(rows, "lead_status", {"leads": ("count", "sum")})
    overall = sum(b.values["leads"] for b in buckets)
    points = []
    for bucket in buckets:
        point = to_chart_point(bucket, lambda b: f"Status {b.key}", values=["leads"])
        points.append(
            ChartPoint(
                label=point.label,
                full_label=point.full_label,
                values={**point.values, "percentage": percentage_of(point.values["leads"], overall)},
            )
        )
    return points


def channel_points(rows: List[Mapping[str, Any]], max_label_length: Optional[int]) -> List[ChartPoint]:
    buckets = group_by(
        rows,
        "lead_channel",
        {"total_leads": ("total_leads", "sum"), "qualified_leads": ("qualified_leads", "sum")},
    )
    return [
        _with_rate(
            to_chart_point(b, "key", max_label_length, values=["total_leads", "qualified_leads"]),
            "conversion_rate",
            "qualified_leads",
            "total_leads",
        )
        for b in buckets
    ]


def owner_points(rows: List[Mapping[str, Any]], max_label_length: Optional[int]) -> List[ChartPoint]:
    return [
        to_chart_point(
            r,
            owner_name,
            max_label_length,
            values=["total_leads", "converted", "conversion_rate", "avg_calls"],
        )
        for r in rows
    ]


def source_points(rows: List[Mapping[str, Any]], max_label_length: Optional[int]) -> List[ChartPoint]:
    buckets = group_by(
        rows,
        lambda r: source_name(r.get("source_medium")),
        {"leads": ("leads", "sum"), "qualified": ("qualified", "sum")},
    )
    return [
        _with_rate(
            to_chart_point(b, "key", max_label_length, values=["leads", "qualified"]),
            "qualification_rate",
            "qualified",
            "leads",
        )
        for b in buckets
    ]


def compute_lead_performance(
    data: Optional[Mapping[str, Any]],
    date_range: Optional[DateRange] = None,
    *,
    max_label_length: Optional[int] = DEFAULT_MAX_LABEL_LENGTH,
) -> Dict[str, Any]:
    data = data or {}
    by_status = status_points(records_of(data, "by_status"))
    by_channel = channel_points(records_of(data, "by_channel"), max_label_length)
    by_owner = owner_points(records_of(data, "by_owner"), max_label_length)
    by_source = source_points(records_of(data, "by_source"), max_label_length)

    charts = chart_specs(
        status=pie_chart(by_status, "leads", title="Lead Status"),
        channel=grouped_bar_chart(
            by_channel,
            ["total_leads", "qualified_leads"],
            titles={"total_leads": "Total Leads", "qualified_leads": "Qualified Leads"},
        ),
        owner=bar_chart(by_owner, "conversion_rate", title="Conversion Rate %", value_format=".2f"),
        source=bar_chart(by_source, "leads", title="Leads", value_format=",.0f"),
    )
    return {
        "range": date_range.to_dict() if date_range is not None else None,
        "empty": not (by_status or by_channel or by_owner or by_source),
        "total_leads": total((p.values for p in by_status), "leads"),
        "by_status": to_dicts(by_status),
        "by_channel": to_dicts(by_channel),
        "by_owner": to_dicts(by_owner),
        "by_source": to_dicts(by_source),
        "charts": charts,
    }
