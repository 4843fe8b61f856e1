from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

import pandas as pd

from dashboard_core.builder import (
    DEFAULT_MAX_LABEL_LENGTH,
    ChartPoint,
    filter_records,
    group_by,
    label_text,
    mean,
    rank,
    to_chart_point,
    to_dicts,
    total,
)
from dashboard_core.charts import bar_chart, chart_specs, grouped_bar_chart, pie_chart
from dashboard_core.numbers import format_count, format_percent, parse_number, round_half_up

TOP_CAMPAIGNS = 10
TOP_CONVERSION = 8

LEAD_FIELDS = {
    "total_leads": "Total Leads",
    "qualified_leads": "Qualified",
    "converted_leads": "Converted",
}


def format_date(value: Any) -> Optional[str]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    ts = pd.to_datetime(value, errors="coerce")
    if pd.isna(ts):
        return None
    return ts.strftime("%Y-%m-%d")


def campaign_table(campaigns: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    rows = []
    for c in campaigns:
        rate = parse_number(c.get("conversion_rate"), field="conversion_rate")
        rows.append(
            {
                "campaign_name": label_text(c.get("campaign_name")),
                "lead_channel": label_text(c.get("lead_channel")),
                "total_leads": parse_number(c.get("total_leads")) or 0.0,
                "qualified_leads": parse_number(c.get("qualified_leads")) or 0.0,
                "converted_leads": parse_number(c.get("converted_leads")) or 0.0,
                "conversion_rate": round_half_up(rate, 2) if rate is not None else None,
                "start_date": format_date(c.get("start_date")),
                "end_date": format_date(c.get("end_date")),
            }
        )
    return rows


def compute_campaigns(
    campaigns: Optional[Iterable[Mapping[str, Any]]],
    *,
    max_label_length: Optional[int] = DEFAULT_MAX_LABEL_LENGTH,
) -> Dict[str, Any]:
    rows = [c for c in (campaigns or []) if isinstance(c, Mapping)]

    totals = {name: total(rows, name) for name in LEAD_FIELDS}
    avg_rate = mean(rows, "conversion_rate")
    kpis = {
        **totals,
        "avg_conversion_rate": round_half_up(avg_rate, 2) if avg_rate is not None else None,
    }
    tiles = [
        {"title": "Total Leads", "value": format_count(totals["total_leads"])},
        {"title": "Qualified Leads", "value": format_count(totals["qualified_leads"])},
        {"title": "Converted Leads", "value": format_count(totals["converted_leads"])},
        {"title": "Avg Conversion Rate", "value": format_percent(avg_rate)},
    ]

    top_campaigns = [
        to_chart_point(c, "campaign_name", max_label_length, values=list(LEAD_FIELDS))
        for c in rank(rows, "total_leads", "desc", TOP_CAMPAIGNS)
    ]
    channels = [
        to_chart_point(b, "key", max_label_length, values=["count", "leads"])
        for b in group_by(rows, "lead_channel", {"leads": ("total_leads", "sum")})
    ]
    converting = filter_records(rows, "conversion_rate", lambda rate: rate > 0)
    conversion = [
        to_chart_point(c, "campaign_name", max_label_length, values=["conversion_rate"])
        for c in rank(converting, "conversion_rate", "desc", TOP_CONVERSION)
    ]
    funnel = [ChartPoint(label=title, full_label=title, values={"value": totals[name]}) for name, title in LEAD_FIELDS.items()]

    charts = chart_specs(
        leads_by_campaign=grouped_bar_chart(top_campaigns, list(LEAD_FIELDS), titles=LEAD_FIELDS),
        channels=pie_chart(channels, "leads", title="Channel"),
        conversion=bar_chart(conversion, "conversion_rate", title="Conversion Rate %", value_format=".2f", color="#10B981"),
        funnel=bar_chart(funnel, "value", title="Leads", value_format=",.0f") if rows else None,
    )
    return {
        "empty": not rows,
        "kpis": kpis,
        "tiles": tiles,
        "top_campaigns": to_dicts(top_campaigns),
        "channels": to_dicts(channels),
        "conversion": to_dicts(conversion),
        "funnel": to_dicts(funnel) if rows else [],
        "table": campaign_table(rows),
        "charts": charts,
    }
