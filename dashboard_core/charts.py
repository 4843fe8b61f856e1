from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence

import altair as alt
import pandas as pd

from dashboard_core.builder import ChartPoint

alt.data_transformers.disable_max_rows()

COLORS = ["#3B82F6", "#10B981", "#F59E0B", "#EF4444", "#8B5CF6", "#EC4899", "#06B6D4", "#14B8A6"]


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def points_frame(points: Sequence[ChartPoint]) -> pd.DataFrame:
    rows: List[Dict[str, Any]] = []
    for position, point in enumerate(points):
        rows.append({"position": position, "label": point.label, "fullLabel": point.full_label, **point.values})
    return pd.DataFrame(rows)


def _short_label_expr(points: Sequence[ChartPoint]) -> str:
    # Axis ticks are keyed by the full label so two long names that shorten to
    # the same text still get separate bars.
    mapping = {p.full_label: p.label for p in points}
    return f"{json.dumps(mapping)}[datum.label]"


def bar_chart(
    points: Sequence[ChartPoint],
    value: str,
    *,
    title: str,
    value_format: str = ",.1f",
    color: str = COLORS[0],
) -> Optional[alt.Chart]:
    if not points:
        return None
    df = points_frame(points)
    hover = alt.selection_point(fields=["fullLabel"], on="mouseover", empty="all")
    return (
        alt.Chart(df)
        .mark_bar(color=color)
        .encode(
            x=alt.X("fullLabel:N", sort=None, title=None, axis=alt.Axis(labelExpr=_short_label_expr(points), grid=False)),
            y=alt.Y(f"{value}:Q", title=title, axis=alt.Axis(format=value_format, gridDash=[4, 4], domain=False, ticks=False)),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.6)),
            tooltip=[
                alt.Tooltip("fullLabel:N", title="Name"),
                alt.Tooltip(f"{value}:Q", title=title, format=value_format),
            ],
        )
        .add_params(hover)
    )


def grouped_bar_chart(
    points: Sequence[ChartPoint],
    values: Sequence[str],
    *,
    titles: Optional[Dict[str, str]] = None,
    value_title: str = "Leads",
) -> Optional[alt.Chart]:
    if not points:
        return None
    titles = titles or {}
    df = points_frame(points)
    long_df = df.melt(id_vars=["position", "fullLabel"], value_vars=list(values), var_name="metric", value_name="value")
    long_df["metric"] = long_df["metric"].map(lambda m: titles.get(m, m))
    hover = alt.selection_point(fields=["metric"], on="mouseover", empty="all")
    return (
        alt.Chart(long_df)
        .mark_bar()
        .encode(
            x=alt.X("fullLabel:N", sort=None, title=None, axis=alt.Axis(labelExpr=_short_label_expr(points), grid=False)),
            xOffset="metric:N",
            y=alt.Y("value:Q", title=value_title, axis=alt.Axis(gridDash=[4, 4], domain=False, ticks=False)),
            color=alt.Color("metric:N", title="Metric", scale=alt.Scale(range=COLORS)),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.3)),
            tooltip=[
                alt.Tooltip("fullLabel:N", title="Name"),
                alt.Tooltip("metric:N", title="Metric"),
                alt.Tooltip("value:Q", title=value_title, format=",.0f"),
            ],
        )
        .add_params(hover)
    )


def pie_chart(points: Sequence[ChartPoint], value: str, *, title: str) -> Optional[alt.Chart]:
    if not points:
        return None
    df = points_frame(points)
    return (
        alt.Chart(df)
        .mark_arc(innerRadius=0)
        .encode(
            theta=alt.Theta(f"{value}:Q", stack=True),
            color=alt.Color("fullLabel:N", title=title, sort=None, scale=alt.Scale(range=COLORS)),
            order=alt.Order("position:Q"),
            tooltip=[
                alt.Tooltip("fullLabel:N", title=title),
                alt.Tooltip(f"{value}:Q", title="Value", format=",.1f"),
            ],
        )
    )


def chart_specs(**charts: Optional[alt.Chart]) -> Dict[str, Any]:
    """Vega-Lite specs for the charts that exist; empty views are left out."""
    return {name: to_vega_spec(chart) for name, chart in charts.items() if chart is not None}
