from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from dashboard_core.builder import (
    DEFAULT_MAX_LABEL_LENGTH,
    filter_records,
    label_text,
    rank,
    records_of,
    to_chart_point,
    to_dicts,
    total,
)
from dashboard_core.charts import bar_chart, chart_specs, pie_chart
from dashboard_core.numbers import LAKH, format_count, format_currency, parse_number, round_half_up

TOP_N = 10
REVENUE_UNIT = "lakhs"


def _revenue_points(rows: List[Mapping[str, Any]], label_field: str, max_label_length: Optional[int]):
    earning = filter_records(rows, "total_revenue", lambda v: v > 0)
    return [
        to_chart_point(
            r,
            label_field,
            max_label_length,
            values={"revenue": "total_revenue", "students": "student_count"},
            divisor={"revenue": LAKH},
        )
        for r in rank(earning, "total_revenue", "desc", TOP_N)
    ]


def _table(rows: List[Mapping[str, Any]], label_field: str) -> List[Dict[str, Any]]:
    out = []
    for r in rows:
        avg = parse_number(r.get("avg_revenue_per_student"), field="avg_revenue_per_student")
        out.append(
            {
                "name": label_text(r.get(label_field)),
                "total_students": parse_number(r.get("total_students")) or 0.0,
                "total_revenue": round_half_up(parse_number(r.get("total_revenue")) or 0.0),
                "avg_revenue_per_student": round_half_up(avg, 2) if avg is not None else None,
                "transaction_count": parse_number(r.get("transaction_count")) or 0.0,
            }
        )
    return out


def compute_revenue(
    data: Optional[Mapping[str, Any]],
    *,
    max_label_length: Optional[int] = DEFAULT_MAX_LABEL_LENGTH,
) -> Dict[str, Any]:
    """Revenue view: university / course / payment-mode breakdowns.

    Chart revenue values are in lakhs with one decimal; KPI totals stay in
    rupees and are formatted for display separately.
    """
    universities = records_of(data, "by_university")
    courses = records_of(data, "by_course")
    modes = records_of(data, "payment_modes")

    total_revenue = total(universities, "total_revenue")
    total_students = total(universities, "total_students")
    paying_students = total(universities, "paying_students")
    avg_per_student = round_half_up(total_revenue / total_students, 2) if total_students > 0 else 0.0
    kpis = {
        "total_revenue": total_revenue,
        "total_students": total_students,
        "avg_revenue_per_student": avg_per_student,
        "pending_payments": total_students - paying_students,
    }
    tiles = [
        {"title": "Total Revenue", "value": format_currency(total_revenue, "crores")},
        {"title": "Total Students", "value": format_count(total_students)},
        {"title": "Avg Revenue/Student", "value": format_currency(avg_per_student)},
        {"title": "Pending Payments", "value": format_count(kpis["pending_payments"])},
    ]

    top_universities = _revenue_points(universities, "UniversityName", max_label_length)
    top_courses = _revenue_points(courses, "Course", max_label_length)
    payment_modes = [
        to_chart_point(
            p,
            lambda r: f"ModeId {label_text(r.get('ModeId'))}",
            values={"amount": "total_amount", "transactions": "transaction_count"},
            divisor={"amount": LAKH},
        )
        for p in filter_records(modes, "total_amount")
    ]

    charts = chart_specs(
        universities=bar_chart(top_universities, "revenue", title="Revenue (₹ Lakhs)", color="#3B82F6"),
        courses=bar_chart(top_courses, "revenue", title="Revenue (₹ Lakhs)", color="#8B5CF6"),
        payment_modes=pie_chart(payment_modes, "amount", title="Payment Mode"),
    )
    return {
        "empty": not (universities or courses or modes),
        "unit": REVENUE_UNIT,
        "kpis": kpis,
        "tiles": tiles,
        "top_universities": to_dicts(top_universities),
        "top_courses": to_dicts(top_courses),
        "payment_modes": to_dicts(payment_modes),
        "universities_table": _table(universities, "UniversityName"),
        "courses_table": _table(courses, "Course"),
        "charts": charts,
    }
