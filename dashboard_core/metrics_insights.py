from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from dashboard_core.builder import InvalidCallError, label_text, records_of
from dashboard_core.metrics_campaigns import format_date
from dashboard_core.metrics_leads import source_name
from dashboard_core.numbers import is_blank, parse_number

CONTEXTS = ("all", "leads", "campaigns", "revenue")

RESULT_COLUMNS = [
    ("id", "ID"),
    ("full_name", "Name"),
    ("email", "Email"),
    ("lead_status", "Status"),
    ("lead_date", "Lead Date"),
    ("source", "Source"),
    ("priority", "Priority"),
]


def normalize_query(query: Optional[str], context: Optional[str] = "all") -> Dict[str, str]:
    text = (query or "").strip()
    if not text:
        raise InvalidCallError("query is empty")
    ctx = (context or "all").strip().lower()
    if ctx not in CONTEXTS:
        raise InvalidCallError(f"unknown context {context!r}; expected one of {', '.join(CONTEXTS)}")
    return {"query": text, "context": ctx}


def _cell(value: Any) -> Optional[str]:
    if is_blank(value):
        return None
    return str(value)


def compute_query_results(response: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Table for chatbot query results, one row per returned lead."""
    response = response or {}
    results = records_of(response, "results")
    rows: List[Dict[str, Any]] = []
    for lead in results:
        source = lead.get("source_medium")
        rows.append(
            {
                "id": _cell(lead.get("id")),
                "full_name": _cell(lead.get("full_name")),
                "email": _cell(lead.get("email")),
                "lead_status": _cell(lead.get("lead_status")),
                "lead_date": format_date(lead.get("lead_date")),
                "source": source_name(source) if not is_blank(source) else None,
                "priority": _cell(lead.get("priority")),
            }
        )

    reported = parse_number(response.get("result_count"), field="result_count")
    return {
        "empty": not rows,
        "query": _cell(response.get("query")),
        "message": _cell(response.get("message")),
        "result_count": int(reported) if reported is not None else len(rows),
        "columns": [{"field": f, "title": t} for f, t in RESULT_COLUMNS],
        "rows": rows,
        "summary": label_text(response.get("summary")) if not is_blank(response.get("summary")) else None,
    }
