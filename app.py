import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import pandas as pd
import streamlit as st

from dashboard_core.client import BackendClient, BackendError
from dashboard_core.metrics_campaigns import compute_campaigns
from dashboard_core.metrics_insights import CONTEXTS, compute_query_results, normalize_query
from dashboard_core.metrics_leads import compute_lead_performance, compute_lead_summary
from dashboard_core.metrics_revenue import compute_revenue
from dashboard_core.ranges import PRESET_DAYS, normalize_date_range, preset_range
from dashboard_core.settings import get_settings

logger = logging.getLogger(__name__)


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;margin-bottom: 8px;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def render_tiles(tiles: List[Dict[str, Any]], per_row: int = 4):
    for start in range(0, len(tiles), per_row):
        cols = st.columns(per_row)
        for col, tile in zip(cols, tiles[start : start + per_row]):
            col.metric(tile["title"], tile["value"], help=tile.get("subtitle"))


def render_chart(charts: Dict[str, Any], name: str, title: str, empty_message: str = "No data available."):
    with card(title):
        spec = charts.get(name)
        if not spec:
            st.info(empty_message)
            return
        st.vega_lite_chart(spec, use_container_width=True)


def render_table(rows: List[Dict[str, Any]], empty_message: str = "No data available."):
    if not rows:
        st.info(empty_message)
        return
    st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)


def points_table(points: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [{"Name": p["fullLabel"], **p["values"]} for p in points]


# ---------- data access ----------
settings = get_settings()
logging.basicConfig(level=settings.log_level.upper())


@st.cache_resource
def get_client() -> BackendClient:
    return BackendClient(settings.api_base_url, timeout=settings.request_timeout)


@st.cache_data(ttl=300, show_spinner=False)
def fetch_summary() -> Dict[str, Any]:
    return get_client().analytics_summary()


@st.cache_data(ttl=300, show_spinner=False)
def fetch_performance(start_date: str, end_date: str) -> Dict[str, Any]:
    return get_client().lead_performance(normalize_date_range(start_date, end_date))


@st.cache_data(ttl=300, show_spinner=False)
def fetch_campaigns() -> List[Dict[str, Any]]:
    return get_client().campaigns()


@st.cache_data(ttl=300, show_spinner=False)
def fetch_revenue() -> Dict[str, Any]:
    return get_client().revenue()


def load(fetch, *args) -> Optional[Any]:
    try:
        return fetch(*args)
    except BackendError as exc:
        logger.error("backend fetch failed: %s", exc)
        st.error(f"Error: {exc}")
        return None


# ---------- pages ----------
def render_analytics_page():
    st.header("Analytics")
    summary_data = load(fetch_summary)
    if summary_data is not None:
        summary = compute_lead_summary(summary_data)
        if summary["empty"]:
            st.info("No summary data available.")
        else:
            render_tiles(summary["tiles"])

    st.subheader("Lead Performance")
    preset = st.radio("Range", [f"Last {d} days" for d in PRESET_DAYS] + ["Custom"], index=1, horizontal=True)
    if preset == "Custom":
        default = normalize_date_range()
        c1, c2 = st.columns(2)
        start = c1.date_input("Start date", value=default.start)
        end = c2.date_input("End date", value=default.end)
        date_range = normalize_date_range(start, end)
    else:
        date_range = preset_range(int(preset.split()[1]))
    params = date_range.to_params()
    st.caption(f"{params['start_date']} to {params['end_date']}")

    perf_data = load(fetch_performance, params["start_date"], params["end_date"])
    if perf_data is None:
        return
    perf = compute_lead_performance(perf_data, date_range, max_label_length=settings.max_label_length)
    if perf["empty"]:
        st.info("No lead activity in the selected range.")
        return

    st.metric("Total Leads", f"{perf['total_leads']:,.0f}")
    left, right = st.columns(2)
    with left:
        render_chart(perf["charts"], "status", "Lead Status Distribution")
        render_chart(perf["charts"], "owner", "Counselor Conversion Rate")
    with right:
        render_chart(perf["charts"], "channel", "Leads by Channel")
        render_chart(perf["charts"], "source", "Leads by Source")
    with card("Channel Performance"):
        render_table(points_table(perf["by_channel"]))
    with card("Counselor Performance"):
        render_table(points_table(perf["by_owner"]))


def render_campaign_page():
    st.header("Campaign Analytics")
    campaigns = load(fetch_campaigns)
    if campaigns is not None:
        view = compute_campaigns(campaigns, max_label_length=settings.max_label_length)
        if view["empty"]:
            st.info("No campaign data available.")
        else:
            render_tiles(view["tiles"])
            left, right = st.columns(2)
            with left:
                render_chart(view["charts"], "leads_by_campaign", "Top Campaigns by Leads")
                render_chart(view["charts"], "conversion", "Top Conversion Rates", "No campaigns with conversion rate > 0%")
            with right:
                render_chart(view["charts"], "channels", "Channel Distribution")
                render_chart(view["charts"], "funnel", "Lead Funnel")
            with card("All Campaigns"):
                render_table(view["table"])

    st.subheader("Revenue")
    revenue = load(fetch_revenue)
    if revenue is None:
        return
    view = compute_revenue(revenue, max_label_length=settings.max_label_length)
    if view["empty"]:
        st.info("No revenue data available.")
        return
    render_tiles(view["tiles"])
    left, right = st.columns(2)
    with left:
        render_chart(view["charts"], "universities", "Top Universities by Revenue")
        render_chart(view["charts"], "payment_modes", "Payment Modes")
    with right:
        render_chart(view["charts"], "courses", "Top Courses by Revenue")
    with card("Revenue by University"):
        render_table(view["universities_table"])
    with card("Revenue by Course"):
        render_table(view["courses_table"])


def render_chatbot_page():
    st.header("AI Insights Chatbot")
    with st.form("insights_query"):
        context = st.selectbox("Select Context", CONTEXTS, index=0)
        query = st.text_input("Ask a question about your data", "")
        submitted = st.form_submit_button("Ask")
    if not submitted:
        return
    if not query.strip():
        st.warning("Enter a question first.")
        return

    q = normalize_query(query, context)
    with st.spinner("Querying..."):
        try:
            response = get_client().insights_query(q["query"], q["context"])
        except BackendError as exc:
            logger.error("insights query failed: %s", exc)
            st.error(f"Error: {exc}")
            return
    view = compute_query_results(response)
    if view["summary"]:
        st.markdown(view["summary"])
    st.subheader(f"Results ({view['result_count']})")
    titles = {c["field"]: c["title"] for c in view["columns"]}
    render_table([{titles[k]: v for k, v in row.items()} for row in view["rows"]], "No results found.")


st.set_page_config(page_title="Lead Analytics Dashboard", layout="wide")
inject_base_styles()
st.title("Lead Analytics Dashboard")

with st.sidebar:
    st.markdown("### Navigate")
    nav_choice = st.radio("Navigate", ["Analytics", "Campaign", "Chatbot"], index=0)
    st.markdown("---")
    if st.button("Refresh"):
        st.cache_data.clear()
        st.rerun()
    st.caption(f"Backend: {settings.api_base_url}")

if nav_choice == "Analytics":
    render_analytics_page()
elif nav_choice == "Campaign":
    render_campaign_page()
else:
    render_chatbot_page()
