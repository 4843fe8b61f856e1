from __future__ import annotations

import logging
import math
from typing import Optional

import numpy as np
import pandas as pd
from fastapi import Depends, FastAPI, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dashboard_api.schemas import (
    CampaignsPayload,
    InsightsQueryModel,
    InsightsResultPayload,
    LeadPerformancePayload,
    LeadSummaryPayload,
    RevenuePayload,
)
from dashboard_core.builder import InvalidCallError
from dashboard_core.client import BackendClient, BackendError
from dashboard_core.metrics_campaigns import compute_campaigns
from dashboard_core.metrics_insights import compute_query_results, normalize_query
from dashboard_core.metrics_leads import compute_lead_performance, compute_lead_summary
from dashboard_core.metrics_revenue import compute_revenue
from dashboard_core.ranges import normalize_date_range
from dashboard_core.settings import get_settings


settings = get_settings()
logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = FastAPI(title="Lead Analytics Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_client() -> BackendClient:
    s = get_settings()
    return BackendClient(s.api_base_url, timeout=s.request_timeout)


def _label_length() -> int:
    return get_settings().max_label_length


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(name: str, exc: Exception) -> JSONResponse:
    if isinstance(exc, InvalidCallError):
        logger.warning("%s rejected: %s", name, exc)
        return JSONResponse(status_code=400, content={"error": str(exc), "type": type(exc).__name__})
    if isinstance(exc, BackendError):
        logger.error("%s backend failure (status=%s): %s", name, exc.status_code, exc)
        return JSONResponse(
            status_code=502,
            content={"error": str(exc), "type": type(exc).__name__, "upstream_status": exc.status_code},
        )
    logger.exception("%s failed", name)
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


@app.get("/health")
def health():
    return {"status": "ok"}


# ---------- view models from posted backend payloads ----------


@app.post("/views/leads/summary")
def view_lead_summary(payload: LeadSummaryPayload):
    try:
        return _json(compute_lead_summary(payload.model_dump()))
    except Exception as exc:
        return _error("view_lead_summary", exc)


@app.post("/views/leads/performance")
def view_lead_performance(payload: LeadPerformancePayload):
    try:
        date_range = normalize_date_range(payload.start_date, payload.end_date)
        return _json(compute_lead_performance(payload.model_dump(), date_range, max_label_length=_label_length()))
    except Exception as exc:
        return _error("view_lead_performance", exc)


@app.post("/views/campaigns")
def view_campaigns(payload: CampaignsPayload):
    try:
        return _json(compute_campaigns(payload.data, max_label_length=_label_length()))
    except Exception as exc:
        return _error("view_campaigns", exc)


@app.post("/views/revenue")
def view_revenue(payload: RevenuePayload):
    try:
        return _json(compute_revenue(payload.model_dump(), max_label_length=_label_length()))
    except Exception as exc:
        return _error("view_revenue", exc)


@app.post("/views/insights")
def view_insights(payload: InsightsResultPayload):
    try:
        return _json(compute_query_results(payload.model_dump()))
    except Exception as exc:
        return _error("view_insights", exc)


# ---------- view models fetched from the backend ----------


@app.get("/dashboard/analytics")
def dashboard_analytics(
    start_date: Optional[str] = Query(default=None),
    end_date: Optional[str] = Query(default=None),
    client: BackendClient = Depends(get_client),
):
    try:
        date_range = normalize_date_range(start_date, end_date)
        summary = compute_lead_summary(client.analytics_summary())
        performance = compute_lead_performance(
            client.lead_performance(date_range), date_range, max_label_length=_label_length()
        )
        return _json({"summary": summary, "performance": performance})
    except Exception as exc:
        return _error("dashboard_analytics", exc)


@app.get("/dashboard/campaigns")
def dashboard_campaigns(client: BackendClient = Depends(get_client)):
    try:
        return _json(compute_campaigns(client.campaigns(), max_label_length=_label_length()))
    except Exception as exc:
        return _error("dashboard_campaigns", exc)


@app.get("/dashboard/revenue")
def dashboard_revenue(client: BackendClient = Depends(get_client)):
    try:
        return _json(compute_revenue(client.revenue(), max_label_length=_label_length()))
    except Exception as exc:
        return _error("dashboard_revenue", exc)


@app.post("/dashboard/insights")
def dashboard_insights(body: InsightsQueryModel, client: BackendClient = Depends(get_client)):
    try:
        q = normalize_query(body.query, body.context)
        return _json(compute_query_results(client.insights_query(q["query"], q["context"])))
    except Exception as exc:
        return _error("dashboard_insights", exc)
