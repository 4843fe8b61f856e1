from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

Record = Dict[str, Any]


class LeadSummaryPayload(BaseModel):
    leads: Record = Field(default_factory=dict)
    admissions: Record = Field(default_factory=dict)
    revenue: Record = Field(default_factory=dict)
    performance: Record = Field(default_factory=dict)


class LeadPerformancePayload(BaseModel):
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    by_status: List[Record] = Field(default_factory=list)
    by_channel: List[Record] = Field(default_factory=list)
    by_owner: List[Record] = Field(default_factory=list)
    by_source: List[Record] = Field(default_factory=list)


class CampaignsPayload(BaseModel):
    data: List[Record] = Field(default_factory=list)


class RevenuePayload(BaseModel):
    by_university: List[Record] = Field(default_factory=list)
    by_course: List[Record] = Field(default_factory=list)
    payment_modes: List[Record] = Field(default_factory=list)


class InsightsResultPayload(BaseModel):
    query: Optional[str] = None
    message: Optional[str] = None
    summary: Optional[str] = None
    result_count: Optional[Any] = None
    results: List[Record] = Field(default_factory=list)


class InsightsQueryModel(BaseModel):
    query: str
    context: str = "all"
