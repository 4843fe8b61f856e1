from __future__ import annotations

from typing import Any, Dict, List

import pytest


@pytest.fixture
def campaigns() -> List[Dict[str, Any]]:
    return [
        {"campaign_name": "Summer Intake MBA", "lead_channel": "Google", "total_leads": 120, "qualified_leads": 40,
         "converted_leads": 12, "conversion_rate": "10.00", "start_date": "2025-05-01", "end_date": "2025-06-30"},
        {"campaign_name": "Brand", "lead_channel": "Facebook", "total_leads": 80, "qualified_leads": 20,
         "converted_leads": 0, "conversion_rate": "0.00", "start_date": "2025-04-01", "end_date": None},
        {"campaign_name": "Winter Executive Programmes", "lead_channel": "Google", "total_leads": 200, "qualified_leads": 90,
         "converted_leads": 30, "conversion_rate": "15.00", "start_date": "2025-11-01", "end_date": "2026-01-31"},
        {"campaign_name": "Referral", "lead_channel": None, "total_leads": 10, "qualified_leads": 5,
         "converted_leads": 2, "conversion_rate": "bad", "start_date": "not a date", "end_date": "2025-12-31"},
    ]


@pytest.fixture
def lead_performance() -> Dict[str, Any]:
    return {
        "by_status": [
            {"lead_status": 1, "count": "60", "percentage": "60.00"},
            {"lead_status": 2, "count": "30", "percentage": "30.00"},
            {"lead_status": 3, "count": "10", "percentage": "10.00"},
        ],
        "by_channel": [
            {"lead_channel": "Google", "total_leads": 50, "qualified_leads": 20, "conversion_rate": "40.00"},
            {"lead_channel": None, "total_leads": 30, "qualified_leads": 3, "conversion_rate": "10.00"},
            {"lead_channel": "", "total_leads": 20, "qualified_leads": 7, "conversion_rate": "35.00"},
        ],
        "by_owner": [
            {"first_name": "Asha", "last_name": "Rao", "total_leads": 40, "converted": 8,
             "conversion_rate": "20.00", "avg_calls": "3.50"},
            {"first_name": None, "last_name": None, "total_leads": 5, "converted": 0,
             "conversion_rate": None, "avg_calls": "n/a"},
        ],
        "by_source": [
            {"source_medium": '{"name": "Google Ads", "medium": "cpc"}', "leads": 40, "qualified": 10},
            {"source_medium": "walk-in", "leads": 20, "qualified": 5},
            {"source_medium": '{"medium": "email"}', "leads": 10, "qualified": 1},
        ],
    }


@pytest.fixture
def revenue() -> Dict[str, Any]:
    return {
        "by_university": [
            {"UniversityName": "International School of Advanced Computing", "total_revenue": "2500000.00",
             "total_students": 50, "paying_students": 45, "student_count": 50,
             "avg_revenue_per_student": "50000.00", "transaction_count": 60},
            {"UniversityName": "City College", "total_revenue": "1250000", "total_students": 30,
             "paying_students": 30, "student_count": 30, "avg_revenue_per_student": "41666.666",
             "transaction_count": 31},
            {"UniversityName": "Closed Campus", "total_revenue": "0", "total_students": 4,
             "paying_students": 0, "student_count": 4, "avg_revenue_per_student": None,
             "transaction_count": 0},
        ],
        "by_course": [
            {"Course": "MBA", "total_revenue": "3000000", "student_count": 60, "total_students": 60},
            {"Course": "BCA", "total_revenue": "750000", "student_count": 24, "total_students": 24},
        ],
        "payment_modes": [
            {"ModeId": 1, "total_amount": "3150000", "transaction_count": 70},
            {"ModeId": 2, "total_amount": None, "transaction_count": 3},
            {"ModeId": 3, "total_amount": "600000", "transaction_count": 21},
        ],
    }


@pytest.fixture
def lead_summary() -> Dict[str, Any]:
    return {
        "leads": {"total": 1520, "qualified": 610, "converted": 140, "qualification_rate": 40.13},
        "admissions": {"total": 140, "unique_courses": 12, "unique_universities": 7},
        "revenue": {"total": 12345678.9, "average": 88183.42, "transactions": 140},
        "performance": {"conversion_rate": 9.21, "active_counselors": 14,
                        "avg_calls_per_lead": "3.2", "avg_emails_per_lead": 1.75},
    }


@pytest.fixture
def query_response() -> Dict[str, Any]:
    return {
        "query": "hot leads this week",
        "result_count": 2,
        "results": [
            {"id": 101, "full_name": "Ravi Kumar", "email": "ravi@example.com", "lead_status": "New",
             "lead_date": "2026-10-12T09:30:00Z", "source_medium": '{"name": "Google Ads"}', "priority": "High"},
            {"id": 102, "full_name": "Meera Shah", "email": None, "lead_status": "Contacted",
             "lead_date": None, "source_medium": "walk-in", "priority": None},
        ],
    }
