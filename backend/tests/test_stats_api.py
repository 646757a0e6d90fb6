from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from rma.use_cases.stats_aggregation import advanced_stats_use_case, summary_stats_use_case

TODAY = date(2024, 6, 30)


def _seed(sheet_factory, business):
    recent = TODAY - timedelta(days=3)
    sheet_factory(business, order_no="11111111", platform="Back Market", date_received=recent,
                  resolution="Back in stock", return_type="Refund", refund_amount=Decimal("100.00"),
                  status="Resolved", return_within_30_days="Yes", issue="Choose")
    sheet_factory(business, order_no="AMZ-1", platform="Amazon", date_received=recent,
                  resolution="Back in stock", return_type="Replacement", refund_amount=Decimal("50.00"),
                  status="Pending", return_within_30_days="No", replacement_available="Yes")
    sheet_factory(business, order_no="AMZ-1", platform="Amazon", date_received=TODAY - timedelta(days=20),
                  resolution="Choose", return_type="Refund", refund_amount=None, status="Pending")
    sheet_factory(business, order_no="AMZ-OLD", platform="Amazon", date_received=TODAY - timedelta(days=90),
                  resolution="Back in stock", refund_amount=Decimal("999.00"))


def test_summary_counts_sheets_in_window(db, tenants, sheet_factory) -> None:
    _seed(sheet_factory, tenants["acme"])

    stats = summary_stats_use_case(db=db, business_id=tenants["acme"].id, range_token="1m", today=TODAY)

    assert stats["range"] == "1m"
    assert stats["startDate"] == "2024-05-30"
    assert stats["totalOrders"] == 3
    assert stats["uniqueOrders"] == 2
    assert stats["totalRefundAmount"] == 150.0
    assert stats["averageRefundAmount"] == 75.0
    assert stats["byResolution"] == [{"resolution": "Back in stock", "count": 2, "percentage": 66.67}]
    assert {row["platform"]: row["count"] for row in stats["byPlatform"]} == {"Amazon": 2, "Back Market": 1}
    assert stats["byIssue"] == []
    assert [day["count"] for day in stats["trend"]["daily"]] == [1, 2]


def test_summary_range_token_widens_window(db, tenants, sheet_factory) -> None:
    _seed(sheet_factory, tenants["acme"])

    stats = summary_stats_use_case(db=db, business_id=tenants["acme"].id, range_token="1y", today=TODAY)

    assert stats["totalOrders"] == 4


def test_summary_ignores_other_businesses(db, tenants, sheet_factory) -> None:
    _seed(sheet_factory, tenants["other"])

    stats = summary_stats_use_case(db=db, business_id=tenants["acme"].id, range_token="1y", today=TODAY)

    assert stats["totalOrders"] == 0
    assert stats["averageRefundAmount"] == 0.0
    assert stats["trend"] == {"daily": [], "weekly": []}


def test_advanced_breakdowns(db, tenants, sheet_factory) -> None:
    _seed(sheet_factory, tenants["acme"])

    stats = advanced_stats_use_case(db=db, business_id=tenants["acme"].id, range_token="1m", today=TODAY)

    assert stats["resolutionBreakdown"] == [
        {"resolution": "Back in stock", "count": 2, "avg_refund": 75.0, "percentage": 100.0},
    ]
    by_window = {row["return_within_30_days"]: row for row in stats["return30DaysAnalysis"]}
    assert by_window["Yes"]["resolved_count"] == 1
    assert by_window["No"]["resolved_count"] == 0
    assert stats["replacementAnalysis"] == [{"replacement_available": "Yes", "count": 1, "percentage": 100.0}]
    assert {row["return_type"] for row in stats["returnTypeBreakdown"]} == {"Refund", "Replacement"}
    assert stats["blockedByAnalysis"] == []


def test_stats_endpoint_defaults_range_and_enforces_scope(client, tenants, headers_for) -> None:
    headers = headers_for(tenants["acme_user"])

    own = client.post(f"/api/stats/{tenants['acme'].id}", headers=headers)
    bad_range = client.post(f"/api/stats/{tenants['acme'].id}/advanced", json={"range": "forever"}, headers=headers)
    foreign = client.post(f"/api/stats/{tenants['other'].id}", json={"range": "1w"}, headers=headers)

    assert own.status_code == 200
    assert own.json()["range"] == "1m"
    assert bad_range.json()["range"] == "1m"
    assert foreign.status_code == 403
