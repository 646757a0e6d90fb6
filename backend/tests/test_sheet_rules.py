from __future__ import annotations

from datetime import date, datetime

import pytest

from rma.services.sheet_rules import (
    AMAZON,
    BACK_MARKET,
    classify_platform,
    coerce_date,
    derive_sheet_fields,
    normalize_sheet_values,
    within_return_window,
)


@pytest.mark.parametrize(
    ("order_no", "expected"),
    [
        ("12345678", BACK_MARKET),
        (" 12345678 ", BACK_MARKET),
        ("1234567", AMAZON),
        ("123456789", AMAZON),
        ("AMZ-9981", AMAZON),
        ("206-1234567-1234567", AMAZON),
        ("\u0661\u0662\u0663\u0664\u0665\u0666\u0667\u0668", AMAZON),
        ("", AMAZON),
        (None, AMAZON),
    ],
)
def test_classify_platform(order_no, expected) -> None:
    assert classify_platform(order_no) == expected


def test_return_window_includes_day_thirty() -> None:
    assert within_return_window(date(2024, 1, 31), date(2024, 1, 1)) == "Yes"
    assert within_return_window(date(2024, 2, 1), date(2024, 1, 1)) == "No"


def test_return_window_blank_when_a_date_is_missing() -> None:
    assert within_return_window(None, date(2024, 1, 1)) == ""
    assert within_return_window("2024-01-05", "") == ""


def test_return_window_accepts_iso_strings_with_time() -> None:
    assert within_return_window("2024-02-10T09:30:00Z", "2024-01-15") == "Yes"


def test_coerce_date_variants() -> None:
    assert coerce_date(datetime(2024, 3, 1, 12, 0)) == date(2024, 3, 1)
    assert coerce_date("2024-03-01") == date(2024, 3, 1)
    assert coerce_date("not a date") is None
    assert coerce_date("   ") is None


def test_derive_backmarket_sheet_inside_window() -> None:
    derived = derive_sheet_fields("12345678", "2024-02-10", "2024-01-15")

    assert derived == {"platform": BACK_MARKET, "return_within_30_days": "Yes"}


def test_derive_amazon_sheet_outside_window() -> None:
    derived = derive_sheet_fields("AMZ-9981", date(2024, 3, 20), date(2024, 1, 1))

    assert derived == {"platform": AMAZON, "return_within_30_days": "No"}


def test_normalize_drops_client_supplied_derived_fields() -> None:
    normalized = normalize_sheet_values({
        "platform": "Amazon",
        "return_within_30_days": "Yes",
        "out_of_warranty": True,
        "blocked_by": "  pin REQUIRED ",
        "resolution": "Refunded",
    })

    assert "platform" not in normalized
    assert "return_within_30_days" not in normalized
    assert normalized["out_of_warranty"] == "Yes"
    assert normalized["blocked_by"] == "PIN Required"
    assert normalized["resolution"] == "Refunded"


def test_normalize_leaves_absent_fields_absent() -> None:
    assert normalize_sheet_values({"resolution": "Refunded"}) == {"resolution": "Refunded"}
    assert normalize_sheet_values({"out_of_warranty": False})["out_of_warranty"] == "No"
