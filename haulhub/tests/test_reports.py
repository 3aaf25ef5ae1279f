from __future__ import annotations

from datetime import datetime, timedelta
from itertools import count
from typing import Optional

import pytest

from haulhub.models import Haul
from haulhub.reports import build_report, hauls_in_window, top_hauls

NOW = datetime(2026, 10, 16, 12, 0, 0)
_ids = count(1)


def _haul(
    status: str = "pending",
    *,
    age_days: float = 1,
    quoted: Optional[float] = None,
    final: Optional[float] = None,
    miles: Optional[float] = None,
) -> Haul:
    created = NOW - timedelta(days=age_days)
    return Haul(
        id=next(_ids),
        haul_type="delivery",
        pickup_address="1 Yard Rd",
        pickup_city="Thika",
        pickup_state="Kiambu",
        pickup_zip="01000",
        pickup_date="2026-10-01",
        pickup_contact_name="A",
        pickup_contact_phone="1",
        delivery_address="2 Site Rd",
        delivery_city="Nairobi",
        delivery_state="Nairobi",
        delivery_zip="00100",
        delivery_date="2026-10-02",
        delivery_contact_name="B",
        delivery_contact_phone="2",
        load_type="Gravel",
        load_description="Ballast",
        load_hazardous=False,
        payment_status="pending",
        status=status,
        quoted_price=quoted,
        final_price=final,
        distance_miles=miles,
        user_id=1,
        created_at=created,
        updated_at=created,
    )


def test_window_excludes_old_hauls() -> None:
    recent = _haul(age_days=3)
    old = _haul(age_days=45)
    assert hauls_in_window([recent, old], days=30, now=NOW) == [recent]


def test_report_totals() -> None:
    hauls = [
        _haul("completed", final=12000, quoted=10000, miles=40),
        _haul("completed", quoted=8000, miles=10),
        _haul("in_progress", quoted=30000, miles=50),
        _haul("pending"),
        _haul("cancelled", quoted=5000),
        _haul("completed", final=99999, age_days=60),
    ]
    report = build_report(hauls, days=30, now=NOW)

    assert report.total_hauls == 5
    assert report.completed_hauls == 2
    assert report.in_progress_hauls == 1
    assert report.pending_hauls == 1
    assert report.cancelled_hauls == 1
    assert report.total_revenue == 20000
    assert report.average_revenue == 10000
    assert report.total_distance == 100
    assert report.average_distance == 20
    assert report.revenue_per_mile == pytest.approx(200)
    assert report.completion_rate == 40.0
    assert report.cancellation_rate == 20.0
    assert [item.status for item in report.status_distribution] == [
        "Completed",
        "In Progress",
        "Pending",
        "Cancelled",
    ]
    assert report.status_distribution[0].percentage == 40.0
    assert [haul.quoted_price for haul in report.top_hauls][:2] == [30000, 10000]


def test_empty_report() -> None:
    report = build_report([], days=7, now=NOW)
    assert report.total_hauls == 0
    assert report.total_revenue == 0
    assert report.revenue_per_mile is None
    assert report.status_distribution == []
    assert report.top_hauls == []


def test_top_hauls_prefers_final_price_and_limits() -> None:
    hauls = [_haul(quoted=float(price)) for price in range(1000, 8000, 1000)]
    hauls.append(_haul(quoted=500, final=50000))
    hauls.append(_haul())
    ranked = top_hauls(hauls)
    assert len(ranked) == 5
    assert ranked[0].final_price == 50000
    assert all(haul.revenue for haul in ranked)
