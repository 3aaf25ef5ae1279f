"""Fleet and revenue reporting over a window of recent hauls."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence

from .lifecycle import HaulStatus
from .models import Haul
from .schemas import HaulRead, ReportRead, StatusCount
from .utils import as_utc

TOP_HAULS_LIMIT = 5

# Order in which statuses appear in the distribution chart. Assigned hauls are
# counted in the totals but have no bar of their own.
DISTRIBUTION_ORDER = (
    (HaulStatus.COMPLETED, "Completed"),
    (HaulStatus.IN_PROGRESS, "In Progress"),
    (HaulStatus.PENDING, "Pending"),
    (HaulStatus.CANCELLED, "Cancelled"),
)


def hauls_in_window(hauls: Iterable[Haul], days: int, now: Optional[datetime] = None) -> List[Haul]:
    """Return hauls created within the last *days* days."""
    now = as_utc(now) if now else datetime.now(timezone.utc)
    cutoff = now - timedelta(days=days)
    return [haul for haul in hauls if as_utc(haul.created_at) >= cutoff]


def _percentage(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


def top_hauls(hauls: Sequence[Haul], limit: int = TOP_HAULS_LIMIT) -> List[Haul]:
    priced = [haul for haul in hauls if haul.revenue]
    return sorted(priced, key=lambda haul: haul.revenue, reverse=True)[:limit]


def build_report(hauls: Iterable[Haul], days: int = 30, now: Optional[datetime] = None) -> ReportRead:
    now = as_utc(now) if now else datetime.now(timezone.utc)
    window = hauls_in_window(hauls, days, now)

    counts = {status: 0 for status in HaulStatus}
    for haul in window:
        try:
            counts[HaulStatus(haul.status)] += 1
        except ValueError:
            continue

    completed = [haul for haul in window if haul.status == HaulStatus.COMPLETED.value]
    total_revenue = float(sum(haul.revenue for haul in completed))
    total_distance = float(sum(haul.distance_miles or 0.0 for haul in window))
    total = len(window)

    distribution = [
        StatusCount(status=label, count=counts[status], percentage=_percentage(counts[status], total))
        for status, label in DISTRIBUTION_ORDER
    ] if total else []

    return ReportRead(
        period_days=days,
        generated_at=now,
        total_hauls=total,
        completed_hauls=counts[HaulStatus.COMPLETED],
        pending_hauls=counts[HaulStatus.PENDING],
        in_progress_hauls=counts[HaulStatus.IN_PROGRESS],
        cancelled_hauls=counts[HaulStatus.CANCELLED],
        total_revenue=total_revenue,
        average_revenue=total_revenue / len(completed) if completed else 0.0,
        total_distance=total_distance,
        average_distance=total_distance / total if total else 0.0,
        completion_rate=_percentage(counts[HaulStatus.COMPLETED], total),
        cancellation_rate=_percentage(counts[HaulStatus.CANCELLED], total),
        revenue_per_mile=total_revenue / total_distance if total_distance > 0 else None,
        status_distribution=distribution,
        top_hauls=[HaulRead.model_validate(haul) for haul in top_hauls(window)],
    )


__all__ = ["build_report", "hauls_in_window", "top_hauls"]
