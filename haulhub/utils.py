"""Utility helpers shared across the backend services."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional

# Accepted material order statuses. Stored in lowercase, hyphenated form.
ORDER_STATUSES: tuple[str, ...] = ("pending", "confirmed", "in-progress", "completed")


def normalize_order_status(value: str | None, *, default: Optional[str] = "pending") -> Optional[str]:
    """Return a canonical order status value.

    Spacing, case and underscores are tolerated (``In Progress`` and
    ``in_progress`` both map to ``in-progress``). Anything outside the
    supported set falls back to *default*.
    """
    if default is not None and default not in ORDER_STATUSES:
        raise ValueError(f"Invalid default status '{default}'")

    if value is None:
        return default

    normalized = "-".join(value.strip().lower().replace("_", " ").split())
    return normalized if normalized in ORDER_STATUSES else default


def as_utc(value: datetime) -> datetime:
    """Return *value* as an aware UTC datetime (naive values are assumed UTC)."""
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value.astimezone(timezone.utc)


def parse_timestamp(raw: str | datetime | None) -> Optional[datetime]:
    """Parse a timestamp into an aware UTC datetime, or ``None`` when it cannot be read."""
    if isinstance(raw, datetime):
        return as_utc(raw)

    text = (raw or "").strip()
    if not text:
        return None

    parsers: Iterable[str] = (
        "%Y-%m-%d %H:%M",
        "%Y-%m-%d",
        "%m/%d/%Y",
    )

    try:
        return as_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        pass

    for fmt in parsers:
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue

    return None


__all__ = ["ORDER_STATUSES", "as_utc", "normalize_order_status", "parse_timestamp"]
