from __future__ import annotations
from datetime import datetime, time, timedelta, timezone
from typing import Optional

from bestsellers.core.errors import ValidationError
from bestsellers.domain.models.order import DateWindow


def start_of_day_utc(d: datetime) -> datetime:
    d = d.astimezone(timezone.utc)
    return datetime.combine(d.date(), time.min, tzinfo=timezone.utc)


def end_of_day_utc(d: datetime) -> datetime:
    d = d.astimezone(timezone.utc)
    # millisecond precision, matching the upstream search syntax
    return datetime.combine(d.date(), time(23, 59, 59, 999000), tzinfo=timezone.utc)


def parse_date(value: str, field: str) -> datetime:
    """Parse an ISO date or datetime. Naive values are taken as UTC."""
    raw = value.strip()
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(raw)
    except ValueError as e:
        raise ValidationError(f"'{field}' is not an ISO date: {value!r}") from e
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def resolve_window(
    from_param: Optional[str],
    to_param: Optional[str],
    *,
    days: int,
    now: Optional[datetime] = None,
) -> DateWindow:
    """
    Closed UTC window for a query. A missing `to` is today; a missing `from`
    is `days` before `to`. Only two explicit, inverted bounds are rejected.
    """
    now = now or datetime.now(timezone.utc)
    to_dt = parse_date(to_param, "to") if to_param else now
    from_dt = parse_date(from_param, "from") if from_param else to_dt - timedelta(days=days)
    if from_param and to_param and start_of_day_utc(from_dt) > start_of_day_utc(to_dt):
        raise ValidationError("'from' must not be after 'to'")
    if from_dt > to_dt:
        # only `from` given and it lies in the future: one-day window on that day
        to_dt = from_dt
    return DateWindow(start=start_of_day_utc(from_dt), end=end_of_day_utc(to_dt))


def rolling_window(days: int, now: Optional[datetime] = None) -> DateWindow:
    """Fixed rolling window used by snapshots, independent of request dates."""
    now = now or datetime.now(timezone.utc)
    return DateWindow(start=start_of_day_utc(now - timedelta(days=days)), end=end_of_day_utc(now))
