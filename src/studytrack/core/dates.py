from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Iterable, Optional, TypeVar, Union

DateLike = Union[date, datetime, str]

T = TypeVar("T")


def to_date(value: DateLike) -> date:
    """
    Normalize to a calendar date.

    Strings are ISO dates; a trailing time part ("2024-05-06T00:00:00.000+00:00",
    as the row store echoes it back) is ignored.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError as exc:
            raise ValueError(f"Invalid date: {value!r}") from exc
    raise ValueError(f"Invalid date: {value!r}")


def days_left(target: DateLike, *, today: Optional[date] = None) -> int:
    """
    Whole calendar days from today until target.

    The target counts from its midnight and "now" is any instant of today, so this
    equals ceil((target_midnight - now) / 1 day) whatever the time of day.
    Negative when overdue, 0 when due today.
    """
    current = today or date.today()
    return (to_date(target) - current).days


def is_overdue(target: DateLike, *, today: Optional[date] = None) -> bool:
    return days_left(target, today=today) < 0


def is_today(value: DateLike, *, today: Optional[date] = None) -> bool:
    return to_date(value) == (today or date.today())


def is_tomorrow(value: DateLike, *, today: Optional[date] = None) -> bool:
    return to_date(value) == (today or date.today()) + timedelta(days=1)


def effective_date(item: Any) -> date:
    value = getattr(item, "due_date", None) or getattr(item, "date", None)
    if value is None:
        raise ValueError(f"{type(item).__name__} has no due_date or date")
    return to_date(value)


def next_upcoming(items: Iterable[T], *, today: Optional[date] = None) -> Optional[T]:
    current = today or date.today()
    candidates = [item for item in items if effective_date(item) >= current]
    if not candidates:
        return None
    # min() keeps the first of equal dates, so input order breaks ties
    return min(candidates, key=effective_date)


def format_date(value: DateLike) -> str:
    """Short en-US display form, e.g. "Mon, May 6, 2024", independent of locale."""
    day = to_date(value)
    weekday = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")[day.weekday()]
    month = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")[day.month - 1]
    return f"{weekday}, {month} {day.day}, {day.year}"


def countdown_label(days: int) -> str:
    if days < 0:
        overdue = -days
        return f"Overdue by {overdue} day" if overdue == 1 else f"Overdue by {overdue} days"
    if days == 0:
        return "Today"
    if days == 1:
        return "Tomorrow"
    return f"{days} days left"


def urgency(days: int) -> str:
    if days < 0:
        return "overdue"
    if days <= 1:
        return "urgent"
    if days <= 3:
        return "soon"
    return "normal"
