"""Scheduling rules for task dates and times.

Every caller (task store, calendar day view, task schedule endpoint) goes
through these helpers so that duration and range checks agree everywhere.
Times are ``"HH:MM"`` strings; ``"HH:MM:SS"`` is accepted and truncated.
"""
from __future__ import annotations

import re
from datetime import date
from typing import Any, List, Optional

from app.core.errors import ValidationFailed

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)(:[0-5]\d)?$")

TIME_ORDER_MESSAGE = "종료 시간은 시작 시간보다 늦어야 합니다."
DATE_ORDER_MESSAGE = "종료 날짜는 시작 날짜보다 빠를 수 없습니다."
INVALID_TIME_MESSAGE = "시간은 HH:MM 형식이어야 합니다."


def normalize_time(value: Optional[str]) -> Optional[str]:
    """Return ``value`` as ``"HH:MM"`` or None for blank input."""
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if not _TIME_PATTERN.match(value):
        raise ValidationFailed(INVALID_TIME_MESSAGE)
    return value[:5]


def parse_time(value: Optional[str]) -> Optional[int]:
    """Minutes since midnight, or None when the time is missing."""
    normalized = normalize_time(value)
    if normalized is None:
        return None
    hours, minutes = normalized.split(":")
    return int(hours) * 60 + int(minutes)


def duration_minutes(start_time: Optional[str], end_time: Optional[str]) -> Optional[int]:
    start = parse_time(start_time)
    end = parse_time(end_time)
    if start is None or end is None or end <= start:
        return None
    return end - start


def format_duration(minutes: Optional[int]) -> Optional[str]:
    """Render minutes as ``"1시간 30분"``, ``"2시간"`` or ``"45분"``."""
    if minutes is None:
        return None
    hours, rest = divmod(minutes, 60)
    if hours and rest:
        return f"{hours}시간 {rest}분"
    if hours:
        return f"{hours}시간"
    return f"{rest}분"


def validate_time_order(start_time: Optional[str], end_time: Optional[str]) -> Optional[str]:
    start = parse_time(start_time)
    end = parse_time(end_time)
    if start is None or end is None:
        return None
    if end <= start:
        return TIME_ORDER_MESSAGE
    return None


def validate_date_range(start_date: Optional[date], end_date: Optional[date]) -> Optional[str]:
    if start_date is None or end_date is None:
        return None
    if end_date < start_date:
        return DATE_ORDER_MESSAGE
    return None


def is_multi_day(start_date: Optional[date], end_date: Optional[date]) -> bool:
    return start_date is not None and end_date is not None and start_date != end_date


def date_span_days(start_date: Optional[date], end_date: Optional[date]) -> Optional[int]:
    """Inclusive number of days a multi-day task covers (Jan 1..Jan 3 is 3)."""
    if start_date is None or end_date is None or end_date <= start_date:
        return None
    return (end_date - start_date).days + 1


def validate_schedule(
    *,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    start_time: Optional[str] = None,
    end_time: Optional[str] = None,
) -> None:
    """Raise ValidationFailed listing every schedule problem found."""
    errors: List[str] = []
    date_error = validate_date_range(start_date, end_date)
    if date_error:
        errors.append(date_error)
    time_error = validate_time_order(start_time, end_time)
    if time_error:
        errors.append(time_error)
    if errors:
        raise ValidationFailed(errors=errors)


def first_day(task: Any) -> Optional[date]:
    """The day a task starts on: start_date, else the legacy due_date."""
    return task.start_date or task.due_date


def occurs_on(task: Any, day: date) -> bool:
    """Whether ``task`` should appear on ``day`` in calendar views."""
    start = first_day(task)
    if start is None:
        return False
    end = task.end_date if task.end_date and task.end_date >= start else start
    return start <= day <= end
