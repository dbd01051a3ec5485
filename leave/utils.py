"""Leave day counting, date validation and small leave-policy rules."""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Union

from django.db import models
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from workspaces.permissions import is_admin

from .balances import LeaveRequestType

DateInput = Union[str, date, datetime, None]

WEEKEND = {5, 6}


class DateValidationError(models.TextChoices):
    INVALID_DATE = "INVALID_DATE", "Invalid date format"
    DATE_ORDER = "DATE_ORDER", "End date cannot be before start date"
    PAST_DATE = "PAST_DATE", "Start date cannot be in the past"
    RANGE_TOO_FAR = "RANGE_TOO_FAR", "Leave cannot be requested more than 1 year in advance"


@dataclass(frozen=True)
class DateValidation:
    error: Optional[DateValidationError] = None

    @property
    def valid(self) -> bool:
        return self.error is None

    @property
    def message(self) -> str:
        return self.error.label if self.error else ""


def to_date(value: DateInput) -> Optional[date]:
    """Coerce ``value`` to a date, returning ``None`` when it cannot be parsed."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        parsed = parse_date(text)
        if parsed is None:
            moment = parse_datetime(text)
            parsed = moment.date() if moment else None
    except ValueError:
        return None
    return parsed


def today_local() -> date:
    return timezone.localdate()


def _one_year_after(day: date) -> date:
    try:
        return day.replace(year=day.year + 1)
    except ValueError:
        # 29 February
        return day.replace(year=day.year + 1, day=28)


def calculate_working_days(start: DateInput, end: DateInput) -> int:
    """Monday-Friday days between ``start`` and ``end``, both inclusive."""
    start_day, end_day = to_date(start), to_date(end)
    if start_day is None or end_day is None or end_day < start_day:
        return 0
    count = 0
    day = start_day
    while day <= end_day:
        if day.weekday() not in WEEKEND:
            count += 1
        day += timedelta(days=1)
    return count


def calculate_leave_days(
    start: DateInput,
    end: DateInput,
    half_day: bool = False,
    leave_type: Optional[str] = None,
) -> Union[int, float]:
    working_days = calculate_working_days(start, end)
    if leave_type and leave_type != LeaveRequestType.HALF_DAY:
        # Only HALF_DAY leave may be fractional.
        return math.ceil(working_days)
    if half_day and working_days == 1:
        return 0.5
    return working_days


def validate_leave_dates(start: DateInput, end: DateInput, today: Optional[date] = None) -> DateValidation:
    start_day, end_day = to_date(start), to_date(end)
    if start_day is None or end_day is None:
        return DateValidation(DateValidationError.INVALID_DATE)
    if end_day < start_day:
        return DateValidation(DateValidationError.DATE_ORDER)
    today = today or today_local()
    if start_day < today:
        return DateValidation(DateValidationError.PAST_DATE)
    if start_day > _one_year_after(today):
        return DateValidation(DateValidationError.RANGE_TOO_FAR)
    return DateValidation()


def can_cancel_leave_request(status: str, start: DateInput, today: Optional[date] = None) -> bool:
    """Pending or approved leave can be cancelled until the day it starts."""
    if status not in {"PENDING", "APPROVED"}:
        return False
    start_day = to_date(start)
    if start_day is None:
        return False
    return start_day > (today or today_local())


def can_approve_leave(role: Optional[str], requester_id, approver_id) -> bool:
    if requester_id == approver_id:
        return False
    return bool(role) and is_admin(role)


def calculate_leave_utilization(used: float, total: float) -> int:
    if not total:
        return 0
    return int(math.floor(used / total * 100 + 0.5))


def leave_balance_status(remaining: float, total: float) -> str:
    if not total:
        return "high"
    percentage = remaining / total * 100
    if percentage <= 25:
        return "low"
    if percentage <= 50:
        return "medium"
    return "high"


def should_reset_annual_leave(last_reset: DateInput, today: Optional[date] = None) -> bool:
    last_reset_day = to_date(last_reset)
    if last_reset_day is None:
        return True
    return (today or today_local()).year > last_reset_day.year


def _format_day(day: date) -> str:
    return f"{day:%b} {day.day}, {day.year}"


def format_leave_date_range(start: DateInput, end: DateInput) -> str:
    start_day, end_day = to_date(start), to_date(end)
    if start_day is None or end_day is None:
        return ""
    if start_day == end_day:
        return _format_day(start_day)
    return f"{_format_day(start_day)} - {_format_day(end_day)}"
