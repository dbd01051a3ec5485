"""Mapping from leave request types to the ledger counter they draw from.

This is the only place that decides which balance an approval deducts
from. Deduction depends on the leave *type*, not the duration:

* CASUAL/SICK/ANNUAL/... draw whole days from ``paid_leave``; a half-day
  duration still costs one full unit.
* HALF_DAY draws exactly one unit from ``half_day``.
* UNPAID is never limited by its balance.
"""
from __future__ import annotations

import math
from typing import Any, Mapping, Union

from django.db import models

Number = Union[int, float]


class LeaveRequestType(models.TextChoices):
    CASUAL = "CASUAL", "Casual Leave"
    SICK = "SICK", "Sick Leave"
    ANNUAL = "ANNUAL", "Annual Leave"
    MATERNITY = "MATERNITY", "Maternity Leave"
    PATERNITY = "PATERNITY", "Paternity Leave"
    BEREAVEMENT = "BEREAVEMENT", "Bereavement Leave"
    UNPAID = "UNPAID", "Unpaid Leave"
    HALF_DAY = "HALF_DAY", "Half Day"
    COMP_OFF = "COMP_OFF", "Compensatory Off"


class BalanceField(models.TextChoices):
    PAID_LEAVE = "paid_leave", "Paid Leave"
    UNPAID_LEAVE = "unpaid_leave", "Unpaid Leave"
    HALF_DAY = "half_day", "Half Day"
    COMP_OFF = "comp_off", "Compensatory Off"


LEAVE_TYPE_TO_BALANCE_FIELD = {
    LeaveRequestType.CASUAL: BalanceField.PAID_LEAVE,
    LeaveRequestType.SICK: BalanceField.PAID_LEAVE,
    LeaveRequestType.ANNUAL: BalanceField.PAID_LEAVE,
    LeaveRequestType.MATERNITY: BalanceField.PAID_LEAVE,
    LeaveRequestType.PATERNITY: BalanceField.PAID_LEAVE,
    LeaveRequestType.BEREAVEMENT: BalanceField.PAID_LEAVE,
    LeaveRequestType.UNPAID: BalanceField.UNPAID_LEAVE,
    LeaveRequestType.HALF_DAY: BalanceField.HALF_DAY,
    LeaveRequestType.COMP_OFF: BalanceField.COMP_OFF,
}


def balance_field_for_type(leave_type: str) -> BalanceField:
    return LEAVE_TYPE_TO_BALANCE_FIELD[LeaveRequestType(leave_type)]


def leave_type_display_name(leave_type: str) -> str:
    return LeaveRequestType(leave_type).label


def balance_field_display_name(field: str) -> str:
    return BalanceField(field).label


def required_amount(leave_type: str, requested_days: Number) -> int:
    """Ledger units an approval of this request consumes."""
    if leave_type == LeaveRequestType.HALF_DAY:
        return 1
    return math.ceil(requested_days)


# Ledger documents decoded from JSON use camelCase keys.
FIELD_ALIASES = {
    BalanceField.PAID_LEAVE.value: "paidLeave",
    BalanceField.UNPAID_LEAVE.value: "unpaidLeave",
    BalanceField.HALF_DAY.value: "halfDay",
    BalanceField.COMP_OFF.value: "compOff",
}

_MISSING = object()


def read_counter(ledger: Union[Mapping[str, Any], Any], field: str) -> Number:
    """Read a ledger counter from a mapping or from a ``LeaveBalance``-like object.

    Both ``paid_leave`` and ``paidLeave`` spellings are accepted. A ledger
    that has neither raises ``KeyError`` rather than reading as empty.
    """
    for key in (field, FIELD_ALIASES.get(field)):
        if key is None:
            continue
        if isinstance(ledger, Mapping):
            value = ledger.get(key, _MISSING)
        else:
            value = getattr(ledger, key, _MISSING)
        if value is not _MISSING:
            return value or 0
    raise KeyError(f"Ledger has no {field!r} counter")


def has_enough_balance(leave_type: str, requested_days: Number, ledger) -> bool:
    if leave_type == LeaveRequestType.UNPAID:
        return True
    field = balance_field_for_type(leave_type).value
    return read_counter(ledger, field) >= required_amount(leave_type, requested_days)


def remaining_after(leave_type: str, requested_days: Number, ledger) -> Number:
    """Balance left in the mapped counter once this request is deducted."""
    if leave_type == LeaveRequestType.UNPAID:
        return math.inf
    field = balance_field_for_type(leave_type).value
    return max(0, read_counter(ledger, field) - required_amount(leave_type, requested_days))
