"""Forms supporting the leave request workflow."""
from __future__ import annotations

from decimal import Decimal
from typing import Any

from django import forms

from .balances import balance_field_display_name, balance_field_for_type, has_enough_balance, read_counter
from .models import LeaveBalance, LeaveRequest
from .utils import calculate_leave_days

REASON_MIN_LENGTH = 10
REASON_MAX_LENGTH = 500


class LeaveRequestForm(forms.ModelForm):
    """Form a member uses to submit a new leave request."""

    reason = forms.CharField(
        min_length=REASON_MIN_LENGTH,
        max_length=REASON_MAX_LENGTH,
        widget=forms.Textarea(attrs={"rows": 3}),
    )

    def __init__(self, *args: Any, user, workspace=None, **kwargs: Any) -> None:
        self.request_user = user
        self.workspace = workspace
        super().__init__(*args, **kwargs)
        # Lets the model's clean() run its overlap check.
        self.instance.user = user
        self.fields["start_date"].widget = forms.DateInput(attrs={"type": "date"})
        self.fields["end_date"].widget = forms.DateInput(attrs={"type": "date"})
        self.fields["half_day"].help_text = "Only applies to single-day Half Day requests."
        self.balance = LeaveBalance.ensure_for_user(user)

    class Meta:
        model = LeaveRequest
        fields = ["leave_type", "start_date", "end_date", "half_day", "reason"]

    def clean(self) -> dict[str, Any]:
        cleaned = super().clean()
        leave_type = cleaned.get("leave_type")
        start = cleaned.get("start_date")
        end = cleaned.get("end_date")
        if not leave_type or not start or not end:
            return cleaned

        days = calculate_leave_days(start, end, cleaned.get("half_day", False), leave_type)
        self.balance.refresh_from_db()
        if not has_enough_balance(leave_type, days, self.balance):
            field = balance_field_for_type(leave_type).value
            raise forms.ValidationError(
                f"You requested {days} day(s), but only have {read_counter(self.balance, field)} "
                f"{balance_field_display_name(field).lower()} remaining."
            )
        cleaned["days"] = days
        return cleaned

    def save(self, commit: bool = True) -> LeaveRequest:
        instance = super().save(commit=False)
        instance.user = self.request_user
        instance.workspace = self.workspace
        instance.days = Decimal(str(self.cleaned_data["days"]))
        if commit:
            instance.save()
        return instance


class LeaveDecisionForm(forms.Form):
    """Comment an approver attaches to an approval or rejection."""

    approver_comment = forms.CharField(
        required=False,
        widget=forms.Textarea(attrs={"rows": 2, "placeholder": "Add a note for the requester"}),
        label="Comment",
    )
