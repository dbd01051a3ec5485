"""Database models for leave balances and the leave request workflow."""
from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.utils import timezone

from workspaces.models import Workspace

from .balances import (
    BalanceField,
    LeaveRequestType,
    balance_field_for_type,
    has_enough_balance,
    required_amount,
)
from .utils import calculate_leave_days, can_cancel_leave_request, should_reset_annual_leave, validate_leave_dates

logger = logging.getLogger(__name__)

User = get_user_model()

DEFAULT_PAID_LEAVE = Decimal("21")
DEFAULT_HALF_DAYS = 12


class LeaveBalance(models.Model):
    """A user's leave ledger. Counters never go below zero."""

    user = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        related_name="leave_balance",
    )
    year = models.PositiveIntegerField(default=0)
    paid_leave = models.DecimalField(max_digits=5, decimal_places=1, default=DEFAULT_PAID_LEAVE)
    unpaid_leave = models.DecimalField(max_digits=5, decimal_places=1, default=Decimal("0"))
    half_day = models.PositiveIntegerField(default=DEFAULT_HALF_DAYS, help_text="Half-day units, not days.")
    comp_off = models.DecimalField(max_digits=5, decimal_places=1, default=Decimal("0"))
    last_reset_date = models.DateField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "leave balance"
        verbose_name_plural = "leave balances"

    def __str__(self) -> str:
        return f"{self.user.get_username()} balance ({self.paid_leave} paid day(s) left)"

    def as_ledger(self) -> dict:
        return {field: getattr(self, field) for field in BalanceField.values}

    @classmethod
    def ensure_for_user(cls, user: User) -> "LeaveBalance":
        balance, created = cls.objects.get_or_create(
            user=user,
            defaults={"year": timezone.localdate().year, "last_reset_date": timezone.localdate()},
        )
        if not created:
            balance.reset_if_new_year()
        return balance

    def reset_if_new_year(self, today: date | None = None) -> bool:
        """Restore the annual paid and half-day allowance once per calendar year."""
        today = today or timezone.localdate()
        if not should_reset_annual_leave(self.last_reset_date, today):
            return False
        self.paid_leave = DEFAULT_PAID_LEAVE
        self.half_day = DEFAULT_HALF_DAYS
        self.year = today.year
        self.last_reset_date = today
        self.save(update_fields=["paid_leave", "half_day", "year", "last_reset_date", "updated_at"])
        logger.info("Reset annual leave for user %s (%s)", self.user_id, today.year)
        return True

    def deduct_for(self, leave_type: str, days) -> int:
        """Deduct the units an approved request of ``leave_type`` consumes.

        Callers check ``has_enough_balance`` first; unpaid leave is floored at zero.
        """
        field = balance_field_for_type(leave_type).value
        amount = required_amount(leave_type, days)
        current = getattr(self, field)
        setattr(self, field, max(current - amount, 0))
        self.save(update_fields=[field, "updated_at"])
        return amount


class LeaveRequestQuerySet(models.QuerySet):
    def overlapping(self, user: User, start: date, end: date) -> "LeaveRequestQuerySet":
        return self.filter(
            user=user,
            start_date__lte=end,
            end_date__gte=start,
        ).exclude(status__in=[LeaveRequest.Status.REJECTED, LeaveRequest.Status.CANCELLED])

    def pending(self) -> "LeaveRequestQuerySet":
        return self.filter(status=LeaveRequest.Status.PENDING)


class LeaveRequest(models.Model):
    """A leave request lifecycle record."""

    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        APPROVED = "APPROVED", "Approved"
        REJECTED = "REJECTED", "Rejected"
        CANCELLED = "CANCELLED", "Cancelled"

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="leave_requests",
    )
    workspace = models.ForeignKey(
        Workspace,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="leave_requests",
    )
    leave_type = models.CharField(max_length=20, choices=LeaveRequestType.choices)
    start_date = models.DateField()
    end_date = models.DateField()
    half_day = models.BooleanField(default=False)
    days = models.DecimalField(max_digits=5, decimal_places=1, default=Decimal("0"))
    reason = models.TextField()
    status = models.CharField(
        max_length=12,
        choices=Status.choices,
        default=Status.PENDING,
    )
    approver = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reviewed_leave_requests",
    )
    approver_comment = models.TextField(blank=True)
    decided_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = LeaveRequestQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.user.get_username()} {self.start_date}->{self.end_date} ({self.leave_type})"

    @property
    def is_pending(self) -> bool:
        return self.status == self.Status.PENDING

    def compute_days(self):
        return calculate_leave_days(self.start_date, self.end_date, self.half_day, self.leave_type)

    def clean(self) -> None:
        super().clean()
        result = validate_leave_dates(self.start_date, self.end_date)
        if not result.valid:
            raise ValidationError(result.message)
        if not self.compute_days():
            raise ValidationError("The selected dates contain no working days.")
        if self.user_id:
            overlapping = LeaveRequest.objects.overlapping(self.user, self.start_date, self.end_date)
            if self.pk:
                overlapping = overlapping.exclude(pk=self.pk)
            if overlapping.exists():
                raise ValidationError("You already have a leave request covering those dates.")

    def save(self, *args, **kwargs):
        if self.start_date and self.end_date and not self.days:
            self.days = Decimal(str(self.compute_days()))
        super().save(*args, **kwargs)

    def _record_decision(self, status: str, reviewer: User, comment: str) -> None:
        self.status = status
        self.approver = reviewer
        self.approver_comment = comment
        self.decided_at = timezone.now()
        self.save(update_fields=["status", "approver", "approver_comment", "decided_at", "updated_at"])

    @transaction.atomic
    def approve(self, reviewer: User, comment: str = "") -> int:
        """Approve the request and deduct from the mapped ledger counter.

        Returns the number of units deducted.
        """
        if not self.is_pending:
            raise ValidationError("Only pending requests can be approved.")
        balance = LeaveBalance.ensure_for_user(self.user)
        balance = LeaveBalance.objects.select_for_update().get(pk=balance.pk)
        if not has_enough_balance(self.leave_type, self.days, balance):
            raise ValidationError(
                f"Insufficient {balance_field_for_type(self.leave_type).label.lower()} balance "
                f"for {self.days} day(s)."
            )
        deducted = balance.deduct_for(self.leave_type, self.days)
        self._record_decision(self.Status.APPROVED, reviewer, comment)
        logger.info(
            "Leave request %s approved by %s; deducted %s from %s",
            self.pk,
            reviewer.pk,
            deducted,
            balance_field_for_type(self.leave_type).value,
        )
        return deducted

    def reject(self, reviewer: User, comment: str) -> None:
        if not self.is_pending:
            raise ValidationError("Only pending requests can be rejected.")
        if not comment:
            raise ValidationError("Please provide a reason when rejecting a request.")
        self._record_decision(self.Status.REJECTED, reviewer, comment)
        logger.info("Leave request %s rejected by %s", self.pk, reviewer.pk)

    def cancel(self, today: date | None = None) -> None:
        """Withdraw a request before it starts. Approved days are not refunded."""
        if not can_cancel_leave_request(self.status, self.start_date, today):
            raise ValidationError("This leave request can no longer be cancelled.")
        self.status = self.Status.CANCELLED
        self.save(update_fields=["status", "updated_at"])
