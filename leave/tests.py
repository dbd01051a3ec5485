from __future__ import annotations

import math
from datetime import date, timedelta
from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core import mail
from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from django.utils import timezone

from workspaces.models import Workspace, WorkspaceMember
from workspaces.permissions import Role

from .balances import (
    BalanceField,
    LeaveRequestType,
    balance_field_for_type,
    has_enough_balance,
    remaining_after,
    required_amount,
)
from .forms import LeaveRequestForm
from .models import LeaveBalance, LeaveRequest
from .utils import (
    DateValidationError,
    calculate_leave_days,
    calculate_leave_utilization,
    calculate_working_days,
    can_approve_leave,
    can_cancel_leave_request,
    format_leave_date_range,
    leave_balance_status,
    should_reset_annual_leave,
    validate_leave_dates,
)

User = get_user_model()


def next_monday() -> date:
    today = timezone.localdate()
    return today + timedelta(days=(7 - today.weekday()) or 7)


def _ledger(**overrides):
    ledger = {"paid_leave": 21, "unpaid_leave": 0, "half_day": 12, "comp_off": 0}
    ledger.update(overrides)
    return ledger


class LeaveBalanceMapperTests(SimpleTestCase):
    def test_paid_types_draw_from_paid_leave(self):
        for leave_type in ("CASUAL", "SICK", "ANNUAL", "MATERNITY", "PATERNITY", "BEREAVEMENT"):
            self.assertEqual(balance_field_for_type(leave_type), BalanceField.PAID_LEAVE)
        self.assertEqual(balance_field_for_type("UNPAID"), BalanceField.UNPAID_LEAVE)
        self.assertEqual(balance_field_for_type("HALF_DAY"), BalanceField.HALF_DAY)
        self.assertEqual(balance_field_for_type("COMP_OFF"), BalanceField.COMP_OFF)

    def test_unknown_type_is_rejected(self):
        with self.assertRaises(ValueError):
            balance_field_for_type("SABBATICAL")

    def test_unpaid_is_never_limited(self):
        for days in (0, 0.5, 3, 400):
            self.assertTrue(has_enough_balance("UNPAID", days, _ledger(unpaid_leave=0)))
        self.assertEqual(remaining_after("UNPAID", 5, _ledger()), math.inf)

    def test_half_day_needs_one_unit(self):
        self.assertFalse(has_enough_balance("HALF_DAY", 0.5, _ledger(half_day=0)))
        self.assertTrue(has_enough_balance("HALF_DAY", 0.5, _ledger(half_day=1)))
        self.assertEqual(required_amount("HALF_DAY", 0.5), 1)

    def test_fractional_paid_request_costs_a_whole_day(self):
        self.assertEqual(required_amount("CASUAL", 0.5), 1)
        self.assertEqual(required_amount("SICK", 2.5), 3)
        self.assertFalse(has_enough_balance("CASUAL", 2.5, _ledger(paid_leave=2)))
        self.assertEqual(remaining_after("CASUAL", 2, _ledger(paid_leave=5)), 3)
        self.assertEqual(remaining_after("CASUAL", 9, _ledger(paid_leave=5)), 0)

    def test_camel_case_ledger_keys_are_accepted(self):
        self.assertTrue(has_enough_balance("HALF_DAY", 0.5, {"halfDay": 1}))
        self.assertFalse(has_enough_balance("HALF_DAY", 0.5, {"halfDay": 0}))
        self.assertTrue(has_enough_balance("CASUAL", 3, {"paidLeave": 10}))
        self.assertTrue(has_enough_balance("COMP_OFF", 1, {"compOff": 1}))
        self.assertEqual(remaining_after("SICK", 2, {"paidLeave": 5}), 3)

    def test_missing_counter_raises(self):
        with self.assertRaises(KeyError):
            has_enough_balance("CASUAL", 1, {})
        with self.assertRaises(KeyError):
            has_enough_balance("HALF_DAY", 0.5, {"half_days": 4})
        with self.assertRaises(KeyError):
            remaining_after("COMP_OFF", 1, object())
        self.assertTrue(has_enough_balance("UNPAID", 1, {}))

    def test_ledger_can_be_an_object(self):
        balance = LeaveBalance(paid_leave=Decimal("2"), half_day=0)
        self.assertTrue(has_enough_balance("ANNUAL", 2, balance))
        self.assertFalse(has_enough_balance("HALF_DAY", 0.5, balance))
        self.assertFalse(has_enough_balance("COMP_OFF", 1, balance))


class LeaveDateRuleTests(SimpleTestCase):
    today = date(2025, 6, 1)

    def test_working_days(self):
        self.assertEqual(calculate_working_days("2025-06-02", "2025-06-02"), 1)
        self.assertEqual(calculate_working_days(date(2025, 6, 2), date(2025, 6, 8)), 5)
        self.assertEqual(calculate_working_days("2025-06-07", "2025-06-08"), 0)
        self.assertEqual(calculate_working_days("2025-06-08", "2025-06-02"), 0)
        self.assertEqual(calculate_working_days("garbage", "2025-06-02"), 0)

    def test_leave_days(self):
        self.assertEqual(calculate_leave_days("2025-06-02", "2025-06-02", half_day=True, leave_type="HALF_DAY"), 0.5)
        self.assertEqual(calculate_leave_days("2025-06-02", "2025-06-02", half_day=True, leave_type="CASUAL"), 1)
        self.assertEqual(calculate_leave_days("2025-06-02", "2025-06-04", half_day=True), 3)
        self.assertEqual(calculate_leave_days("2025-06-02", "2025-06-06"), 5)

    def test_past_start_fails(self):
        result = validate_leave_dates("2020-01-01", "2025-12-31", today=self.today)
        self.assertFalse(result.valid)
        self.assertEqual(result.error, DateValidationError.PAST_DATE)
        self.assertEqual(result.message, "Start date cannot be in the past")

    def test_end_before_start_fails_regardless_of_today(self):
        for start, end in (("2020-01-05", "2020-01-01"), ("2025-08-05", "2025-08-01")):
            result = validate_leave_dates(start, end, today=self.today)
            self.assertEqual(result.error, DateValidationError.DATE_ORDER)

    def test_invalid_and_far_dates(self):
        self.assertEqual(validate_leave_dates("not-a-date", "2025-06-02", today=self.today).error, DateValidationError.INVALID_DATE)
        self.assertEqual(validate_leave_dates("2025-02-30", "2025-06-02", today=self.today).error, DateValidationError.INVALID_DATE)
        self.assertEqual(validate_leave_dates("2026-06-02", "2026-06-03", today=self.today).error, DateValidationError.RANGE_TOO_FAR)
        self.assertTrue(validate_leave_dates("2025-06-01", "2025-06-01", today=self.today).valid)
        self.assertTrue(validate_leave_dates("2026-06-01", "2026-06-02", today=self.today).valid)

    def test_cancellation_window(self):
        self.assertTrue(can_cancel_leave_request("PENDING", "2025-06-02", self.today))
        self.assertTrue(can_cancel_leave_request("APPROVED", "2025-06-02", self.today))
        self.assertFalse(can_cancel_leave_request("APPROVED", "2025-06-01", self.today))
        self.assertFalse(can_cancel_leave_request("REJECTED", "2025-06-10", self.today))

    def test_approval_rules(self):
        self.assertFalse(can_approve_leave("MANAGER", 7, 7))
        self.assertTrue(can_approve_leave("MANAGER", 7, 8))
        self.assertTrue(can_approve_leave("ASSISTANT_MANAGER", 7, 8))
        self.assertFalse(can_approve_leave("MEMBER", 7, 8))
        self.assertFalse(can_approve_leave(None, 7, 8))

    def test_utilization_and_status(self):
        self.assertEqual(calculate_leave_utilization(5, 20), 25)
        self.assertEqual(calculate_leave_utilization(1, 0), 0)
        self.assertEqual(leave_balance_status(5, 20), "low")
        self.assertEqual(leave_balance_status(10, 20), "medium")
        self.assertEqual(leave_balance_status(15, 20), "high")
        self.assertEqual(leave_balance_status(0, 0), "high")

    def test_annual_reset_and_formatting(self):
        self.assertTrue(should_reset_annual_leave(None, self.today))
        self.assertTrue(should_reset_annual_leave("2024-12-31", self.today))
        self.assertFalse(should_reset_annual_leave("2025-01-01", self.today))
        self.assertEqual(format_leave_date_range("2025-06-01", "2025-06-03"), "Jun 1, 2025 - Jun 3, 2025")
        self.assertEqual(format_leave_date_range("2025-06-01", "2025-06-01"), "Jun 1, 2025")


class LeaveWorkflowTests(TestCase):
    def setUp(self):
        self.manager = User.objects.create_user(username="manager", password="pass123", email="manager@example.com")
        self.employee = User.objects.create_user(username="employee", password="pass123", email="employee@example.com")
        self.workspace = Workspace.objects.create(name="Delivery", owner=self.manager)
        WorkspaceMember.objects.create(workspace=self.workspace, user=self.manager, role=Role.MANAGER)
        WorkspaceMember.objects.create(workspace=self.workspace, user=self.employee, role=Role.MEMBER)
        self.monday = next_monday()

    def _create_request(self, leave_type=LeaveRequestType.CASUAL, days: int = 3, **extra) -> LeaveRequest:
        return LeaveRequest.objects.create(
            user=self.employee,
            workspace=self.workspace,
            leave_type=leave_type,
            start_date=self.monday,
            end_date=self.monday + timedelta(days=days - 1),
            reason="Family trip planned",
            **extra,
        )

    def test_signal_creates_default_ledger(self):
        balance = LeaveBalance.objects.get(user=self.employee)
        self.assertEqual(
            balance.as_ledger(),
            {"paid_leave": Decimal("21"), "unpaid_leave": Decimal("0"), "half_day": 12, "comp_off": Decimal("0")},
        )

    def test_days_are_computed_on_save(self):
        self.assertEqual(self._create_request(days=3).days, Decimal("3"))
        weekend_spanning = self._create_request(days=7)
        self.assertEqual(weekend_spanning.days, Decimal("5"))

    def test_approval_deducts_from_paid_leave(self):
        request_obj = self._create_request(days=3)
        deducted = request_obj.approve(self.manager, "Enjoy")
        balance = LeaveBalance.objects.get(user=self.employee)
        self.assertEqual(deducted, 3)
        self.assertEqual(balance.paid_leave, Decimal("18"))
        self.assertEqual(request_obj.status, LeaveRequest.Status.APPROVED)
        self.assertEqual(request_obj.approver, self.manager)
        self.assertIsNotNone(request_obj.decided_at)

    def test_half_day_deducts_one_unit(self):
        request_obj = self._create_request(LeaveRequestType.HALF_DAY, days=1, half_day=True)
        self.assertEqual(request_obj.days, Decimal("0.5"))
        request_obj.approve(self.manager)
        balance = LeaveBalance.objects.get(user=self.employee)
        self.assertEqual(balance.half_day, 11)
        self.assertEqual(balance.paid_leave, Decimal("21"))

    def test_insufficient_balance_blocks_approval(self):
        LeaveBalance.objects.filter(user=self.employee).update(paid_leave=Decimal("2"))
        request_obj = self._create_request(days=3)
        with self.assertRaises(ValidationError):
            request_obj.approve(self.manager)
        request_obj.refresh_from_db()
        self.assertEqual(request_obj.status, LeaveRequest.Status.PENDING)
        self.assertEqual(LeaveBalance.objects.get(user=self.employee).paid_leave, Decimal("2"))

    def test_unpaid_leave_never_goes_negative(self):
        request_obj = self._create_request(LeaveRequestType.UNPAID, days=2)
        request_obj.approve(self.manager)
        balance = LeaveBalance.objects.get(user=self.employee)
        self.assertEqual(balance.unpaid_leave, Decimal("0"))
        self.assertEqual(balance.paid_leave, Decimal("21"))

    def test_rejection_requires_comment_and_never_deducts(self):
        request_obj = self._create_request(days=2)
        with self.assertRaises(ValidationError):
            request_obj.reject(self.manager, "")
        request_obj.reject(self.manager, "Release week")
        self.assertEqual(request_obj.status, LeaveRequest.Status.REJECTED)
        self.assertEqual(LeaveBalance.objects.get(user=self.employee).paid_leave, Decimal("21"))
        with self.assertRaises(ValidationError):
            request_obj.approve(self.manager)

    def test_cancel_before_start(self):
        request_obj = self._create_request(days=1)
        request_obj.cancel()
        self.assertEqual(request_obj.status, LeaveRequest.Status.CANCELLED)
        started = self._create_request(days=1)
        with self.assertRaises(ValidationError):
            started.cancel(today=started.start_date)

    def test_balance_resets_in_a_new_year(self):
        balance = LeaveBalance.objects.get(user=self.employee)
        balance.paid_leave = Decimal("4")
        balance.half_day = 1
        balance.last_reset_date = date(2020, 3, 1)
        balance.save()
        self.assertTrue(balance.reset_if_new_year(today=date(2021, 1, 2)))
        self.assertEqual(balance.paid_leave, Decimal("21"))
        self.assertEqual(balance.half_day, 12)
        self.assertFalse(balance.reset_if_new_year(today=date(2021, 6, 1)))

    def _form(self, **overrides):
        data = {
            "leave_type": "CASUAL",
            "start_date": self.monday.isoformat(),
            "end_date": (self.monday + timedelta(days=1)).isoformat(),
            "reason": "Visiting family abroad",
        }
        data.update(overrides)
        return LeaveRequestForm(data=data, user=self.employee, workspace=self.workspace)

    def test_form_accepts_valid_request(self):
        form = self._form()
        self.assertTrue(form.is_valid(), form.errors)
        request_obj = form.save()
        self.assertEqual(request_obj.user, self.employee)
        self.assertEqual(request_obj.workspace, self.workspace)
        self.assertEqual(request_obj.days, Decimal("2"))

    def test_form_validates_reason_length(self):
        self.assertFalse(self._form(reason="short").is_valid())
        self.assertFalse(self._form(reason="x" * 501).is_valid())

    def test_form_rejects_past_and_overlapping_dates(self):
        form = self._form(start_date="2020-01-01", end_date="2020-01-02")
        self.assertFalse(form.is_valid())
        self.assertIn("Start date cannot be in the past", str(form.errors))

        self._create_request(days=3)
        form = self._form()
        self.assertFalse(form.is_valid())
        self.assertIn("already have a leave request", str(form.errors))

    def test_form_checks_mapped_balance(self):
        form = self._form(leave_type="COMP_OFF")
        self.assertFalse(form.is_valid())
        self.assertIn("compensatory off remaining", str(form.errors))
        self.assertTrue(self._form(leave_type="UNPAID").is_valid())


class LeaveViewTests(TestCase):
    def setUp(self):
        self.manager = User.objects.create_user(username="manager", password="pass123", email="manager@example.com")
        self.employee = User.objects.create_user(username="employee", password="pass123", email="employee@example.com")
        self.workspace = Workspace.objects.create(name="Delivery", owner=self.manager)
        WorkspaceMember.objects.create(workspace=self.workspace, user=self.manager, role=Role.MANAGER)
        WorkspaceMember.objects.create(workspace=self.workspace, user=self.employee, role=Role.MEMBER)
        self.monday = next_monday()

    def _pending(self, user) -> LeaveRequest:
        return LeaveRequest.objects.create(
            user=user,
            workspace=self.workspace,
            leave_type=LeaveRequestType.ANNUAL,
            start_date=self.monday,
            end_date=self.monday + timedelta(days=1),
            reason="Long weekend away",
        )

    def test_dashboard_requires_login(self):
        response = self.client.get(reverse("leave:dashboard"))
        self.assertEqual(response.status_code, 302)
        self.client.login(username="employee", password="pass123")
        response = self.client.get(reverse("leave:dashboard"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context["balance"].paid_leave, Decimal("21"))

    def test_apply_creates_request_and_notifies_approvers(self):
        self.client.login(username="employee", password="pass123")
        response = self.client.post(
            reverse("leave:apply"),
            {
                "leave_type": "SICK",
                "start_date": self.monday.isoformat(),
                "end_date": self.monday.isoformat(),
                "reason": "Medical appointment",
            },
        )
        self.assertRedirects(response, reverse("leave:dashboard"))
        request_obj = LeaveRequest.objects.get(user=self.employee)
        self.assertEqual(request_obj.workspace, self.workspace)
        recipients = sorted(address for message in mail.outbox for address in message.to)
        self.assertEqual(recipients, ["employee@example.com", "manager@example.com"])

    def test_manager_approves_request(self):
        request_obj = self._pending(self.employee)
        self.client.login(username="manager", password="pass123")
        response = self.client.post(reverse("leave:review", args=[request_obj.pk, "approve"]), {"approver_comment": ""})
        self.assertRedirects(response, reverse("leave:manager_dashboard"))
        request_obj.refresh_from_db()
        self.assertEqual(request_obj.status, LeaveRequest.Status.APPROVED)
        self.assertEqual(LeaveBalance.objects.get(user=self.employee).paid_leave, Decimal("19"))
        self.assertEqual(len(mail.outbox), 1)

    def test_manager_cannot_review_own_request(self):
        request_obj = self._pending(self.manager)
        self.client.login(username="manager", password="pass123")
        self.client.post(reverse("leave:review", args=[request_obj.pk, "approve"]), {"approver_comment": ""})
        request_obj.refresh_from_db()
        self.assertEqual(request_obj.status, LeaveRequest.Status.PENDING)

    def test_member_cannot_open_manager_dashboard_or_review(self):
        request_obj = self._pending(self.manager)
        self.client.login(username="employee", password="pass123")
        response = self.client.get(reverse("leave:manager_dashboard"))
        self.assertRedirects(response, reverse("leave:dashboard"))
        self.client.post(reverse("leave:review", args=[request_obj.pk, "approve"]), {"approver_comment": ""})
        request_obj.refresh_from_db()
        self.assertEqual(request_obj.status, LeaveRequest.Status.PENDING)

    def test_manager_dashboard_lists_workspace_requests(self):
        request_obj = self._pending(self.employee)
        self.client.login(username="manager", password="pass123")
        response = self.client.get(reverse("leave:manager_dashboard"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(list(response.context["pending_requests"]), [request_obj])

    def test_requester_cancels_own_request(self):
        request_obj = self._pending(self.employee)
        self.client.login(username="employee", password="pass123")
        response = self.client.post(reverse("leave:cancel", args=[request_obj.pk]))
        self.assertRedirects(response, reverse("leave:dashboard"))
        request_obj.refresh_from_db()
        self.assertEqual(request_obj.status, LeaveRequest.Status.CANCELLED)

    def _approved_tomorrow(self, workspace=None) -> LeaveRequest:
        tomorrow = timezone.localdate() + timedelta(days=1)
        return LeaveRequest.objects.create(
            user=self.employee,
            workspace=workspace,
            leave_type=LeaveRequestType.CASUAL,
            start_date=tomorrow,
            end_date=tomorrow,
            days=Decimal("1"),
            reason="Approved earlier",
            status=LeaveRequest.Status.APPROVED,
        )

    def test_reminder_command_emails_upcoming_leave(self):
        self._approved_tomorrow()
        out = StringIO()
        call_command("send_leave_reminders", days=2, stdout=out)
        self.assertIn("Reminded 1 requester(s); emailed 0 approver(s).", out.getvalue())
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["employee@example.com"])

    def test_reminder_command_sends_workspace_digest(self):
        self._approved_tomorrow(self.workspace)
        out = StringIO()
        call_command("send_leave_reminders", days=2, stdout=out)
        self.assertIn("emailed 1 approver(s)", out.getvalue())
        digest = [message for message in mail.outbox if message.subject == "Upcoming leave in Delivery"]
        self.assertEqual(len(digest), 1)
        self.assertEqual(digest[0].to, ["manager@example.com"])
        self.assertIn("employee: Casual Leave", digest[0].body)

    def test_reminder_command_filters_by_workspace(self):
        other = Workspace.objects.create(name="Other", owner=self.manager)
        self._approved_tomorrow(self.workspace)
        out = StringIO()
        call_command("send_leave_reminders", workspace=other.pk, stdout=out)
        self.assertIn("Reminded 0 requester(s)", out.getvalue())
        self.assertEqual(mail.outbox, [])

        call_command("send_leave_reminders", workspace=self.workspace.pk, no_digest=True, stdout=StringIO())
        self.assertEqual([message.to for message in mail.outbox], [["employee@example.com"]])
