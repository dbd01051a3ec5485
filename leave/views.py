"""Views for requesting, reviewing and cancelling leave."""
from __future__ import annotations

import logging

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.contrib.auth.mixins import LoginRequiredMixin
from django.core.exceptions import ValidationError
from django.shortcuts import get_object_or_404, redirect
from django.urls import reverse_lazy
from django.views.decorators.http import require_POST
from django.views.generic import FormView, TemplateView

from workspaces.mixins import WorkspacePermissionRequiredMixin, permission_required_in_workspace
from workspaces.permissions import Permission
from workspaces.session import get_workspace_session

from .balances import BalanceField, leave_type_display_name
from .forms import LeaveDecisionForm, LeaveRequestForm
from .models import DEFAULT_HALF_DAYS, DEFAULT_PAID_LEAVE, LeaveBalance, LeaveRequest
from .notifications import notify_request_approved, notify_request_rejected, notify_request_submitted
from .utils import can_approve_leave, leave_balance_status

logger = logging.getLogger(__name__)


class DashboardView(LoginRequiredMixin, TemplateView):
    """Members land here to review their ledger and requests."""

    template_name = "leave/dashboard.html"

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        balance = LeaveBalance.ensure_for_user(self.request.user)
        requests = self.request.user.leave_requests.select_related("approver", "workspace").all()
        context.update(
            {
                "balance": balance,
                "paid_status": leave_balance_status(float(balance.paid_leave), float(DEFAULT_PAID_LEAVE)),
                "half_day_status": leave_balance_status(balance.half_day, DEFAULT_HALF_DAYS),
                "pending_requests": requests.filter(status=LeaveRequest.Status.PENDING),
                "approved_requests": requests.filter(status=LeaveRequest.Status.APPROVED),
                "closed_requests": requests.filter(
                    status__in=[LeaveRequest.Status.REJECTED, LeaveRequest.Status.CANCELLED]
                ),
                "workspace_session": get_workspace_session(self.request),
            }
        )
        return context


class ApplyForLeaveView(WorkspacePermissionRequiredMixin, FormView):
    """Handles the apply-for-leave form flow."""

    template_name = "leave/apply.html"
    form_class = LeaveRequestForm
    required_permission = Permission.REQUEST_LEAVE
    success_url = reverse_lazy("leave:dashboard")

    def get_form_kwargs(self):
        kwargs = super().get_form_kwargs()
        kwargs["user"] = self.request.user
        kwargs["workspace"] = self.workspace_session.workspace
        return kwargs

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context["balance"] = LeaveBalance.ensure_for_user(self.request.user)
        context["balance_fields"] = BalanceField.choices
        return context

    def form_valid(self, form: LeaveRequestForm):
        leave_request = form.save()
        notify_request_submitted(leave_request)
        messages.success(
            self.request,
            f"{leave_type_display_name(leave_request.leave_type)} request for "
            f"{leave_request.days} day(s) submitted for review.",
        )
        return super().form_valid(form)


class ManagerDashboardView(WorkspacePermissionRequiredMixin, TemplateView):
    """Approvers triage pending requests of the current workspace here."""

    template_name = "leave/manager_dashboard.html"
    required_permission = Permission.APPROVE_LEAVE

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        workspace = self.workspace_session.workspace
        pending = (
            LeaveRequest.objects.pending()
            .filter(workspace=workspace)
            .exclude(user=self.request.user)
            .select_related("user")
            .order_by("start_date")
        )
        recent_decisions = (
            LeaveRequest.objects.filter(workspace=workspace, approver=self.request.user)
            .select_related("user")
            .order_by("-decided_at")[:10]
        )
        context.update(
            {
                "workspace": workspace,
                "pending_requests": pending,
                "recent_decisions": recent_decisions,
                "decision_form": LeaveDecisionForm(),
            }
        )
        return context


@login_required
@require_POST
@permission_required_in_workspace(Permission.APPROVE_LEAVE, denied_redirect="leave:dashboard")
def review_leave_request(request, pk: int, action: str, workspace_session=None):
    """Approve or reject a pending request in the current workspace."""

    leave_request = get_object_or_404(
        LeaveRequest.objects.select_related("user"),
        pk=pk,
        workspace=workspace_session.workspace,
    )
    if action not in {"approve", "reject"}:
        messages.error(request, "Unknown review action.")
        return redirect("leave:manager_dashboard")
    if action == "reject" and not workspace_session.can(Permission.REJECT_LEAVE):
        messages.error(request, "Your role does not allow rejecting leave.")
        return redirect("leave:manager_dashboard")
    if not can_approve_leave(workspace_session.role, leave_request.user_id, request.user.pk):
        messages.error(request, "You cannot review your own leave request.")
        return redirect("leave:manager_dashboard")

    form = LeaveDecisionForm(request.POST)
    if not form.is_valid():
        messages.error(request, "Submit your decision using the provided form.")
        return redirect("leave:manager_dashboard")
    comment = form.cleaned_data["approver_comment"]

    try:
        if action == "approve":
            leave_request.approve(request.user, comment)
        else:
            leave_request.reject(request.user, comment)
    except ValidationError as exc:
        messages.error(request, "; ".join(exc.messages))
        return redirect("leave:manager_dashboard")

    requester = leave_request.user.get_username()
    type_name = leave_type_display_name(leave_request.leave_type)
    if action == "approve":
        notify_request_approved(leave_request)
        messages.success(request, f"Approved {requester}'s {type_name} request.")
    else:
        notify_request_rejected(leave_request)
        messages.warning(request, f"Rejected {requester}'s {type_name} request.")
    return redirect("leave:manager_dashboard")


@login_required
@require_POST
def cancel_leave_request(request, pk: int):
    leave_request = get_object_or_404(LeaveRequest, pk=pk, user=request.user)
    try:
        leave_request.cancel()
    except ValidationError as exc:
        messages.error(request, "; ".join(exc.messages))
    else:
        logger.info("Leave request %s cancelled by its requester", leave_request.pk)
        messages.success(request, "Leave request cancelled.")
    return redirect("leave:dashboard")
