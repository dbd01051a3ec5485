"""Email notification helpers for leave workflow events."""
from __future__ import annotations

from typing import Iterable

from django.conf import settings
from django.core.mail import send_mail

from workspaces.permissions import Permission

from .balances import leave_type_display_name
from .models import LeaveRequest
from .utils import format_leave_date_range


def _send(to_addresses: Iterable[str], subject: str, message: str) -> None:
    recipients = [email for email in to_addresses if email]
    if not recipients:
        return
    send_mail(
        subject=subject,
        message=message,
        from_email=getattr(settings, "DEFAULT_FROM_EMAIL", "no-reply@example.com"),
        recipient_list=recipients,
        fail_silently=True,
    )


def _summary(request_obj: LeaveRequest) -> str:
    return (
        f"{leave_type_display_name(request_obj.leave_type)} for {request_obj.days} day(s) "
        f"({format_leave_date_range(request_obj.start_date, request_obj.end_date)})"
    )


def notify_request_submitted(request_obj: LeaveRequest) -> None:
    """Confirm to the requester and alert everyone in the workspace who may approve."""
    subject = f"Leave request submitted: {leave_type_display_name(request_obj.leave_type)}"
    message = (
        f"Hi {request_obj.user.get_username()},\n\n"
        f"You requested {_summary(request_obj)}.\n"
        "A manager will review it shortly."
    )
    _send([request_obj.user.email], subject, message)

    if request_obj.workspace is None:
        return
    approvers = [
        member.user
        for member in request_obj.workspace.members_with_permission(Permission.APPROVE_LEAVE)
        if member.user_id != request_obj.user_id
    ]
    _send(
        [approver.email for approver in approvers],
        f"Approval needed: {request_obj.user.get_username()} {request_obj.leave_type}",
        f"{request_obj.user.get_username()} requested {_summary(request_obj)}.\n"
        f"Reason: {request_obj.reason}\n"
        "Please review the request in the manager dashboard.",
    )


def notify_request_approved(request_obj: LeaveRequest) -> None:
    subject = f"Leave approved: {leave_type_display_name(request_obj.leave_type)}"
    message = (
        f"Hi {request_obj.user.get_username()},\n\n"
        f"Your request for {_summary(request_obj)} was approved.\n"
        "Enjoy your time off!"
    )
    _send([request_obj.user.email], subject, message)


def notify_request_rejected(request_obj: LeaveRequest) -> None:
    subject = f"Leave decision: {leave_type_display_name(request_obj.leave_type)} request declined"
    message = (
        f"Hi {request_obj.user.get_username()},\n\n"
        f"Your request for {_summary(request_obj)} was rejected.\n"
        f"Approver notes: {request_obj.approver_comment or 'No comment provided.'}"
    )
    _send([request_obj.user.email], subject, message)


def notify_upcoming_leave(request_obj: LeaveRequest) -> None:
    subject = f"Reminder: Upcoming {leave_type_display_name(request_obj.leave_type)}"
    message = (
        f"Hi {request_obj.user.get_username()},\n\n"
        f"This is a reminder that your {_summary(request_obj)} is coming up.\n"
        "Please ensure your tasks are handed over before you are away."
    )
    _send([request_obj.user.email], subject, message)


def notify_upcoming_absences(workspace, requests: Iterable[LeaveRequest]) -> int:
    """Send the workspace's approvers one digest of who is away soon.

    Returns the number of approvers emailed.
    """
    lines = [
        f"- {request_obj.user.get_username()}: {_summary(request_obj)}"
        for request_obj in requests
    ]
    if not lines:
        return 0
    approvers = [member.user for member in workspace.members_with_permission(Permission.APPROVE_LEAVE)]
    recipients = [approver.email for approver in approvers if approver.email]
    _send(
        recipients,
        f"Upcoming leave in {workspace.name}",
        f"The following approved leave starts soon in {workspace.name}:\n\n" + "\n".join(lines),
    )
    return len(recipients)
