from __future__ import annotations

import logging
from datetime import timedelta
from itertools import groupby

from django.core.management.base import BaseCommand, CommandError

from workspaces.models import Workspace

from ...models import LeaveRequest
from ...notifications import notify_upcoming_absences, notify_upcoming_leave
from ...utils import today_local

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = (
        "Remind members whose approved leave starts within the window, and send "
        "each workspace's approvers a digest of the upcoming absences."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--days",
            type=int,
            default=2,
            help="Look-ahead window in days (default: 2).",
        )
        parser.add_argument(
            "--workspace",
            type=int,
            help="Only remind for leave filed in this workspace id.",
        )
        parser.add_argument(
            "--no-digest",
            action="store_true",
            help="Skip the approver digest and only remind the requesters.",
        )

    def handle(self, *args, **options):
        if options["days"] < 0:
            raise CommandError("--days cannot be negative.")
        today = today_local()
        window_end = today + timedelta(days=options["days"])

        upcoming = LeaveRequest.objects.filter(
            status=LeaveRequest.Status.APPROVED,
            start_date__range=(today, window_end),
        ).select_related("user", "workspace")
        if options["workspace"] is not None:
            if not Workspace.objects.filter(pk=options["workspace"]).exists():
                raise CommandError(f"Workspace {options['workspace']} does not exist.")
            upcoming = upcoming.filter(workspace_id=options["workspace"])
        upcoming = list(upcoming.order_by("workspace_id", "start_date"))

        for request_obj in upcoming:
            notify_upcoming_leave(request_obj)

        digests = 0
        if not options["no_digest"]:
            scoped = [request_obj for request_obj in upcoming if request_obj.workspace_id]
            for _, group in groupby(scoped, key=lambda request_obj: request_obj.workspace_id):
                group = list(group)
                digests += notify_upcoming_absences(group[0].workspace, group)

        logger.info(
            "Leave reminders for %s..%s: %d requester(s), %d approver digest(s)",
            today,
            window_end,
            len(upcoming),
            digests,
        )
        self.stdout.write(
            self.style.SUCCESS(f"Reminded {len(upcoming)} requester(s); emailed {digests} approver(s).")
        )
