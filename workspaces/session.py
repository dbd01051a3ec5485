"""Explicit per-request workspace context.

The current workspace is resolved once per request into a
``WorkspaceSession`` value and handed to whatever needs it, instead of
being read from ambient storage deep inside the call stack. Switching
workspaces is the only place session state is written, and it clears
every workspace-scoped key in the same call.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from django.core.exceptions import PermissionDenied

from .models import Workspace, WorkspaceMember
from .permissions import has_permission, is_admin

logger = logging.getLogger(__name__)

CURRENT_WORKSPACE_KEY = "current_workspace_id"
WORKSPACE_STATE_PREFIX = "workspace:"


@dataclass(frozen=True)
class WorkspaceSession:
    user: object
    workspace: Workspace
    role: str

    @property
    def workspace_id(self) -> int:
        return self.workspace.pk

    @property
    def is_admin(self) -> bool:
        return is_admin(self.role)

    def can(self, permission: str) -> bool:
        return has_permission(self.role, permission)

    @classmethod
    def for_membership(cls, membership: WorkspaceMember) -> "WorkspaceSession":
        return cls(user=membership.user, workspace=membership.workspace, role=membership.role)


def get_workspace_session(request) -> Optional[WorkspaceSession]:
    """Resolve the caller's current workspace, falling back to their first membership."""
    user = getattr(request, "user", None)
    if not user or not user.is_authenticated:
        return None

    memberships = WorkspaceMember.objects.select_related("workspace", "user").filter(user=user)
    workspace_id = request.session.get(CURRENT_WORKSPACE_KEY)
    membership = None
    if workspace_id is not None:
        membership = memberships.filter(workspace_id=workspace_id).first()
    if membership is None:
        membership = memberships.order_by("joined_at", "pk").first()
        if membership is None:
            return None
        request.session[CURRENT_WORKSPACE_KEY] = membership.workspace_id
    return WorkspaceSession.for_membership(membership)


def clear_workspace_state(request) -> int:
    """Drop every workspace-scoped session entry and return how many were removed."""
    stale = [key for key in request.session.keys() if key.startswith(WORKSPACE_STATE_PREFIX)]
    for key in stale:
        del request.session[key]
    return len(stale)


def switch_workspace(request, workspace: Workspace) -> WorkspaceSession:
    membership = workspace.membership_for(request.user)
    if membership is None:
        raise PermissionDenied("You are not a member of this workspace.")
    previous = request.session.get(CURRENT_WORKSPACE_KEY)
    cleared = clear_workspace_state(request)
    request.session[CURRENT_WORKSPACE_KEY] = workspace.pk
    logger.info(
        "User %s switched workspace %s -> %s (%d scoped key(s) cleared)",
        request.user.pk,
        previous,
        workspace.pk,
        cleared,
    )
    return WorkspaceSession.for_membership(membership)
