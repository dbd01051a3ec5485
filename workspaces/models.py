"""Tenant boundary: workspaces and the members that belong to them."""
from __future__ import annotations

from typing import Optional

from django.contrib.auth import get_user_model
from django.db import models

from .permissions import Role, has_permission

User = get_user_model()


class Workspace(models.Model):
    """Top-level tenant containing projects and members."""

    name = models.CharField(max_length=120)
    owner = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name="owned_workspaces",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name

    def membership_for(self, user: User) -> Optional["WorkspaceMember"]:
        if not user or not user.is_authenticated:
            return None
        return self.members.filter(user=user).first()

    def role_for(self, user: User) -> Optional[str]:
        membership = self.membership_for(user)
        return membership.role if membership else None

    def members_with_permission(self, permission: str) -> models.QuerySet:
        roles = [role for role in Role.values if has_permission(role, permission)]
        return self.members.filter(role__in=roles).select_related("user")


class WorkspaceMember(models.Model):
    workspace = models.ForeignKey(
        Workspace,
        on_delete=models.CASCADE,
        related_name="members",
    )
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="workspace_memberships",
    )
    role = models.CharField(max_length=30, choices=Role.choices, default=Role.MEMBER)
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ("workspace", "user")
        ordering = ["workspace", "user"]

    def __str__(self) -> str:
        return f"{self.user.get_username()} · {self.workspace.name} ({self.get_role_display()})"

    def has_permission(self, permission: str) -> bool:
        return has_permission(self.role, permission)
