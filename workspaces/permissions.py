"""Role hierarchy and the role -> permission matrix for workspace members."""
from __future__ import annotations

from typing import FrozenSet, Iterable

from django.db import models


class Role(models.TextChoices):
    MANAGER = "MANAGER", "Manager"
    ASSISTANT_MANAGER = "ASSISTANT_MANAGER", "Assistant Manager"
    SOFTWARE_DEVELOPER = "SOFTWARE_DEVELOPER", "Software Developer"
    TESTER = "TESTER", "Tester"
    SOFTWARE_DEVELOPER_INTERN = "SOFTWARE_DEVELOPER_INTERN", "Software Developer Intern"
    CONTENT_ENGINEER = "CONTENT_ENGINEER", "Content Engineer"
    MEMBER = "MEMBER", "Member"


# Higher rank means more seniority. Ranks are compared by
# has_higher_or_equal_role only; permission sets are listed per role below.
ROLE_HIERARCHY = {
    Role.MANAGER: 100,
    Role.ASSISTANT_MANAGER: 80,
    Role.SOFTWARE_DEVELOPER: 60,
    Role.TESTER: 50,
    Role.SOFTWARE_DEVELOPER_INTERN: 40,
    Role.CONTENT_ENGINEER: 40,
    Role.MEMBER: 20,
}


class Permission(models.TextChoices):
    # Project
    VIEW_PROJECTS = "VIEW_PROJECTS"
    CREATE_PROJECT = "CREATE_PROJECT"
    EDIT_PROJECT = "EDIT_PROJECT"
    DELETE_PROJECT = "DELETE_PROJECT"
    MANAGE_PROJECT_SETTINGS = "MANAGE_PROJECT_SETTINGS"

    # Task
    VIEW_TASKS = "VIEW_TASKS"
    CREATE_TASK = "CREATE_TASK"
    EDIT_OWN_TASK = "EDIT_OWN_TASK"
    EDIT_ANY_TASK = "EDIT_ANY_TASK"
    DELETE_TASK = "DELETE_TASK"
    ASSIGN_TASK = "ASSIGN_TASK"

    # Epic
    VIEW_EPICS = "VIEW_EPICS"
    CREATE_EPIC = "CREATE_EPIC"
    EDIT_EPIC = "EDIT_EPIC"
    DELETE_EPIC = "DELETE_EPIC"

    # Sprint
    VIEW_SPRINTS = "VIEW_SPRINTS"
    CREATE_SPRINT = "CREATE_SPRINT"
    EDIT_SPRINT = "EDIT_SPRINT"
    DELETE_SPRINT = "DELETE_SPRINT"

    # Team
    VIEW_TEAM = "VIEW_TEAM"
    INVITE_MEMBER = "INVITE_MEMBER"
    EDIT_MEMBER = "EDIT_MEMBER"
    REMOVE_MEMBER = "REMOVE_MEMBER"

    # Workspace
    VIEW_WORKSPACE = "VIEW_WORKSPACE"
    EDIT_WORKSPACE = "EDIT_WORKSPACE"
    DELETE_WORKSPACE = "DELETE_WORKSPACE"
    MANAGE_WORKSPACE_SETTINGS = "MANAGE_WORKSPACE_SETTINGS"

    # Leave
    REQUEST_LEAVE = "REQUEST_LEAVE"
    APPROVE_LEAVE = "APPROVE_LEAVE"
    REJECT_LEAVE = "REJECT_LEAVE"

    # Analytics
    VIEW_ANALYTICS = "VIEW_ANALYTICS"
    VIEW_TEAM_ANALYTICS = "VIEW_TEAM_ANALYTICS"


_CONTRIBUTOR_PERMISSIONS = frozenset(
    {
        Permission.VIEW_PROJECTS,
        Permission.VIEW_TASKS,
        Permission.CREATE_TASK,
        Permission.EDIT_OWN_TASK,
        Permission.ASSIGN_TASK,
        Permission.VIEW_EPICS,
        Permission.VIEW_SPRINTS,
        Permission.VIEW_TEAM,
        Permission.VIEW_WORKSPACE,
        Permission.REQUEST_LEAVE,
        Permission.VIEW_ANALYTICS,
    }
)

ROLE_PERMISSIONS = {
    Role.MANAGER: frozenset(Permission),
    # Team management (invite/edit/remove) and workspace deletion stay with MANAGER.
    Role.ASSISTANT_MANAGER: frozenset(
        {
            Permission.VIEW_PROJECTS,
            Permission.CREATE_PROJECT,
            Permission.EDIT_PROJECT,
            Permission.MANAGE_PROJECT_SETTINGS,
            Permission.VIEW_TASKS,
            Permission.CREATE_TASK,
            Permission.EDIT_OWN_TASK,
            Permission.EDIT_ANY_TASK,
            Permission.DELETE_TASK,
            Permission.ASSIGN_TASK,
            Permission.VIEW_EPICS,
            Permission.CREATE_EPIC,
            Permission.EDIT_EPIC,
            Permission.DELETE_EPIC,
            Permission.VIEW_SPRINTS,
            Permission.CREATE_SPRINT,
            Permission.EDIT_SPRINT,
            Permission.DELETE_SPRINT,
            Permission.VIEW_TEAM,
            Permission.VIEW_WORKSPACE,
            Permission.EDIT_WORKSPACE,
            Permission.REQUEST_LEAVE,
            Permission.APPROVE_LEAVE,
            Permission.REJECT_LEAVE,
            Permission.VIEW_ANALYTICS,
            Permission.VIEW_TEAM_ANALYTICS,
        }
    ),
    Role.SOFTWARE_DEVELOPER: _CONTRIBUTOR_PERMISSIONS,
    Role.TESTER: _CONTRIBUTOR_PERMISSIONS,
    Role.SOFTWARE_DEVELOPER_INTERN: _CONTRIBUTOR_PERMISSIONS - {Permission.ASSIGN_TASK},
    Role.CONTENT_ENGINEER: _CONTRIBUTOR_PERMISSIONS - {Permission.ASSIGN_TASK},
    Role.MEMBER: frozenset(
        {
            Permission.VIEW_PROJECTS,
            Permission.VIEW_TASKS,
            Permission.VIEW_EPICS,
            Permission.VIEW_SPRINTS,
            Permission.VIEW_TEAM,
            Permission.VIEW_WORKSPACE,
            Permission.REQUEST_LEAVE,
            Permission.VIEW_ANALYTICS,
        }
    ),
}


def get_role_permissions(role: str) -> FrozenSet[Permission]:
    return ROLE_PERMISSIONS[Role(role)]


def has_permission(role: str, permission: str) -> bool:
    return Permission(permission) in get_role_permissions(role)


def has_any_permission(role: str, permissions: Iterable[str]) -> bool:
    return any(has_permission(role, permission) for permission in permissions)


def has_all_permissions(role: str, permissions: Iterable[str]) -> bool:
    return all(has_permission(role, permission) for permission in permissions)


def is_admin(role: str) -> bool:
    """Managers and assistant managers administer a workspace."""
    return role in {Role.MANAGER, Role.ASSISTANT_MANAGER}


def is_manager(role: str) -> bool:
    return role == Role.MANAGER


def has_higher_or_equal_role(role: str, other: str) -> bool:
    """Compare ranks only; this says nothing about the two permission sets."""
    return ROLE_HIERARCHY[Role(role)] >= ROLE_HIERARCHY[Role(other)]
