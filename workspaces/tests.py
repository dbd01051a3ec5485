from __future__ import annotations

from django.contrib.auth import get_user_model
from django.core.exceptions import PermissionDenied
from django.test import RequestFactory, SimpleTestCase, TestCase
from django.contrib.sessions.backends.db import SessionStore

from .models import Workspace, WorkspaceMember
from .permissions import (
    ROLE_HIERARCHY,
    ROLE_PERMISSIONS,
    Permission,
    Role,
    get_role_permissions,
    has_all_permissions,
    has_any_permission,
    has_higher_or_equal_role,
    has_permission,
    is_admin,
    is_manager,
)
from .session import (
    CURRENT_WORKSPACE_KEY,
    clear_workspace_state,
    get_workspace_session,
    switch_workspace,
)

User = get_user_model()


class PermissionMatrixTests(SimpleTestCase):
    def test_every_role_has_a_rank_and_a_permission_set(self):
        self.assertEqual(set(ROLE_HIERARCHY), set(Role))
        self.assertEqual(set(ROLE_PERMISSIONS), set(Role))

    def test_member_cannot_delete_projects(self):
        self.assertFalse(has_permission("MEMBER", "DELETE_PROJECT"))
        self.assertTrue(has_permission("MANAGER", "DELETE_PROJECT"))

    def test_manager_holds_every_permission(self):
        self.assertEqual(get_role_permissions(Role.MANAGER), frozenset(Permission))

    def test_assistant_manager_is_admin_without_team_management(self):
        self.assertTrue(is_admin("ASSISTANT_MANAGER"))
        self.assertFalse(is_manager("ASSISTANT_MANAGER"))
        for permission in ("INVITE_MEMBER", "EDIT_MEMBER", "REMOVE_MEMBER", "DELETE_WORKSPACE"):
            self.assertFalse(has_permission("ASSISTANT_MANAGER", permission), permission)
        self.assertTrue(has_permission("ASSISTANT_MANAGER", "APPROVE_LEAVE"))

    def test_rank_comparison_ignores_permission_sets(self):
        self.assertTrue(has_higher_or_equal_role("ASSISTANT_MANAGER", "SOFTWARE_DEVELOPER"))
        self.assertTrue(has_higher_or_equal_role("CONTENT_ENGINEER", "SOFTWARE_DEVELOPER_INTERN"))
        self.assertTrue(has_higher_or_equal_role("SOFTWARE_DEVELOPER_INTERN", "CONTENT_ENGINEER"))
        self.assertFalse(has_higher_or_equal_role("MEMBER", "TESTER"))

    def test_interns_cannot_assign_tasks(self):
        self.assertTrue(has_permission("SOFTWARE_DEVELOPER", "ASSIGN_TASK"))
        self.assertFalse(has_permission("SOFTWARE_DEVELOPER_INTERN", "ASSIGN_TASK"))
        self.assertFalse(has_permission("CONTENT_ENGINEER", "ASSIGN_TASK"))

    def test_any_and_all_queries(self):
        self.assertTrue(has_any_permission("MEMBER", ["DELETE_PROJECT", "REQUEST_LEAVE"]))
        self.assertFalse(has_all_permissions("MEMBER", ["DELETE_PROJECT", "REQUEST_LEAVE"]))
        self.assertTrue(has_all_permissions("TESTER", [Permission.CREATE_TASK, Permission.VIEW_SPRINTS]))
        self.assertTrue(has_all_permissions("MEMBER", []))
        self.assertFalse(has_any_permission("MEMBER", []))

    def test_only_managers_are_admins(self):
        admins = {role for role in Role if is_admin(role)}
        self.assertEqual(admins, {Role.MANAGER, Role.ASSISTANT_MANAGER})


class WorkspaceSessionTests(TestCase):
    def setUp(self):
        self.factory = RequestFactory()
        self.owner = User.objects.create_user(username="owner", password="pass123")
        self.dev = User.objects.create_user(username="dev", password="pass123")
        self.alpha = Workspace.objects.create(name="Alpha", owner=self.owner)
        self.beta = Workspace.objects.create(name="Beta", owner=self.owner)
        WorkspaceMember.objects.create(workspace=self.alpha, user=self.owner, role=Role.MANAGER)
        WorkspaceMember.objects.create(workspace=self.beta, user=self.owner, role=Role.MANAGER)
        WorkspaceMember.objects.create(workspace=self.alpha, user=self.dev, role=Role.SOFTWARE_DEVELOPER)

    def _request(self, user):
        request = self.factory.get("/")
        request.user = user
        request.session = SessionStore()
        return request

    def test_session_defaults_to_first_membership(self):
        request = self._request(self.dev)
        session = get_workspace_session(request)
        self.assertEqual(session.workspace, self.alpha)
        self.assertEqual(session.role, Role.SOFTWARE_DEVELOPER)
        self.assertEqual(request.session[CURRENT_WORKSPACE_KEY], self.alpha.pk)
        self.assertTrue(session.can(Permission.CREATE_TASK))
        self.assertFalse(session.is_admin)

    def test_switch_clears_workspace_scoped_state(self):
        request = self._request(self.owner)
        request.session["workspace:task-filters"] = {"status": "TODO"}
        request.session["workspace:selected-project"] = 4
        request.session["theme"] = "dark"

        session = switch_workspace(request, self.beta)

        self.assertEqual(session.workspace, self.beta)
        self.assertEqual(request.session[CURRENT_WORKSPACE_KEY], self.beta.pk)
        self.assertNotIn("workspace:task-filters", request.session)
        self.assertNotIn("workspace:selected-project", request.session)
        self.assertEqual(request.session["theme"], "dark")
        self.assertEqual(get_workspace_session(request).workspace, self.beta)

    def test_switch_to_foreign_workspace_is_denied(self):
        request = self._request(self.dev)
        with self.assertRaises(PermissionDenied):
            switch_workspace(request, self.beta)

    def test_clear_workspace_state_counts_removed_keys(self):
        request = self._request(self.owner)
        request.session["workspace:a"] = 1
        self.assertEqual(clear_workspace_state(request), 1)
        self.assertEqual(clear_workspace_state(request), 0)

    def test_members_with_permission(self):
        approvers = self.alpha.members_with_permission(Permission.APPROVE_LEAVE)
        self.assertEqual([member.user for member in approvers], [self.owner])

    def test_switch_view_redirects(self):
        self.client.force_login(self.owner)
        response = self.client.post(f"/workspaces/{self.beta.pk}/switch/")
        self.assertEqual(response.status_code, 302)
        self.assertEqual(self.client.session[CURRENT_WORKSPACE_KEY], self.beta.pk)
