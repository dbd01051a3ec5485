from __future__ import annotations

from datetime import datetime, timedelta, timezone as dt_timezone

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase
from django.utils import timezone

from workspaces.models import Workspace, WorkspaceMember
from workspaces.permissions import Role

from . import hierarchy
from .health import CRITICAL, EXCELLENT, GOOD, WARNING, calculate_project_health, health_band
from .models import ClientRequirement, Epic, FunctionalRequirement, Project, Sprint, Task
from .records import RecordDecodeError, TaskSnapshot, decode_task_record

User = get_user_model()

NOW = datetime(2025, 6, 2, 12, 0, tzinfo=dt_timezone.utc)
YESTERDAY = NOW - timedelta(days=1)
TOMORROW = NOW + timedelta(days=1)


def _task(task_id, status="TODO", priority="MEDIUM", due=None, blocked_by=(), project="p1"):
    return TaskSnapshot(
        id=task_id,
        project_id=project,
        status=status,
        priority=priority,
        due_date=due,
        blocked_by=frozenset(blocked_by),
    )


class HierarchyIdTests(SimpleTestCase):
    def test_code_from_name_strips_and_uppercases(self):
        self.assertEqual(hierarchy.code_from_name("Requirement Auto", 3), "REQ")
        self.assertEqual(hierarchy.code_from_name("e-2 commerce", 4), "ECOM")
        self.assertEqual(hierarchy.code_from_name("ab", 3), "AB")
        self.assertEqual(hierarchy.code_from_name("", 3), "")
        self.assertEqual(hierarchy.code_from_name("1234 !!", 3), "")

    def test_code_from_name_bounds(self):
        for name in ["Login Page", "x", "42 answers", "Ünïcode name", "  ", "a1b2c3d4"]:
            for length in range(0, 6):
                code = hierarchy.code_from_name(name, length)
                letters = sum(1 for ch in name if ch.isascii() and ch.isalpha())
                self.assertLessEqual(len(code), length)
                self.assertLessEqual(len(code), letters)
                self.assertTrue(all("A" <= ch <= "Z" for ch in code), code)

    def test_project_code_prefers_explicit_code(self):
        self.assertEqual(hierarchy.project_code("Test Project", "PTES"), "PTES")
        self.assertEqual(hierarchy.project_code("Test Project"), "TE")
        self.assertEqual(hierarchy.project_code("Test Project", ""), "TE")

    def test_requirement_epic_and_fr_ids(self):
        self.assertEqual(hierarchy.requirement_id("PTES", "Portal", "Requirement Auto", 1), "PTES-REQ-01")
        self.assertEqual(
            hierarchy.epic_id("PTES", "Portal", "Requirement Auto", "Epic Auto", 2),
            "PTES-REQ-EPI-02",
        )
        self.assertEqual(hierarchy.epic_id_without_requirement("PTES", "Portal", "Epic Auto", 3), "PTES-EPI-03")
        self.assertEqual(
            hierarchy.fr_id("PTES", "Portal", "Requirement Auto", "Epic Auto", "FR Login", 1),
            "PTES-REQ-EPI-FRL-01",
        )
        self.assertEqual(hierarchy.fr_id_with_epic_only("PTES", "Portal", "Epic Auto", "FR Login", 4), "PTES-EPI-FRL-04")
        self.assertEqual(hierarchy.fr_id_standalone("PTES", "Portal", "FR Login", 12), "PTES-FRL-12")

    def test_missing_project_code_falls_back_to_four_letters(self):
        self.assertEqual(hierarchy.requirement_id("", "Test Project", "Auth", 1), "TEST-AUT-01")

    def test_task_and_sprint_ids(self):
        self.assertEqual(hierarchy.task_id("PTES-REQ-EPI-FRL-01", "Login form", 1), "PTES-REQ-EPI-FRL-01-LOG-01")
        self.assertEqual(hierarchy.task_id_without_fr("PTES", "Portal", "Logout", 7), "PTES-LOG-07")
        self.assertEqual(hierarchy.task_id_without_fr("PTES", "Portal", "123", 7), "PTES-07-07")
        self.assertEqual(hierarchy.project_task_id("PTES", "Portal", 3), "PTES-T03")
        self.assertEqual(hierarchy.subtask_id("PTES-T03", 2), "PTES-T03.02")
        self.assertEqual(hierarchy.sprint_id("PTES", "Portal", "Sprint 1"), "PTES-SSPRINT1")
        self.assertEqual(hierarchy.sprint_id("PTES", "Portal", "s-01!"), "PTES-SS01")

    def test_non_alphabetic_names_leave_empty_segments(self):
        self.assertEqual(hierarchy.requirement_id("PROJ", "Project", "2024", 1), "PROJ--01")

    def test_sequence_padding(self):
        self.assertEqual(hierarchy.pad_sequence(5), "05")
        self.assertEqual(hierarchy.pad_sequence(42), "42")
        self.assertEqual(hierarchy.pad_sequence(123), "123")

    def test_ids_are_deterministic(self):
        args = ("PTES", "Portal", "Requirement Auto", "Epic Auto", "FR Login", 9)
        self.assertEqual(hierarchy.fr_id(*args), hierarchy.fr_id(*args))
        self.assertEqual(hierarchy.sprint_id("", "Portal", "Q3"), hierarchy.sprint_id("", "Portal", "Q3"))


class ProjectHealthTests(SimpleTestCase):
    def test_project_without_tasks_is_excellent(self):
        health = calculate_project_health("p1", [_task("x", project="other")], now=NOW)
        self.assertEqual(health.score, 100)
        self.assertEqual(health.status, EXCELLENT)
        self.assertEqual(len(health.recommendations), 1)
        self.assertIn("No tasks yet", health.recommendations[0])

    def test_all_done_scores_full_marks(self):
        tasks = [_task(str(i), status="DONE", due=YESTERDAY) for i in range(4)]
        health = calculate_project_health("p1", tasks, now=NOW)
        self.assertEqual(health.completion_rate, 100)
        self.assertEqual(health.score, 100)
        self.assertEqual(health.overdue_tasks_count, 0)
        self.assertEqual(health.recommendations, ["Excellent project health! Keep up the great work."])

    def test_all_critical_and_overdue_is_critical(self):
        tasks = [_task(str(i), priority="CRITICAL", due=YESTERDAY) for i in range(3)]
        health = calculate_project_health("p1", tasks, now=NOW)
        self.assertEqual(health.score, 0)
        self.assertEqual(health.status, CRITICAL)
        self.assertEqual(health.overdue_rate, 100)
        self.assertIn("3 critical tasks are overdue! Immediate action required.", health.recommendations)
        self.assertIn("3 tasks are overdue. Update deadlines or complete them soon.", health.recommendations)

    def test_naive_datetimes_are_read_as_utc(self):
        naive_now = NOW.replace(tzinfo=None)
        tasks = [
            _task("a", due=YESTERDAY.replace(tzinfo=None)),
            _task("b", due=TOMORROW),
            _task("c", due=TOMORROW.replace(tzinfo=None)),
        ]
        for now in (NOW, naive_now):
            health = calculate_project_health("p1", tasks, now=now)
            self.assertEqual(health.overdue_tasks_count, 1)
            self.assertEqual(health.overdue_rate, 33)

    def test_blocked_tasks_need_an_open_blocker(self):
        tasks = [
            _task("a", status="DONE"),
            _task("b", status="IN_PROGRESS"),
            _task("c", blocked_by=["a"]),
            _task("d", blocked_by=["b"]),
            _task("e", blocked_by=["missing"]),
        ]
        health = calculate_project_health("p1", tasks, now=NOW)
        self.assertEqual(health.blocked_tasks_count, 1)
        self.assertEqual(health.active_tasks_count, 3)
        self.assertEqual(health.completed_tasks_count, 1)
        self.assertIn("1 task is blocked by dependencies. Resolve blockers to improve flow.", health.recommendations)

    def test_blockers_resolve_across_projects(self):
        tasks = [_task("x", status="REVIEW", project="p2"), _task("a", blocked_by=["x"])]
        health = calculate_project_health("p1", tasks, now=NOW)
        self.assertEqual(health.blocked_tasks_count, 1)

    def test_weighted_score(self):
        # 1 of 4 done, 1 overdue (HIGH), 1 blocked:
        # 100 - 75*0.4 - 25*0.6 - 25*0.4 = 45
        tasks = [
            _task("a", status="DONE"),
            _task("b", priority="HIGH", due=YESTERDAY),
            _task("c", blocked_by=["b"]),
            _task("d", due=TOMORROW),
        ]
        health = calculate_project_health("p1", tasks, now=NOW)
        self.assertEqual(health.score, 45)
        self.assertEqual(health.status, WARNING)
        self.assertEqual(health.completion_rate, 25)
        self.assertEqual(health.overdue_rate, 25)

    def test_low_completion_recommendation_needs_more_than_five_tasks(self):
        few = calculate_project_health("p1", [_task(str(i)) for i in range(5)], now=NOW)
        many = calculate_project_health("p1", [_task(str(i)) for i in range(6)], now=NOW)
        low = "Low completion rate. Consider breaking down large tasks or reviewing priorities."
        self.assertNotIn(low, few.recommendations)
        self.assertIn(low, many.recommendations)

    def test_many_active_tasks(self):
        tasks = [_task(str(i), status="DONE") for i in range(60)] + [_task(f"t{i}") for i in range(21)]
        health = calculate_project_health("p1", tasks, now=NOW)
        self.assertEqual(health.active_tasks_count, 21)
        self.assertIn("High number of active tasks. Consider focusing on fewer tasks at once.", health.recommendations)

    def test_warning_band_without_triggers_has_no_recommendations(self):
        # 2 of 5 done: 100 - 60*0.4 = 76 -> good, encouragement only
        tasks = [_task("a", status="DONE"), _task("b", status="DONE")] + [_task(str(i)) for i in range(3)]
        health = calculate_project_health("p1", tasks, now=NOW)
        self.assertEqual(health.status, GOOD)
        self.assertEqual(health.recommendations, ["Good project health. Monitor overdue tasks and blockers."])

        # 0 of 4 done: 100 - 40 = 60 -> warning, nothing to say
        health = calculate_project_health("p1", [_task(str(i)) for i in range(4)], now=NOW)
        self.assertEqual(health.status, WARNING)
        self.assertEqual(health.recommendations, [])

    def test_health_band_edges(self):
        self.assertEqual(health_band(39.9), CRITICAL)
        self.assertEqual(health_band(40), WARNING)
        self.assertEqual(health_band(70), GOOD)
        self.assertEqual(health_band(90), EXCELLENT)


class TaskRecordDecodeTests(SimpleTestCase):
    def test_decodes_camel_case_document(self):
        snapshot = decode_task_record(
            {
                "$id": "t1",
                "projectId": "p1",
                "status": "IN_PROGRESS",
                "priority": "CRITICAL",
                "dueDate": "2025-06-01T09:00:00.000Z",
                "blockedBy": '["t0", "t9"]',
            }
        )
        self.assertEqual(snapshot.id, "t1")
        self.assertEqual(snapshot.project_id, "p1")
        self.assertEqual(snapshot.blocked_by, frozenset({"t0", "t9"}))
        self.assertEqual(snapshot.due_date, datetime(2025, 6, 1, 9, 0, tzinfo=dt_timezone.utc))

    def test_date_only_due_dates_become_aware_midnight(self):
        snapshot = decode_task_record({"id": 3, "project_id": 7, "dueDate": "2025-06-01", "blockedBy": ["1"]})
        self.assertEqual(snapshot.id, "3")
        self.assertEqual(snapshot.status, "TODO")
        self.assertTrue(timezone.is_aware(snapshot.due_date))
        self.assertEqual(snapshot.blocked_by, frozenset({"1"}))

    def test_rejects_unusable_records(self):
        for record in [
            {"projectId": "p1"},
            {"$id": "t1", "projectId": "p1", "status": "BLOCKED"},
            {"$id": "t1", "projectId": "p1", "blockedBy": "not json"},
            {"$id": "t1", "projectId": "p1", "blockedBy": '{"a": 1}'},
            {"$id": "t1", "projectId": "p1", "dueDate": "someday"},
        ]:
            with self.assertRaises(RecordDecodeError):
                decode_task_record(record)


class HierarchyModelTests(TestCase):
    def setUp(self):
        self.owner = User.objects.create_user(username="owner", password="pass123")
        self.workspace = Workspace.objects.create(name="Delivery", owner=self.owner)
        WorkspaceMember.objects.create(workspace=self.workspace, user=self.owner, role=Role.MANAGER)
        self.project = Project.objects.create(workspace=self.workspace, name="Portal Tests", code="PTES")

    def test_project_code_defaults_from_name(self):
        project = Project.objects.create(workspace=self.workspace, name="Billing")
        self.assertEqual(project.code, "BI")
        self.assertEqual(project.short_code, "BI")

    def test_ids_follow_the_requirement_chain(self):
        requirement = ClientRequirement.objects.create(project=self.project, name="Requirement Auto")
        epic = Epic.objects.create(project=self.project, requirement=requirement, name="Epic Auto")
        second_epic = Epic.objects.create(project=self.project, requirement=requirement, name="Export")
        fr = FunctionalRequirement.objects.create(project=self.project, epic=epic, name="FR Login")
        task = Task.objects.create(project=self.project, functional_requirement=fr, name="Login form")
        subtask = Task.objects.create(project=self.project, parent=task, name="Validate email")

        self.assertEqual(requirement.hierarchy_id, "PTES-REQ-01")
        self.assertEqual(epic.hierarchy_id, "PTES-REQ-EPI-01")
        self.assertEqual(second_epic.hierarchy_id, "PTES-REQ-EXP-02")
        self.assertEqual(fr.requirement, requirement)
        self.assertEqual(fr.hierarchy_id, "PTES-REQ-EPI-FRL-01")
        self.assertEqual(task.hierarchy_id, "PTES-REQ-EPI-FRL-01-LOG-01")
        self.assertEqual(subtask.hierarchy_id, "PTES-REQ-EPI-FRL-01-LOG-01.01")

    def test_fr_ids_stay_unique_across_epics_with_same_prefix(self):
        requirement = ClientRequirement.objects.create(project=self.project, name="Requirement Auto")
        first_epic = Epic.objects.create(project=self.project, requirement=requirement, name="Epic Auto")
        second_epic = Epic.objects.create(project=self.project, requirement=requirement, name="Epic Billing")
        login = FunctionalRequirement.objects.create(project=self.project, epic=first_epic, name="Login")
        login_page = FunctionalRequirement.objects.create(project=self.project, epic=second_epic, name="Login page")

        self.assertEqual(login.hierarchy_id, "PTES-REQ-EPI-LOG-01")
        self.assertEqual(login_page.hierarchy_id, "PTES-REQ-EPI-LOG-02")
        self.assertNotEqual(login.hierarchy_id, login_page.hierarchy_id)

    def test_nested_fr_ids_extend_the_parent(self):
        epic = Epic.objects.create(project=self.project, name="Accounts")
        parent = FunctionalRequirement.objects.create(project=self.project, epic=epic, name="Login")
        first_child = FunctionalRequirement.objects.create(project=self.project, parent=parent, name="Remember me")
        second_child = FunctionalRequirement.objects.create(project=self.project, parent=parent, name="Lockout")
        standalone = FunctionalRequirement.objects.create(project=self.project, name="Search")

        self.assertEqual(parent.hierarchy_id, "PTES-ACC-LOG-01")
        self.assertEqual(first_child.hierarchy_id, "PTES-ACC-LOG-01.01")
        self.assertEqual(second_child.hierarchy_id, "PTES-ACC-LOG-01.02")
        self.assertEqual(first_child.epic, epic)
        self.assertEqual(list(parent.children.all()), [first_child, second_child])
        self.assertEqual(standalone.hierarchy_id, "PTES-SEA-04")

    def test_ids_without_ancestors(self):
        epic = Epic.objects.create(project=self.project, name="Epic Auto")
        fr = FunctionalRequirement.objects.create(project=self.project, name="Search")
        sprint = Sprint.objects.create(project=self.project, name="Sprint 4")
        sprint_task = Task.objects.create(project=self.project, sprint=sprint, name="Deploy")
        loose_task = Task.objects.create(project=self.project, name="Triage")

        self.assertEqual(epic.hierarchy_id, "PTES-EPI-01")
        self.assertEqual(fr.hierarchy_id, "PTES-SEA-01")
        self.assertEqual(sprint.hierarchy_id, "PTES-SSPRINT4")
        self.assertEqual(sprint_task.hierarchy_id, "PTES-DEP-01")
        self.assertEqual(loose_task.hierarchy_id, "PTES-T02")

    def test_renaming_keeps_hierarchy_id(self):
        requirement = ClientRequirement.objects.create(project=self.project, name="Auth")
        requirement.name = "Billing"
        requirement.save()
        requirement.refresh_from_db()
        self.assertEqual(requirement.hierarchy_id, "PTES-AUT-01")

    def test_blocked_state_on_model(self):
        blocker = Task.objects.create(project=self.project, name="Schema")
        task = Task.objects.create(project=self.project, name="API")
        task.blocked_by.add(blocker)
        self.assertTrue(task.is_blocked)
        self.assertEqual(blocker.blocks.get(), task)
        blocker.status = Task.Status.DONE
        blocker.save()
        self.assertFalse(task.is_blocked)
        self.assertEqual(task.snapshot().blocked_by, frozenset({str(blocker.pk)}))

    def test_health_view_reports_metrics(self):
        overdue = Task.objects.create(
            project=self.project,
            name="Release",
            priority=Task.Priority.CRITICAL,
            due_date=timezone.now() - timedelta(days=2),
        )
        Task.objects.create(project=self.project, name="Docs", status=Task.Status.DONE)
        self.client.force_login(self.owner)

        response = self.client.get(f"/projects/{self.project.pk}/health/")

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["code"], "PTES")
        self.assertEqual(payload["overdue_tasks_count"], 1)
        self.assertEqual(payload["completion_rate"], 50)
        # 100 - 50*0.4 - 50*0.6 - 50*1.0 = 0
        self.assertEqual(payload["score"], 0)
        self.assertEqual(payload["status"], CRITICAL)
        self.assertTrue(overdue.hierarchy_id)

    def test_health_view_is_scoped_to_current_workspace(self):
        outsider = User.objects.create_user(username="outsider", password="pass123")
        other = Workspace.objects.create(name="Other", owner=outsider)
        WorkspaceMember.objects.create(workspace=other, user=outsider, role=Role.MEMBER)
        self.client.force_login(outsider)
        response = self.client.get(f"/projects/{self.project.pk}/health/")
        self.assertEqual(response.status_code, 404)
