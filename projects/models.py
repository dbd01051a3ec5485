"""Project hierarchy: requirements -> epics -> functional requirements -> sprints -> tasks."""
from __future__ import annotations

from django.contrib.auth import get_user_model
from django.db import models

from workspaces.models import Workspace

from . import hierarchy
from .records import TaskSnapshot

User = get_user_model()


class Project(models.Model):
    workspace = models.ForeignKey(
        Workspace,
        on_delete=models.CASCADE,
        related_name="projects",
    )
    name = models.CharField(max_length=160)
    code = models.CharField(
        max_length=4,
        blank=True,
        help_text="Short prefix for hierarchy IDs. Defaults to the first two letters of the name.",
    )
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return f"{self.short_code} · {self.name}"

    @property
    def short_code(self) -> str:
        return hierarchy.project_code(self.name, self.code)

    def save(self, *args, **kwargs):
        if not self.code:
            self.code = hierarchy.project_code(self.name)
        super().save(*args, **kwargs)

    def task_snapshots(self) -> list:
        """Snapshots of every task in the workspace, so cross-project blockers resolve."""
        tasks = Task.objects.filter(project__workspace_id=self.workspace_id).prefetch_related("blocked_by")
        return [TaskSnapshot.from_model(task) for task in tasks]


class HierarchyNode(models.Model):
    """Shared fields for entities that carry a hierarchy ID.

    ``hierarchy_id`` is assigned on first save from ``sequence``, which
    defaults to the number of siblings in the same parent scope plus one.
    Renaming an entity later does not change its ID.
    """

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    sequence = models.PositiveIntegerField(default=0)
    hierarchy_id = models.CharField(max_length=160, blank=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        abstract = True
        ordering = ["sequence"]

    def __str__(self) -> str:
        return f"{self.hierarchy_id} {self.name}".strip()

    def sibling_queryset(self) -> models.QuerySet:
        raise NotImplementedError

    def build_hierarchy_id(self) -> str:
        raise NotImplementedError

    def assign_hierarchy_id(self) -> None:
        if self.hierarchy_id:
            return
        if not self.sequence:
            self.sequence = self.sibling_queryset().count() + 1
        self.hierarchy_id = self.build_hierarchy_id()

    def save(self, *args, **kwargs):
        self.assign_hierarchy_id()
        super().save(*args, **kwargs)


class ClientRequirement(HierarchyNode):
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="requirements")

    class Meta(HierarchyNode.Meta):
        verbose_name = "client requirement"

    def sibling_queryset(self) -> models.QuerySet:
        return ClientRequirement.objects.filter(project=self.project)

    def build_hierarchy_id(self) -> str:
        return hierarchy.requirement_id(self.project.code, self.project.name, self.name, self.sequence)


class Epic(HierarchyNode):
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="epics")
    requirement = models.ForeignKey(
        ClientRequirement,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="epics",
    )

    def sibling_queryset(self) -> models.QuerySet:
        return Epic.objects.filter(project=self.project, requirement=self.requirement)

    def build_hierarchy_id(self) -> str:
        if self.requirement:
            return hierarchy.epic_id(
                self.project.code,
                self.project.name,
                self.requirement.name,
                self.name,
                self.sequence,
            )
        return hierarchy.epic_id_without_requirement(
            self.project.code, self.project.name, self.name, self.sequence
        )


class FunctionalRequirement(HierarchyNode):
    """A functional requirement, optionally nested under another one.

    Top-level sequences count every FR in the project so that IDs stay
    unique even when ancestor names share their first letters. Nested FRs
    are numbered within their parent as ``{parent}.NN``.
    """

    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="functional_requirements")
    requirement = models.ForeignKey(
        ClientRequirement,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="functional_requirements",
    )
    epic = models.ForeignKey(
        Epic,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="functional_requirements",
    )
    parent = models.ForeignKey(
        "self",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="children",
    )

    class Meta(HierarchyNode.Meta):
        verbose_name = "functional requirement"

    def save(self, *args, **kwargs):
        if self.parent:
            self.epic = self.epic or self.parent.epic
            self.requirement = self.requirement or self.parent.requirement
        if self.epic and not self.requirement:
            self.requirement = self.epic.requirement
        super().save(*args, **kwargs)

    def sibling_queryset(self) -> models.QuerySet:
        if self.parent:
            return FunctionalRequirement.objects.filter(parent=self.parent)
        return FunctionalRequirement.objects.filter(project=self.project)

    def build_hierarchy_id(self) -> str:
        if self.parent:
            return hierarchy.subtask_id(self.parent.hierarchy_id, self.sequence)
        code, name = self.project.code, self.project.name
        if self.requirement and self.epic:
            return hierarchy.fr_id(code, name, self.requirement.name, self.epic.name, self.name, self.sequence)
        if self.epic:
            return hierarchy.fr_id_with_epic_only(code, name, self.epic.name, self.name, self.sequence)
        return hierarchy.fr_id_standalone(code, name, self.name, self.sequence)


class Sprint(HierarchyNode):
    class Status(models.TextChoices):
        PLANNED = "PLANNED", "Planned"
        ACTIVE = "ACTIVE", "Active"
        COMPLETED = "COMPLETED", "Completed"

    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="sprints")
    status = models.CharField(max_length=12, choices=Status.choices, default=Status.PLANNED)
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)

    def sibling_queryset(self) -> models.QuerySet:
        return Sprint.objects.filter(project=self.project)

    def build_hierarchy_id(self) -> str:
        return hierarchy.sprint_id(self.project.code, self.project.name, self.name)


class Task(HierarchyNode):
    class Status(models.TextChoices):
        TODO = "TODO", "To Do"
        IN_PROGRESS = "IN_PROGRESS", "In Progress"
        REVIEW = "REVIEW", "Review"
        DONE = "DONE", "Done"

    class Priority(models.TextChoices):
        LOW = "LOW", "Low"
        MEDIUM = "MEDIUM", "Medium"
        HIGH = "HIGH", "High"
        CRITICAL = "CRITICAL", "Critical"

    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="tasks")
    sprint = models.ForeignKey(
        Sprint,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="tasks",
    )
    functional_requirement = models.ForeignKey(
        FunctionalRequirement,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="tasks",
    )
    parent = models.ForeignKey(
        "self",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="subtasks",
    )
    status = models.CharField(max_length=12, choices=Status.choices, default=Status.TODO)
    priority = models.CharField(max_length=10, choices=Priority.choices, default=Priority.MEDIUM)
    due_date = models.DateTimeField(null=True, blank=True)
    blocked_by = models.ManyToManyField(
        "self",
        symmetrical=False,
        blank=True,
        related_name="blocks",
    )
    assignees = models.ManyToManyField(User, blank=True, related_name="assigned_tasks")

    def sibling_queryset(self) -> models.QuerySet:
        if self.parent_id:
            return Task.objects.filter(parent=self.parent)
        return Task.objects.filter(project=self.project, parent__isnull=True)

    def build_hierarchy_id(self) -> str:
        code, name = self.project.code, self.project.name
        if self.parent:
            return hierarchy.subtask_id(self.parent.hierarchy_id, self.sequence)
        if self.functional_requirement:
            return hierarchy.task_id(self.functional_requirement.hierarchy_id, self.name, self.sequence)
        if self.sprint:
            return hierarchy.task_id_without_fr(code, name, self.name, self.sequence)
        return hierarchy.project_task_id(code, name, self.sequence)

    def open_blockers(self) -> models.QuerySet:
        return self.blocked_by.exclude(status=self.Status.DONE)

    @property
    def is_blocked(self) -> bool:
        return self.status != self.Status.DONE and self.open_blockers().exists()

    def snapshot(self) -> TaskSnapshot:
        return TaskSnapshot.from_model(self)
