"""Admin configuration for the project hierarchy."""
from django.contrib import admin

from .models import ClientRequirement, Epic, FunctionalRequirement, Project, Sprint, Task


class HierarchyAdmin(admin.ModelAdmin):
    list_display = ("hierarchy_id", "name", "project", "sequence", "created_at")
    search_fields = ("hierarchy_id", "name", "project__name")
    list_filter = ("project",)
    readonly_fields = ("hierarchy_id", "created_at")


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "workspace", "created_at")
    search_fields = ("name", "code", "workspace__name")
    autocomplete_fields = ("workspace",)


@admin.register(ClientRequirement)
class ClientRequirementAdmin(HierarchyAdmin):
    pass


@admin.register(Epic)
class EpicAdmin(HierarchyAdmin):
    autocomplete_fields = ("requirement",)


@admin.register(FunctionalRequirement)
class FunctionalRequirementAdmin(HierarchyAdmin):
    autocomplete_fields = ("requirement", "epic", "parent")


@admin.register(Sprint)
class SprintAdmin(HierarchyAdmin):
    list_display = ("hierarchy_id", "name", "project", "status", "start_date", "end_date")
    list_filter = ("status", "project")


@admin.register(Task)
class TaskAdmin(HierarchyAdmin):
    list_display = ("hierarchy_id", "name", "project", "status", "priority", "due_date")
    list_filter = ("status", "priority", "project")
    autocomplete_fields = ("sprint", "functional_requirement", "parent", "blocked_by", "assignees")
