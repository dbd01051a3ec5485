"""Read-only project endpoints."""
from __future__ import annotations

from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views import View

from workspaces.mixins import WorkspacePermissionRequiredMixin
from workspaces.permissions import Permission

from .health import calculate_project_health
from .models import Project


class ProjectHealthView(WorkspacePermissionRequiredMixin, View):
    """Health score and recommendations for one project in the current workspace."""

    required_permission = Permission.VIEW_ANALYTICS

    def get(self, request, pk: int):
        project = get_object_or_404(Project, pk=pk, workspace=self.workspace_session.workspace)
        health = calculate_project_health(project.pk, project.task_snapshots())
        payload = health.as_dict()
        payload.update({"project": project.pk, "code": project.short_code, "name": project.name})
        return JsonResponse(payload)
