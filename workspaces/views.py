"""Workspace switching."""
from __future__ import annotations

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.core.exceptions import PermissionDenied
from django.shortcuts import get_object_or_404, redirect
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_POST

from .models import Workspace
from .session import switch_workspace


@login_required
@require_POST
def switch_workspace_view(request, pk: int):
    workspace = get_object_or_404(Workspace, pk=pk)
    try:
        switch_workspace(request, workspace)
    except PermissionDenied as exc:
        messages.error(request, str(exc))
        return redirect("leave:dashboard")
    messages.success(request, f"Switched to {workspace.name}.")
    next_url = request.POST.get("next", "")
    if next_url and url_has_allowed_host_and_scheme(next_url, allowed_hosts={request.get_host()}):
        return redirect(next_url)
    return redirect("leave:dashboard")
