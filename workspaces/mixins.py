"""View guards built on the workspace permission matrix."""
from __future__ import annotations

from functools import wraps

from django.contrib import messages
from django.contrib.auth.mixins import LoginRequiredMixin
from django.shortcuts import redirect

from .session import get_workspace_session


class WorkspacePermissionRequiredMixin(LoginRequiredMixin):
    """Resolve ``self.workspace_session`` and require ``required_permission`` in it."""

    required_permission: str = ""
    denied_redirect = "leave:dashboard"

    def dispatch(self, request, *args, **kwargs):
        if not request.user.is_authenticated:
            return self.handle_no_permission()
        self.workspace_session = get_workspace_session(request)
        if self.workspace_session is None:
            messages.error(request, "Join a workspace to continue.")
            return redirect(self.denied_redirect)
        if self.required_permission and not self.workspace_session.can(self.required_permission):
            messages.error(request, "Your role does not allow this action.")
            return redirect(self.denied_redirect)
        return super().dispatch(request, *args, **kwargs)


def permission_required_in_workspace(permission: str, denied_redirect: str = "leave:dashboard"):
    """Function-view counterpart of ``WorkspacePermissionRequiredMixin``.

    The resolved session is passed to the view as ``workspace_session``.
    """

    def decorator(view_func):
        @wraps(view_func)
        def _wrapped(request, *args, **kwargs):
            session = get_workspace_session(request)
            if session is None or not session.can(permission):
                messages.error(request, "Your role does not allow this action.")
                return redirect(denied_redirect)
            return view_func(request, *args, workspace_session=session, **kwargs)

        return _wrapped

    return decorator
