"""URL routing for workspace context."""
from django.urls import path

from . import views

app_name = "workspaces"

urlpatterns = [
    path("<int:pk>/switch/", views.switch_workspace_view, name="switch"),
]
