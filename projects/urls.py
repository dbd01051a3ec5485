"""URL routing for project endpoints."""
from django.urls import path

from . import views

app_name = "projects"

urlpatterns = [
    path("<int:pk>/health/", views.ProjectHealthView.as_view(), name="health"),
]
