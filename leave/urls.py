"""URL routing for leave request flows."""
from django.urls import path

from . import views

app_name = "leave"

urlpatterns = [
    path("", views.DashboardView.as_view(), name="dashboard"),
    path("apply/", views.ApplyForLeaveView.as_view(), name="apply"),
    path("<int:pk>/cancel/", views.cancel_leave_request, name="cancel"),
    path(
        "manager/",
        views.ManagerDashboardView.as_view(),
        name="manager_dashboard",
    ),
    path(
        "manager/<int:pk>/<str:action>/",
        views.review_leave_request,
        name="review",
    ),
]
