"""Admin configuration for leave balances and requests."""
from django.contrib import admin

from .models import LeaveBalance, LeaveRequest


@admin.register(LeaveRequest)
class LeaveRequestAdmin(admin.ModelAdmin):
    list_display = (
        "user",
        "workspace",
        "leave_type",
        "start_date",
        "end_date",
        "days",
        "status",
        "approver",
        "decided_at",
    )
    list_filter = ("status", "leave_type", "start_date")
    search_fields = ("user__username", "reason")
    autocomplete_fields = ("user", "approver", "workspace")
    readonly_fields = ("created_at", "updated_at", "decided_at")
    ordering = ("-created_at",)


@admin.register(LeaveBalance)
class LeaveBalanceAdmin(admin.ModelAdmin):
    list_display = ("user", "year", "paid_leave", "unpaid_leave", "half_day", "comp_off", "last_reset_date")
    search_fields = ("user__username",)
    autocomplete_fields = ("user",)
    readonly_fields = ("updated_at",)
