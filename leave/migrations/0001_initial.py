# Generated manually for the leave ledger and request schema.
from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


def _id_field():
    return models.BigAutoField(
        auto_created=True,
        primary_key=True,
        serialize=False,
        verbose_name="ID",
    )


LEAVE_TYPE_CHOICES = [
    ("CASUAL", "Casual Leave"),
    ("SICK", "Sick Leave"),
    ("ANNUAL", "Annual Leave"),
    ("MATERNITY", "Maternity Leave"),
    ("PATERNITY", "Paternity Leave"),
    ("BEREAVEMENT", "Bereavement Leave"),
    ("UNPAID", "Unpaid Leave"),
    ("HALF_DAY", "Half Day"),
    ("COMP_OFF", "Compensatory Off"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("workspaces", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="LeaveBalance",
            fields=[
                ("id", _id_field()),
                ("year", models.PositiveIntegerField(default=0)),
                ("paid_leave", models.DecimalField(decimal_places=1, default=Decimal("21"), max_digits=5)),
                ("unpaid_leave", models.DecimalField(decimal_places=1, default=Decimal("0"), max_digits=5)),
                (
                    "half_day",
                    models.PositiveIntegerField(default=12, help_text="Half-day units, not days."),
                ),
                ("comp_off", models.DecimalField(decimal_places=1, default=Decimal("0"), max_digits=5)),
                ("last_reset_date", models.DateField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="leave_balance",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "leave balance",
                "verbose_name_plural": "leave balances",
            },
        ),
        migrations.CreateModel(
            name="LeaveRequest",
            fields=[
                ("id", _id_field()),
                ("leave_type", models.CharField(choices=LEAVE_TYPE_CHOICES, max_length=20)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("half_day", models.BooleanField(default=False)),
                ("days", models.DecimalField(decimal_places=1, default=Decimal("0"), max_digits=5)),
                ("reason", models.TextField()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("APPROVED", "Approved"),
                            ("REJECTED", "Rejected"),
                            ("CANCELLED", "Cancelled"),
                        ],
                        default="PENDING",
                        max_length=12,
                    ),
                ),
                ("approver_comment", models.TextField(blank=True)),
                ("decided_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "approver",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="reviewed_leave_requests",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="leave_requests",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "workspace",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="leave_requests",
                        to="workspaces.workspace",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]
