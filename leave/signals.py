"""Signal handlers for the leave app."""
from __future__ import annotations

from django.contrib.auth import get_user_model
from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import LeaveBalance

User = get_user_model()


@receiver(post_save, sender=User)
def create_leave_balance(sender, instance: User, created: bool, **kwargs) -> None:
    """Ensure every user has a leave ledger with the default allowance."""
    if created:
        LeaveBalance.ensure_for_user(instance)
