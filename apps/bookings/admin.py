"""Admin registration for reservations."""

from __future__ import annotations

from django.contrib import admin

from .models import Subscription


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "student",
        "branch",
        "seat",
        "locker",
        "plan",
        "status",
        "start_date",
        "end_date",
        "amount",
        "cycle_index",
    )
    list_filter = ("status", "has_locker", "branch", "start_date")
    search_fields = ("student__name", "student__email", "seat__number", "locker__number")
    readonly_fields = ("amount", "cycle_index", "created_at", "updated_at")
    raw_id_fields = ("student", "seat", "locker")
