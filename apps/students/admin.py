"""Admin registration for students."""

from __future__ import annotations

from django.contrib import admin

from .models import Student


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = ("name", "email", "phone", "library", "branch", "is_blocked", "created_at")
    list_filter = ("is_blocked", "library")
    search_fields = ("name", "email", "phone")
    readonly_fields = ("library", "branch", "created_at", "updated_at")
