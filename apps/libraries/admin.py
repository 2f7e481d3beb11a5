"""Admin registrations for the library catalogue."""

from __future__ import annotations

from django.contrib import admin

from .models import AdditionalFee, Branch, Library, Locker, Plan, Seat


class BranchInline(admin.TabularInline):
    model = Branch
    extra = 0
    fields = ("name", "city", "is_active", "has_lockers", "is_locker_separate")


@admin.register(Library)
class LibraryAdmin(admin.ModelAdmin):
    list_display = ("name", "currency", "is_active", "max_active_students", "max_total_students")
    list_filter = ("is_active",)
    search_fields = ("name",)
    inlines = [BranchInline]


@admin.register(Branch)
class BranchAdmin(admin.ModelAdmin):
    list_display = ("name", "library", "city", "is_active", "has_lockers", "is_locker_separate")
    list_filter = ("is_active", "has_lockers", "library")
    search_fields = ("name", "city", "library__name")


@admin.register(Seat)
class SeatAdmin(admin.ModelAdmin):
    list_display = ("number", "branch", "section", "is_active")
    list_filter = ("is_active", "branch")
    search_fields = ("number",)


@admin.register(Locker)
class LockerAdmin(admin.ModelAdmin):
    list_display = ("number", "branch", "is_active")
    list_filter = ("is_active", "branch")
    search_fields = ("number",)


@admin.register(Plan)
class PlanAdmin(admin.ModelAdmin):
    list_display = ("name", "library", "branch", "price", "duration", "duration_unit", "includes_locker", "is_active")
    list_filter = ("duration_unit", "includes_locker", "is_active")
    search_fields = ("name", "library__name")


@admin.register(AdditionalFee)
class AdditionalFeeAdmin(admin.ModelAdmin):
    list_display = ("name", "library", "branch", "amount", "bill_type", "is_active")
    list_filter = ("bill_type", "is_active")
    search_fields = ("name",)
