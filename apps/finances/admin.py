"""Admin registration for payments and promotions."""

from __future__ import annotations

from django.contrib import admin

from .models import Payment, Promotion


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("invoice_no", "student", "branch", "amount", "discount_amount", "status", "method", "created_at")
    list_filter = ("status", "method", "gateway_provider")
    search_fields = ("invoice_no", "student__name", "student__email", "gateway_order_id")
    readonly_fields = ("invoice_no", "subscription", "metadata", "created_at", "updated_at")


@admin.register(Promotion)
class PromotionAdmin(admin.ModelAdmin):
    list_display = ("code", "library", "discount_type", "discount_value", "usage_limit", "starts_at", "ends_at", "is_active")
    list_filter = ("discount_type", "is_active")
    search_fields = ("code", "description")
