"""URL routing for the booking engine."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import AvailabilityView, BookingCreateView, BranchCatalogView, PublicBookingView

urlpatterns = [
    path("", BookingCreateView.as_view(), name="booking-create"),
    path("public/", PublicBookingView.as_view(), name="booking-public"),
    path("availability/", AvailabilityView.as_view(), name="booking-availability"),
    path("branches/<uuid:branch_id>/catalog/", BranchCatalogView.as_view(), name="branch-catalog"),
]
