"""API views for the booking engine."""

from __future__ import annotations

import logging

from django.shortcuts import get_object_or_404  # type: ignore
from rest_framework import permissions, status  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.libraries.models import Branch
from apps.libraries.selectors import branch_catalog

from .application.command_handlers import (
    BookingFailure,
    check_resource_availability,
    create_booking,
    create_public_booking,
)
from .serializers import (
    AdditionalFeeSerializer,
    AvailabilityQuerySerializer,
    BookingCreateSerializer,
    BookingSuccessSerializer,
    PlanSerializer,
    PublicBookingSerializer,
)

logger = logging.getLogger(__name__)

STUDENT_SESSION_KEY = "student_id"

FAILURE_STATUS = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "resource_unavailable": status.HTTP_409_CONFLICT,
    "invalid_payment_state": status.HTTP_409_CONFLICT,
    "invalid_input": status.HTTP_400_BAD_REQUEST,
    "limit_reached": status.HTTP_409_CONFLICT,
    "transaction_timeout": status.HTTP_503_SERVICE_UNAVAILABLE,
    "transaction_aborted": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _invalid(errors) -> Response:
    return Response({"error": "invalid_input", "detail": errors}, status=status.HTTP_400_BAD_REQUEST)


def _result_response(result) -> Response:
    if isinstance(result, BookingFailure):
        http_status = FAILURE_STATUS.get(result.error_kind, status.HTTP_400_BAD_REQUEST)
        return Response({"error": result.error_kind, "detail": result.message}, status=http_status)
    return Response(BookingSuccessSerializer(result).data, status=status.HTTP_201_CREATED)


class BookingCreateView(APIView):
    """Staff booking on behalf of a registered student."""

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):  # type: ignore
        serializer = BookingCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return _invalid(serializer.errors)
        result = create_booking(serializer.to_command())
        if isinstance(result, BookingFailure):
            logger.info("Staff booking by %s refused: %s", request.user, result.error_kind)
        return _result_response(result)


class PublicBookingView(APIView):
    """Self-service booking. On success the student is signed into the session."""

    permission_classes = [permissions.AllowAny]
    authentication_classes: list = []

    def post(self, request):  # type: ignore
        serializer = PublicBookingSerializer(data=request.data)
        if not serializer.is_valid():
            return _invalid(serializer.errors)
        result = create_public_booking(serializer.to_command())
        if not isinstance(result, BookingFailure):
            request.session[STUDENT_SESSION_KEY] = str(result.student_id)
            response = _result_response(result)
            response.data["is_new_student"] = result.is_new_student
            return response
        return _result_response(result)


class AvailabilityView(APIView):
    """Whether a student already holds a running reservation at a branch."""

    permission_classes = [permissions.AllowAny]

    def get(self, request):  # type: ignore
        serializer = AvailabilityQuerySerializer(data=request.query_params)
        if not serializer.is_valid():
            return _invalid(serializer.errors)
        data = serializer.validated_data
        return Response(check_resource_availability(data["student"], data["branch"]))


class BranchCatalogView(APIView):
    """Bookable plans and fees for a branch, branch-specific rows first."""

    permission_classes = [permissions.AllowAny]

    def get(self, request, branch_id):  # type: ignore
        branch = get_object_or_404(Branch, pk=branch_id, is_active=True)
        catalog = branch_catalog(branch)
        return Response(
            {
                "branch": {"id": str(branch.id), "name": branch.name, "has_lockers": branch.has_lockers},
                "plans": PlanSerializer(catalog.plans, many=True).data,
                "fees": AdditionalFeeSerializer(catalog.fees, many=True).data,
            }
        )
