"""Serializers for the booking API."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.finances.models import Payment
from apps.libraries.models import AdditionalFee, Plan
from apps.students.services import ContactInfo

from .application.command_handlers import (
    CreateBookingCommand,
    CreatePublicBookingCommand,
    ManualPayment,
    ManualPaymentProof,
)


class ManualPaymentSerializer(serializers.Serializer):
    """Payment collected by staff; the amount overrides calculated pricing."""

    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, default=0)
    method = serializers.ChoiceField(choices=Payment.Method.choices, default=Payment.Method.CASH)
    type = serializers.CharField(max_length=20, default="subscription")
    remarks = serializers.CharField(allow_blank=True, default="")
    proof_url = serializers.URLField(allow_blank=True, default="")
    transaction_ref = serializers.CharField(max_length=100, allow_blank=True, default="")


class ManualPaymentProofSerializer(serializers.Serializer):
    transaction_ref = serializers.CharField(max_length=100, allow_blank=True, default="")
    proof_url = serializers.URLField(allow_blank=True, default="")

    def validate(self, attrs):  # type: ignore
        if not attrs.get("transaction_ref") and not attrs.get("proof_url"):
            raise serializers.ValidationError("Provide a transaction reference or a payment proof.")
        return attrs


class _BookingTargetSerializer(serializers.Serializer):
    branch = serializers.UUIDField()
    plan = serializers.UUIDField()
    seat = serializers.UUIDField(required=False, allow_null=True)
    locker = serializers.UUIDField(required=False, allow_null=True)
    start_date = serializers.DateTimeField(required=False, allow_null=True)
    cycle_count = serializers.IntegerField(min_value=1, default=1)
    fee_ids = serializers.ListField(child=serializers.UUIDField(), required=False, default=list)


class BookingCreateSerializer(_BookingTargetSerializer):
    """Staff booking for a registered student."""

    student = serializers.UUIDField()
    payment = serializers.UUIDField(required=False, allow_null=True)
    manual_payment = ManualPaymentSerializer(required=False, allow_null=True)
    is_add_on = serializers.BooleanField(default=False)

    def validate(self, attrs):  # type: ignore
        if attrs.get("payment") and attrs.get("manual_payment"):
            raise serializers.ValidationError("Use either an existing payment or a manual payment, not both.")
        return attrs

    def to_command(self) -> CreateBookingCommand:
        data = self.validated_data
        manual = data.get("manual_payment")
        return CreateBookingCommand(
            student_id=data["student"],
            branch_id=data["branch"],
            plan_id=data["plan"],
            seat_id=data.get("seat"),
            locker_id=data.get("locker"),
            start_date=data.get("start_date"),
            cycle_count=data["cycle_count"],
            fee_ids=list(data.get("fee_ids") or []),
            existing_payment_id=data.get("payment"),
            manual_payment=ManualPayment(**manual) if manual else None,
            is_add_on=data["is_add_on"],
        )


class PublicBookingSerializer(_BookingTargetSerializer):
    """Self-service booking form: contact details plus payment choice."""

    name = serializers.CharField(max_length=255)
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=20)
    dob = serializers.CharField(max_length=10, allow_blank=True, default="")
    coupon_code = serializers.CharField(max_length=40, allow_blank=True, default="")
    gateway_provider = serializers.CharField(max_length=30, allow_blank=True, default="")
    manual_payment = ManualPaymentProofSerializer(required=False, allow_null=True)

    def to_command(self) -> CreatePublicBookingCommand:
        data = self.validated_data
        proof = data.get("manual_payment")
        return CreatePublicBookingCommand(
            contact=ContactInfo(
                name=data["name"],
                email=data["email"],
                phone=data["phone"],
                dob=data["dob"],
            ),
            branch_id=data["branch"],
            plan_id=data["plan"],
            seat_id=data.get("seat"),
            locker_id=data.get("locker"),
            fee_ids=list(data.get("fee_ids") or []),
            cycle_count=data["cycle_count"],
            start_date=data.get("start_date"),
            coupon_code=data["coupon_code"],
            gateway_provider=data["gateway_provider"],
            manual_payment_proof=ManualPaymentProof(**proof) if proof else None,
        )


class BookingSuccessSerializer(serializers.Serializer):
    reservation_ids = serializers.ListField(child=serializers.UUIDField())
    payment_id = serializers.UUIDField()
    invoice_no = serializers.CharField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2)
    resource_label = serializers.CharField()
    status = serializers.CharField()
    student_id = serializers.UUIDField()


class AvailabilityQuerySerializer(serializers.Serializer):
    student = serializers.UUIDField()
    branch = serializers.UUIDField()


class PlanSerializer(serializers.ModelSerializer):
    scope = serializers.SerializerMethodField()

    class Meta:
        model = Plan
        fields = [
            "id",
            "name",
            "price",
            "duration",
            "duration_unit",
            "includes_locker",
            "hours_per_day",
            "scope",
        ]

    def get_scope(self, obj: Plan) -> str:  # type: ignore
        return "global" if obj.branch_id is None else "branch"


class AdditionalFeeSerializer(serializers.ModelSerializer):
    class Meta:
        model = AdditionalFee
        fields = ["id", "name", "amount", "bill_type", "description"]
