"""Input serializers for the intelligence API."""
from rest_framework import serializers

from intelligence.models import FollowUpActivity


class SampleTransferCreateSerializer(serializers.Serializer):
    customer = serializers.UUIDField()
    product = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    transfer_date = serializers.DateField(required=False)
    sales_rep = serializers.UUIDField(required=False)
    approved_by = serializers.UUIDField(required=False, allow_null=True)
    purpose_notes = serializers.CharField(required=False, allow_blank=True, default="")


class TastingFeedbackSerializer(serializers.Serializer):
    customer_interest = serializers.ChoiceField(
        choices=FollowUpActivity.Interest.choices,
        default=FollowUpActivity.Interest.MEDIUM,
    )
    rating = serializers.IntegerField(min_value=1, max_value=5, required=False, allow_null=True)
    order_placed = serializers.BooleanField(default=False)
    order_amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0, default=0)
    follow_up_required = serializers.BooleanField(default=False)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    activity_date = serializers.DateField(required=False)


class SampleTransferSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    sales_rep = serializers.UUIDField(source="sales_rep_id")
    customer = serializers.UUIDField(source="customer_id")
    product = serializers.UUIDField(source="product_id")
    quantity = serializers.IntegerField()
    transfer_date = serializers.DateField()
    approved_by = serializers.UUIDField(source="approved_by_manager_id", allow_null=True)
    follow_up_activity = serializers.UUIDField(source="follow_up_activity_id", allow_null=True)
    inventory_movement = serializers.UUIDField(source="inventory_movement_id")
