"""Serializers for request input and for transforming domain models to API responses."""

from rest_framework import serializers

from allocation.domain.models import (
    AccessType,
    ConditionLogic,
    ConditionOperator,
    EnrichedAccess,
)


class AccessConditionSerializer(serializers.Serializer):
    field_id = serializers.CharField(min_length=1)
    operator = serializers.ChoiceField(choices=[op.value for op in ConditionOperator])
    value = serializers.JSONField()


class AccessItemInputSerializer(serializers.Serializer):
    """Validates create and partial-update payloads for access items."""

    type = serializers.ChoiceField(choices=[t.value for t in AccessType], default=AccessType.OTHER.value)
    name = serializers.CharField(max_length=200)
    description = serializers.CharField(max_length=1000, required=False, allow_null=True)
    location = serializers.CharField(max_length=500, required=False, allow_null=True)
    starts_at = serializers.DateTimeField(required=False, allow_null=True)
    ends_at = serializers.DateTimeField(required=False, allow_null=True)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, default=0)
    currency = serializers.CharField(min_length=3, max_length=3, required=False)
    max_capacity = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    waitlist_enabled = serializers.BooleanField(default=False)
    max_waitlist = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    available_from = serializers.DateTimeField(required=False, allow_null=True)
    available_to = serializers.DateTimeField(required=False, allow_null=True)
    conditions = AccessConditionSerializer(many=True, required=False)
    condition_logic = serializers.ChoiceField(
        choices=[logic.value for logic in ConditionLogic], default=ConditionLogic.AND.value
    )
    required_access_ids = serializers.ListField(child=serializers.UUIDField(), required=False)
    sort_order = serializers.IntegerField(default=0)
    active = serializers.BooleanField(default=True)

    def validate(self, attrs: dict) -> dict:
        starts_at = attrs.get("starts_at")
        ends_at = attrs.get("ends_at")
        if starts_at and ends_at and ends_at < starts_at:
            raise serializers.ValidationError({"ends_at": "End time must be after start time"})
        return attrs

    def split(self) -> tuple[dict, list[str] | None]:
        """Separate model field values from prerequisite ids."""
        values = dict(self.validated_data)
        required = values.pop("required_access_ids", None)
        if "conditions" in values:
            values["conditions"] = [dict(rule) for rule in values["conditions"]]
        return values, None if required is None else [str(value) for value in required]


class AccessItemSerializer(serializers.Serializer):
    """Serializer for AccessItem domain model."""

    id = serializers.CharField()
    event_id = serializers.CharField()
    type = serializers.CharField()
    name = serializers.CharField()
    description = serializers.CharField(allow_null=True)
    location = serializers.CharField(allow_null=True)
    starts_at = serializers.DateTimeField(allow_null=True)
    ends_at = serializers.DateTimeField(allow_null=True)
    price = serializers.SerializerMethodField()
    currency = serializers.CharField()
    max_capacity = serializers.SerializerMethodField()
    registered_count = serializers.IntegerField()
    waitlist_enabled = serializers.BooleanField()
    max_waitlist = serializers.SerializerMethodField()
    waitlist_count = serializers.IntegerField()
    available_from = serializers.DateTimeField(allow_null=True)
    available_to = serializers.DateTimeField(allow_null=True)
    conditions = serializers.SerializerMethodField()
    condition_logic = serializers.CharField()
    required_access_ids = serializers.SerializerMethodField()
    sort_order = serializers.IntegerField()
    active = serializers.BooleanField()

    def get_price(self, obj) -> str:
        return str(obj.price)

    def get_max_capacity(self, obj) -> int | None:
        return None if obj.max_capacity is None else obj.max_capacity.value

    def get_max_waitlist(self, obj) -> int | None:
        return None if obj.max_waitlist is None else obj.max_waitlist.value

    def get_conditions(self, obj) -> list[dict]:
        return [
            {"field_id": rule.field_id, "operator": rule.operator, "value": rule.value}
            for rule in obj.conditions
        ]

    def get_required_access_ids(self, obj) -> list[str]:
        return sorted(str(required) for required in obj.required_ids)


class EnrichedAccessSerializer(serializers.Serializer):
    def to_representation(self, instance: EnrichedAccess) -> dict:
        data = AccessItemSerializer(instance.item).data
        data.update(
            spots_remaining=instance.spots_remaining,
            waitlist_spots_remaining=instance.waitlist_spots_remaining,
            is_full=instance.is_full,
            can_join_waitlist=instance.can_join_waitlist,
        )
        return data


class TimeSlotSerializer(serializers.Serializer):
    starts_at = serializers.DateTimeField()
    ends_at = serializers.DateTimeField(allow_null=True)
    selection_type = serializers.CharField()
    items = EnrichedAccessSerializer(many=True)


class DateGroupSerializer(serializers.Serializer):
    date_key = serializers.CharField()
    slots = TimeSlotSerializer(many=True)


class GroupedAccessSerializer(serializers.Serializer):
    """Serializer for the GroupedAccess domain model."""

    date_groups = DateGroupSerializer(many=True)
    ungrouped = EnrichedAccessSerializer(many=True)


class GroupedAccessRequestSerializer(serializers.Serializer):
    form_data = serializers.DictField(required=False, default=dict)
    selected_access_ids = serializers.ListField(child=serializers.UUIDField(), required=False, default=list)


class SelectionSerializer(serializers.Serializer):
    access_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1, default=1)


class ValidateSelectionsRequestSerializer(serializers.Serializer):
    form_data = serializers.DictField()
    selections = SelectionSerializer(many=True)


class ValidationResultSerializer(serializers.Serializer):
    valid = serializers.BooleanField()
    errors = serializers.ListField(child=serializers.CharField())
    warnings = serializers.ListField(child=serializers.CharField())
