"""Serializers for sponsorship requests and responses."""

from rest_framework import serializers

from allocation.domain.value_objects import AccessItemId, RegistrationId
from sponsorships.domain.models import Beneficiary, Coverage, Sponsor, SponsorshipStatus


class SponsorSerializer(serializers.Serializer):
    lab_name = serializers.CharField(max_length=200)
    contact_name = serializers.CharField(max_length=200)
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=50, required=False, allow_null=True, allow_blank=True)

    def to_domain(self, data: dict) -> Sponsor:
        return Sponsor(
            lab_name=data["lab_name"],
            contact_name=data["contact_name"],
            email=data["email"],
            phone=data.get("phone") or None,
        )


class BeneficiarySerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=50, required=False, allow_null=True, allow_blank=True)
    address = serializers.CharField(max_length=500, required=False, allow_null=True, allow_blank=True)
    covers_base_price = serializers.BooleanField(default=False)
    covered_access_ids = serializers.ListField(child=serializers.UUIDField(), default=list)
    registration_id = serializers.UUIDField(required=False, allow_null=True)


class SponsorshipBatchRequestSerializer(serializers.Serializer):
    """Public sponsor form submission."""

    sponsor = SponsorSerializer()
    beneficiaries = BeneficiarySerializer(many=True, allow_empty=False)
    form_data = serializers.DictField(required=False, default=dict)

    def to_domain(self) -> tuple[Sponsor, list[Beneficiary]]:
        data = self.validated_data
        sponsor = SponsorSerializer().to_domain(data["sponsor"])
        beneficiaries = [
            Beneficiary(
                name=entry["name"],
                email=entry["email"],
                phone=entry.get("phone") or None,
                address=entry.get("address") or None,
                coverage=Coverage(
                    covers_base_price=entry["covers_base_price"],
                    covered_access_ids=frozenset(AccessItemId(value) for value in entry["covered_access_ids"]),
                ),
                registration_id=(
                    RegistrationId(entry["registration_id"]) if entry.get("registration_id") else None
                ),
            )
            for entry in data["beneficiaries"]
        ]
        return sponsor, beneficiaries


class SponsorshipUpdateSerializer(serializers.Serializer):
    beneficiary_name = serializers.CharField(max_length=200, required=False)
    beneficiary_email = serializers.EmailField(required=False)
    beneficiary_phone = serializers.CharField(max_length=50, required=False, allow_null=True, allow_blank=True)
    beneficiary_address = serializers.CharField(
        max_length=500, required=False, allow_null=True, allow_blank=True
    )
    covers_base_price = serializers.BooleanField(required=False)
    covered_access_ids = serializers.ListField(child=serializers.UUIDField(), required=False)


class SponsorshipListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[s.value for s in SponsorshipStatus], required=False)
    search = serializers.CharField(required=False, allow_blank=True)
    sort_by = serializers.ChoiceField(
        choices=["created_at", "code", "beneficiary_name", "total_amount", "status"],
        default="created_at",
    )
    sort_order = serializers.ChoiceField(choices=["asc", "desc"], default="desc")


class LinkByCodeRequestSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=20)
    applied_by = serializers.CharField(max_length=100, default="ADMIN")


class SponsorshipSerializer(serializers.Serializer):
    """Serializer for Sponsorship domain model."""

    id = serializers.CharField()
    event_id = serializers.CharField()
    batch_id = serializers.CharField()
    code = serializers.CharField()
    status = serializers.CharField()
    beneficiary_name = serializers.CharField()
    beneficiary_email = serializers.CharField()
    beneficiary_phone = serializers.CharField(allow_null=True)
    beneficiary_address = serializers.CharField(allow_null=True)
    lab_name = serializers.CharField(allow_null=True)
    covers_base_price = serializers.BooleanField()
    covered_access_ids = serializers.SerializerMethodField()
    total_amount = serializers.SerializerMethodField()
    created_at = serializers.DateTimeField(allow_null=True)

    def get_covered_access_ids(self, obj) -> list[str]:
        return sorted(str(access_id) for access_id in obj.covered_access_ids)

    def get_total_amount(self, obj) -> str:
        return str(obj.total_amount)


class SponsorshipUsageSerializer(serializers.Serializer):
    id = serializers.CharField()
    sponsorship_id = serializers.CharField()
    registration_id = serializers.CharField()
    amount_applied = serializers.SerializerMethodField()
    applied_by = serializers.CharField()
    applied_at = serializers.DateTimeField(allow_null=True)

    def get_amount_applied(self, obj) -> str:
        return str(obj.amount_applied)


class BatchResultSerializer(serializers.Serializer):
    batch_id = serializers.CharField()
    count = serializers.IntegerField()
    sponsorships = SponsorshipSerializer(many=True)


class LinkResultSerializer(serializers.Serializer):
    usage = SponsorshipUsageSerializer()
    total_amount = serializers.SerializerMethodField()
    sponsorship_amount = serializers.SerializerMethodField()
    amount_due = serializers.SerializerMethodField()
    warnings = serializers.ListField(child=serializers.CharField())

    def get_total_amount(self, obj) -> str:
        return str(obj.total_amount)

    def get_sponsorship_amount(self, obj) -> str:
        return str(obj.sponsorship_amount)

    def get_amount_due(self, obj) -> str:
        return str(obj.amount_due)


class LinkedSponsorshipSerializer(serializers.Serializer):
    usage = SponsorshipUsageSerializer()
    sponsorship = SponsorshipSerializer()


class AvailableSponsorshipSerializer(serializers.Serializer):
    sponsorship = SponsorshipSerializer()
    applicable_amount = serializers.SerializerMethodField()
    conflicts = serializers.ListField(child=serializers.CharField())

    def get_applicable_amount(self, obj) -> str:
        return str(obj.applicable_amount)
