"""Integration tests for SponsorshipService.

Run with: pytest tests/test_sponsorship_service.py -v
"""

from decimal import Decimal

import pytest

from allocation import models as allocation_models
from allocation.domain.errors import ErrorCode, EventNotFoundError
from allocation.domain.value_objects import AccessItemId, Money, RegistrationId
from allocation.stores.django_store import DjangoAccessStore
from sponsorships import models
from sponsorships.domain.errors import (
    EmptyCoverageError,
    EventMismatchError,
    InvalidCoveredAccessError,
    RegistrationNotFoundError,
    SponsorshipAlreadyLinkedError,
    SponsorshipCancelledError,
    SponsorshipCodeExhaustedError,
    SponsorshipNotApplicableError,
    SponsorshipNotFoundError,
    SponsorshipNotLinkedError,
    SponsorshipStatusConflictError,
)
from sponsorships.domain.models import Beneficiary, Coverage, Sponsor, SponsorshipStatus
from sponsorships.services.sponsorship_service import SponsorshipService
from sponsorships.stores.django_store import DjangoSponsorshipStore

SPONSOR = Sponsor(lab_name="Pharma Lab", contact_name="Sami", email="sami@lab.example")


@pytest.fixture
def service() -> SponsorshipService:
    return SponsorshipService(DjangoSponsorshipStore(), DjangoAccessStore())


def beneficiary(covers_base_price=True, covered=(), registration=None, name="Dr. Amel") -> Beneficiary:
    return Beneficiary(
        name=name,
        email="amel@example.com",
        coverage=Coverage(
            covers_base_price=covers_base_price,
            covered_access_ids=frozenset(AccessItemId(access.id) for access in covered),
        ),
        registration_id=None if registration is None else RegistrationId(registration.id),
    )


def sponsorship_amount(registration) -> Decimal:
    registration.refresh_from_db()
    return registration.sponsorship_amount


@pytest.mark.django_db
class TestCreateBatch:
    """Tests for SponsorshipService.create_batch"""

    def test_code_mode_creates_pending_sponsorships(self, service, event, make_access):
        workshop = make_access(price=Decimal("50.00"))
        result = service.create_batch(
            str(event.id),
            SPONSOR,
            [beneficiary(), beneficiary(covers_base_price=False, covered=[workshop], name="Dr. Karim")],
        )
        assert result.count == 2
        totals = sorted(s.total_amount for s in result.sponsorships)
        assert totals == [Money("50"), Money("200")]
        assert all(s.status is SponsorshipStatus.PENDING for s in result.sponsorships)
        assert all(s.code.startswith("SP-") for s in result.sponsorships)
        assert len({s.code for s in result.sponsorships}) == 2
        assert models.SponsorshipBatch.objects.get(pk=result.batch_id).lab_name == "Pharma Lab"

    def test_linked_mode_applies_immediately(self, service, event, make_registration):
        registration = make_registration(total="300.00", base="200.00")
        result = service.create_batch(str(event.id), SPONSOR, [beneficiary(registration=registration)])

        [sponsorship] = result.sponsorships
        assert sponsorship.status is SponsorshipStatus.USED
        usage = models.SponsorshipUsage.objects.get(registration=registration)
        assert usage.applied_by == "SYSTEM"
        assert usage.amount_applied == Decimal("200.00")
        assert sponsorship_amount(registration) == Decimal("200.00")

    def test_empty_coverage(self, service, event):
        with pytest.raises(EmptyCoverageError):
            service.create_batch(str(event.id), SPONSOR, [beneficiary(covers_base_price=False)])

    def test_inactive_or_foreign_items_are_rejected(self, service, event, other_event, make_access):
        inactive = make_access(active=False)
        foreign = make_access(event=other_event)
        with pytest.raises(InvalidCoveredAccessError) as exc_info:
            service.create_batch(str(event.id), SPONSOR, [beneficiary(covered=[inactive, foreign])])
        assert set(exc_info.value.invalid_ids) == {str(inactive.id), str(foreign.id)}
        assert not models.SponsorshipBatch.objects.exists()

    def test_registration_from_another_event(self, service, event, other_event, make_registration):
        foreign = make_registration(event=other_event)
        with pytest.raises(RegistrationNotFoundError):
            service.create_batch(str(event.id), SPONSOR, [beneficiary(registration=foreign)])

    def test_unknown_event(self, service):
        with pytest.raises(EventNotFoundError):
            service.create_batch("9b2f8a8e-4c1e-4a57-9d0e-6f1f0f2d6a11", SPONSOR, [beneficiary()])

    def test_code_exhaustion_rolls_back_the_batch(self, event, monkeypatch):
        store = DjangoSponsorshipStore()
        monkeypatch.setattr(store, "code_exists", lambda code: True)
        service = SponsorshipService(store, DjangoAccessStore(), code_max_attempts=3)
        with pytest.raises(SponsorshipCodeExhaustedError):
            service.create_batch(str(event.id), SPONSOR, [beneficiary()])
        assert not models.SponsorshipBatch.objects.exists()


@pytest.fixture
def pending(service, event):
    """A PENDING sponsorship covering the base price (200)."""
    return service.create_batch(str(event.id), SPONSOR, [beneficiary()]).sponsorships[0]


@pytest.mark.django_db
class TestLink:
    """Tests for SponsorshipService.link_sponsorship and link_sponsorship_by_code"""

    def test_link_applies_coverage(self, service, pending, make_registration):
        registration = make_registration(total="300.00", base="200.00")
        result = service.link_sponsorship(str(registration.id), str(pending.id), "admin@example.com")

        assert result.usage.amount_applied == Money("200")
        assert result.sponsorship_amount == Money("200")
        assert result.amount_due == Money("100")
        assert result.warnings == ()
        assert service.get_sponsorship(str(pending.id)).status is SponsorshipStatus.USED
        assert sponsorship_amount(registration) == Decimal("200.00")

    def test_link_by_code_is_case_insensitive(self, service, pending, make_registration):
        registration = make_registration()
        result = service.link_sponsorship_by_code(str(registration.id), f" {pending.code.lower()} ", "admin")
        assert result.usage.sponsorship_id == pending.id

    def test_unknown_code(self, service, make_registration):
        with pytest.raises(SponsorshipNotFoundError):
            service.link_sponsorship_by_code(str(make_registration().id), "SP-ZZZZ", "admin")

    def test_duplicate_link(self, service, pending, make_registration):
        registration = make_registration()
        service.link_sponsorship(str(registration.id), str(pending.id), "admin")
        with pytest.raises(SponsorshipAlreadyLinkedError) as exc_info:
            service.link_sponsorship(str(registration.id), str(pending.id), "admin")
        assert exc_info.value.code is ErrorCode.CONFLICT

    def test_cancelled_sponsorship(self, service, pending, make_registration):
        service.cancel_sponsorship(str(pending.id))
        with pytest.raises(SponsorshipCancelledError):
            service.link_sponsorship(str(make_registration().id), str(pending.id), "admin")

    def test_cross_event_link(self, service, pending, other_event, make_registration):
        with pytest.raises(EventMismatchError):
            service.link_sponsorship(str(make_registration(event=other_event).id), str(pending.id), "admin")

    def test_no_overlap_is_not_applicable(self, service, event, make_access, make_registration):
        dinner = make_access("Dinner", price=Decimal("80.00"))
        workshop = make_access("Workshop", price=Decimal("50.00"))
        sponsorship = service.create_batch(
            str(event.id), SPONSOR, [beneficiary(covers_base_price=False, covered=[dinner])]
        ).sponsorships[0]
        registration = make_registration(items=[(workshop, "50.00")])

        with pytest.raises(SponsorshipNotApplicableError) as exc_info:
            service.link_sponsorship(str(registration.id), str(sponsorship.id), "admin")
        assert exc_info.value.code is ErrorCode.SPONSORSHIP_NOT_APPLICABLE

    def test_lost_race_with_cancellation(self, service, pending, make_registration, monkeypatch):
        registration = make_registration()
        monkeypatch.setattr(DjangoSponsorshipStore, "mark_used", lambda self, sponsorship_id: False)
        with pytest.raises(SponsorshipStatusConflictError) as exc_info:
            service.link_sponsorship(str(registration.id), str(pending.id), "admin")
        assert exc_info.value.code is ErrorCode.SPONSORSHIP_STATUS_CONFLICT
        assert not models.SponsorshipUsage.objects.exists()

    def test_overlap_is_reported_as_warning(self, service, event, make_registration):
        registration = make_registration(total="300.00")
        first, second = service.create_batch(
            str(event.id), SPONSOR, [beneficiary(), beneficiary(name="Dr. Karim")]
        ).sponsorships
        service.link_sponsorship(str(registration.id), str(first.id), "admin")
        result = service.link_sponsorship(str(registration.id), str(second.id), "admin")
        assert result.warnings == (f"Base price is already covered by sponsorship {first.code}",)


@pytest.mark.django_db
class TestUnlinkAndCancel:
    def test_unlink_restores_pending(self, service, pending, make_registration):
        registration = make_registration()
        service.link_sponsorship(str(registration.id), str(pending.id), "admin")

        remaining = service.unlink_sponsorship(str(registration.id), str(pending.id))

        assert remaining == Money.zero()
        assert sponsorship_amount(registration) == Decimal("0")
        assert service.get_sponsorship(str(pending.id)).status is SponsorshipStatus.PENDING

    def test_unlink_without_link(self, service, pending, make_registration):
        with pytest.raises(SponsorshipNotLinkedError):
            service.unlink_sponsorship(str(make_registration().id), str(pending.id))

    def test_cancel_during_unlink_stays_cancelled(self, service, pending, make_registration, monkeypatch):
        registration = make_registration()
        service.link_sponsorship(str(registration.id), str(pending.id), "admin")
        get_usage = DjangoSponsorshipStore.get_usage

        def get_usage_then_cancel(store, sponsorship_id, registration_id):
            usage = get_usage(store, sponsorship_id, registration_id)
            monkeypatch.setattr(DjangoSponsorshipStore, "get_usage", get_usage)
            models.Sponsorship.objects.filter(pk=pending.id.value).update(
                status=SponsorshipStatus.CANCELLED.value
            )
            return usage

        monkeypatch.setattr(DjangoSponsorshipStore, "get_usage", get_usage_then_cancel)
        service.unlink_sponsorship(str(registration.id), str(pending.id))

        assert service.get_sponsorship(str(pending.id)).status is SponsorshipStatus.CANCELLED
        assert sponsorship_amount(registration) == Decimal("0")

    def test_unlink_losing_to_cancel(self, service, pending, make_registration, monkeypatch):
        registration = make_registration()
        service.link_sponsorship(str(registration.id), str(pending.id), "admin")
        get_usage = DjangoSponsorshipStore.get_usage

        def get_usage_then_cancel(store, sponsorship_id, registration_id):
            usage = get_usage(store, sponsorship_id, registration_id)
            monkeypatch.setattr(DjangoSponsorshipStore, "get_usage", get_usage)
            service.cancel_sponsorship(str(pending.id))
            return usage

        monkeypatch.setattr(DjangoSponsorshipStore, "get_usage", get_usage_then_cancel)
        with pytest.raises(SponsorshipStatusConflictError):
            service.unlink_sponsorship(str(registration.id), str(pending.id))

        assert service.get_sponsorship(str(pending.id)).status is SponsorshipStatus.CANCELLED
        assert sponsorship_amount(registration) == Decimal("0")

    def test_usage_removed_during_unlink(self, service, pending, make_registration, monkeypatch):
        registration = make_registration()
        service.link_sponsorship(str(registration.id), str(pending.id), "admin")
        get_usage = DjangoSponsorshipStore.get_usage

        def get_usage_then_delete(store, sponsorship_id, registration_id):
            usage = get_usage(store, sponsorship_id, registration_id)
            models.SponsorshipUsage.objects.filter(pk=usage.id).delete()
            return usage

        monkeypatch.setattr(DjangoSponsorshipStore, "get_usage", get_usage_then_delete)
        with pytest.raises(SponsorshipStatusConflictError) as exc_info:
            service.unlink_sponsorship(str(registration.id), str(pending.id))
        assert exc_info.value.code is ErrorCode.SPONSORSHIP_STATUS_CONFLICT
        assert service.get_sponsorship(str(pending.id)).status is SponsorshipStatus.USED

    def test_status_write_is_conditional(self, service, pending, make_registration, monkeypatch):
        registration = make_registration()
        service.link_sponsorship(str(registration.id), str(pending.id), "admin")
        monkeypatch.setattr(
            DjangoSponsorshipStore, "transition_status", lambda self, sponsorship_id, expected, status: False
        )
        with pytest.raises(SponsorshipStatusConflictError):
            service.unlink_sponsorship(str(registration.id), str(pending.id))
        assert models.SponsorshipUsage.objects.count() == 1

    def test_cancel_unlinks_everything_and_sticks(self, service, pending, make_registration):
        registration = make_registration()
        service.link_sponsorship(str(registration.id), str(pending.id), "admin")

        cancelled = service.cancel_sponsorship(str(pending.id))

        assert cancelled.status is SponsorshipStatus.CANCELLED
        assert not models.SponsorshipUsage.objects.exists()
        assert sponsorship_amount(registration) == Decimal("0")
        assert service.cancel_sponsorship(str(pending.id)).status is SponsorshipStatus.CANCELLED

    def test_delete_unlinks_first(self, service, pending, make_registration):
        registration = make_registration()
        service.link_sponsorship(str(registration.id), str(pending.id), "admin")
        service.delete_sponsorship(str(pending.id))
        assert not models.Sponsorship.objects.exists()
        assert sponsorship_amount(registration) == Decimal("0")


@pytest.mark.django_db
class TestUpdate:
    def test_coverage_change_recomputes_usages(self, service, event, pending, make_access, make_registration):
        workshop = make_access(price=Decimal("50.00"))
        registration = make_registration(total="250.00", items=[(workshop, "50.00")])
        service.link_sponsorship(str(registration.id), str(pending.id), "admin")

        updated = service.update_sponsorship(
            str(pending.id), {"covers_base_price": False, "covered_access_ids": [str(workshop.id)]}
        )

        assert updated.total_amount == Money("50")
        assert models.SponsorshipUsage.objects.get().amount_applied == Decimal("50.00")
        assert sponsorship_amount(registration) == Decimal("50.00")

    def test_beneficiary_fields(self, service, pending):
        updated = service.update_sponsorship(str(pending.id), {"beneficiary_name": "Dr. Leila"})
        assert updated.beneficiary_name == "Dr. Leila"
        assert updated.total_amount == pending.total_amount

    def test_empty_coverage_is_rejected(self, service, pending):
        with pytest.raises(EmptyCoverageError):
            service.update_sponsorship(str(pending.id), {"covers_base_price": False})


@pytest.mark.django_db
class TestQueries:
    def test_list_filters_and_search(self, service, event):
        service.create_batch(
            str(event.id), SPONSOR, [beneficiary(name="Dr. Amel"), beneficiary(name="Dr. Karim")]
        )
        assert len(service.list_sponsorships(str(event.id))) == 2
        assert [s.beneficiary_name for s in service.list_sponsorships(str(event.id), search="karim")] == [
            "Dr. Karim"
        ]
        assert len(service.list_sponsorships(str(event.id), search="pharma")) == 2
        assert service.list_sponsorships(str(event.id), status=SponsorshipStatus.USED) == []

    def test_get_by_code(self, service, event, pending):
        assert service.get_sponsorship_by_code(str(event.id), pending.code).id == pending.id

    def test_available_excludes_linked_and_reports_amounts(self, service, event, make_registration):
        registration = make_registration(total="300.00")
        first, second = service.create_batch(
            str(event.id), SPONSOR, [beneficiary(), beneficiary(name="Dr. Karim")]
        ).sponsorships
        service.link_sponsorship(str(registration.id), str(first.id), "admin")

        available = service.get_available_sponsorships(str(event.id), str(registration.id))

        # The first sponsorship is USED now, so only the second one is offered.
        assert [entry.sponsorship.id for entry in available] == [second.id]
        assert available[0].applicable_amount == Money("200")
        assert available[0].conflicts == (f"Base price is already covered by sponsorship {first.code}",)

    def test_linked_sponsorships(self, service, pending, make_registration):
        registration = make_registration()
        service.link_sponsorship(str(registration.id), str(pending.id), "admin")
        [linked] = service.get_linked_sponsorships(str(registration.id))
        assert linked.sponsorship.id == pending.id
        assert allocation_models.Registration.objects.get(pk=registration.pk).sponsorship_amount == Decimal(
            "200.00"
        )
