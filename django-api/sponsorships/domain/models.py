"""Domain models for sponsorships and their application to registrations."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Self
from uuid import UUID

from allocation.domain.value_objects import AccessItemId, EventId, Money, RegistrationId


@dataclass(frozen=True)
class SponsorshipId:
    """Unique identifier for a Sponsorship."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))

    def __str__(self) -> str:
        return str(self.value)


class SponsorshipStatus(StrEnum):
    PENDING = "PENDING"
    USED = "USED"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class Sponsor:
    """The organization paying for a batch of sponsorships."""

    lab_name: str
    contact_name: str
    email: str
    phone: str | None = None


@dataclass(frozen=True)
class Coverage:
    """What a sponsorship pays for."""

    covers_base_price: bool
    covered_access_ids: frozenset[AccessItemId] = frozenset()


@dataclass(frozen=True)
class Sponsorship:
    """Domain representation of a Sponsorship."""

    id: SponsorshipId
    event_id: EventId
    batch_id: UUID
    code: str
    status: SponsorshipStatus
    beneficiary_name: str
    beneficiary_email: str
    coverage: Coverage
    total_amount: Money
    beneficiary_phone: str | None = None
    beneficiary_address: str | None = None
    lab_name: str | None = None
    created_at: datetime | None = None

    @property
    def covers_base_price(self) -> bool:
        return self.coverage.covers_base_price

    @property
    def covered_access_ids(self) -> frozenset[AccessItemId]:
        return self.coverage.covered_access_ids


@dataclass(frozen=True)
class SponsorshipUsage:
    """A sponsorship applied to one registration."""

    id: UUID
    sponsorship_id: SponsorshipId
    registration_id: RegistrationId
    amount_applied: Money
    applied_by: str
    applied_at: datetime | None = None


@dataclass(frozen=True)
class LinkedSponsorship:
    usage: SponsorshipUsage
    sponsorship: Sponsorship


@dataclass(frozen=True)
class AccessCharge:
    """What the registration was charged for one access item."""

    access_id: AccessItemId
    subtotal: Money


@dataclass(frozen=True)
class PriceBreakdown:
    calculated_base_price: Money | None = None
    access_items: tuple[AccessCharge, ...] = ()


@dataclass(frozen=True)
class RegistrationSnapshot:
    """The registration figures sponsorship coverage is reconciled against."""

    id: RegistrationId
    event_id: EventId
    email: str
    total_amount: Money
    base_amount: Money
    access_ids: frozenset[AccessItemId]
    price_breakdown: PriceBreakdown
    sponsorship_amount: Money = Money.zero()


@dataclass(frozen=True)
class CoverageResult:
    applicable_amount: Money
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class Beneficiary:
    """One sponsorship requested in a batch.

    A ``registration_id`` links the sponsorship to that registration right away.
    """

    name: str
    email: str
    coverage: Coverage
    phone: str | None = None
    address: str | None = None
    registration_id: RegistrationId | None = None


@dataclass(frozen=True)
class BatchResult:
    batch_id: UUID
    sponsorships: tuple[Sponsorship, ...]

    @property
    def count(self) -> int:
        return len(self.sponsorships)


@dataclass(frozen=True)
class LinkResult:
    usage: SponsorshipUsage
    total_amount: Money
    sponsorship_amount: Money
    warnings: tuple[str, ...] = ()

    @property
    def amount_due(self) -> Money:
        due = self.total_amount.amount - self.sponsorship_amount.amount
        return Money(max(due, Money.zero().amount))


@dataclass(frozen=True)
class AvailableSponsorship:
    sponsorship: Sponsorship
    applicable_amount: Money
    conflicts: tuple[str, ...]
