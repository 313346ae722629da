"""Reconciliation of sponsorship coverage against what a registrant was charged."""

from collections.abc import Iterable

import structlog

from allocation.domain.models import AccessItem
from allocation.domain.value_objects import Money
from sponsorships.domain.models import (
    CoverageResult,
    LinkedSponsorship,
    RegistrationSnapshot,
    Sponsorship,
    SponsorshipStatus,
    SponsorshipUsage,
)

logger = structlog.get_logger(__name__)


def calculate_sponsorship_total(
    base_price: Money | None,
    covers_base_price: bool,
    covered_items: Iterable[AccessItem],
) -> Money:
    """Current value of a coverage: base price if covered, plus each active covered item."""
    total = Money.zero()
    if covers_base_price and base_price is not None:
        total += base_price
    for item in covered_items:
        if item.active:
            total += item.price
    return total


def charged_base_price(registration: RegistrationSnapshot) -> Money:
    """Base price the registration was charged.

    The cached breakdown wins when present. It can go stale relative to
    ``base_amount``; a mismatch is logged rather than silently resolved.
    """
    calculated = registration.price_breakdown.calculated_base_price
    if calculated is None:
        return registration.base_amount
    if calculated != registration.base_amount:
        logger.warning(
            "registration_base_price_diverged",
            registration_id=str(registration.id),
            calculated_base_price=str(calculated),
            base_amount=str(registration.base_amount),
        )
    return calculated


def calculate_applicable_amount(sponsorship: Sponsorship, registration: RegistrationSnapshot) -> Money:
    """Amount of ``registration`` the sponsorship pays for.

    Never more than the sponsorship is worth nor more than the registration costs.
    """
    amount = Money.zero()
    if sponsorship.covers_base_price:
        amount += charged_base_price(registration)

    covered = sponsorship.covered_access_ids & registration.access_ids
    for charge in registration.price_breakdown.access_items:
        if charge.access_id in covered:
            amount += charge.subtotal

    return min(amount, registration.total_amount, sponsorship.total_amount)


def detect_coverage_overlap(
    existing_usages: Iterable[LinkedSponsorship],
    new_sponsorship: Sponsorship,
) -> list[str]:
    """Warn about components the registration already has covered by another sponsorship."""
    existing = list(existing_usages)
    warnings = []

    if new_sponsorship.covers_base_price:
        base_cover = next(
            (linked.sponsorship for linked in existing if linked.sponsorship.covers_base_price),
            None,
        )
        if base_cover is not None:
            warnings.append(f"Base price is already covered by sponsorship {base_cover.code}")

    covering_code = {}
    for linked in existing:
        for access_id in linked.sponsorship.covered_access_ids:
            covering_code[access_id] = linked.sponsorship.code

    for access_id in sorted(new_sponsorship.covered_access_ids, key=str):
        if access_id in covering_code:
            warnings.append(
                f"Access item {access_id} is already covered by sponsorship {covering_code[access_id]}"
            )
    return warnings


def preview_coverage(
    sponsorship: Sponsorship,
    registration: RegistrationSnapshot,
    existing_usages: Iterable[LinkedSponsorship],
) -> CoverageResult:
    return CoverageResult(
        applicable_amount=calculate_applicable_amount(sponsorship, registration),
        warnings=tuple(detect_coverage_overlap(existing_usages, sponsorship)),
    )


def calculate_total_sponsorship_amount(usages: Iterable[SponsorshipUsage]) -> Money:
    total = Money.zero()
    for usage in usages:
        total += usage.amount_applied
    return total


def determine_sponsorship_status(current: SponsorshipStatus, usage_count: int) -> SponsorshipStatus:
    """Status implied by the usage count. CANCELLED is set explicitly and never left."""
    if current == SponsorshipStatus.CANCELLED:
        return SponsorshipStatus.CANCELLED
    return SponsorshipStatus.USED if usage_count > 0 else SponsorshipStatus.PENDING
