"""Capacity and waitlist reservation.

This is the only place that changes an access item's counters. Each step is a
single conditional update in the store; when an update does not apply, the
item is read afterwards only to explain why.
"""

import structlog

from allocation.domain.errors import (
    AccessCapacityExceededError,
    AccessNotFoundError,
    AccessWaitlistFullError,
    InvalidIdError,
    InvalidQuantityError,
)
from allocation.domain.models import (
    CapacityCheck,
    ReservationResult,
    ReservationStatus,
    WaitlistPromotion,
)
from allocation.domain.timeslots import spots_remaining, waitlist_spots_remaining
from allocation.domain.value_objects import AccessItemId, RegistrationId
from allocation.stores.interfaces import AccessStore

logger = structlog.get_logger(__name__)


def parse_access_id(access_id: str) -> AccessItemId:
    try:
        return AccessItemId.from_string(access_id)
    except ValueError as exc:
        raise InvalidIdError("access item") from exc


def _check_quantity(quantity: int) -> None:
    if quantity < 1:
        raise InvalidQuantityError(quantity)


class CapacityReservation:
    """Reserves, releases and promotes spots on access items."""

    def __init__(self, store: AccessStore) -> None:
        self._store = store

    def check_capacity(self, access_id: str, quantity: int = 1) -> CapacityCheck:
        """Report availability without reserving anything. Advisory only."""
        access = self._store.get_access(parse_access_id(access_id))
        if access is None:
            return CapacityCheck(available=False, waitlist_available=False, spots_remaining=None)

        spots = spots_remaining(access)
        if spots is None:
            return CapacityCheck(available=True, waitlist_available=False, spots_remaining=None)

        available = spots >= quantity
        waitlist_available = False
        if not available and access.waitlist_enabled:
            waitlist_spots = waitlist_spots_remaining(access)
            waitlist_available = waitlist_spots is None or waitlist_spots >= quantity
        return CapacityCheck(
            available=available, waitlist_available=waitlist_available, spots_remaining=spots
        )

    def reserve(
        self,
        access_id: str,
        quantity: int = 1,
        allow_waitlist: bool = False,
        registration_id: RegistrationId | None = None,
    ) -> ReservationResult:
        """Take ``quantity`` confirmed spots, or waitlist spots if allowed.

        Raises:
            AccessNotFoundError: If the access item does not exist.
            AccessCapacityExceededError: If no spots are left and waitlisting is not possible.
            InvalidQuantityError: If ``quantity`` is below 1.
            AccessWaitlistFullError: If the waitlist cannot take ``quantity`` more.
        """
        item_id = parse_access_id(access_id)
        _check_quantity(quantity)
        if self._store.try_reserve_capacity(item_id, quantity, registration_id):
            logger.info("access_spot_reserved", access_id=access_id, quantity=quantity)
            return ReservationResult(status=ReservationStatus.CONFIRMED)

        access = self._store.get_access(item_id)
        if access is None:
            raise AccessNotFoundError(access_id)

        if allow_waitlist and access.waitlist_enabled:
            position = self._store.try_reserve_waitlist(item_id, quantity, registration_id)
            if position is None:
                logger.info("access_waitlist_full", access_id=access_id, quantity=quantity)
                raise AccessWaitlistFullError()
            logger.info(
                "access_spot_waitlisted", access_id=access_id, quantity=quantity, position=position
            )
            return ReservationResult(status=ReservationStatus.WAITLISTED, position=position)

        logger.info("access_capacity_exceeded", access_id=access_id, quantity=quantity)
        raise AccessCapacityExceededError()

    def release(self, access_id: str, quantity: int = 1, was_waitlisted: bool = False) -> bool:
        """Give back spots. Counters never go below zero.

        Returns False when the counter held fewer than ``quantity`` and nothing was changed.
        """
        item_id = parse_access_id(access_id)
        _check_quantity(quantity)
        if was_waitlisted:
            released = self._store.release_waitlist(item_id, quantity)
        else:
            released = self._store.release_capacity(item_id, quantity)

        if not released:
            logger.warning(
                "access_release_skipped",
                access_id=access_id,
                quantity=quantity,
                was_waitlisted=was_waitlisted,
            )
        return released

    def promote_from_waitlist(self, access_id: str) -> WaitlistPromotion | None:
        """Move the earliest waitlisted registrant onto a confirmed spot."""
        promotion = self._store.promote_next_waitlisted(parse_access_id(access_id))
        if promotion is not None:
            logger.info(
                "access_waitlist_promoted",
                access_id=access_id,
                registration_id=str(promotion.registration_id),
                quantity=promotion.quantity,
            )
        return promotion
