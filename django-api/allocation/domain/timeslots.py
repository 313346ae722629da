"""Grouping of access items into days and time slots for the registration form.

Items that start at exactly the same moment compete for the registrant's time
and form a mutually exclusive slot. An item alone in its slot can be picked
freely. Items without a start time are listed separately.
"""

from collections import defaultdict
from collections.abc import Iterable
from datetime import UTC, datetime

from allocation.domain.models import (
    AccessItem,
    DateGroup,
    EnrichedAccess,
    GroupedAccess,
    SelectionType,
    TimeSlot,
)


def spots_remaining(item: AccessItem) -> int | None:
    if item.max_capacity is None:
        return None
    return item.max_capacity.value - item.registered_count


def waitlist_spots_remaining(item: AccessItem) -> int | None:
    if item.max_waitlist is None:
        return None
    return item.max_waitlist.value - item.waitlist_count


def enrich(item: AccessItem) -> EnrichedAccess:
    spots = spots_remaining(item)
    waitlist_spots = waitlist_spots_remaining(item)
    is_full = spots is not None and spots <= 0
    return EnrichedAccess(
        item=item,
        spots_remaining=spots,
        waitlist_spots_remaining=waitlist_spots,
        is_full=is_full,
        can_join_waitlist=(
            is_full and item.waitlist_enabled and (waitlist_spots is None or waitlist_spots > 0)
        ),
    )


def date_key(moment: datetime) -> str:
    """Calendar date of ``moment`` in UTC, as ``YYYY-MM-DD``."""
    return moment.astimezone(UTC).date().isoformat()


def _build_slot(starts_at: datetime, entries: list[EnrichedAccess]) -> TimeSlot:
    entries.sort(key=lambda entry: entry.item.sort_order)
    return TimeSlot(
        starts_at=starts_at,
        ends_at=entries[0].item.ends_at,
        selection_type=SelectionType.SINGLE if len(entries) > 1 else SelectionType.MULTIPLE,
        items=tuple(entries),
    )


def group_by_time_slot(items: Iterable[AccessItem]) -> GroupedAccess:
    """Bucket items by UTC date, then by exact start time, both chronologically."""
    by_date: dict[str, dict[datetime, list[EnrichedAccess]]] = defaultdict(lambda: defaultdict(list))
    ungrouped: list[EnrichedAccess] = []

    for item in items:
        entry = enrich(item)
        if item.starts_at is None:
            ungrouped.append(entry)
            continue
        by_date[date_key(item.starts_at)][item.starts_at].append(entry)

    date_groups = tuple(
        DateGroup(
            date_key=key,
            slots=tuple(_build_slot(starts_at, slots[starts_at]) for starts_at in sorted(slots)),
        )
        for key, slots in sorted(by_date.items())
    )
    ungrouped.sort(key=lambda entry: entry.item.sort_order)
    return GroupedAccess(date_groups=date_groups, ungrouped=tuple(ungrouped))
