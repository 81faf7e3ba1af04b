"""Bookable slot enumeration for a reviewer's day."""

import logging
from datetime import date
from typing import Iterable, Iterator

from review_scheduler.repositories.schedule_repository import ScheduleRepository
from review_scheduler.scheduling.intervals import (
    BUSINESS_HOURS,
    SLOT_GRANULARITY_MINUTES,
    TimeInterval,
    merge_intervals,
    overlaps,
)

logger = logging.getLogger(__name__)

DEFAULT_SLOT_MINUTES = 15


def validate_slot_minutes(slot_minutes: int) -> None:
    if slot_minutes <= 0 or slot_minutes % SLOT_GRANULARITY_MINUTES != 0:
        raise ValueError(f'Slot size must be a positive multiple of {SLOT_GRANULARITY_MINUTES} minutes.')


def iter_free_slots(
    occupied: Iterable[TimeInterval],
    slot_minutes: int = DEFAULT_SLOT_MINUTES,
    business_hours: TimeInterval = BUSINESS_HOURS,
) -> Iterator[TimeInterval]:
    """Yield each ``slot_minutes`` window in business hours that touches no occupied time."""
    validate_slot_minutes(slot_minutes)
    merged = merge_intervals(occupied)

    current = business_hours.start_minutes
    closing = business_hours.end_minutes

    while current + slot_minutes <= closing:
        candidate = TimeInterval.from_minutes(current, current + slot_minutes)
        if not any(overlaps(candidate, block) for block in merged):
            yield candidate
        current += slot_minutes


def available_slots(
    repository: ScheduleRepository,
    reviewer_id: int,
    day: date,
    slot_minutes: int = DEFAULT_SLOT_MINUTES,
) -> Iterator[TimeInterval]:
    """Free slots for ``reviewer_id`` on ``day``, read fresh from storage.

    Occupancy is fetched before the iterator is returned, so the generator
    reflects the calendar at call time and never touches the session again.
    """
    validate_slot_minutes(slot_minutes)
    occupied = repository.occupied_intervals(reviewer_id, day)

    logger.debug(
        'Computing availability: reviewer=%s date=%s occupied=%s slot_minutes=%s',
        reviewer_id, day, len(occupied), slot_minutes,
    )
    return iter_free_slots(occupied, slot_minutes)
