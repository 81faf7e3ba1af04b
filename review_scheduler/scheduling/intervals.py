"""Half-open time-of-day intervals and the pure operations over them."""

from dataclasses import dataclass
from datetime import time
from typing import Iterable

from review_scheduler.core import config


@dataclass(frozen=True, order=True)
class TimeInterval:
    """A ``[start, end)`` window within a single day."""

    start: time
    end: time

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValueError('Interval start must be earlier than its end.')

    @classmethod
    def from_minutes(cls, start_minutes: int, end_minutes: int) -> 'TimeInterval':
        return cls(minutes_to_time(start_minutes), minutes_to_time(end_minutes))

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return time_to_minutes(self.end)

    @property
    def duration_minutes(self) -> int:
        return self.end_minutes - self.start_minutes

    def label(self) -> str:
        return f'{self.start:%H:%M}-{self.end:%H:%M}'


BUSINESS_HOURS = TimeInterval(config.BUSINESS_HOURS_START, config.BUSINESS_HOURS_END)
SLOT_GRANULARITY_MINUTES = config.SLOT_GRANULARITY_MINUTES


def time_to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def minutes_to_time(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


def overlaps(a: TimeInterval, b: TimeInterval) -> bool:
    return a.start < b.end and b.start < a.end


def contains(outer: TimeInterval, inner: TimeInterval) -> bool:
    return outer.start <= inner.start and inner.end <= outer.end


def is_aligned(value: time, granularity_minutes: int = SLOT_GRANULARITY_MINUTES) -> bool:
    return value.second == 0 and value.microsecond == 0 and value.minute % granularity_minutes == 0


def merge_intervals(intervals: Iterable[TimeInterval]) -> list[TimeInterval]:
    """Collapse overlapping or touching intervals into a sorted disjoint cover."""
    merged: list[TimeInterval] = []

    for interval in sorted(intervals, key=lambda item: item.start):
        if merged and interval.start <= merged[-1].end:
            running = merged[-1]
            if interval.end > running.end:
                merged[-1] = TimeInterval(running.start, interval.end)
        else:
            merged.append(interval)

    return merged
