from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable

from ..domain import AvailabilitySlot

DAYS = range(7)


@dataclass
class DayOverlap:
    day_of_week: int
    intervals: list[tuple[int, int]] = field(default_factory=list)
    minutes: int = 0


@dataclass
class AvailabilityOverlap:
    days: dict[int, DayOverlap]

    @property
    def total_minutes(self) -> int:
        return sum(d.minutes for d in self.days.values())

    def minutes_on(self, day_of_week: int) -> int:
        return self.days[day_of_week].minutes


def group_by_day(slots: Iterable[AvailabilitySlot]) -> dict[int, list[AvailabilitySlot]]:
    grouped: dict[int, list[AvailabilitySlot]] = defaultdict(list)
    for slot in slots:
        if not slot.is_active:
            continue
        grouped[slot.day_of_week].append(slot)
    return grouped


def weekly_minutes(slots: Iterable[AvailabilitySlot]) -> int:
    return sum(slot.duration_minutes for slot in slots if slot.is_active)


def _pair_overlap(a: AvailabilitySlot, b: AvailabilitySlot) -> tuple[int, int] | None:
    start = max(a.start_minute, b.start_minute)
    end = min(a.end_minute, b.end_minute)
    if end <= start:
        return None
    return start, end


def compute_overlap(slots_a: Iterable[AvailabilitySlot], slots_b: Iterable[AvailabilitySlot]) -> AvailabilityOverlap:
    """
    Pairwise same-day overlap between two weekly schedules.

    Every (slot_a, slot_b) pair on the same day contributes its own overlap, so
    several same-day slots on one side are counted once per pairing rather than
    merged into a union. Slot times are compared as raw wall-clock minutes; the
    declared timezone of each slot is not applied.
    """
    by_day_a = group_by_day(slots_a)
    by_day_b = group_by_day(slots_b)

    days: dict[int, DayOverlap] = {}
    for day in DAYS:
        overlap = DayOverlap(day_of_week=day)
        for a in by_day_a.get(day, []):
            for b in by_day_b.get(day, []):
                interval = _pair_overlap(a, b)
                if interval is None:
                    continue
                overlap.intervals.append(interval)
                overlap.minutes += interval[1] - interval[0]
        overlap.intervals.sort()
        days[day] = overlap
    return AvailabilityOverlap(days=days)


def availability_overlap_ratio(slots_a: list[AvailabilitySlot], slots_b: list[AvailabilitySlot]) -> float:
    total_a = weekly_minutes(slots_a)
    total_b = weekly_minutes(slots_b)
    if total_a <= 0 or total_b <= 0:
        return 0.0
    overlap = compute_overlap(slots_a, slots_b).total_minutes
    return max(0.0, min(1.0, overlap / max(total_a, total_b)))
