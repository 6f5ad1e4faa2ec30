import pytest

from skillmatch.domain import AvailabilitySlot
from skillmatch.services.availability import availability_overlap_ratio, compute_overlap, weekly_minutes


def _slot(day: int, start: str, end: str, active: bool = True) -> AvailabilitySlot:
    return AvailabilitySlot(day_of_week=day, start_time=start, end_time=end, is_active=active)


def test_monday_overlap_minutes():
    a = [_slot(1, "09:00", "17:00")]
    b = [_slot(1, "10:00", "18:00")]
    overlap = compute_overlap(a, b)
    assert overlap.minutes_on(1) == 420
    assert overlap.total_minutes == 420
    assert overlap.days[1].intervals == [(600, 1020)]


def test_overlap_is_symmetric():
    a = [_slot(1, "09:00", "17:00"), _slot(3, "18:00", "21:00")]
    b = [_slot(1, "10:00", "18:00"), _slot(3, "20:00", "22:00")]
    assert compute_overlap(a, b).total_minutes == compute_overlap(b, a).total_minutes == 480
    assert availability_overlap_ratio(a, b) == availability_overlap_ratio(b, a)


def test_different_days_do_not_overlap():
    assert compute_overlap([_slot(0, "09:00", "12:00")], [_slot(1, "09:00", "12:00")]).total_minutes == 0


def test_touching_slots_do_not_overlap():
    assert compute_overlap([_slot(2, "09:00", "12:00")], [_slot(2, "12:00", "14:00")]).total_minutes == 0


def test_inactive_slots_ignored():
    a = [_slot(1, "09:00", "17:00", active=False)]
    b = [_slot(1, "09:00", "17:00")]
    assert compute_overlap(a, b).total_minutes == 0
    assert weekly_minutes(a) == 0
    assert availability_overlap_ratio(a, b) == 0.0


def test_same_day_slots_counted_per_pairing():
    a = [_slot(4, "09:00", "12:00"), _slot(4, "10:00", "11:00")]
    b = [_slot(4, "09:00", "12:00")]
    # 180 + 60: overlapping slots on one side are not merged
    assert compute_overlap(a, b).total_minutes == 240


def test_ratio_uses_larger_weekly_total():
    a = [_slot(1, "09:00", "17:00")]
    b = [_slot(1, "10:00", "18:00")]
    assert availability_overlap_ratio(a, b) == pytest.approx(420 / 480)


def test_ratio_is_clamped_to_one():
    a = [_slot(4, "09:00", "12:00"), _slot(4, "09:00", "12:00")]
    b = [_slot(4, "09:00", "12:00"), _slot(4, "09:00", "12:00")]
    assert availability_overlap_ratio(a, b) == 1.0


def test_empty_schedule_ratio_is_zero():
    assert availability_overlap_ratio([], [_slot(1, "09:00", "17:00")]) == 0.0
    assert availability_overlap_ratio([], []) == 0.0


def test_invalid_slot_rejected():
    with pytest.raises(ValueError):
        _slot(1, "17:00", "09:00")
    with pytest.raises(ValueError):
        _slot(7, "09:00", "10:00")
    with pytest.raises(ValueError):
        _slot(1, "9am", "10:00")
