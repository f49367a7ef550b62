from datetime import datetime, timezone

from clinic_booking.services.availability.intervals import (
    TimeInterval,
    is_fully_contained,
    overlaps,
)


def _iv(h1, m1, h2, m2):
    return TimeInterval(
        datetime(2030, 1, 15, h1, m1, tzinfo=timezone.utc),
        datetime(2030, 1, 15, h2, m2, tzinfo=timezone.utc),
    )


def test_overlapping_intervals():
    assert overlaps(_iv(9, 0, 10, 0), _iv(9, 30, 10, 30))
    assert overlaps(_iv(9, 30, 10, 30), _iv(9, 0, 10, 0))


def test_nested_intervals_overlap():
    assert overlaps(_iv(9, 0, 12, 0), _iv(10, 0, 10, 15))


def test_back_to_back_intervals_do_not_overlap():
    assert not overlaps(_iv(9, 0, 10, 0), _iv(10, 0, 11, 0))
    assert not overlaps(_iv(10, 0, 11, 0), _iv(9, 0, 10, 0))


def test_zero_length_interval_on_boundary_does_not_overlap():
    assert not overlaps(_iv(10, 0, 10, 0), _iv(10, 0, 11, 0))
    assert not overlaps(_iv(11, 0, 11, 0), _iv(10, 0, 11, 0))


def test_disjoint_intervals():
    assert not overlaps(_iv(8, 0, 9, 0), _iv(12, 0, 13, 0))


def test_full_containment():
    outer = _iv(9, 0, 17, 0)
    assert is_fully_contained(_iv(9, 0, 17, 0), outer)
    assert is_fully_contained(_iv(10, 0, 11, 0), outer)
    assert not is_fully_contained(_iv(8, 45, 9, 15), outer)
    assert not is_fully_contained(_iv(16, 45, 17, 15), outer)
