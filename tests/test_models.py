import dataclasses

import pytest

from timetable_engine.models import (
    DayOfWeek,
    ParseError,
    ParseOutcome,
    ScheduleEntry,
    WeekCycle,
    is_valid_period,
    period_label,
)


def make_entry(**overrides):
    values = dict(
        day=DayOfWeek.MONDAY,
        period=1,
        week=WeekCycle.WEEK_1,
        subject="Mathematics",
        room="113",
        teacher="KDN",
    )
    values.update(overrides)
    return ScheduleEntry(**values)


def test_week_toggle_is_an_involution():
    for week in WeekCycle:
        assert week.toggle() is not week
        assert week.toggle().toggle() is week


def test_week_label_does_not_affect_identity():
    assert WeekCycle.WEEK_1.label == "Week 1"
    assert WeekCycle.from_number(2) is WeekCycle.WEEK_2
    assert WeekCycle.from_number(3) is None
    assert WeekCycle.WEEK_1 == WeekCycle.from_number(1)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Monday", DayOfWeek.MONDAY),
        ("mon", DayOfWeek.MONDAY),
        ("  FRI ", DayOfWeek.FRIDAY),
        ("wednesday", DayOfWeek.WEDNESDAY),
        ("Saturday", None),
        ("Sun", None),
        ("", None),
        ("Mo", None),
    ],
)
def test_day_from_string(text, expected):
    assert DayOfWeek.from_string(text) is expected


def test_days_order_by_declaration():
    shuffled = [DayOfWeek.FRIDAY, DayOfWeek.MONDAY, DayOfWeek.WEDNESDAY]
    assert sorted(shuffled) == [DayOfWeek.MONDAY, DayOfWeek.WEDNESDAY, DayOfWeek.FRIDAY]
    assert DayOfWeek.TUESDAY < DayOfWeek.THURSDAY
    assert DayOfWeek.MONDAY.index == 0
    assert DayOfWeek.THURSDAY.short_name == "Thu"


def test_period_labels_and_domain():
    assert period_label(0) == "AM Registration"
    assert period_label(3) == "P3"
    assert period_label(6) == "PM Registration"
    assert is_valid_period(0) and is_valid_period(6)
    assert not is_valid_period(7)
    assert not is_valid_period(-1)


def test_entry_is_immutable_and_keyed():
    entry = make_entry()
    assert entry.key == (WeekCycle.WEEK_1, DayOfWeek.MONDAY, 1)
    assert str(entry) == "Week 1 Monday P1: Mathematics"
    with pytest.raises(dataclasses.FrozenInstanceError):
        entry.subject = "English"


def test_entry_to_dict():
    entry = make_entry(start_time="09:00", end_time="09:50")
    assert entry.to_dict() == {
        'week': 1,
        'day': 'Monday',
        'period': 1,
        'subject': 'Mathematics',
        'room': '113',
        'teacher': 'KDN',
        'start_time': '09:00',
        'end_time': '09:50',
    }
    assert entry.time_range == "09:00 - 09:50"


def test_outcome_stores_tuples_and_combines_in_order():
    first = ParseOutcome(valid_entries=[make_entry()], total_rows_considered=2)
    second = ParseOutcome(
        valid_entries=[make_entry(period=2, subject="English")],
        errors=[ParseError(row=3, message="bad")],
        total_rows_considered=3,
    )

    assert isinstance(first.valid_entries, tuple)

    combined = ParseOutcome.combine([first, second])
    assert [e.subject for e in combined.valid_entries] == ["Mathematics", "English"]
    assert combined.errors == (ParseError(row=3, message="bad"),)
    assert combined.total_rows_considered == 5
    assert combined.success_count == 2
    assert combined.has_errors
    assert len(combined) == 2


def test_empty_outcome():
    outcome = ParseOutcome()
    assert not outcome.has_errors
    assert outcome.success_count == 0
    assert str(ParseError(row=0, message="empty")) == "Row 0: empty"
