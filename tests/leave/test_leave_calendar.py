from datetime import date

from hr_backoffice.leave.calendar import calculate_leave_days, is_weekend
from hr_backoffice.leave.model import LeavePolicy

PLAIN = LeavePolicy(leave_type="CL", name="Casual Leave")
SANDWICH = LeavePolicy(leave_type="EL", name="Earned Leave", sandwich_rule=True)

# 2026-03-02 is a Monday.
MON = date(2026, 3, 2)
FRI = date(2026, 3, 6)
NEXT_MON = date(2026, 3, 9)


def test_weekend_detection():
    assert is_weekend(date(2026, 3, 7))
    assert is_weekend(date(2026, 3, 8))
    assert not is_weekend(FRI)


def test_working_week_counts_weekdays():
    assert calculate_leave_days(MON, FRI, PLAIN) == 5


def test_weekend_skipped_without_sandwich_rule():
    assert calculate_leave_days(FRI, NEXT_MON, PLAIN) == 2


def test_weekend_charged_with_sandwich_rule():
    assert calculate_leave_days(FRI, NEXT_MON, SANDWICH) == 4


def test_holidays_are_off_days():
    holiday = date(2026, 3, 4)
    assert calculate_leave_days(MON, FRI, PLAIN, [holiday]) == 4
    assert calculate_leave_days(MON, FRI, SANDWICH, [holiday]) == 5


def test_weekend_only_range_is_zero():
    assert calculate_leave_days(date(2026, 3, 7), date(2026, 3, 8), PLAIN) == 0


def test_reversed_range_is_zero():
    assert calculate_leave_days(FRI, MON, PLAIN) == 0
