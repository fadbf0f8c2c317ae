from __future__ import annotations

import threading
from datetime import date, datetime, timezone

import pytest

from hr_backoffice.core.enums import AccrualType
from hr_backoffice.core.exceptions import StateConflictError
from hr_backoffice.leave.accrual import AccrualEngine
from hr_backoffice.leave.model import LeaveBalance, LeavePolicy

from fakes import FakeBalances, FakePolicies, FakeUsers, FixedClock, user

CL = LeavePolicy(leave_type="CL", name="Casual Leave", accrual_amount=1.0, max_limit_per_year=2)
EL = LeavePolicy(
    leave_type="EL",
    name="Earned Leave",
    accrual_amount=1.25,
    max_limit_per_year=15,
    carry_forward=True,
    max_carry_forward=30,
)
SL = LeavePolicy(leave_type="SL", name="Sick Leave", accrual_type=AccrualType.YEARLY, accrual_amount=8, max_limit_per_year=8)
OLD = LeavePolicy(leave_type="OLD", name="Retired", accrual_amount=5, is_active=False)


def _engine(balances=None):
    users = FakeUsers([user(1), user(2), user(3, is_active=False)])
    balances = balances if balances is not None else FakeBalances()
    # 2025-12-31 20:00 UTC is already 2026-01-01 in Asia/Kolkata.
    clock = FixedClock(datetime(2025, 12, 31, 20, 0, tzinfo=timezone.utc))
    engine = AccrualEngine(users, FakePolicies([CL, EL, SL, OLD]), balances, tz_name="Asia/Kolkata", clock=clock)
    return engine, balances


def test_monthly_accrual_credits_active_users_and_monthly_policies():
    engine, balances = _engine()
    report = engine.run_monthly_accrual()

    assert report.ok
    assert report.year == 2026
    assert report.processed == 4
    assert balances.get(user_id=1, leave_type="EL", year=2026).accrued == 1.25
    assert balances.get(user_id=1, leave_type="SL", year=2026) is None
    assert balances.get(user_id=3, leave_type="CL", year=2026) is None
    assert balances.get(user_id=1, leave_type="OLD", year=2026) is None


def test_monthly_accrual_respects_yearly_cap():
    engine, balances = _engine()
    for _ in range(3):
        engine.run_monthly_accrual(date(2026, 5, 1))
    assert balances.get(user_id=2, leave_type="CL", year=2026).accrued == 2


def test_failing_pair_does_not_stop_the_run():
    engine, balances = _engine(FakeBalances(fail_for={(1, "EL")}))
    report = engine.run_monthly_accrual(date(2026, 2, 1))

    assert not report.ok
    assert report.processed == 3
    assert report.failed_pairs == [(1, "EL")]
    assert "storage unavailable" in report.to_dict()["failed"][0]["error"]
    assert balances.get(user_id=2, leave_type="EL", year=2026).accrued == 1.25


def test_retry_only_failed_pairs():
    balances = FakeBalances(fail_for={(1, "EL")})
    engine, _ = _engine(balances)
    first = engine.run_monthly_accrual(date(2026, 2, 1))

    balances.fail_for.clear()
    retry = engine.run_monthly_accrual(date(2026, 2, 1), only=first.failed_pairs)
    assert retry.ok
    assert retry.processed == 1
    assert balances.get(user_id=1, leave_type="EL", year=2026).accrued == 1.25
    assert balances.get(user_id=2, leave_type="EL", year=2026).accrued == 1.25


def test_yearly_processing_carries_forward_and_grants_yearly_policies():
    balances = FakeBalances()
    balances.put(LeaveBalance(user_id=1, leave_type="EL", year=2025, opening_balance=20, accrued=15, utilized=2))
    balances.put(LeaveBalance(user_id=2, leave_type="EL", year=2025, accrued=10, utilized=4))
    balances.put(LeaveBalance(user_id=1, leave_type="CL", year=2025, accrued=12, utilized=3))
    engine, _ = _engine(balances)

    report = engine.run_yearly_processing()
    assert report.ok
    assert report.year == 2026
    assert report.processed == 6

    assert balances.get(user_id=1, leave_type="EL", year=2026).opening_balance == 30
    assert balances.get(user_id=2, leave_type="EL", year=2026).opening_balance == 6
    assert balances.get(user_id=1, leave_type="CL", year=2026).opening_balance == 0
    assert balances.get(user_id=1, leave_type="SL", year=2026).accrued == 8


def test_yearly_processing_is_rerunnable():
    balances = FakeBalances()
    balances.put(LeaveBalance(user_id=2, leave_type="EL", year=2025, accrued=10))
    engine, _ = _engine(balances)
    engine.run_yearly_processing(2026)
    engine.run_yearly_processing(2026)
    assert balances.get(user_id=2, leave_type="EL", year=2026).opening_balance == 10


class _BlockingBalances(FakeBalances):
    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def get_or_create(self, **kwargs):
        self.entered.set()
        self.release.wait(timeout=5)
        return super().get_or_create(**kwargs)


def test_overlapping_runs_are_rejected():
    balances = _BlockingBalances()
    engine, _ = _engine(balances)
    worker = threading.Thread(target=engine.run_monthly_accrual, args=(date(2026, 2, 1),))
    worker.start()
    try:
        assert balances.entered.wait(timeout=5)
        with pytest.raises(StateConflictError):
            engine.run_yearly_processing(2026)
    finally:
        balances.release.set()
        worker.join(timeout=5)

    assert engine.run_monthly_accrual(date(2026, 3, 1)).ok
