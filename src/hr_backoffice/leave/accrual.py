from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional, Sequence, Set, Tuple

import structlog

from ..common.datetime_utils import now_utc, org_day
from ..core.constants import DEFAULT_ORG_TIMEZONE
from ..core.enums import AccrualType
from ..core.exceptions import StateConflictError
from ..users.repository import UserRepository
from .model import LeavePolicy
from .repository import LeaveBalanceRepository, LeavePolicyRepository

log = structlog.get_logger(__name__)

Pair = Tuple[int, str]


@dataclass(frozen=True)
class AccrualFailure:
    user_id: int
    leave_type: str
    error: str


@dataclass(frozen=True)
class AccrualReport:
    kind: str
    year: int
    processed: int
    failed: Tuple[AccrualFailure, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def failed_pairs(self) -> List[Pair]:
        return [(f.user_id, f.leave_type) for f in self.failed]

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "year": self.year,
            "processed": self.processed,
            "failed": [{"user_id": f.user_id, "leave_type": f.leave_type, "error": f.error} for f in self.failed],
        }


class AccrualEngine:
    """Batch leave accrual, triggered externally (cron, admin endpoint).

    Every (user, policy) pair is its own unit of work: a failing pair is logged and
    reported, the run carries on. Runs are single-flight per process.
    """

    def __init__(
        self,
        users: UserRepository,
        policies: LeavePolicyRepository,
        balances: LeaveBalanceRepository,
        *,
        tz_name: str = DEFAULT_ORG_TIMEZONE,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._users = users
        self._policies = policies
        self._balances = balances
        self._tz_name = tz_name
        self._clock = clock
        self._running = threading.Lock()

    def _acquire(self, kind: str) -> None:
        if not self._running.acquire(blocking=False):
            log.warning("accrual_already_running", kind=kind)
            raise StateConflictError("An accrual run is already in progress")

    def _pairs(self, policies: Sequence[LeavePolicy], only: Optional[Iterable[Pair]]) -> List[Tuple[int, LeavePolicy]]:
        wanted: Optional[Set[Pair]] = {(int(u), str(t)) for u, t in only} if only is not None else None
        pairs: List[Tuple[int, LeavePolicy]] = []
        for user in self._users.list_active():
            for policy in policies:
                if wanted is None or (user.user_id, policy.leave_type) in wanted:
                    pairs.append((user.user_id, policy))
        return pairs

    def run_monthly_accrual(self, today: Optional[date] = None, *, only: Optional[Iterable[Pair]] = None) -> AccrualReport:
        """Credit every Monthly policy's amount to each active user's current-year balance.

        ``only`` restricts the run to the given (user_id, leave_type) pairs, e.g. the
        ``failed_pairs`` of a previous report.
        """
        self._acquire("monthly")
        try:
            year = (today or org_day(self._clock(), self._tz_name)).year
            policies = [p for p in self._policies.list_active() if p.accrual_type == AccrualType.MONTHLY]
            log.info("accrual_started", kind="monthly", year=year, policies=len(policies), retry=only is not None)

            processed = 0
            failed: List[AccrualFailure] = []
            for user_id, policy in self._pairs(policies, only):
                try:
                    self._balances.get_or_create(user_id=user_id, leave_type=policy.leave_type, year=year)
                    self._balances.add_accrual(
                        user_id=user_id,
                        leave_type=policy.leave_type,
                        year=year,
                        amount=policy.accrual_amount,
                        cap=policy.max_limit_per_year,
                    )
                    processed += 1
                except Exception as e:
                    log.exception("accrual_pair_failed", kind="monthly", user_id=user_id, leave_type=policy.leave_type)
                    failed.append(AccrualFailure(user_id=user_id, leave_type=policy.leave_type, error=str(e)))

            report = AccrualReport(kind="monthly", year=year, processed=processed, failed=tuple(failed))
            log.info("accrual_finished", kind="monthly", year=year, processed=processed, failed=len(failed))
            return report
        finally:
            self._running.release()

    def run_yearly_processing(self, year: Optional[int] = None, *, only: Optional[Iterable[Pair]] = None) -> AccrualReport:
        """Open ``year`` for every active user and active policy.

        The opening balance is overwritten (never added to), so re-running is safe.
        """
        self._acquire("yearly")
        try:
            year = int(year or org_day(self._clock(), self._tz_name).year)
            policies = list(self._policies.list_active())
            log.info("accrual_started", kind="yearly", year=year, policies=len(policies), retry=only is not None)

            processed = 0
            failed: List[AccrualFailure] = []
            for user_id, policy in self._pairs(policies, only):
                try:
                    self._open_year(user_id, policy, year)
                    processed += 1
                except Exception as e:
                    log.exception("accrual_pair_failed", kind="yearly", user_id=user_id, leave_type=policy.leave_type)
                    failed.append(AccrualFailure(user_id=user_id, leave_type=policy.leave_type, error=str(e)))

            report = AccrualReport(kind="yearly", year=year, processed=processed, failed=tuple(failed))
            log.info("accrual_finished", kind="yearly", year=year, processed=processed, failed=len(failed))
            return report
        finally:
            self._running.release()

    def _open_year(self, user_id: int, policy: LeavePolicy, year: int) -> None:
        previous = self._balances.get(user_id=user_id, leave_type=policy.leave_type, year=year - 1)
        closing = previous.closing_balance if previous else 0.0

        opening = 0.0
        if policy.carry_forward:
            opening = closing
            if policy.max_carry_forward > 0 and opening > policy.max_carry_forward:
                opening = policy.max_carry_forward

        self._balances.set_opening(
            user_id=user_id,
            leave_type=policy.leave_type,
            year=year,
            opening_balance=opening,
            accrued=policy.accrual_amount if policy.accrual_type == AccrualType.YEARLY else None,
        )
