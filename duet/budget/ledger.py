"""Running spend totals against the configured budget limits.

The ledger never refuses work. It only reports spend so a caller or
policy layer can decide whether to keep sending requests.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, date, datetime

from duet.schemas.budget import BudgetPeriod, BudgetStatus, PeriodSpend
from duet.schemas.config import BudgetLimits

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CostLedger:
    """Daily and monthly spend accumulator.

    Limits are read through ``limits`` on every query, so budget changes
    made via ``configure()`` apply immediately. Totals roll over when the
    clock crosses a UTC day or month boundary.
    """

    def __init__(
        self,
        limits: Callable[[], BudgetLimits],
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._limits = limits
        self._clock = clock
        today = self._today()
        self._day: date = today
        self._month: tuple[int, int] = (today.year, today.month)
        self._spent = {BudgetPeriod.DAILY: 0.0, BudgetPeriod.MONTHLY: 0.0}
        self._warned: set[BudgetPeriod] = set()

    def charge(self, amount: float) -> None:
        """Add ``amount`` USD to the daily and monthly totals.

        Raises:
            ValueError: If ``amount`` is negative.
        """
        if amount < 0:
            raise ValueError(f"Cannot charge a negative amount: {amount}")
        self._roll()
        for period in BudgetPeriod:
            self._spent[period] += amount
            if self.exceeded(period) and period not in self._warned:
                self._warned.add(period)
                logger.warning(
                    "%s budget exceeded: $%.2f spent of $%.2f",
                    period.value.capitalize(), self._spent[period], self._limit(period),
                )

    def spent(self, period: BudgetPeriod) -> float:
        self._roll()
        return self._spent[period]

    def remaining(self, period: BudgetPeriod) -> float:
        """Budget left in ``period``; never negative."""
        return max(0.0, self._limit(period) - self.spent(period))

    def exceeded(self, period: BudgetPeriod) -> bool:
        return self.spent(period) > self._limit(period)

    def status(self) -> BudgetStatus:
        return BudgetStatus(
            daily=self._period_spend(BudgetPeriod.DAILY),
            monthly=self._period_spend(BudgetPeriod.MONTHLY),
        )

    def _period_spend(self, period: BudgetPeriod) -> PeriodSpend:
        return PeriodSpend(
            period=period,
            spent=self.spent(period),
            limit=self._limit(period),
            remaining=self.remaining(period),
            exceeded=self.exceeded(period),
        )

    def _limit(self, period: BudgetPeriod) -> float:
        limits = self._limits()
        return limits.daily if period is BudgetPeriod.DAILY else limits.monthly

    def _today(self) -> date:
        return self._clock().astimezone(UTC).date()

    def _roll(self) -> None:
        today = self._today()
        if today != self._day:
            self._day = today
            self._spent[BudgetPeriod.DAILY] = 0.0
            self._warned.discard(BudgetPeriod.DAILY)
        month = (today.year, today.month)
        if month != self._month:
            self._month = month
            self._spent[BudgetPeriod.MONTHLY] = 0.0
            self._warned.discard(BudgetPeriod.MONTHLY)
