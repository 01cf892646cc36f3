"""Budget tracking schemas."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class BudgetPeriod(StrEnum):
    DAILY = "daily"
    MONTHLY = "monthly"


class PeriodSpend(BaseModel):
    """Spend against one budget period."""

    period: BudgetPeriod
    spent: float = Field(ge=0.0)
    limit: float = Field(ge=0.0)
    remaining: float = Field(ge=0.0)
    exceeded: bool = False


class BudgetStatus(BaseModel):
    """Current spend against the configured daily and monthly limits."""

    daily: PeriodSpend
    monthly: PeriodSpend
