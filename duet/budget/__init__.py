"""Spend accounting against daily and monthly budget limits."""

from duet.budget.ledger import CostLedger

__all__ = ["CostLedger"]
