"""
Module: revenue_engines.ledger
Responsibility:
    The budget ledger: available budget for this allocation run and the
    amount consumed so far. The only mutable state in the engine.

Architecture position:
    Engines -- owned exclusively by one allocation call. Strategies receive
    a ``LedgerFactory`` and build the ledgers they need; nothing outlives
    the call.

Invariants enforced:
    - ``consumed`` never exceeds ``available``; ``charge`` clamps.
    - ``available`` is never negative: a missing budget, or a previous
      year that already used more than the total, floors at zero.

Failure modes:
    - ValueError when asked to charge a negative amount.
    - CurrencyMismatchError when charging an amount in another currency.
"""

from __future__ import annotations

from decimal import Decimal

from revenue_engines.models import Project, ProjectLine
from revenue_kernel.domain.values import Currency, Money

_ZERO = Decimal("0")


class BudgetLedger:
    """Running budget for one project or one project line."""

    def __init__(self, available: Money):
        if available.is_negative:
            available = Money.zero(available.currency)
        self._available = available
        self._consumed = Money.zero(available.currency)

    @property
    def available(self) -> Money:
        return self._available

    @property
    def consumed(self) -> Money:
        return self._consumed

    @property
    def currency(self) -> Currency:
        return self._available.currency

    @property
    def is_exhausted(self) -> bool:
        return not self.remaining().is_positive

    def remaining(self) -> Money:
        return self._available - self._consumed

    def covers(self, amount: Money) -> bool:
        return amount <= self.remaining()

    def charge(self, amount: Money) -> Money:
        """Debit up to ``amount``; return what was actually charged."""
        if amount.is_negative:
            raise ValueError(f"Cannot charge a negative amount: {amount}")
        charged = min(amount, self.remaining())
        self._consumed = self._consumed + charged
        return charged

    def __repr__(self) -> str:
        return (
            f"BudgetLedger(available={self._available}, "
            f"consumed={self._consumed})"
        )


class LedgerFactory:
    """Builds the ledgers a strategy needs, in the project's currency."""

    def __init__(self, currency: Currency | str):
        self.currency = currency if isinstance(currency, Currency) else Currency(currency)

    @staticmethod
    def available_budget(project: Project) -> Money:
        """``max(0, total_budget - previous_year_budget_used)``."""
        total = project.total_budget if project.total_budget is not None else _ZERO
        previous = (
            project.previous_year_budget_used
            if project.previous_year_budget_used is not None
            else _ZERO
        )
        return Money(amount=max(_ZERO, total - previous), currency=Currency(project.currency))

    def for_project(self, project: Project) -> BudgetLedger:
        return BudgetLedger(self.available_budget(project))

    def for_line(self, line: ProjectLine) -> BudgetLedger:
        """Ledger of ``budgeted_hours x hourly_rate``, clamped at zero."""
        hours = line.budgeted_hours if line.budgeted_hours is not None else _ZERO
        rate = line.hourly_rate if line.hourly_rate is not None else _ZERO
        amount = max(_ZERO, hours) * max(_ZERO, rate)
        return BudgetLedger(Money(amount=amount, currency=self.currency))
