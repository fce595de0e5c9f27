"""
Module: revenue_engines.project_max
Responsibility:
    Project-Max allocation: one ledger for the whole project, depleted
    month by month by every fixed-price entry regardless of its line.

Architecture position:
    Engines -- concrete ``AllocationStrategy``. Receives only budgeted
    entries; the project-type gate has already settled everything else.

Invariants enforced:
    - Total charged revenue never exceeds the project's available budget.
    - Within a month, entries are taken in a fixed order: ascending line
      id, unassigned last, then entry id, then input position. Which
      entries get fallback-rate value and which get nothing is therefore
      reproducible.
    - Amounts derived through the fallback rate are truncated to the
      currency's decimal places, never rounded up.

Algorithm:
    For each month 1..12, sum the nominal value of its budgeted entries.
    If the project ledger covers that sum, every entry is granted its
    nominal value. Otherwise each entry in turn:

      1. recognizes 0 if the project ledger is already exhausted;
      2. values the hours that still fit in its own line budget at its own
         rate, and the spillover hours at the fallback rate (the lowest
         positive hourly rate of any line on the project);
      3. is clamped to its nominal value and charged against the project
         ledger; what the ledger actually accepts is recognized.

    Unassigned entries have no line budget, so all of their hours are
    valued at their own rate. Every entry of an uncovered month is marked
    ``is_over_budget`` and ``was_capped_by_budget``, including one that
    still recognizes its full nominal value.
"""

from __future__ import annotations

from decimal import Decimal

from revenue_engines.ledger import BudgetLedger, LedgerFactory
from revenue_engines.models import AllocationMethod, AllocationResult, ProjectLine
from revenue_engines.strategy import AllocationStrategy, PreparedEntry, PreparedProject
from revenue_kernel.domain.values import Money, money_sum
from revenue_kernel.logging_config import get_logger

logger = get_logger("engines.project_max")

_ZERO = Decimal("0")


def fallback_rate(lines: tuple[ProjectLine, ...]) -> Decimal:
    """Lowest positive hourly rate on any line; zero when there is none."""
    rates = [
        line.hourly_rate
        for line in lines
        if line.hourly_rate is not None and line.hourly_rate > _ZERO
    ]
    return min(rates, default=_ZERO)


def month_order_key(prepared: PreparedEntry) -> tuple:
    line_id = prepared.line_id
    return (
        line_id is None,
        line_id if line_id is not None else 0,
        prepared.entry.entry_id,
        prepared.index,
    )


class ProjectMaxStrategy(AllocationStrategy):
    """Shared project ledger with fallback-rate spillover."""

    method = AllocationMethod.PROJECT_MAX

    def allocate(
        self,
        prepared: PreparedProject,
        ledgers: LedgerFactory,
    ) -> dict[int, AllocationResult]:
        project_ledger = ledgers.for_project(prepared.project)
        line_ledgers = {line.line_id: ledgers.for_line(line) for line in prepared.lines}
        rate = fallback_rate(prepared.lines)

        results: dict[int, AllocationResult] = {}
        for month, entries in prepared.by_month().items():
            if not entries:
                continue
            ordered = sorted(entries, key=month_order_key)
            month_nominal = money_sum((p.nominal for p in ordered), prepared.currency)

            if project_ledger.covers(month_nominal):
                for p in ordered:
                    project_ledger.charge(p.nominal)
                    line_ledger = line_ledgers.get(p.line_id)
                    if line_ledger is not None:
                        line_ledger.charge(p.nominal)
                    results[p.index] = p.budget_result(p.nominal, is_over_budget=False)
                continue

            logger.info(
                "project_budget_insufficient",
                extra={
                    "project_id": prepared.project.project_id,
                    "month": month,
                    "month_nominal": str(month_nominal.amount),
                    "remaining": str(project_ledger.remaining().amount),
                    "fallback_rate": str(rate),
                },
            )
            for p in ordered:
                results[p.index] = self._allocate_uncovered(
                    p, project_ledger, line_ledgers.get(p.line_id), rate
                )

        if project_ledger.is_exhausted and project_ledger.available.is_positive:
            logger.info(
                "project_budget_exhausted",
                extra={
                    "project_id": prepared.project.project_id,
                    "available": str(project_ledger.available.amount),
                },
            )
        return results

    @staticmethod
    def _allocate_uncovered(
        p: PreparedEntry,
        project_ledger: BudgetLedger,
        line_ledger: BudgetLedger | None,
        rate: Decimal,
    ) -> AllocationResult:
        if project_ledger.is_exhausted:
            return p.budget_result(
                Money.zero(p.nominal.currency),
                is_over_budget=True,
                line_over_budget=line_ledger is not None and line_ledger.is_exhausted,
                was_capped_by_budget=True,
            )

        if line_ledger is None:
            own_value = p.nominal
        else:
            own_value = min(p.nominal, line_ledger.remaining())
        spill = p.nominal - own_value

        value = own_value
        if spill.is_positive and p.rate > _ZERO:
            # Spillover hours (spill / own rate) revalued at the fallback rate
            spill_value = Money(
                amount=spill.amount * rate / p.rate, currency=spill.currency
            ).truncate()
            value = min(p.nominal, own_value + spill_value)

        charged = project_ledger.charge(value)
        if line_ledger is not None:
            line_ledger.charge(min(own_value, charged))
        return p.budget_result(
            charged,
            is_over_budget=True,
            line_over_budget=line_ledger is not None and spill.is_positive,
            was_capped_by_budget=True,
        )
