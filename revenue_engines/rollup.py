"""
Module: revenue_engines.rollup
Responsibility:
    Portfolio view over many project allocations: recognized revenue per
    month across projects, the yearly total, and which projects ended over
    budget, and revenue per project type. This is what the monthly/yearly
    revenue tables consume.

Architecture position:
    Engines -- pure fold over ``ProjectAllocation`` values. Each project is
    still allocated by its own independent engine call.

Invariants enforced:
    - ``monthly_revenue`` has twelve buckets and sums to ``total``.
    - ``revenue_by_project`` and ``revenue_by_project_type`` each sum to
      ``total`` as well.
    - All allocations share one currency.

Failure modes:
    - ValueError on mixed currencies or on an empty portfolio with no
      currency to report in.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from revenue_engines.allocation import RevenueAllocationEngine
from revenue_engines.models import (
    MONTHS,
    AllocationMethod,
    Project,
    ProjectAllocation,
    ProjectType,
)
from revenue_kernel.domain.values import Currency, Money
from revenue_kernel.logging_config import get_logger

logger = get_logger("engines.rollup")


@dataclass(frozen=True)
class PortfolioRollup:
    """Revenue of several projects folded together."""

    currency: Currency
    monthly_revenue: tuple[Money, ...]
    total_recognized_revenue: Money
    revenue_by_project: dict[int, Money]
    revenue_by_project_type: dict[ProjectType, Money]
    over_budget_project_ids: tuple[int, ...] = ()
    allocations: tuple[ProjectAllocation, ...] = ()

    @property
    def project_count(self) -> int:
        return len(self.allocations)


def rollup_allocations(
    allocations: Sequence[ProjectAllocation],
    currency: Currency | str | None = None,
) -> PortfolioRollup:
    """Fold precomputed allocations into a ``PortfolioRollup``."""
    if currency is None:
        if not allocations:
            raise ValueError("Cannot roll up an empty portfolio without a currency")
        currency = allocations[0].summary.total_recognized_revenue.currency
    elif isinstance(currency, str):
        currency = Currency(currency)

    monthly = [Money.zero(currency) for _ in range(MONTHS)]
    by_project: dict[int, Money] = {}
    by_type: dict[ProjectType, Money] = {}
    over_budget: set[int] = set()

    for allocation in allocations:
        summary = allocation.summary
        if summary.total_recognized_revenue.currency != currency:
            raise ValueError(
                f"Project {allocation.project_id} is in "
                f"{summary.total_recognized_revenue.currency}, portfolio is in {currency}"
            )
        for month, amount in enumerate(summary.monthly_revenue):
            monthly[month] = monthly[month] + amount
        by_project[allocation.project_id] = (
            by_project.get(allocation.project_id, Money.zero(currency))
            + summary.total_recognized_revenue
        )
        by_type[allocation.project_type] = (
            by_type.get(allocation.project_type, Money.zero(currency))
            + summary.total_recognized_revenue
        )
        if summary.is_over_budget:
            over_budget.add(allocation.project_id)

    total = Money.zero(currency)
    for amount in monthly:
        total = total + amount

    return PortfolioRollup(
        currency=currency,
        monthly_revenue=tuple(monthly),
        total_recognized_revenue=total,
        revenue_by_project=by_project,
        revenue_by_project_type=by_type,
        over_budget_project_ids=tuple(sorted(over_budget)),
        allocations=tuple(allocations),
    )


def allocate_portfolio(
    projects: Iterable[Project],
    method: AllocationMethod | str,
    engine: RevenueAllocationEngine | None = None,
    currency: Currency | str | None = None,
) -> PortfolioRollup:
    """Allocate each project independently with ``method`` and roll up."""
    engine = engine or RevenueAllocationEngine()
    allocations = [engine.allocate(project=p, method=method) for p in projects]
    rollup = rollup_allocations(allocations, currency=currency)
    logger.info(
        "portfolio_rollup_completed",
        extra={
            "project_count": rollup.project_count,
            "method": AllocationMethod(method).value,
            "total_recognized_revenue": str(rollup.total_recognized_revenue.amount),
            "over_budget_project_ids": list(rollup.over_budget_project_ids),
        },
    )
    return rollup
