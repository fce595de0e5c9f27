"""
Module: revenue_engines.aggregator
Responsibility:
    Fold per-entry allocation results into a ``ProjectAllocationSummary``.

Architecture position:
    Engines -- last step of the allocation pipeline, pure function.

Invariants enforced:
    - ``remaining_budget`` is ``total_budget - previous_year_budget_used -
      total_recognized_revenue`` whichever strategy produced the results;
      it may be negative.
    - ``is_over_budget`` is exactly ``remaining_budget < 0``.
    - ``over_budget_line_ids`` is deduplicated and ascending; unassigned
      entries contribute no id.
    - ``monthly_revenue`` always has twelve buckets summing to the total.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from revenue_engines.models import (
    MONTHS,
    AllocationResult,
    Project,
    ProjectAllocationSummary,
)
from revenue_kernel.domain.values import Currency, Money, money_sum

_ZERO = Decimal("0")


def contracted_budget(project: Project) -> Money:
    """``total_budget - previous_year_budget_used``, not floored."""
    total = project.total_budget if project.total_budget is not None else _ZERO
    previous = (
        project.previous_year_budget_used
        if project.previous_year_budget_used is not None
        else _ZERO
    )
    return Money(amount=total - previous, currency=Currency(project.currency))


def aggregate(
    project: Project,
    results: Sequence[AllocationResult],
) -> ProjectAllocationSummary:
    currency = Currency(project.currency)
    total = money_sum((r.recognized_revenue for r in results), currency)
    nominal = money_sum((r.nominal_value for r in results), currency)
    remaining = contracted_budget(project) - total

    monthly = [Money.zero(currency) for _ in range(MONTHS)]
    for r in results:
        monthly[r.month - 1] = monthly[r.month - 1] + r.recognized_revenue

    over_budget_lines = sorted(
        {
            r.project_line_id
            for r in results
            if r.project_line_id is not None
            and (r.line_over_budget or r.is_over_budget)
        }
    )

    return ProjectAllocationSummary(
        project_id=project.project_id,
        total_recognized_revenue=total,
        total_nominal_value=nominal,
        remaining_budget=remaining,
        is_over_budget=remaining.is_negative,
        over_budget_line_ids=tuple(over_budget_lines),
        monthly_revenue=tuple(monthly),
    )
