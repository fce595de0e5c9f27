"""
Module: revenue_engines.line_max
Responsibility:
    Line-Max allocation: each fixed-price line consumes only its own
    budget (``budgeted_hours x hourly_rate``), independent of the
    project-wide budget.

Architecture position:
    Engines -- concrete ``AllocationStrategy``.

Invariants enforced:
    - A line's recognized revenue never exceeds its own line budget.
    - Entries on a line are charged chronologically (month, entry id, input
      position). The entry that first overflows is split; every later
      entry on that line recognizes 0.
    - Unassigned entries recognize their nominal value; there is no line
      to constrain them.
    - The project-wide budget is never consulted here, so the sum over all
      lines can exceed it. The aggregator still measures the summary
      against the project's contracted budget.
"""

from __future__ import annotations

from collections import defaultdict

from revenue_engines.ledger import LedgerFactory
from revenue_engines.models import AllocationMethod, AllocationResult
from revenue_engines.strategy import AllocationStrategy, PreparedEntry, PreparedProject
from revenue_kernel.domain.values import Money
from revenue_kernel.logging_config import get_logger

logger = get_logger("engines.line_max")


def chronological_key(prepared: PreparedEntry) -> tuple[int, int, int]:
    return (prepared.month, prepared.entry.entry_id, prepared.index)


class LineMaxStrategy(AllocationStrategy):
    """One ledger per project line."""

    method = AllocationMethod.LINE_MAX

    def allocate(
        self,
        prepared: PreparedProject,
        ledgers: LedgerFactory,
    ) -> dict[int, AllocationResult]:
        partitions: dict[int, list[PreparedEntry]] = defaultdict(list)
        results: dict[int, AllocationResult] = {}

        for p in prepared.entries:
            if p.line is None:
                results[p.index] = p.budget_result(p.nominal, is_over_budget=False)
            else:
                partitions[p.line.line_id].append(p)

        for line_id in sorted(partitions):
            entries = sorted(partitions[line_id], key=chronological_key)
            ledger = ledgers.for_line(entries[0].line)
            overflowed = False

            for p in entries:
                if overflowed:
                    results[p.index] = p.budget_result(
                        Money.zero(ledger.currency),
                        is_over_budget=True,
                        line_over_budget=True,
                    )
                    continue

                fits = ledger.covers(p.nominal)
                charged = ledger.charge(p.nominal)
                if fits:
                    results[p.index] = p.budget_result(charged, is_over_budget=False)
                    continue

                overflowed = True
                logger.info(
                    "line_budget_exhausted",
                    extra={
                        "project_id": prepared.project.project_id,
                        "line_id": line_id,
                        "line_budget": str(ledger.available.amount),
                        "month": p.month,
                        "entry_id": p.entry.entry_id,
                    },
                )
                results[p.index] = p.budget_result(
                    charged,
                    is_over_budget=True,
                    line_over_budget=True,
                )

        return results
