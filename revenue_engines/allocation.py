"""
Module: revenue_engines.allocation
Responsibility:
    Entry point of the revenue allocation engine. Sanitizes and classifies
    a project's time entries, applies the project-type gate, hands the
    budgeted entries to the selected strategy and aggregates the results.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import revenue_kernel and sibling engine modules.

Invariants enforced:
    - Results have the cardinality and order of ``Project.entries``.
    - ``0 <= recognized_revenue <= nominal_value`` for every entry.
    - NON_BILLABLE entries recognize 0; HOURLY_RATE entries, and every
      entry of an hourly-rate, contract or quote project that is not
      non-billable, recognize exactly their nominal value.
    - Internal projects recognize nothing and touch no ledger.
    - When a fixed-price project has no budget left entering the year,
      every budgeted entry recognizes 0 under either strategy.
    - Identical input produces identical output; nothing is retained
      between calls.

Failure modes:
    - UnknownAllocationMethodError when the method has no strategy.
    - Malformed business data never raises: negative, missing, NaN or
      infinite hours, rates, line budgets and project budgets are treated
      as zero at this boundary, once, by ``sanitize_project`` and
      ``prepare_entries``.

Usage:
    from revenue_engines import AllocationMethod, RevenueAllocationEngine

    engine = RevenueAllocationEngine()
    allocation = engine.allocate(project=project, method=AllocationMethod.PROJECT_MAX)
    allocation.summary.total_recognized_revenue
"""

from __future__ import annotations

import time
from dataclasses import replace
from decimal import Decimal

from revenue_engines.aggregator import aggregate
from revenue_engines.classifier import classify_entry, classify_lines, is_budgeted
from revenue_engines.ledger import LedgerFactory
from revenue_engines.line_max import LineMaxStrategy
from revenue_engines.models import (
    AllocationMethod,
    AllocationResult,
    InvoiceBasis,
    Project,
    ProjectAllocation,
    ProjectType,
)
from revenue_engines.project_max import ProjectMaxStrategy
from revenue_engines.strategy import AllocationStrategy, PreparedEntry, PreparedProject
from revenue_engines.tracer import traced_engine
from revenue_kernel.domain.values import Currency, Money
from revenue_kernel.exceptions import UnknownAllocationMethodError
from revenue_kernel.logging_config import LogContext, get_logger

logger = get_logger("engines.allocation")

_ZERO = Decimal("0")

UNCAPPED_PROJECT_TYPES = frozenset(
    {ProjectType.HOURLY_RATE, ProjectType.CONTRACT, ProjectType.QUOTE}
)


def get_strategy(method: AllocationMethod | str) -> AllocationStrategy:
    """Resolve an allocation method to its strategy."""
    try:
        method = AllocationMethod(method)
    except ValueError:
        raise UnknownAllocationMethodError(method) from None

    match method:
        case AllocationMethod.PROJECT_MAX:
            return ProjectMaxStrategy()
        case AllocationMethod.LINE_MAX:
            return LineMaxStrategy()
        case _:
            raise UnknownAllocationMethodError(method)


def sanitize(value: Decimal | None) -> Decimal:
    """Missing, negative or non-finite numbers count as zero."""
    if value is None or not value.is_finite() or value < _ZERO:
        return _ZERO
    return value


def sanitize_project(project: Project) -> Project:
    """
    Copy of ``project`` whose line and budget numbers are all finite and
    non-negative.

    Ledgers, the fallback rate and the summary read only these values.
    Entries are left untouched; ``prepare_entries`` cleans their hours and
    rates.
    """
    lines = tuple(
        replace(
            line,
            budgeted_hours=sanitize(line.budgeted_hours),
            hourly_rate=sanitize(line.hourly_rate),
        )
        for line in project.lines
    )
    return replace(
        project,
        total_budget=sanitize(project.total_budget),
        previous_year_budget_used=sanitize(project.previous_year_budget_used),
        lines=lines,
    )


def prepare_entries(project: Project) -> list[PreparedEntry]:
    """Classify and sanitize every entry, in ``Project.entries`` order."""
    currency = Currency(project.currency)
    lines = project.line_index()
    line_bases = classify_lines(project.lines)
    prepared: list[PreparedEntry] = []
    for index, entry in enumerate(project.entries):
        line = lines.get(entry.project_line_id) if entry.project_line_id is not None else None
        if entry.project_line_id is not None and line is None:
            logger.warning(
                "entry_line_not_found",
                extra={
                    "project_id": project.project_id,
                    "entry_id": entry.entry_id,
                    "line_id": entry.project_line_id,
                },
            )
        hours = sanitize(entry.hours)
        rate = sanitize(entry.hourly_rate)
        prepared.append(
            PreparedEntry(
                index=index,
                entry=entry,
                line=line,
                basis=classify_entry(project, entry, line, line_bases),
                hours=hours,
                rate=rate,
                nominal=Money(amount=hours * rate, currency=currency),
            )
        )
    return prepared


def apply_gate(
    project: Project,
    entries: list[PreparedEntry],
) -> tuple[dict[int, AllocationResult], list[PreparedEntry]]:
    """
    Settle every entry the project type decides on its own.

    Returns the settled results keyed by entry index, and the budgeted
    entries still left for a strategy (only ever non-empty for fixed-price
    projects).
    """
    settled: dict[int, AllocationResult] = {}
    budgeted: list[PreparedEntry] = []
    zero = Money.zero(project.currency)

    for p in entries:
        if project.project_type == ProjectType.INTERNAL:
            settled[p.index] = p.result(zero)
        elif p.basis == InvoiceBasis.NON_BILLABLE:
            settled[p.index] = p.result(zero)
        elif project.project_type in UNCAPPED_PROJECT_TYPES:
            settled[p.index] = p.result(p.nominal)
        elif is_budgeted(p.basis):
            budgeted.append(p)
        else:
            settled[p.index] = p.result(p.nominal)

    return settled, budgeted


class RevenueAllocationEngine:
    """
    Compute recognized revenue per time entry for one project.

    Contract:
        Pure, synchronous and stateless. Every call builds its own ledgers.
    Guarantees:
        - The project-type gate is shared by both strategies; strategies
          differ only in how budgeted entries deplete a ledger.
        - The summary measures against the project's contracted budget,
          whichever strategy ran.
    Non-goals:
        - Does not choose a method; the caller must pass one.
        - Does not persist or cache results.
    """

    @traced_engine(
        "revenue_allocation", "1.0", fingerprint_fields=("project", "method")
    )
    def allocate(
        self,
        *,
        project: Project,
        method: AllocationMethod | str,
    ) -> ProjectAllocation:
        """
        Allocate recognized revenue for every entry of ``project``.

        Args:
            project: Project snapshot with its twelve month buckets.
            method: PROJECT_MAX or LINE_MAX (or their string values).

        Returns:
            ProjectAllocation with one result per entry and the summary.
        """
        strategy = get_strategy(method)
        with LogContext.bind(project_id=project.project_id, method=strategy.method.value):
            return self._allocate(project, strategy)

    def _allocate(self, project: Project, strategy: AllocationStrategy) -> ProjectAllocation:
        t0 = time.monotonic()
        project = sanitize_project(project)
        entries = prepare_entries(project)
        logger.info(
            "allocation_started",
            extra={
                "project_id": project.project_id,
                "project_type": project.project_type.value,
                "method": strategy.method.value,
                "entry_count": len(entries),
                "line_count": len(project.lines),
            },
        )

        results, budgeted = apply_gate(project, entries)
        ledgers = LedgerFactory(project.currency)

        if budgeted:
            available = ledgers.available_budget(project)
            if available.is_zero:
                logger.info(
                    "project_budget_exhausted",
                    extra={
                        "project_id": project.project_id,
                        "total_budget": str(project.total_budget),
                        "previous_year_budget_used": str(project.previous_year_budget_used),
                        "budgeted_entry_count": len(budgeted),
                    },
                )
                for p in budgeted:
                    results[p.index] = p.budget_result(
                        Money.zero(available.currency),
                        is_over_budget=True,
                        line_over_budget=p.line is not None,
                    )
            else:
                prepared = PreparedProject(
                    project=project,
                    currency=available.currency,
                    entries=tuple(budgeted),
                )
                results.update(strategy.allocate(prepared, ledgers))

        ordered = tuple(results[p.index] for p in entries)
        summary = aggregate(project, ordered)

        duration_ms = round((time.monotonic() - t0) * 1000, 2)
        logger.info(
            "allocation_completed",
            extra={
                "project_id": project.project_id,
                "method": strategy.method.value,
                "total_recognized_revenue": str(summary.total_recognized_revenue.amount),
                "remaining_budget": str(summary.remaining_budget.amount),
                "is_over_budget": summary.is_over_budget,
                "over_budget_line_ids": list(summary.over_budget_line_ids),
                "duration_ms": duration_ms,
            },
        )

        return ProjectAllocation(
            project_id=project.project_id,
            project_type=project.project_type,
            method=strategy.method,
            results=ordered,
            summary=summary,
        )
