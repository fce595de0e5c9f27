"""
Module: revenue_engines.strategy
Responsibility:
    The shared contract of the allocation strategies: the sanitized view of
    a project they receive (``PreparedProject``) and the interface they
    implement (``AllocationStrategy``).

Architecture position:
    Engines -- sits between the project-type gate (revenue_engines.allocation)
    and the concrete strategies (project_max, line_max). The gate has
    already classified and sanitized every entry; a strategy only ever sees
    the budgeted ones.

Invariants enforced:
    - ``PreparedEntry.hours`` and ``PreparedEntry.rate`` are never negative.
    - ``PreparedEntry.nominal`` is exactly ``hours x rate``.
    - A result built through ``PreparedEntry.budget_result`` reports
      ``was_capped_by_budget`` whenever it recognizes less than nominal.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal

from revenue_engines.ledger import LedgerFactory
from revenue_engines.models import (
    AllocationMethod,
    AllocationResult,
    InvoiceBasis,
    Project,
    ProjectLine,
    TimeEntry,
)
from revenue_kernel.domain.values import Currency, Money


@dataclass(frozen=True)
class PreparedEntry:
    """A time entry after classification and sanitization."""

    index: int  # Position in Project.entries
    entry: TimeEntry
    line: ProjectLine | None  # None for the unassigned partition
    basis: InvoiceBasis
    hours: Decimal
    rate: Decimal
    nominal: Money

    @property
    def line_id(self) -> int | None:
        return self.line.line_id if self.line is not None else None

    @property
    def month(self) -> int:
        return self.entry.month

    def result(self, recognized: Money, **flags: bool) -> AllocationResult:
        return AllocationResult(
            entry=self.entry,
            project_line_id=self.line_id,
            invoice_basis=self.basis,
            nominal_value=self.nominal,
            recognized_revenue=recognized,
            **flags,
        )

    def budget_result(
        self,
        recognized: Money,
        *,
        is_over_budget: bool,
        line_over_budget: bool = False,
        was_capped_by_budget: bool | None = None,
    ) -> AllocationResult:
        """
        Result of an entry whose revenue depended on a ledger.

        ``was_capped_by_budget`` defaults to ``recognized < nominal``; a
        strategy that treats a whole batch of entries as capped passes True.
        """
        if was_capped_by_budget is None:
            was_capped_by_budget = recognized < self.nominal
        return self.result(
            recognized,
            is_over_budget=is_over_budget,
            line_over_budget=line_over_budget,
            was_capped_by_budget=was_capped_by_budget,
        )


@dataclass(frozen=True)
class PreparedProject:
    """
    What a strategy allocates: the project and its budgeted entries.

    ``entries`` holds only FIXED_PRICE/SUBSCRIPTION-classified entries, in
    ``Project.entries`` order.
    """

    project: Project
    currency: Currency
    entries: tuple[PreparedEntry, ...]

    @property
    def lines(self) -> tuple[ProjectLine, ...]:
        return self.project.lines

    def by_month(self) -> dict[int, list[PreparedEntry]]:
        months: dict[int, list[PreparedEntry]] = {m: [] for m in range(1, 13)}
        for prepared in self.entries:
            months[prepared.month].append(prepared)
        return months


class AllocationStrategy(ABC):
    """
    A way of depleting fixed-price budget across months and lines.

    Implementations return one result per entry of ``prepared.entries``,
    keyed by ``PreparedEntry.index``.
    """

    method: AllocationMethod

    @abstractmethod
    def allocate(
        self,
        prepared: PreparedProject,
        ledgers: LedgerFactory,
    ) -> dict[int, AllocationResult]:
        ...
