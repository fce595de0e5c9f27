"""
Module: revenue_engines.models
Responsibility:
    Input and output types of the revenue allocation engine: billing
    classifications, project lines, time entries, projects bucketed by
    month, per-entry allocation results and the project summary.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import revenue_kernel.

Invariants enforced:
    - Every type is a frozen dataclass; the engine never mutates its input.
    - A project always carries exactly twelve month buckets and every entry
      sits in the bucket of its own month.
    - Hours and rates are Decimal (or None when the source left them out);
      sanitizing negative or missing values is the engine gate's job.

Failure modes:
    - ValueError on construction: month outside 1-12, more than twelve
      buckets, an entry in the wrong bucket, duplicate line ids, or a
      numeric field that cannot be read as a Decimal.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum

from revenue_kernel.domain.currency import CurrencyRegistry
from revenue_kernel.domain.values import Money

MONTHS = 12


class InvoiceBasis(str, Enum):
    """Billing classification of a project line."""

    FIXED_PRICE = "fixed_price"
    HOURLY_RATE = "hourly_rate"  # Time and materials
    SUBSCRIPTION = "subscription"
    NON_BILLABLE = "non_billable"


class ProjectType(str, Enum):
    """Commercial type of a project, evaluated once per allocation."""

    FIXED_PRICE = "fixed_price"
    HOURLY_RATE = "hourly_rate"
    INTERNAL = "internal"
    CONTRACT = "contract"
    QUOTE = "quote"


class AllocationMethod(str, Enum):
    """How a fixed-price budget is shared between lines."""

    PROJECT_MAX = "project_max"  # One ledger for the whole project
    LINE_MAX = "line_max"  # One ledger per project line


def _decimal_or_none(value: object, field_name: str) -> Decimal | None:
    if value is None or isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"{field_name} is not a number: {value!r}") from e


@dataclass(frozen=True)
class ProjectLine:
    """
    A budget/rate bucket within a project.

    ``invoice_basis`` holds whatever the source supplied; it is resolved to
    an ``InvoiceBasis`` only by ``revenue_engines.classifier.classify``.
    """

    line_id: int
    budgeted_hours: Decimal | None = None
    hourly_rate: Decimal | None = None
    invoice_basis: InvoiceBasis | str | None = InvoiceBasis.FIXED_PRICE
    hours_written: Decimal | None = None  # Informational only
    name: str = ""

    def __post_init__(self) -> None:
        for attr in ("budgeted_hours", "hourly_rate", "hours_written"):
            object.__setattr__(self, attr, _decimal_or_none(getattr(self, attr), attr))


@dataclass(frozen=True)
class TimeEntry:
    """
    Hours recorded in one month, the unit the allocator consumes.

    ``employee`` and ``description`` pass through untouched.
    """

    entry_id: int
    project_id: int
    month: int
    hours: Decimal | None
    hourly_rate: Decimal | None
    project_line_id: int | None = None
    employee: str = ""
    description: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.month, int) or not 1 <= self.month <= MONTHS:
            raise ValueError(f"month must be between 1 and 12, got {self.month!r}")
        object.__setattr__(self, "hours", _decimal_or_none(self.hours, "hours"))
        object.__setattr__(
            self, "hourly_rate", _decimal_or_none(self.hourly_rate, "hourly_rate")
        )


@dataclass(frozen=True)
class Project:
    """
    A project snapshot: budget, lines and twelve month buckets of entries.

    Contract:
        ``monthly_entries[m]`` holds the entries of month ``m + 1`` in the
        order the collaborator supplied them. Fewer than twelve buckets are
        padded with empty ones.
    Guarantees:
        - ``lines`` has unique ``line_id`` values.
        - ``currency`` is a validated ISO 4217 code.
    Non-goals:
        - Does not validate budgets; a missing budget is treated as zero
          by the ledger.
    """

    project_id: int
    name: str
    project_type: ProjectType
    total_budget: Decimal | None = None
    previous_year_budget_used: Decimal | None = None
    lines: tuple[ProjectLine, ...] = ()
    monthly_entries: tuple[tuple[TimeEntry, ...], ...] = ()
    currency: str = "EUR"

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "total_budget", _decimal_or_none(self.total_budget, "total_budget")
        )
        object.__setattr__(
            self,
            "previous_year_budget_used",
            _decimal_or_none(self.previous_year_budget_used, "previous_year_budget_used"),
        )
        object.__setattr__(self, "currency", CurrencyRegistry.validate(self.currency))

        lines = tuple(self.lines)
        seen: set[int] = set()
        for line in lines:
            if line.line_id in seen:
                raise ValueError(
                    f"Duplicate project line {line.line_id} on project {self.project_id}"
                )
            seen.add(line.line_id)
        object.__setattr__(self, "lines", lines)

        buckets = [tuple(bucket) for bucket in self.monthly_entries]
        if len(buckets) > MONTHS:
            raise ValueError(f"A project has at most 12 month buckets, got {len(buckets)}")
        buckets.extend(() for _ in range(MONTHS - len(buckets)))
        for index, bucket in enumerate(buckets):
            for entry in bucket:
                if entry.month != index + 1:
                    raise ValueError(
                        f"Entry {entry.entry_id} of month {entry.month} "
                        f"is in the bucket for month {index + 1}"
                    )
        object.__setattr__(self, "monthly_entries", tuple(buckets))

    @classmethod
    def from_entries(
        cls,
        *,
        entries: Iterable[TimeEntry] = (),
        **kwargs,
    ) -> Project:
        """Build a project, bucketing a flat entry list by month."""
        buckets: list[list[TimeEntry]] = [[] for _ in range(MONTHS)]
        for entry in entries:
            buckets[entry.month - 1].append(entry)
        return cls(monthly_entries=tuple(tuple(b) for b in buckets), **kwargs)

    @property
    def entries(self) -> tuple[TimeEntry, ...]:
        """All entries in output order: month by month, input order within."""
        return tuple(entry for bucket in self.monthly_entries for entry in bucket)

    def line_index(self) -> dict[int, ProjectLine]:
        return {line.line_id: line for line in self.lines}


@dataclass(frozen=True)
class AllocationResult:
    """
    Revenue recognized for one time entry.

    Contract:
        Frozen dataclass carrying the original entry plus its outcome.
    Guarantees:
        - ``0 <= recognized_revenue <= nominal_value``.
        - ``nominal_value`` is sanitized hours x sanitized rate, so it is
          never negative even when the source entry was.
        - ``was_capped_by_budget`` is True only when budget exhaustion made
          ``recognized_revenue`` smaller than ``nominal_value``.
    Non-goals:
        - ``project_line_id`` is the line the engine attributed the entry
          to; it is None for the unassigned partition even if the entry
          referenced a line id the project does not have.
    """

    entry: TimeEntry
    project_line_id: int | None
    invoice_basis: InvoiceBasis
    nominal_value: Money
    recognized_revenue: Money
    is_over_budget: bool = False
    line_over_budget: bool = False
    was_capped_by_budget: bool = False

    @property
    def month(self) -> int:
        return self.entry.month

    @property
    def capped_amount(self) -> Money:
        """Nominal value that was not recognized."""
        return self.nominal_value - self.recognized_revenue


@dataclass(frozen=True)
class ProjectAllocationSummary:
    """
    Project-level totals over an allocation run.

    ``remaining_budget`` is measured against the project's contracted
    budget regardless of which strategy produced the entries, so it can be
    negative.
    """

    project_id: int
    total_recognized_revenue: Money
    total_nominal_value: Money
    remaining_budget: Money
    is_over_budget: bool
    over_budget_line_ids: tuple[int, ...] = ()
    monthly_revenue: tuple[Money, ...] = ()


@dataclass(frozen=True)
class ProjectAllocation:
    """
    Complete outcome of one allocation call.

    Guarantees:
        - ``results`` has one element per input entry, in
          ``Project.entries`` order.
    """

    project_id: int
    project_type: ProjectType
    method: AllocationMethod
    results: tuple[AllocationResult, ...]
    summary: ProjectAllocationSummary

    @property
    def total_recognized_revenue(self) -> Money:
        return self.summary.total_recognized_revenue
