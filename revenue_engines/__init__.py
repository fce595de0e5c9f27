"""
Module: revenue_engines
Responsibility:
    Package entrypoint re-exporting the revenue allocation engine: models,
    classifier, budget ledger, the two allocation strategies, the
    aggregator and the portfolio rollup.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import revenue_kernel (and sibling engine modules).
    MUST NOT import revenue_config or revenue_ingestion.

Invariants enforced:
    - Decimal-only arithmetic; every revenue amount is a ``Money``.
    - Determinism: identical inputs always produce identical outputs.
    - No state survives a call; ledgers are built per allocation.

Usage:
    from revenue_engines import (
        AllocationMethod,
        Project,
        ProjectType,
        RevenueAllocationEngine,
        TimeEntry,
    )

    allocation = RevenueAllocationEngine().allocate(
        project=project, method=AllocationMethod.LINE_MAX,
    )
"""

from revenue_engines.aggregator import aggregate
from revenue_engines.allocation import RevenueAllocationEngine, get_strategy
from revenue_engines.classifier import classify, classify_entry, classify_lines, is_budgeted
from revenue_engines.ledger import BudgetLedger, LedgerFactory
from revenue_engines.line_max import LineMaxStrategy
from revenue_engines.models import (
    AllocationMethod,
    AllocationResult,
    InvoiceBasis,
    Project,
    ProjectAllocation,
    ProjectAllocationSummary,
    ProjectLine,
    ProjectType,
    TimeEntry,
)
from revenue_engines.project_max import ProjectMaxStrategy, fallback_rate
from revenue_engines.rollup import PortfolioRollup, allocate_portfolio, rollup_allocations
from revenue_engines.strategy import AllocationStrategy
from revenue_kernel.logging_config import get_logger

logger = get_logger("engines")

__all__ = [
    # Models
    "AllocationMethod",
    "AllocationResult",
    "InvoiceBasis",
    "Project",
    "ProjectAllocation",
    "ProjectAllocationSummary",
    "ProjectLine",
    "ProjectType",
    "TimeEntry",
    # Classifier
    "classify",
    "classify_entry",
    "classify_lines",
    "is_budgeted",
    # Ledger
    "BudgetLedger",
    "LedgerFactory",
    # Strategies
    "AllocationStrategy",
    "LineMaxStrategy",
    "ProjectMaxStrategy",
    "fallback_rate",
    "get_strategy",
    # Engine
    "RevenueAllocationEngine",
    "aggregate",
    # Rollup
    "PortfolioRollup",
    "allocate_portfolio",
    "rollup_allocations",
]

logger.debug("engines_package_loaded", extra={
    "modules": [
        "models", "classifier", "ledger", "project_max", "line_max",
        "aggregator", "allocation", "rollup",
    ],
})
