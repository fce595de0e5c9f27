"""
Module: revenue_engines.classifier
Responsibility:
    Resolve the billing class of a project line, and of a time entry within
    its project, into an ``InvoiceBasis`` once, so nothing downstream ever
    matches against raw values again.

Architecture position:
    Engines -- leaf component, pure lookup.

Invariants enforced:
    - A missing or unrecognized basis resolves to FIXED_PRICE, which
      subjects the entry to budget capping rather than granting it
      uncapped revenue.
    - Unassigned entries (no line, or a line the project does not have)
      are FIXED_PRICE inside fixed-price projects and HOURLY_RATE
      (freely valued) everywhere else.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from revenue_engines.models import (
    InvoiceBasis,
    Project,
    ProjectLine,
    ProjectType,
    TimeEntry,
)
from revenue_kernel.logging_config import get_logger

logger = get_logger("engines.classifier")

_BUDGETED = frozenset({InvoiceBasis.FIXED_PRICE, InvoiceBasis.SUBSCRIPTION})


def classify(line: ProjectLine) -> InvoiceBasis:
    """Return the billing class of ``line``, defaulting to FIXED_PRICE."""
    raw = line.invoice_basis
    if isinstance(raw, InvoiceBasis):
        return raw
    if raw is not None:
        try:
            return InvoiceBasis(raw)
        except ValueError:
            pass
    logger.warning(
        "unknown_invoice_basis",
        extra={"line_id": line.line_id, "invoice_basis": repr(raw)},
    )
    return InvoiceBasis.FIXED_PRICE


def classify_lines(lines: Iterable[ProjectLine]) -> dict[int, InvoiceBasis]:
    """Classify each line once, keyed by line id."""
    return {line.line_id: classify(line) for line in lines}


def classify_entry(
    project: Project,
    entry: TimeEntry,
    line: ProjectLine | None,
    line_bases: Mapping[int, InvoiceBasis] | None = None,
) -> InvoiceBasis:
    """
    Billing class of ``entry``; ``line`` is None for unassigned entries.

    ``line_bases`` (from ``classify_lines``) is consulted before the line
    itself, so a batch of entries warns about an unknown basis only once.
    """
    if line is None:
        if project.project_type == ProjectType.FIXED_PRICE:
            return InvoiceBasis.FIXED_PRICE
        return InvoiceBasis.HOURLY_RATE
    if line_bases is not None and line.line_id in line_bases:
        return line_bases[line.line_id]
    return classify(line)


def is_budgeted(basis: InvoiceBasis) -> bool:
    """True for the classes that consume a budget ledger."""
    return basis in _BUDGETED
