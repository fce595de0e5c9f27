"""
Pytest fixtures for the revenue allocation test suite.

Provides:
- Structured logging configured for the whole session, and a fixture that
  captures revenue_kernel logs as parsed JSON dicts
- Builders for project lines, time entries and projects
"""

import itertools
import json
import logging
from decimal import Decimal
from io import StringIO

import pytest

from revenue_engines import (
    InvoiceBasis,
    Project,
    ProjectLine,
    ProjectType,
    RevenueAllocationEngine,
    TimeEntry,
)
from revenue_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture revenue_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, engine, project):
            engine.allocate(project=project, method=AllocationMethod.LINE_MAX)
            logs = captured_logs()
            assert any(r["message"] == "allocation_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("revenue_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Builders
# =============================================================================


@pytest.fixture
def engine() -> RevenueAllocationEngine:
    return RevenueAllocationEngine()


@pytest.fixture
def make_line():
    """Build a ProjectLine: ``make_line(1, hours="10", rate="100")``."""

    def _make(
        line_id: int,
        hours="10",
        rate="100",
        basis=InvoiceBasis.FIXED_PRICE,
        **kwargs,
    ) -> ProjectLine:
        return ProjectLine(
            line_id=line_id,
            budgeted_hours=Decimal(hours) if hours is not None else None,
            hourly_rate=Decimal(rate) if rate is not None else None,
            invoice_basis=basis,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_entry():
    """Build a TimeEntry with an auto-incrementing entry id."""
    ids = itertools.count(1)

    def _make(
        month: int,
        hours="10",
        rate="100",
        line_id: int | None = None,
        project_id: int = 1,
        entry_id: int | None = None,
        **kwargs,
    ) -> TimeEntry:
        return TimeEntry(
            entry_id=entry_id if entry_id is not None else next(ids),
            project_id=project_id,
            project_line_id=line_id,
            month=month,
            hours=Decimal(hours) if hours is not None else None,
            hourly_rate=Decimal(rate) if rate is not None else None,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_project():
    """Build a Project from a flat entry list."""

    def _make(
        entries=(),
        lines=(),
        project_type=ProjectType.FIXED_PRICE,
        total_budget="0",
        previous_year_budget_used="0",
        project_id: int = 1,
        name: str = "Website",
        currency: str = "EUR",
    ) -> Project:
        return Project.from_entries(
            entries=entries,
            project_id=project_id,
            name=name,
            project_type=project_type,
            total_budget=Decimal(total_budget) if total_budget is not None else None,
            previous_year_budget_used=(
                Decimal(previous_year_budget_used)
                if previous_year_budget_used is not None
                else None
            ),
            lines=tuple(lines),
            currency=currency,
        )

    return _make
