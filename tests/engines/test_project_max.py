"""
Tests for the Project-Max strategy.

One shared project ledger, month by month, with spillover hours revalued
at the project's lowest line rate once a month no longer fits.
"""

from decimal import Decimal

import pytest

from revenue_engines import AllocationMethod, InvoiceBasis, ProjectLine, fallback_rate
from revenue_kernel.domain.values import Money

METHOD = AllocationMethod.PROJECT_MAX


def eur(amount) -> Money:
    return Money.of(str(amount), "EUR")


class TestFallbackRate:
    """Lowest positive hourly rate across all lines."""

    def test_lowest_positive_rate(self):
        lines = (
            ProjectLine(line_id=1, hourly_rate=Decimal("120")),
            ProjectLine(line_id=2, hourly_rate=Decimal("0")),
            ProjectLine(line_id=3, hourly_rate=Decimal("75.50")),
            ProjectLine(line_id=4, hourly_rate=None),
        )
        assert fallback_rate(lines) == Decimal("75.50")

    def test_no_lines(self):
        assert fallback_rate(()) == Decimal("0")

    def test_includes_non_fixed_price_lines(self):
        lines = (
            ProjectLine(line_id=1, hourly_rate=Decimal("100")),
            ProjectLine(
                line_id=2,
                hourly_rate=Decimal("50"),
                invoice_basis=InvoiceBasis.HOURLY_RATE,
            ),
        )
        assert fallback_rate(lines) == Decimal("50")


class TestMonthlyDepletion:
    """Covered months are granted in full; uncovered months are apportioned."""

    def test_covered_month_grants_nominal(self, engine, make_project, make_line, make_entry):
        project = make_project(
            lines=[make_line(1, hours="5")],
            entries=[make_entry(1, hours="8", line_id=1)],
            total_budget="1000",
        )

        (result,) = engine.allocate(project=project, method=METHOD).results

        # The project ledger covers the month, so the line budget does not cap it
        assert result.recognized_revenue == eur(800)
        assert not result.is_over_budget

    def test_spillover_hours_use_fallback_rate(self, engine, make_project, make_line, make_entry):
        project = make_project(
            lines=[
                make_line(1, hours="10", rate="100"),
                make_line(2, hours="0", rate="50", basis=InvoiceBasis.HOURLY_RATE),
            ],
            entries=[
                make_entry(1, hours="15", line_id=1),
                make_entry(1, hours="2", rate="50", line_id=2),
                make_entry(2, hours="2", line_id=1),
            ],
            total_budget="1400",
        )

        allocation = engine.allocate(project=project, method=METHOD)
        january_fixed, january_hourly, february = allocation.results

        # 10 own hours at 100 plus 5 spillover hours at 50
        assert january_fixed.recognized_revenue == eur(1250)
        assert january_fixed.is_over_budget
        assert january_fixed.line_over_budget
        assert january_fixed.was_capped_by_budget
        assert january_hourly.recognized_revenue == eur(100)
        # Line budget used up: 2 spillover hours at 50
        assert february.recognized_revenue == eur(100)
        assert allocation.summary.total_recognized_revenue == eur(1450)
        assert allocation.summary.remaining_budget == eur(-50)
        assert allocation.summary.is_over_budget
        assert allocation.summary.over_budget_line_ids == (1,)

    def test_fallback_value_capped_by_project_ledger(self, engine, make_project, make_line, make_entry):
        project = make_project(
            lines=[make_line(1, hours="10", rate="100"), make_line(2, hours="0", rate="50")],
            entries=[make_entry(1, hours="15", line_id=1)],
            total_budget="1200",
        )

        (result,) = engine.allocate(project=project, method=METHOD).results

        assert result.recognized_revenue == eur(1200)

    def test_exhausted_ledger_zeroes_later_entries(self, engine, make_project, make_line, make_entry):
        project = make_project(
            lines=[make_line(1, hours="100")],
            entries=[
                make_entry(1, hours="10", line_id=1),
                make_entry(2, hours="10", line_id=1),
                make_entry(3, hours="10", line_id=1),
            ],
            total_budget="1500",
        )

        allocation = engine.allocate(project=project, method=METHOD)

        assert [r.recognized_revenue for r in allocation.results] == [eur(1000), eur(500), eur(0)]
        assert [r.is_over_budget for r in allocation.results] == [False, True, True]
        assert allocation.summary.remaining_budget == eur(0)

    def test_unassigned_entries_keep_own_rate(self, engine, make_project, make_line, make_entry):
        project = make_project(
            lines=[make_line(1, hours="1", rate="20")],
            entries=[make_entry(1, hours="10", rate="100")],
            total_budget="600",
        )

        (result,) = engine.allocate(project=project, method=METHOD).results

        assert result.project_line_id is None
        assert result.recognized_revenue == eur(600)

    def test_entry_without_line_budget_uses_fallback_only(self, engine, make_project, make_line, make_entry):
        project = make_project(
            lines=[make_line(1, hours="0", rate="30"), make_line(2, hours="0", rate="10")],
            entries=[make_entry(1, hours="1", rate="30", line_id=1)],
            total_budget="29",
        )

        (result,) = engine.allocate(project=project, method=METHOD).results

        # 1 spillover hour at 10
        assert result.recognized_revenue == eur("10")

    def test_uneven_rate_ratio_rounds_down(self, engine, make_project, make_line, make_entry):
        project = make_project(
            lines=[make_line(1, hours="0.5", rate="30"), make_line(2, hours="0", rate="10")],
            entries=[make_entry(1, hours="1", rate="35", line_id=1)],
            total_budget="30",
        )

        (result,) = engine.allocate(project=project, method=METHOD).results

        # 15 within the line budget, then 20 / 35 hours at 10 = 5.714...
        assert result.recognized_revenue == eur("20.71")

    def test_uncovered_month_flags_every_entry_as_capped(self, engine, make_project, make_line, make_entry):
        project = make_project(
            lines=[make_line(1, hours="0", rate="50"), make_line(2, hours="10", rate="100")],
            entries=[
                make_entry(1, hours="20", rate="100", line_id=2),
                make_entry(1, hours="4", rate="50", line_id=1),
            ],
            total_budget="1600",
        )

        allocation = engine.allocate(project=project, method=METHOD)
        line_two, line_one = allocation.results

        # Line 1 goes first and is fully valued at the fallback rate
        assert line_one.recognized_revenue == eur(200)
        assert line_one.recognized_revenue == line_one.nominal_value
        assert line_one.is_over_budget
        assert line_one.was_capped_by_budget
        # 10 own hours at 100, 10 spillover hours at 50, clamped to what is left
        assert line_two.recognized_revenue == eur(1400)
        assert line_two.is_over_budget
        assert line_two.was_capped_by_budget
        assert allocation.summary.total_recognized_revenue == eur(1600)

    def test_covered_month_is_not_flagged(self, engine, make_project, make_line, make_entry):
        project = make_project(
            lines=[make_line(1, hours="10", rate="100")],
            entries=[make_entry(1, hours="5", line_id=1)],
            total_budget="1000",
        )

        (result,) = engine.allocate(project=project, method=METHOD).results

        assert not result.is_over_budget
        assert not result.was_capped_by_budget


class TestTieBreak:
    """Within a month: ascending line id, unassigned last, then entry id."""

    @pytest.fixture
    def entries(self, make_entry):
        return [
            make_entry(1, hours="10", line_id=2, entry_id=1),
            make_entry(1, hours="10", line_id=1, entry_id=2),
            make_entry(1, hours="10", entry_id=3),
        ]

    def _allocate(self, engine, make_project, make_line, entries):
        project = make_project(
            lines=[make_line(1, hours="100"), make_line(2, hours="100")],
            entries=entries,
            total_budget="1500",
        )
        allocation = engine.allocate(project=project, method=METHOD)
        return {r.entry.entry_id: r.recognized_revenue for r in allocation.results}

    def test_lower_line_id_served_first(self, engine, make_project, make_line, entries):
        recognized = self._allocate(engine, make_project, make_line, entries)

        assert recognized == {2: eur(1000), 1: eur(500), 3: eur(0)}

    def test_input_order_within_month_is_irrelevant(self, engine, make_project, make_line, entries):
        forward = self._allocate(engine, make_project, make_line, entries)
        backward = self._allocate(engine, make_project, make_line, list(reversed(entries)))

        assert forward == backward

    def test_entry_id_orders_entries_on_one_line(self, engine, make_project, make_line, make_entry):
        project = make_project(
            lines=[make_line(1, hours="100")],
            entries=[
                make_entry(1, hours="10", line_id=1, entry_id=9),
                make_entry(1, hours="10", line_id=1, entry_id=4),
            ],
            total_budget="1200",
        )

        later, earlier = engine.allocate(project=project, method=METHOD).results

        assert earlier.recognized_revenue == eur(1000)
        assert later.recognized_revenue == eur(200)
