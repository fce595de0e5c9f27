"""
Property-based tests for the allocation invariants.

Random projects (lines of every basis, entries on known, unknown and no
lines, any budget state) are allocated under both strategies and checked
against the rules every output must satisfy.
"""

from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from revenue_engines import (
    AllocationMethod,
    InvoiceBasis,
    Project,
    ProjectLine,
    ProjectType,
    RevenueAllocationEngine,
    TimeEntry,
)
from revenue_engines.allocation import sanitize

ENGINE = RevenueAllocationEngine()
ZERO = Decimal("0")
UNCAPPED_TYPES = {ProjectType.HOURLY_RATE, ProjectType.CONTRACT, ProjectType.QUOTE}
BUDGETED = {InvoiceBasis.FIXED_PRICE, InvoiceBasis.SUBSCRIPTION}

non_finite = st.sampled_from([Decimal("NaN"), Decimal("Infinity"), Decimal("-Infinity")])
amounts = st.one_of(
    st.decimals(min_value=0, max_value=20000, places=2, allow_nan=False), non_finite
)
hours = st.one_of(
    st.decimals(min_value=-2, max_value=40, places=2, allow_nan=False), non_finite
)
rates = st.one_of(
    st.none(),
    st.decimals(min_value=0, max_value=200, places=2, allow_nan=False),
    non_finite,
)
methods = st.sampled_from(list(AllocationMethod))


@st.composite
def project_lines(draw):
    ids = draw(st.lists(st.integers(min_value=1, max_value=6), unique=True, max_size=4))
    return tuple(
        ProjectLine(
            line_id=line_id,
            budgeted_hours=draw(
                st.one_of(st.decimals(min_value=0, max_value=50, places=2), non_finite)
            ),
            hourly_rate=draw(rates),
            invoice_basis=draw(st.sampled_from(list(InvoiceBasis) + [None, "unknown"])),
        )
        for line_id in ids
    )


@st.composite
def projects(draw, project_type=None):
    entries = [
        TimeEntry(
            entry_id=index,
            project_id=1,
            project_line_id=draw(st.one_of(st.none(), st.integers(min_value=1, max_value=7))),
            month=draw(st.integers(min_value=1, max_value=12)),
            hours=draw(hours),
            hourly_rate=draw(rates),
        )
        for index in range(draw(st.integers(min_value=0, max_value=20)))
    ]
    return Project.from_entries(
        entries=entries,
        project_id=1,
        name="Generated",
        project_type=project_type or draw(st.sampled_from(list(ProjectType))),
        total_budget=draw(st.one_of(st.none(), amounts)),
        previous_year_budget_used=draw(st.one_of(st.none(), amounts)),
        lines=draw(project_lines()),
    )


def _available(project: Project) -> Decimal:
    total = sanitize(project.total_budget)
    previous = sanitize(project.previous_year_budget_used)
    return max(ZERO, total - previous)


class TestAllocationInvariants:
    """Rules that hold for every project under either strategy."""

    @given(project=projects(), method=methods)
    @settings(max_examples=300)
    def test_recognized_between_zero_and_nominal(self, project, method):
        allocation = ENGINE.allocate(project=project, method=method)

        assert len(allocation.results) == len(project.entries)
        for result in allocation.results:
            assert ZERO <= result.recognized_revenue.amount <= result.nominal_value.amount
            budget_capped = (
                result.invoice_basis in BUDGETED
                and project.project_type == ProjectType.FIXED_PRICE
            )
            below_nominal = result.recognized_revenue < result.nominal_value
            if (
                budget_capped
                and method == AllocationMethod.PROJECT_MAX
                and _available(project) > ZERO
            ):
                # An uncovered month marks all of its entries
                assert result.was_capped_by_budget == result.is_over_budget
                assert not below_nominal or result.was_capped_by_budget
            else:
                assert result.was_capped_by_budget == (budget_capped and below_nominal)

    @given(project=projects(), method=methods)
    @settings(max_examples=200)
    def test_non_billable_never_recognized(self, project, method):
        allocation = ENGINE.allocate(project=project, method=method)

        for result in allocation.results:
            if result.invoice_basis == InvoiceBasis.NON_BILLABLE:
                assert result.recognized_revenue.is_zero

    @given(project=projects(), method=methods)
    @settings(max_examples=200)
    def test_uncapped_classes_recognize_nominal(self, project, method):
        allocation = ENGINE.allocate(project=project, method=method)

        if project.project_type == ProjectType.INTERNAL:
            assert allocation.summary.total_recognized_revenue.is_zero
            return
        for result in allocation.results:
            if result.invoice_basis == InvoiceBasis.NON_BILLABLE:
                continue
            if (
                result.invoice_basis == InvoiceBasis.HOURLY_RATE
                or project.project_type in UNCAPPED_TYPES
            ):
                assert result.recognized_revenue == result.nominal_value
                assert not result.is_over_budget

    @given(project=projects(project_type=ProjectType.FIXED_PRICE))
    @settings(max_examples=300)
    def test_project_max_never_exceeds_available_budget(self, project):
        allocation = ENGINE.allocate(project=project, method=AllocationMethod.PROJECT_MAX)

        budgeted = sum(
            (r.recognized_revenue.amount for r in allocation.results if r.invoice_basis in BUDGETED),
            ZERO,
        )
        assert budgeted <= _available(project)

    @given(project=projects(project_type=ProjectType.FIXED_PRICE), method=methods)
    @settings(max_examples=200)
    def test_exhausted_budget_zeroes_budgeted_entries(self, project, method):
        if _available(project) > ZERO:
            return
        allocation = ENGINE.allocate(project=project, method=method)

        for result in allocation.results:
            if result.invoice_basis in BUDGETED:
                assert result.recognized_revenue.is_zero
            elif result.invoice_basis == InvoiceBasis.HOURLY_RATE:
                assert result.recognized_revenue == result.nominal_value

    @given(project=projects(), method=methods)
    @settings(max_examples=100)
    def test_idempotent(self, project, method):
        assert ENGINE.allocate(project=project, method=method) == ENGINE.allocate(
            project=project, method=method
        )

    @given(project=projects(), method=methods, data=st.data())
    @settings(max_examples=200)
    def test_reordering_within_month_keeps_results(self, project, method, data):
        shuffled = Project(
            project_id=project.project_id,
            name=project.name,
            project_type=project.project_type,
            total_budget=project.total_budget,
            previous_year_budget_used=project.previous_year_budget_used,
            lines=project.lines,
            monthly_entries=tuple(
                tuple(data.draw(st.permutations(bucket))) for bucket in project.monthly_entries
            ),
        )

        original = ENGINE.allocate(project=project, method=method)
        reordered = ENGINE.allocate(project=shuffled, method=method)

        assert original.summary == reordered.summary
        by_entry = {r.entry.entry_id: r for r in original.results}
        for result in reordered.results:
            assert result == by_entry[result.entry.entry_id]
