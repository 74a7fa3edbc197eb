"""Integration tests for the yearly plan flow (in-memory storage)."""

import asyncio
from uuid import uuid4

import pytest
from pydantic import ValidationError

from budgetbook.models.yearly import (
    Frequency,
    IncomeItem,
    LineItemDraft,
    NonMonthlyBillItem,
    SectionKey,
)
from budgetbook.services.storage import DuplicateError, NotFoundError
from budgetbook.validation import ReorderRejectedError

BILLS = SectionKey.MONTHLY_BILLS


def run(coro):
    return asyncio.run(coro)


def draft(label, amount_cents=0, **fields):
    return LineItemDraft(label=label, amount_cents=amount_cents, **fields)


def container_labels(data, subsection_id=None):
    if subsection_id is None:
        return [item.label for item in data.section_items]
    group = next(g for g in data.subsections if g.subsection.id == subsection_id)
    return [item.label for item in group.items]


class TestSubsections:
    """Tests for subsection operations."""

    def test_create_appends(self, yearly_flow, owner_id):
        """Test new subsections go to the end of their section."""
        home = run(yearly_flow.create_subsection(owner_id, 2026, BILLS, "Home"))
        car = run(yearly_flow.create_subsection(owner_id, 2026, BILLS, "Car"))
        debt = run(yearly_flow.create_subsection(owner_id, 2026, SectionKey.DEBT, "Loans"))
        assert (home.order, car.order, debt.order) == (0, 1, 0)

    def test_income_has_no_subsections(self, yearly_flow, owner_id):
        """Test income subsections are refused."""
        with pytest.raises(ValidationError):
            run(yearly_flow.create_subsection(owner_id, 2026, SectionKey.INCOME, "Jobs"))

    def test_rename(self, yearly_flow, owner_id):
        """Test renaming keeps position."""
        home = run(yearly_flow.create_subsection(owner_id, 2026, BILLS, "Home"))
        renamed = run(yearly_flow.rename_subsection(owner_id, home.id, "House"))
        assert renamed.title == "House"
        assert renamed.order == home.order

    def test_remove_cascades(self, yearly_flow, owner_id):
        """Test removing a subsection removes its items only."""
        home = run(yearly_flow.create_subsection(owner_id, 2026, BILLS, "Home"))
        run(yearly_flow.create_line_item(owner_id, 2026, BILLS, draft("Rent", 100000), home.id))
        run(yearly_flow.create_line_item(owner_id, 2026, BILLS, draft("Power", 8000), home.id))
        run(yearly_flow.create_line_item(owner_id, 2026, BILLS, draft("Phone", 5000)))

        assert run(yearly_flow.remove_subsection(owner_id, home.id)) == 2
        data = run(yearly_flow.list_for_year(owner_id, 2026))
        assert data.subsections == []
        assert container_labels(data) == ["Phone"]

    def test_remove_foreign_subsection(self, yearly_flow, owner_id):
        """Test another owner cannot remove a subsection."""
        home = run(yearly_flow.create_subsection(owner_id, 2026, BILLS, "Home"))
        with pytest.raises(NotFoundError):
            run(yearly_flow.remove_subsection(uuid4(), home.id))

    def test_reorder(self, yearly_flow, owner_id):
        """Test reorder and its rejection rules."""
        home = run(yearly_flow.create_subsection(owner_id, 2026, BILLS, "Home"))
        car = run(yearly_flow.create_subsection(owner_id, 2026, BILLS, "Car"))
        loans = run(yearly_flow.create_subsection(owner_id, 2026, SectionKey.DEBT, "Loans"))

        run(yearly_flow.reorder_subsections(owner_id, 2026, BILLS, [car.id, home.id]))
        data = run(yearly_flow.list_for_year(owner_id, 2026))
        bills = [g.subsection.title for g in data.subsections if g.subsection.section_key == BILLS]
        assert bills == ["Car", "Home"]

        with pytest.raises(ReorderRejectedError):
            run(yearly_flow.reorder_subsections(owner_id, 2026, BILLS, [home.id, loans.id]))
        after = run(yearly_flow.list_for_year(owner_id, 2026))
        assert [g.subsection.order for g in after.subsections] == [g.subsection.order for g in data.subsections]

    def test_partial_reorder_rejected(self, yearly_flow, owner_id):
        """Test a reorder that leaves out a subsection writes nothing."""
        home = run(yearly_flow.create_subsection(owner_id, 2026, BILLS, "Home"))
        car = run(yearly_flow.create_subsection(owner_id, 2026, BILLS, "Car"))

        with pytest.raises(ReorderRejectedError):
            run(yearly_flow.reorder_subsections(owner_id, 2026, BILLS, [car.id]))
        data = run(yearly_flow.list_for_year(owner_id, 2026))
        assert [(g.subsection.title, g.subsection.order) for g in data.subsections] == [("Home", 0), ("Car", 1)]

    def test_remove_closes_gap(self, yearly_flow, owner_id):
        """Test the remaining subsections are renumbered from 0."""
        home = run(yearly_flow.create_subsection(owner_id, 2026, BILLS, "Home"))
        run(yearly_flow.create_subsection(owner_id, 2026, BILLS, "Car"))
        run(yearly_flow.create_subsection(owner_id, 2026, BILLS, "Pets"))

        run(yearly_flow.remove_subsection(owner_id, home.id))
        data = run(yearly_flow.list_for_year(owner_id, 2026))
        assert [(g.subsection.title, g.subsection.order) for g in data.subsections] == [("Car", 0), ("Pets", 1)]


class TestLineItems:
    """Tests for line item operations."""

    def test_create_orders_within_container(self, yearly_flow, owner_id):
        """Test order counts per container."""
        home = run(yearly_flow.create_subsection(owner_id, 2026, BILLS, "Home"))
        a = run(yearly_flow.create_line_item(owner_id, 2026, BILLS, draft("A"), home.id))
        b = run(yearly_flow.create_line_item(owner_id, 2026, BILLS, draft("B")))
        c = run(yearly_flow.create_line_item(owner_id, 2026, BILLS, draft("C"), home.id))
        assert (a.order, b.order, c.order) == (0, 0, 1)

    def test_income_item(self, yearly_flow, owner_id):
        """Test income items are created at section level."""
        item = run(yearly_flow.create_line_item(
            owner_id, 2026, SectionKey.INCOME, draft("Salary", 500000, payment_day="15")
        ))
        assert isinstance(item, IncomeItem)
        assert item.payment_day == "15"

    def test_income_refuses_subsection(self, yearly_flow, owner_id):
        """Test income items cannot be put in a subsection."""
        with pytest.raises(ValueError):
            run(yearly_flow.create_line_item(owner_id, 2026, SectionKey.INCOME, draft("Salary"), uuid4()))

    def test_subsection_must_match(self, yearly_flow, owner_id):
        """Test the subsection must be in the same year and section."""
        loans = run(yearly_flow.create_subsection(owner_id, 2026, SectionKey.DEBT, "Loans"))
        with pytest.raises(ValueError):
            run(yearly_flow.create_line_item(owner_id, 2026, BILLS, draft("Rent"), loans.id))
        with pytest.raises(ValueError):
            run(yearly_flow.create_line_item(owner_id, 2027, SectionKey.DEBT, draft("Car"), loans.id))

    def test_fields_checked_per_section(self, yearly_flow, owner_id):
        """Test a field from another section is rejected."""
        with pytest.raises(ValidationError):
            run(yearly_flow.create_line_item(owner_id, 2026, BILLS, draft("Rent", interest_rate=5.0)))

    def test_update_and_remove(self, yearly_flow, owner_id):
        """Test patching then removing an item."""
        item = run(yearly_flow.create_line_item(
            owner_id, 2026, SectionKey.NON_MONTHLY_BILLS, draft("Insurance")
        ))
        updated = run(yearly_flow.update_line_item(
            owner_id, item.id, LineItemDraft(frequency=Frequency.ANNUAL, original_amount_cents=120000)
        ))
        assert isinstance(updated, NonMonthlyBillItem)
        assert updated.frequency == Frequency.ANNUAL
        assert updated.label == "Insurance"

        run(yearly_flow.remove_line_item(owner_id, item.id))
        with pytest.raises(NotFoundError):
            run(yearly_flow.remove_line_item(owner_id, item.id))

    def test_reorder_line_items(self, yearly_flow, owner_id):
        """Test reorder, idempotence and container checks."""
        home = run(yearly_flow.create_subsection(owner_id, 2026, BILLS, "Home"))
        a = run(yearly_flow.create_line_item(owner_id, 2026, BILLS, draft("A"), home.id))
        b = run(yearly_flow.create_line_item(owner_id, 2026, BILLS, draft("B"), home.id))
        loose = run(yearly_flow.create_line_item(owner_id, 2026, BILLS, draft("Loose")))

        run(yearly_flow.reorder_line_items(owner_id, 2026, BILLS, home.id, [b.id, a.id]))
        run(yearly_flow.reorder_line_items(owner_id, 2026, BILLS, home.id, [b.id, a.id]))
        data = run(yearly_flow.list_for_year(owner_id, 2026))
        assert container_labels(data, home.id) == ["B", "A"]

        with pytest.raises(ReorderRejectedError):
            run(yearly_flow.reorder_line_items(owner_id, 2026, BILLS, home.id, [a.id, loose.id]))
        with pytest.raises(ReorderRejectedError):
            run(yearly_flow.reorder_line_items(owner_id, 2026, SectionKey.DEBT, home.id, [a.id]))
        assert container_labels(run(yearly_flow.list_for_year(owner_id, 2026)), home.id) == ["B", "A"]

    def test_partial_reorder_rejected(self, yearly_flow, owner_id):
        """Test a reorder that leaves out an item writes nothing."""
        a = run(yearly_flow.create_line_item(owner_id, 2026, BILLS, draft("A")))
        b = run(yearly_flow.create_line_item(owner_id, 2026, BILLS, draft("B")))

        with pytest.raises(ReorderRejectedError):
            run(yearly_flow.reorder_line_items(owner_id, 2026, BILLS, None, [b.id]))
        data = run(yearly_flow.list_for_year(owner_id, 2026))
        assert [(item.label, item.order) for item in data.section_items] == [("A", 0), ("B", 1)]
        assert {a.id, b.id} == {item.id for item in data.section_items}

    def test_remove_closes_gap(self, yearly_flow, owner_id):
        """Test removing an item renumbers only its own container."""
        home = run(yearly_flow.create_subsection(owner_id, 2026, BILLS, "Home"))
        rent = run(yearly_flow.create_line_item(owner_id, 2026, BILLS, draft("Rent"), home.id))
        run(yearly_flow.create_line_item(owner_id, 2026, BILLS, draft("Power"), home.id))
        run(yearly_flow.create_line_item(owner_id, 2026, BILLS, draft("Water"), home.id))
        run(yearly_flow.create_line_item(owner_id, 2026, BILLS, draft("Phone")))
        run(yearly_flow.create_line_item(owner_id, 2026, BILLS, draft("Gym")))

        run(yearly_flow.remove_line_item(owner_id, rent.id))
        data = run(yearly_flow.list_for_year(owner_id, 2026))
        assert [(item.label, item.order) for item in data.subsections[0].items] == [("Power", 0), ("Water", 1)]
        assert [(item.label, item.order) for item in data.section_items] == [("Phone", 0), ("Gym", 1)]


class TestMoveLineItem:
    """Tests for moving items between containers."""

    def _setup(self, flow, owner_id):
        home = run(flow.create_subsection(owner_id, 2026, BILLS, "Home"))
        car = run(flow.create_subsection(owner_id, 2026, BILLS, "Car"))
        rent = run(flow.create_line_item(owner_id, 2026, BILLS, draft("Rent"), home.id))
        power = run(flow.create_line_item(owner_id, 2026, BILLS, draft("Power"), home.id))
        fuel = run(flow.create_line_item(owner_id, 2026, BILLS, draft("Fuel"), car.id))
        return home, car, rent, power, fuel

    def test_move(self, yearly_flow, owner_id):
        """Test the item leaves the source and joins the destination."""
        home, car, rent, power, fuel = self._setup(yearly_flow, owner_id)

        run(yearly_flow.move_line_item(owner_id, power.id, car.id, [rent.id], [power.id, fuel.id]))

        data = run(yearly_flow.list_for_year(owner_id, 2026))
        assert container_labels(data, home.id) == ["Rent"]
        assert container_labels(data, car.id) == ["Power", "Fuel"]

    def test_move_changes_lengths_by_one(self, yearly_flow, owner_id):
        """Test source shrinks by one and destination grows by one."""
        home, car, rent, power, fuel = self._setup(yearly_flow, owner_id)
        before = run(yearly_flow.list_for_year(owner_id, 2026))

        run(yearly_flow.move_line_item(owner_id, rent.id, car.id, [power.id], [fuel.id, rent.id]))

        after = run(yearly_flow.list_for_year(owner_id, 2026))
        assert len(container_labels(after, home.id)) == len(container_labels(before, home.id)) - 1
        assert len(container_labels(after, car.id)) == len(container_labels(before, car.id)) + 1
        assert "Rent" not in container_labels(after, home.id)

    def test_move_to_section_level(self, yearly_flow, owner_id):
        """Test moving out of a subsection to the section itself."""
        home, car, rent, power, fuel = self._setup(yearly_flow, owner_id)
        run(yearly_flow.move_line_item(owner_id, fuel.id, None, [], [fuel.id]))
        data = run(yearly_flow.list_for_year(owner_id, 2026))
        assert container_labels(data) == ["Fuel"]
        assert container_labels(data, car.id) == []

    def test_rejected_move_writes_nothing(self, yearly_flow, owner_id):
        """Test a bad destination list leaves every row unchanged."""
        home, car, rent, power, fuel = self._setup(yearly_flow, owner_id)
        before = run(yearly_flow.list_for_year(owner_id, 2026))

        with pytest.raises(ReorderRejectedError):
            run(yearly_flow.move_line_item(owner_id, power.id, car.id, [rent.id], [power.id, rent.id]))
        with pytest.raises(ReorderRejectedError):
            run(yearly_flow.move_line_item(owner_id, power.id, car.id, [rent.id, power.id], [power.id, fuel.id]))

        assert run(yearly_flow.list_for_year(owner_id, 2026)) == before

    def test_move_must_list_whole_containers(self, yearly_flow, owner_id):
        """Test a move that drops a row from either list writes nothing."""
        home, car, rent, power, fuel = self._setup(yearly_flow, owner_id)
        before = run(yearly_flow.list_for_year(owner_id, 2026))

        with pytest.raises(ReorderRejectedError):
            run(yearly_flow.move_line_item(owner_id, power.id, car.id, [rent.id], [power.id]))
        with pytest.raises(ReorderRejectedError):
            run(yearly_flow.move_line_item(owner_id, power.id, car.id, [], [power.id, fuel.id]))
        assert run(yearly_flow.list_for_year(owner_id, 2026)) == before

    def test_move_keeps_orders_contiguous(self, yearly_flow, owner_id):
        """Test both containers are numbered 0..n-1 after a move."""
        home, car, rent, power, fuel = self._setup(yearly_flow, owner_id)
        run(yearly_flow.move_line_item(owner_id, rent.id, car.id, [power.id], [fuel.id, rent.id]))

        data = run(yearly_flow.list_for_year(owner_id, 2026))
        assert [item.order for item in data.subsections[0].items] == [0]
        assert [(item.label, item.order) for item in data.subsections[1].items] == [("Fuel", 0), ("Rent", 1)]

    def test_move_across_sections_rejected(self, yearly_flow, owner_id):
        """Test the destination must be in the item's section."""
        home, car, rent, power, fuel = self._setup(yearly_flow, owner_id)
        loans = run(yearly_flow.create_subsection(owner_id, 2026, SectionKey.DEBT, "Loans"))
        with pytest.raises(ReorderRejectedError):
            run(yearly_flow.move_line_item(owner_id, rent.id, loans.id, [power.id], [rent.id]))

    def test_move_missing_item(self, yearly_flow, owner_id):
        """Test moving someone else's item is not found."""
        home, car, rent, power, fuel = self._setup(yearly_flow, owner_id)
        with pytest.raises(NotFoundError):
            run(yearly_flow.move_line_item(uuid4(), rent.id, car.id, [power.id], [rent.id, fuel.id]))


class TestCopyAndSummary:
    """Tests for copy-from-year, years with data and the summary."""

    def _fill(self, flow, owner_id, year=2025):
        home = run(flow.create_subsection(owner_id, year, BILLS, "Home"))
        run(flow.create_line_item(owner_id, year, SectionKey.INCOME, draft("Salary", 500000)))
        run(flow.create_line_item(owner_id, year, BILLS, draft("Rent", 150000), home.id))
        run(flow.create_line_item(owner_id, year, SectionKey.NON_MONTHLY_BILLS, draft(
            "Insurance", frequency=Frequency.ANNUAL, original_amount_cents=240000,
        )))
        return home

    def test_copy_from_year_remaps_subsections(self, yearly_flow, owner_id):
        """Test copied items point at the new subsection ids."""
        old_home = self._fill(yearly_flow, owner_id)

        data = run(yearly_flow.copy_from_year(owner_id, 2025, 2026))

        [group] = data.subsections
        assert group.subsection.id != old_home.id
        assert group.subsection.year == 2026
        assert [item.label for item in group.items] == ["Rent"]
        assert group.items[0].container_id == group.subsection.id
        assert sorted(item.label for item in data.section_items) == ["Insurance", "Salary"]
        assert all(item.year == 2026 for item in data.all_items())

        source = run(yearly_flow.list_for_year(owner_id, 2025))
        assert source.subsections[0].subsection.id == old_home.id
        assert source.subsections[0].items[0].container_id == old_home.id

    def test_copy_from_year_guards(self, yearly_flow, owner_id):
        """Test same year, empty source and non-empty target are refused."""
        self._fill(yearly_flow, owner_id)
        with pytest.raises(ValueError):
            run(yearly_flow.copy_from_year(owner_id, 2025, 2025))
        with pytest.raises(NotFoundError):
            run(yearly_flow.copy_from_year(owner_id, 2020, 2026))
        run(yearly_flow.create_line_item(owner_id, 2026, SectionKey.INCOME, draft("Side job", 100)))
        with pytest.raises(DuplicateError):
            run(yearly_flow.copy_from_year(owner_id, 2025, 2026))

    def test_years_with_data(self, yearly_flow, owner_id):
        """Test years are listed newest first."""
        self._fill(yearly_flow, owner_id, 2024)
        run(yearly_flow.create_subsection(owner_id, 2026, BILLS, "Empty"))
        assert run(yearly_flow.list_years_with_data(owner_id)) == [2026, 2024]
        assert run(yearly_flow.list_years_with_data(uuid4())) == []

    def test_year_summary(self, yearly_flow, owner_id):
        """Test the summary uses the rollup engine."""
        self._fill(yearly_flow, owner_id)
        summary = run(yearly_flow.year_summary(owner_id, 2025))
        assert summary.year == 2025
        assert summary.totals.income_monthly == 500000
        assert summary.totals.non_monthly_bills_monthly_eq == 20000
        assert summary.breakdown.after_monthly_bills == 350000
        assert summary.breakdown.after_investments == 330000
