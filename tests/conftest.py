"""Shared fixtures: fresh in-memory flows per test."""

from uuid import uuid4

import pytest

from budgetbook.config import BudgetSettings
from budgetbook.flows import MonthlyBudgetFlow, YearlyPlanFlow
from budgetbook.services.storage import (
    InMemoryMonthStorage,
    InMemoryTransactionStorage,
    InMemoryYearlyStorage,
)


@pytest.fixture
def owner_id():
    return uuid4()


@pytest.fixture
def month_storage():
    return InMemoryMonthStorage()


@pytest.fixture
def transaction_storage():
    return InMemoryTransactionStorage()


@pytest.fixture
def yearly_storage():
    return InMemoryYearlyStorage()


@pytest.fixture
def monthly_flow(month_storage, transaction_storage):
    return MonthlyBudgetFlow(
        month_storage,
        transaction_storage,
        settings=BudgetSettings(default_currency="USD"),
    )


@pytest.fixture
def yearly_flow(yearly_storage):
    return YearlyPlanFlow(yearly_storage)
