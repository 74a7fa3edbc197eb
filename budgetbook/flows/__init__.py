"""Application flows: storage + engines + validation."""

from budgetbook.flows.monthly import MonthlyBudgetFlow
from budgetbook.flows.yearly import YearlyPlanFlow

__all__ = [
    "MonthlyBudgetFlow",
    "YearlyPlanFlow",
]
