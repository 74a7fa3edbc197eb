"""
Data Models Package

This package contains all Pydantic models used in Budgetbook.
All data flowing through the system must conform to these schemas.
"""

from budgetbook.models.monthly import (
    MONTH_NAMES,
    Month,
    MonthPatch,
    PreviousMonthEnd,
    SavingsMode,
    Transaction,
    TransactionDraft,
    TransactionKind,
    TransactionPatch,
    month_label,
)
from budgetbook.models.yearly import (
    SECTION_DEFS,
    SECTION_TITLES,
    SUBSECTION_SECTION_KEYS,
    DebtItem,
    Frequency,
    GoalAmountType,
    IncomeItem,
    InvestmentItem,
    LineItemDraft,
    MonthlyBillItem,
    NonMonthlyBillItem,
    SavingsItem,
    SectionKey,
    SubsectionWithItems,
    YearData,
    YearlyLineItem,
    YearlySubsection,
    apply_line_item_patch,
    parse_line_item,
)
from budgetbook.models.results import (
    BalanceSummary,
    IncomeBreakdown,
    MonthOverview,
    ResolvedTransaction,
    SectionTotals,
    ValidationIssue,
    ValidationResult,
    YearSummary,
)

__all__ = [
    # Monthly models
    "MONTH_NAMES",
    "Month",
    "MonthPatch",
    "PreviousMonthEnd",
    "SavingsMode",
    "Transaction",
    "TransactionDraft",
    "TransactionKind",
    "TransactionPatch",
    "month_label",
    # Yearly models
    "SECTION_DEFS",
    "SECTION_TITLES",
    "SUBSECTION_SECTION_KEYS",
    "DebtItem",
    "Frequency",
    "GoalAmountType",
    "IncomeItem",
    "InvestmentItem",
    "LineItemDraft",
    "MonthlyBillItem",
    "NonMonthlyBillItem",
    "SavingsItem",
    "SectionKey",
    "SubsectionWithItems",
    "YearData",
    "YearlyLineItem",
    "YearlySubsection",
    "apply_line_item_patch",
    "parse_line_item",
    # Results
    "BalanceSummary",
    "IncomeBreakdown",
    "MonthOverview",
    "ResolvedTransaction",
    "SectionTotals",
    "ValidationIssue",
    "ValidationResult",
    "YearSummary",
]
