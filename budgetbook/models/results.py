"""
Result Models

Outputs of the calculation engines and the validator. These are
never persisted; they are recomputed from stored rows on demand.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from budgetbook.models.monthly import Month, PreviousMonthEnd, Transaction, TransactionKind


# =============================================================================
# MONTHLY BALANCE ENGINE
# =============================================================================

class ResolvedTransaction(BaseModel):
    """
    A transaction paired with its effective amount.

    For percentage savings `amount_cents` is recomputed from the linked
    income; for every other row it equals the stored amount. Read the
    resolved `amount_cents` here, never `transaction.amount_cents`.
    """
    model_config = ConfigDict(frozen=True)

    transaction: Transaction
    amount_cents: int

    @property
    def id(self) -> UUID:
        return self.transaction.id

    @property
    def kind(self) -> TransactionKind:
        return self.transaction.kind

    @property
    def order(self) -> float:
        return self.transaction.order

    @property
    def is_paid(self) -> bool:
        return self.transaction.is_paid

    @property
    def delta_cents(self) -> int:
        """Signed effect on the balance."""
        return self.transaction.signed(self.amount_cents)


class BalanceSummary(BaseModel):
    """
    Both balance views of a month.

    current_bank_balance_cents: starting balance + paid rows only.
    projected_balances: balance right after each row, all rows counted.
    projected_end_balance_cents: balance once everything clears.
    """
    model_config = ConfigDict(frozen=True)

    starting_balance_cents: int
    resolved: list[ResolvedTransaction] = Field(default_factory=list)
    current_bank_balance_cents: int
    projected_balances: dict[UUID, int] = Field(default_factory=dict)
    projected_end_balance_cents: int


class MonthOverview(BaseModel):
    """Everything the month view renders."""

    month: Month
    balances: BalanceSummary
    previous_month: PreviousMonthEnd
    is_due_date_sorted: bool

    @property
    def transactions(self) -> list[Transaction]:
        return [row.transaction for row in self.balances.resolved]


# =============================================================================
# YEARLY ROLLUP ENGINE
# =============================================================================

class SectionTotals(BaseModel):
    """
    Per-section totals for one year's worksheet.

    All amounts are MONTHLY-equivalent cents unless the name says
    otherwise (annual total, balance, goal, current).
    """
    model_config = ConfigDict(frozen=True)

    income_monthly: int = 0
    # Display-only halves: one paycheck out of two per month
    income_each_paycheck_display: int = 0

    monthly_bills_monthly: int = 0

    non_monthly_bills_monthly_eq: int = 0
    non_monthly_bills_annual_total: int = 0

    debt_monthly_payment: int = 0
    debt_balance_total: int = 0

    savings_monthly: int = 0
    savings_bi_monthly: int = 0
    savings_goal_total: int = 0
    savings_current_total: int = 0

    investments_monthly: int = 0
    investments_bi_monthly: int = 0


class IncomeBreakdown(BaseModel):
    """The "income after each category" ladder."""
    model_config = ConfigDict(frozen=True)

    total_income_monthly: int
    after_monthly_bills: int
    after_non_monthly_bills: int
    after_debt: int
    after_savings: int
    after_investments: int  # final disposable


class YearSummary(BaseModel):
    """Totals and breakdown for one year."""

    year: int
    totals: SectionTotals
    breakdown: IncomeBreakdown


# =============================================================================
# VALIDATION
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'dangling_link')"
    )
    message: str = Field(
        ...,
        description="Short human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """
    Result of the two-stage transaction validation.

    Stage 1: Field validation (values in range, required pairs present)
    Stage 2: Month validation (links point at income in the same month)
    """

    fields_valid: bool
    month_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.fields_valid and self.month_valid and not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    def messages(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "error"]
