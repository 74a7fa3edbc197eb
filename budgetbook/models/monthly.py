"""
Monthly Cash-Flow Models

A Month owns an ordered list of Transactions. Transactions are
income, bills or savings; savings may be a fixed amount or a
percentage of a sibling income transaction.

DESIGN DECISION: For a percentage-mode saving, `amount_cents` is a
cache written at save time. It is NOT the source of truth.
Anything that sums money must go through
`budgetbook.engine.balances.resolve_savings_amounts` first.
"""

from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


# =============================================================================
# ENUMS
# =============================================================================

class TransactionKind(str, Enum):
    """What a transaction does to the balance."""
    INCOME = "income"  # adds
    BILL = "bill"      # subtracts
    SAVING = "saving"  # subtracts (money moved out of the account)


class SavingsMode(str, Enum):
    """How a saving's amount is determined."""
    FIXED = "fixed"
    PERCENTAGE = "percentage"  # percent of a linked income


# =============================================================================
# MONTH
# =============================================================================

class Month(BaseModel):
    """
    One calendar month of one user's budget.

    Keyed by (owner_id, year, month_index). `month_index` is 0-based
    (0 = January) to match the ordering used everywhere else.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    owner_id: UUID
    name: str = Field(..., min_length=1, max_length=100)
    year: int = Field(..., ge=1900, le=9999)
    month_index: int = Field(..., ge=0, le=11)
    starting_balance_cents: int = 0
    currency: str = Field(default="USD", min_length=3, max_length=3)
    use_previous_month_end: bool = False

    @property
    def key(self) -> tuple[int, int]:
        return (self.year, self.month_index)


class MonthPatch(BaseModel):
    """Partial update for month metadata."""
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    starting_balance_cents: Optional[int] = None
    use_previous_month_end: Optional[bool] = None


def month_label(year: int, month_index: int) -> str:
    """Display name for a month, e.g. 'March 2026'."""
    return f"{MONTH_NAMES[month_index]} {year}"


# =============================================================================
# TRANSACTION
# =============================================================================

class Transaction(BaseModel):
    """
    A single line in a month's cash flow.

    `date` is free text holding a day of the month ("5", "28", "" or
    even "TBD"). Only its leading integer is ever interpreted.

    `order` defines display and calculation sequence. Reorders assign
    contiguous integers; due-date insertion may leave a fractional
    midpoint until the next full reorder.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    month_id: UUID
    owner_id: UUID
    label: str = Field(..., min_length=1, max_length=200)
    kind: TransactionKind
    amount_cents: int = Field(default=0, ge=0)
    date: str = Field(default="", max_length=20)
    is_paid: bool = False
    order: float = 0
    category: Optional[str] = Field(default=None, max_length=100)
    is_recurring: bool = False
    is_template_only: bool = False
    mode: SavingsMode = SavingsMode.FIXED
    savings_percentage: Optional[float] = None
    linked_income_id: Optional[UUID] = None

    @property
    def is_percentage_saving(self) -> bool:
        return self.kind == TransactionKind.SAVING and self.mode == SavingsMode.PERCENTAGE

    def signed(self, amount_cents: int) -> int:
        """Balance delta for `amount_cents` of this transaction's kind."""
        if self.kind == TransactionKind.INCOME:
            return amount_cents
        return -amount_cents


class TransactionPatch(BaseModel):
    """
    Partial update for a transaction.

    Only fields explicitly set are applied (`model_dump(exclude_unset=True)`).
    Setting `linked_income_id` to None clears the link.
    """
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    label: Optional[str] = Field(default=None, min_length=1, max_length=200)
    kind: Optional[TransactionKind] = None
    amount_cents: Optional[int] = Field(default=None, ge=0)
    date: Optional[str] = Field(default=None, max_length=20)
    is_paid: Optional[bool] = None
    order: Optional[float] = None
    category: Optional[str] = Field(default=None, max_length=100)
    is_recurring: Optional[bool] = None
    is_template_only: Optional[bool] = None
    mode: Optional[SavingsMode] = None
    savings_percentage: Optional[float] = None
    linked_income_id: Optional[UUID] = None

    @field_validator('savings_percentage')
    @classmethod
    def percentage_in_range(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and not 0 <= v <= 100:
            raise ValueError("Savings percentage must be between 0 and 100")
        return v


class TransactionDraft(BaseModel):
    """
    Input for creating a transaction.

    `order` is optional: when omitted the flow picks a position from
    the due date (or directly below the linked income for savings).
    """
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    label: str = Field(..., min_length=1, max_length=200)
    kind: TransactionKind
    amount_cents: int = Field(default=0, ge=0)
    date: str = Field(default="", max_length=20)
    order: Optional[float] = None
    category: Optional[str] = Field(default=None, max_length=100)
    is_recurring: bool = False
    is_template_only: bool = False
    mode: SavingsMode = SavingsMode.FIXED
    savings_percentage: Optional[float] = None
    linked_income_id: Optional[UUID] = None

    @model_validator(mode='after')
    def percentage_fields_only_for_savings(self) -> 'TransactionDraft':
        if self.kind != TransactionKind.SAVING and self.mode == SavingsMode.PERCENTAGE:
            raise ValueError("Only savings can be percentage based")
        return self


class PreviousMonthEnd(BaseModel):
    """Projected end balance of the month before a given month."""

    exists: bool
    projected_end_cents: Optional[int] = None
