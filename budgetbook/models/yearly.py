"""
Yearly Planning Worksheet Models

The worksheet has six sections. Every section except income can be
split into named subsections. Each section stores different facts
about its rows, so line items are a tagged union keyed on
`section_key` rather than one flat model with every field optional.

DESIGN DECISION: extra="forbid" on every variant. An `interest_rate`
on an income row, or a `subsection_id` on an income row, is a
validation error instead of silently stored noise.
"""

from enum import Enum
from types import MappingProxyType
from typing import Annotated, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


# =============================================================================
# ENUMS & STATIC LOOKUP DATA
# =============================================================================

class SectionKey(str, Enum):
    """The six worksheet sections, in display order."""
    INCOME = "income"
    MONTHLY_BILLS = "monthlyBills"
    NON_MONTHLY_BILLS = "nonMonthlyBills"
    DEBT = "debt"
    SAVINGS = "savings"
    INVESTMENTS = "investments"


class Frequency(str, Enum):
    """How often a non-monthly bill is paid."""
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    BIANNUAL = "biannual"
    ANNUAL = "annual"
    IRREGULAR = "irregular"  # no monthly equivalent exists


class GoalAmountType(str, Enum):
    """How the user chose a savings goal."""
    CUSTOM = "custom"
    SIX_MONTHS = "6months"
    TWELVE_MONTHS = "12months"


SECTION_DEFS: tuple[tuple[SectionKey, str], ...] = (
    (SectionKey.INCOME, "Income Summary"),
    (SectionKey.MONTHLY_BILLS, "Monthly Bills"),
    (SectionKey.NON_MONTHLY_BILLS, "Non-Monthly Bills"),
    (SectionKey.DEBT, "Debt"),
    (SectionKey.SAVINGS, "Savings"),
    (SectionKey.INVESTMENTS, "Investments"),
)

SECTION_TITLES = MappingProxyType(dict(SECTION_DEFS))

# Income is rendered as a flat list
SUBSECTION_SECTION_KEYS: frozenset[SectionKey] = frozenset(
    key for key, _ in SECTION_DEFS if key != SectionKey.INCOME
)


# =============================================================================
# LINE ITEM VARIANTS
# =============================================================================

class _LineItemBase(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    owner_id: UUID
    year: int = Field(..., ge=1900, le=9999)
    label: str = Field(..., min_length=1, max_length=200)
    amount_cents: int = Field(default=0, ge=0)
    order: int = Field(default=0, ge=0)
    note: Optional[str] = Field(default=None, max_length=1000)

    @property
    def container_id(self) -> Optional[UUID]:
        """Subsection the row lives in; None means the section itself."""
        return getattr(self, "subsection_id", None)


class IncomeItem(_LineItemBase):
    """Take-home income. `amount_cents` is per month."""
    section_key: Literal["income"] = "income"
    payment_day: Optional[str] = Field(default=None, max_length=20)


class MonthlyBillItem(_LineItemBase):
    """A bill paid every month. `amount_cents` is per month."""
    section_key: Literal["monthlyBills"] = "monthlyBills"
    subsection_id: Optional[UUID] = None
    due_date: Optional[str] = Field(default=None, max_length=20)
    payment_source: Optional[str] = Field(default=None, max_length=100)


class NonMonthlyBillItem(_LineItemBase):
    """
    A bill paid on some other schedule.

    `original_amount_cents` is the amount billed per period (per
    quarter, half-year or year). When absent, `amount_cents` is used.
    """
    section_key: Literal["nonMonthlyBills"] = "nonMonthlyBills"
    subsection_id: Optional[UUID] = None
    due_date: Optional[str] = Field(default=None, max_length=20)
    payment_source: Optional[str] = Field(default=None, max_length=100)
    frequency: Optional[Frequency] = None
    original_amount_cents: Optional[int] = Field(default=None, ge=0)


class DebtItem(_LineItemBase):
    """A debt. `amount_cents` is the monthly payment."""
    section_key: Literal["debt"] = "debt"
    subsection_id: Optional[UUID] = None
    due_date: Optional[str] = Field(default=None, max_length=20)
    payment_source: Optional[str] = Field(default=None, max_length=100)
    balance_cents: Optional[int] = Field(default=None, ge=0)
    interest_rate: Optional[float] = Field(default=None, ge=0, le=100)


class SavingsItem(_LineItemBase):
    """
    A savings goal.

    The monthly contribution is derived from goal, current amount and
    the inclusive month span, never stored.
    """
    section_key: Literal["savings"] = "savings"
    subsection_id: Optional[UUID] = None
    goal_amount_cents: Optional[int] = Field(default=None, ge=0)
    goal_amount_type: Optional[GoalAmountType] = None
    current_amount_cents: Optional[int] = Field(default=None, ge=0)
    start_month: Optional[str] = Field(default=None, max_length=30)
    end_month: Optional[str] = Field(default=None, max_length=30)


class InvestmentItem(_LineItemBase):
    """A recurring investment. `amount_cents` is per month."""
    section_key: Literal["investments"] = "investments"
    subsection_id: Optional[UUID] = None
    payment_source: Optional[str] = Field(default=None, max_length=100)
    payment_day: Optional[str] = Field(default=None, max_length=20)


YearlyLineItem = Annotated[
    Union[
        IncomeItem,
        MonthlyBillItem,
        NonMonthlyBillItem,
        DebtItem,
        SavingsItem,
        InvestmentItem,
    ],
    Field(discriminator="section_key"),
]

LINE_ITEM_ADAPTER: TypeAdapter = TypeAdapter(YearlyLineItem)


def parse_line_item(data: dict) -> YearlyLineItem:
    """Build the right variant from a raw dict (raises pydantic.ValidationError)."""
    return LINE_ITEM_ADAPTER.validate_python(data)


# =============================================================================
# SUBSECTIONS & PATCHES
# =============================================================================

class YearlySubsection(BaseModel):
    """A named group of line items inside one section."""
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    owner_id: UUID
    year: int = Field(..., ge=1900, le=9999)
    section_key: SectionKey
    title: str = Field(..., min_length=1, max_length=200)
    order: int = Field(default=0, ge=0)

    @field_validator('section_key')
    @classmethod
    def not_income(cls, v: SectionKey) -> SectionKey:
        if v == SectionKey.INCOME:
            raise ValueError("Income does not support subsections")
        return v


class LineItemDraft(BaseModel):
    """
    Input for creating or patching a line item.

    Carries the union of every section's fields; the target variant
    rejects whatever does not belong to it.
    """
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    label: Optional[str] = None
    amount_cents: Optional[int] = None
    note: Optional[str] = None
    payment_source: Optional[str] = None
    due_date: Optional[str] = None
    frequency: Optional[Frequency] = None
    original_amount_cents: Optional[int] = None
    balance_cents: Optional[int] = None
    interest_rate: Optional[float] = None
    goal_amount_cents: Optional[int] = None
    goal_amount_type: Optional[GoalAmountType] = None
    current_amount_cents: Optional[int] = None
    start_month: Optional[str] = None
    end_month: Optional[str] = None
    payment_day: Optional[str] = None

    def fields_set(self) -> dict:
        return self.model_dump(exclude_unset=True)


def apply_line_item_patch(item: YearlyLineItem, patch: LineItemDraft) -> YearlyLineItem:
    """
    Return a re-validated copy of `item` with `patch` applied.

    Raises pydantic.ValidationError when the patch sets a field the
    item's section does not have.
    """
    data = item.model_dump()
    data.update(patch.fields_set())
    return type(item).model_validate(data)


class SubsectionWithItems(BaseModel):
    """A subsection plus its ordered line items."""

    subsection: YearlySubsection
    items: list[YearlyLineItem] = Field(default_factory=list)


class YearData(BaseModel):
    """Everything on one year's worksheet, grouped and ordered."""

    subsections: list[SubsectionWithItems] = Field(default_factory=list)
    section_items: list[YearlyLineItem] = Field(default_factory=list)

    def all_items(self) -> list[YearlyLineItem]:
        items = list(self.section_items)
        for group in self.subsections:
            items.extend(group.items)
        return items
