"""
Streamlit Frontend for Budgetbook

Two views over the same flows the tests exercise:
1. Month view: ordered transactions with paid toggles, the running
   "in the bank" balance and the projected balance after every line
2. Yearly plan: the six-section worksheet with its totals and the
   income breakdown ladder

DESIGN PRINCIPLES:
1. Money is entered as text and stored as integer cents
2. Anything that cannot be computed shows a placeholder, never $0
3. Clear error messages in simple language
"""

import asyncio
from datetime import date
from typing import Optional
from uuid import NAMESPACE_URL, UUID, uuid5

import streamlit as st

from budgetbook.config import get_settings, validate_all_settings
from budgetbook.engine.dates import format_month_display, next_month
from budgetbook.engine.money import format_cents, percent_of_income, to_cents
from budgetbook.engine.yearly import calculate_savings_monthly, item_monthly_cents
from budgetbook.flows import MonthlyBudgetFlow, YearlyPlanFlow
from budgetbook.models import (
    MONTH_NAMES,
    SECTION_DEFS,
    Frequency,
    LineItemDraft,
    MonthPatch,
    SavingsMode,
    SectionKey,
    TransactionDraft,
    TransactionKind,
)
from budgetbook.orchestrator import create_app_components
from budgetbook.services.storage import StorageError
from budgetbook.validation import ReorderRejectedError, TransactionValidationError


# Page configuration
st.set_page_config(
    page_title="Budgetbook",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    return create_app_components()


def owner_id() -> UUID:
    """Single local user; the id is stable across restarts."""
    if "owner_id" not in st.session_state:
        st.session_state.owner_id = uuid5(NAMESPACE_URL, "budgetbook:local")
    return st.session_state.owner_id


def money(cents: Optional[int], currency: str = "USD") -> str:
    if cents is None:
        return get_settings().budget.placeholder_glyph
    return format_cents(cents, currency)


def main():
    """Main application entry point."""
    monthly_flow, yearly_flow, _ = get_components()

    st.sidebar.title("💰 Budgetbook")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📅 Month", "📈 Yearly Plan", "⚙️ Settings"],
        index=0,
    )

    if page == "📅 Month":
        render_month_page(monthly_flow)
    elif page == "📈 Yearly Plan":
        render_yearly_page(yearly_flow)
    elif page == "⚙️ Settings":
        render_settings_page()


# =============================================================================
# MONTH VIEW
# =============================================================================

def render_month_page(flow: MonthlyBudgetFlow):
    """Render the month view."""
    st.title("📅 Month")
    owner = owner_id()
    today = date.today()

    col1, col2 = st.columns(2)
    with col1:
        month_index = st.selectbox(
            "Month",
            range(12),
            index=today.month - 1,
            format_func=lambda i: MONTH_NAMES[i],
        )
    with col2:
        year = int(st.number_input("Year", min_value=1900, max_value=9999, value=today.year))

    months = run_async(flow.list_months(owner))
    month = next((m for m in months if m.key == (year, month_index)), None)

    if month is None:
        render_create_month(flow, owner, year, month_index)
        return

    overview = run_async(flow.month_overview(owner, month.id))
    currency = overview.month.currency
    balances = overview.balances

    m1, m2, m3 = st.columns(3)
    m1.metric("Starting balance", money(balances.starting_balance_cents, currency))
    m2.metric("In the bank now", money(balances.current_bank_balance_cents, currency))
    m3.metric("Projected end", money(balances.projected_end_balance_cents, currency))

    render_month_settings(flow, owner, overview)

    st.markdown("---")
    st.subheader("Transactions")

    if not overview.is_due_date_sorted:
        if st.button("Sort by due date"):
            run_async(flow.sort_by_due_date(owner, month.id))
            st.rerun()

    if not balances.resolved:
        st.info("No transactions yet. Add your first one below.")

    for row in balances.resolved:
        tx = row.transaction
        c_paid, c_day, c_label, c_amount, c_after, c_delete = st.columns([1, 1, 4, 2, 2, 1])
        with c_paid:
            paid = st.checkbox("Paid", value=tx.is_paid, key=f"paid-{tx.id}", label_visibility="collapsed")
            if paid != tx.is_paid:
                run_async(flow.toggle_paid(owner, tx.id))
                st.rerun()
        c_day.write(tx.date or get_settings().budget.placeholder_glyph)
        label = tx.label
        if tx.is_percentage_saving:
            label = f"{label} ({tx.savings_percentage or 0:g}%)"
        c_label.write(label)
        c_amount.write(money(row.delta_cents, currency))
        c_after.write(money(balances.projected_balances.get(tx.id), currency))
        with c_delete:
            if st.button("🗑️", key=f"delete-{tx.id}"):
                run_async(flow.delete_transaction(owner, tx.id))
                st.rerun()

    render_add_transaction(flow, owner, month.id, overview.transactions)
    render_copy_month(flow, owner, month)


def render_create_month(flow: MonthlyBudgetFlow, owner: UUID, year: int, month_index: int):
    st.info(f"{MONTH_NAMES[month_index]} {year} has not been started yet.")
    previous = run_async(flow.previous_month_projected_end(owner, year, month_index))

    with st.form("create-month"):
        use_previous = st.checkbox(
            "Start from last month's projected end",
            value=previous.exists,
            disabled=not previous.exists,
        )
        starting = st.text_input("Starting balance", value="0.00")
        if st.form_submit_button("Start month", type="primary"):
            try:
                run_async(flow.create_month(
                    owner,
                    year,
                    month_index,
                    starting_balance_cents=to_cents(starting),
                    use_previous_month_end=use_previous,
                ))
                st.rerun()
            except StorageError as e:
                st.error(f"Could not create the month: {e}")


def render_month_settings(flow: MonthlyBudgetFlow, owner: UUID, overview):
    month = overview.month
    with st.expander("Month settings"):
        inherit = st.checkbox(
            "Use last month's projected end as my starting balance",
            value=month.use_previous_month_end,
            disabled=not overview.previous_month.exists,
        )
        starting = st.text_input(
            "Starting balance",
            value=f"{month.starting_balance_cents / 100:.2f}",
            disabled=inherit,
        )
        if st.button("Save month settings"):
            if inherit:
                patch = MonthPatch(use_previous_month_end=True)
            else:
                patch = MonthPatch(starting_balance_cents=to_cents(starting))
            run_async(flow.update_month_meta(owner, month.id, patch))
            st.rerun()


def render_add_transaction(flow: MonthlyBudgetFlow, owner: UUID, month_id: UUID, transactions):
    incomes = [tx for tx in transactions if tx.kind == TransactionKind.INCOME]

    with st.expander("➕ Add transaction"):
        with st.form("add-transaction", clear_on_submit=True):
            label = st.text_input("Label")
            kind = st.selectbox("Type", list(TransactionKind), format_func=lambda k: k.value.title())
            amount = st.text_input("Amount", value="0.00")
            day = st.text_input("Day of month", help="Leave blank if it has no fixed day")
            recurring = st.checkbox("Repeats every month")
            percentage_mode = st.checkbox("Savings: a percentage of an income")
            pct = st.number_input("Percentage", min_value=0.0, max_value=100.0, value=10.0)
            income = st.selectbox(
                "Income",
                [None] + incomes,
                format_func=lambda tx: "—" if tx is None else tx.label,
            )

            if st.form_submit_button("Add", type="primary"):
                use_pct = percentage_mode and kind == TransactionKind.SAVING
                try:
                    draft = TransactionDraft(
                        label=label,
                        kind=kind,
                        amount_cents=0 if use_pct else max(to_cents(amount), 0),
                        date=day,
                        is_recurring=recurring,
                        mode=SavingsMode.PERCENTAGE if use_pct else SavingsMode.FIXED,
                        savings_percentage=pct if use_pct else None,
                        linked_income_id=income.id if use_pct and income else None,
                    )
                    run_async(flow.create_transaction(owner, month_id, draft))
                    st.rerun()
                except TransactionValidationError as e:
                    for message in e.result.messages():
                        st.error(message)
                except ValueError as e:
                    st.error(f"Please check the details: {e}")


def render_copy_month(flow: MonthlyBudgetFlow, owner: UUID, month):
    target_year, target_index = next_month(month.year, month.month_index)
    with st.expander(f"Copy to {MONTH_NAMES[target_index]} {target_year}"):
        recurring_only = st.checkbox("Only recurring transactions")
        if recurring_only:
            keep_slots = st.checkbox("Keep other rows with a $0 amount")
        else:
            include_days = st.checkbox("Keep days", value=True)
            include_amounts = st.checkbox("Keep amounts", value=True)

        if st.button("Copy"):
            if recurring_only:
                run_async(flow.clone_month_with_recurring(
                    owner,
                    month.id,
                    target_year,
                    target_index,
                    copy_non_recurring_as_zero=keep_slots,
                ))
            else:
                run_async(flow.copy_from_month(
                    owner,
                    month.id,
                    target_year,
                    target_index,
                    include_days=include_days,
                    include_amounts=include_amounts,
                ))
            st.success("Copied.")


# =============================================================================
# YEARLY PLAN
# =============================================================================

def render_yearly_page(flow: YearlyPlanFlow):
    """Render the yearly worksheet."""
    st.title("📈 Yearly Plan")
    owner = owner_id()

    years = run_async(flow.list_years_with_data(owner))
    year = int(st.number_input(
        "Year",
        min_value=1900,
        max_value=9999,
        value=years[0] if years else date.today().year,
    ))

    data = run_async(flow.list_for_year(owner, year))
    if not data.all_items() and not data.subsections and years:
        render_copy_year(flow, owner, years, year)

    summary = run_async(flow.year_summary(owner, year))
    totals = summary.totals
    breakdown = summary.breakdown

    st.subheader("Income breakdown")
    ladder = [
        ("Monthly income", breakdown.total_income_monthly),
        ("After monthly bills", breakdown.after_monthly_bills),
        ("After non-monthly bills", breakdown.after_non_monthly_bills),
        ("After debt", breakdown.after_debt),
        ("After savings", breakdown.after_savings),
        ("After investments", breakdown.after_investments),
    ]
    for name, cents in ladder:
        pct = percent_of_income(cents, breakdown.total_income_monthly)
        st.write(f"**{name}:** {money(cents)} ({pct:.2f}%)")
    st.caption(f"Each paycheck (twice a month): {money(totals.income_each_paycheck_display)}")

    for section_key, title in SECTION_DEFS:
        render_section(flow, owner, year, section_key, title, data)


def render_section(flow: YearlyPlanFlow, owner: UUID, year: int, section_key: SectionKey, title: str, data):
    st.markdown("---")
    st.subheader(title)

    for item in data.section_items:
        if item.section_key == section_key:
            render_line_item(item)

    if section_key != SectionKey.INCOME:
        for group in data.subsections:
            if group.subsection.section_key != section_key:
                continue
            with st.expander(group.subsection.title, expanded=True):
                for item in group.items:
                    render_line_item(item)
                if st.button("Remove subsection", key=f"remove-sub-{group.subsection.id}"):
                    run_async(flow.remove_subsection(owner, group.subsection.id))
                    st.rerun()

        with st.form(f"add-sub-{section_key.value}", clear_on_submit=True):
            sub_title = st.text_input("New subsection")
            if st.form_submit_button("Add subsection") and sub_title:
                run_async(flow.create_subsection(owner, year, section_key, sub_title))
                st.rerun()

    subsections = [g.subsection for g in data.subsections if g.subsection.section_key == section_key]
    with st.form(f"add-item-{section_key.value}", clear_on_submit=True):
        label = st.text_input("Label", key=f"{section_key.value}-label")
        amount = st.text_input("Monthly amount", value="0.00", key=f"{section_key.value}-amount")
        target = None
        if subsections:
            target = st.selectbox(
                "Subsection",
                [None] + subsections,
                key=f"{section_key.value}-subsection",
                format_func=lambda sub: "(section)" if sub is None else sub.title,
            )
        extra = render_section_fields(section_key)
        if st.form_submit_button("Add item") and label:
            try:
                draft = LineItemDraft(label=label, amount_cents=max(to_cents(amount), 0), **extra)
                run_async(flow.create_line_item(
                    owner, year, section_key, draft, target.id if target else None
                ))
                st.rerun()
            except (ValueError, ReorderRejectedError) as e:
                st.error(f"Could not add the item: {e}")


def _text(label: str, fields: dict, name: str, section_key: SectionKey) -> None:
    value = st.text_input(label, key=f"{section_key.value}-{name}").strip()
    if value:
        fields[name] = value


def _cents(label: str, fields: dict, name: str, section_key: SectionKey) -> None:
    value = st.text_input(label, key=f"{section_key.value}-{name}").strip()
    if value:
        fields[name] = max(to_cents(value), 0)


def render_section_fields(section_key: SectionKey) -> dict:
    """Inputs for the columns only this section has. Blank inputs are left unset."""
    fields: dict = {}
    if section_key in (SectionKey.INCOME, SectionKey.INVESTMENTS):
        _text("Payment day", fields, "payment_day", section_key)
    if section_key in (SectionKey.MONTHLY_BILLS, SectionKey.NON_MONTHLY_BILLS, SectionKey.DEBT):
        _text("Due date", fields, "due_date", section_key)
    if section_key not in (SectionKey.INCOME, SectionKey.SAVINGS):
        _text("Paid from", fields, "payment_source", section_key)

    if section_key == SectionKey.NON_MONTHLY_BILLS:
        fields["frequency"] = st.selectbox(
            "Frequency",
            list(Frequency),
            key=f"{section_key.value}-frequency",
            format_func=lambda f: f.value.capitalize(),
        )
        _cents("Amount per payment", fields, "original_amount_cents", section_key)
    elif section_key == SectionKey.DEBT:
        _cents("Balance owed", fields, "balance_cents", section_key)
        rate = st.number_input(
            "Interest rate (%)", min_value=0.0, max_value=100.0, value=0.0, key="debt-interest-rate"
        )
        if rate:
            fields["interest_rate"] = rate
    elif section_key == SectionKey.SAVINGS:
        _cents("Goal amount", fields, "goal_amount_cents", section_key)
        _cents("Saved so far", fields, "current_amount_cents", section_key)
        _text("Start month (e.g. Jan 2026)", fields, "start_month", section_key)
        _text("End month (e.g. Dec 2026)", fields, "end_month", section_key)
    return fields


def render_line_item(item):
    c_label, c_detail, c_monthly = st.columns([4, 3, 2])
    c_label.write(item.label)
    if item.section_key == SectionKey.SAVINGS:
        c_detail.write(
            f"{format_month_display(item.start_month)} → {format_month_display(item.end_month)}"
        )
        c_monthly.write(money(calculate_savings_monthly(item)))
    else:
        c_detail.write(item.note or "")
        c_monthly.write(money(item_monthly_cents(item)))


def render_copy_year(flow: YearlyPlanFlow, owner: UUID, years: list[int], year: int):
    sources = [y for y in years if y != year]
    if not sources:
        return
    with st.expander(f"Start {year} from another year"):
        source = st.selectbox("Copy from", sources)
        if st.button("Copy year"):
            try:
                run_async(flow.copy_from_year(owner, source, year))
                st.rerun()
            except (StorageError, ValueError) as e:
                st.error(str(e))


# =============================================================================
# SETTINGS
# =============================================================================

def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()
    backend = get_settings().storage.backend
    st.write(f"Storage backend: **{backend}**")

    checks = [("Budget defaults", "budget"), ("Storage", "storage"), ("Logging", "logging")]
    if backend == "google_sheets":
        checks.append(("Google Sheets (Storage)", "google_sheets"))

    for name, key in checks:
        if status.get(key, False):
            st.success(f"✅ {name} - OK")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()
