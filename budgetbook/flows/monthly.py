"""
Monthly Budget Flow

Ties month and transaction storage to the balance engine.

DESIGN DECISION: The flow owns every rule that needs storage:
- Ownership: every lookup goes through the owner's rows, and a row
  owned by someone else is reported exactly like a missing row
- Ordering: reorders are validated in full before anything is written
- Inheritance: a month that uses the previous month's end re-syncs
  its starting balance whenever it is viewed

The engines stay pure; this module loads rows, calls them and
writes the results back.
"""

from typing import Optional
from uuid import UUID

from budgetbook.config import BudgetSettings, get_settings
from budgetbook.engine.balances import calculate_balances, projected_end_balance
from budgetbook.engine.dates import previous_month
from budgetbook.engine.money import percentage_of
from budgetbook.engine.ordering import (
    is_due_date_sorted,
    plan_insertion,
    renumber,
    sort_by_due_date_updates,
)
from budgetbook.engine.rollover import (
    clone_recurring_transactions,
    copy_transactions_for_month,
)
from budgetbook.log_config import get_logger
from budgetbook.models.monthly import (
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
from budgetbook.models.results import MonthOverview
from budgetbook.services.storage import (
    MonthStorageInterface,
    NotFoundError,
    TransactionStorageInterface,
)
from budgetbook.validation import (
    ReorderRejectedError,
    TransactionValidationError,
    TransactionValidator,
    check_transaction_reorder,
)

logger = get_logger(__name__)


def _with_cached_amount(tx: Transaction, month_rows: list[Transaction]) -> Transaction:
    """Refresh the stored amount of a percentage saving from its income."""
    if not tx.is_percentage_saving:
        return tx
    income_cents = 0
    for row in month_rows:
        if row.id == tx.linked_income_id and row.kind == TransactionKind.INCOME:
            income_cents = row.amount_cents
            break
    amount = percentage_of(income_cents, tx.savings_percentage or 0)
    return tx.model_copy(update={"amount_cents": amount})


class MonthlyBudgetFlow:
    """
    Month and transaction operations for one storage backend.

    All methods take the acting `owner_id` explicitly.
    """

    def __init__(
        self,
        month_storage: MonthStorageInterface,
        transaction_storage: TransactionStorageInterface,
        validator: Optional[TransactionValidator] = None,
        settings: Optional[BudgetSettings] = None,
    ):
        self._months = month_storage
        self._transactions = transaction_storage
        self._validator = validator or TransactionValidator()
        self._settings = settings or get_settings().budget

    # =========================================================================
    # MONTHS
    # =========================================================================

    async def get_month(self, owner_id: UUID, month_id: UUID) -> Month:
        """
        Raises:
            NotFoundError: If the month is missing or not the owner's
        """
        month = await self._months.get_month(owner_id, month_id)
        if month is None:
            raise NotFoundError("Month not found")
        return month

    async def list_months(self, owner_id: UUID) -> list[Month]:
        return await self._months.list_months(owner_id)

    async def create_month(
        self,
        owner_id: UUID,
        year: int,
        month_index: int,
        starting_balance_cents: int = 0,
        name: Optional[str] = None,
        currency: Optional[str] = None,
        use_previous_month_end: bool = False,
    ) -> Month:
        """
        Create a month explicitly.

        With `use_previous_month_end`, the starting balance is taken
        from the previous month's projected end (0 when there is none).

        Raises:
            DuplicateError: If the owner already has this month
        """
        if use_previous_month_end:
            previous = await self.previous_month_projected_end(owner_id, year, month_index)
            starting_balance_cents = previous.projected_end_cents or 0

        month = Month(
            owner_id=owner_id,
            name=name or month_label(year, month_index),
            year=year,
            month_index=month_index,
            starting_balance_cents=starting_balance_cents,
            currency=currency or self._settings.default_currency,
            use_previous_month_end=use_previous_month_end,
        )
        saved = await self._months.save_month(month)
        logger.info(
            "month_created",
            month_id=str(saved.id),
            year=year,
            month_index=month_index,
        )
        return saved

    async def ensure_month(
        self,
        owner_id: UUID,
        year: int,
        month_index: int,
        starting_balance_cents: int = 0,
        name: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> Month:
        """Return the owner's month at (year, month_index), creating it if needed."""
        existing = await self._months.find_month(owner_id, year, month_index)
        if existing is not None:
            return existing
        return await self.create_month(
            owner_id,
            year,
            month_index,
            starting_balance_cents=starting_balance_cents,
            name=name,
            currency=currency,
        )

    async def previous_month_projected_end(
        self,
        owner_id: UUID,
        year: int,
        month_index: int,
    ) -> PreviousMonthEnd:
        """Projected end of the month before (year, month_index), across years."""
        prev_year, prev_index = previous_month(year, month_index)
        prev = await self._months.find_month(owner_id, prev_year, prev_index)
        if prev is None:
            return PreviousMonthEnd(exists=False)
        rows = await self._transactions.list_for_month(owner_id, prev.id)
        return PreviousMonthEnd(
            exists=True,
            projected_end_cents=projected_end_balance(rows, prev.starting_balance_cents),
        )

    async def update_month_meta(self, owner_id: UUID, month_id: UUID, patch: MonthPatch) -> Month:
        """
        Rename a month or change where its starting balance comes from.

        - A manual starting balance switches inheritance off
        - Switching inheritance on copies the previous month's projected
          end (or 0 when there is no previous month)
        """
        month = await self.get_month(owner_id, month_id)
        changes = patch.model_dump(exclude_unset=True)
        update: dict = {}

        if changes.get("name") is not None:
            update["name"] = changes["name"]

        if changes.get("use_previous_month_end") is True:
            previous = await self.previous_month_projected_end(
                owner_id, month.year, month.month_index
            )
            update["use_previous_month_end"] = True
            update["starting_balance_cents"] = previous.projected_end_cents or 0
        else:
            if changes.get("starting_balance_cents") is not None:
                update["starting_balance_cents"] = changes["starting_balance_cents"]
                update["use_previous_month_end"] = False
            if changes.get("use_previous_month_end") is False:
                update["use_previous_month_end"] = False

        if not update:
            return month

        updated = await self._months.update_month(month.model_copy(update=update))
        logger.info("month_updated", month_id=str(month_id), fields=sorted(update))
        return updated

    async def month_overview(self, owner_id: UUID, month_id: UUID) -> MonthOverview:
        """
        Balances and ordering state for the month view.

        An inheriting month whose starting balance has drifted from the
        previous month's projected end is re-synced first.
        """
        month = await self.get_month(owner_id, month_id)
        previous = await self.previous_month_projected_end(owner_id, month.year, month.month_index)

        if (
            month.use_previous_month_end
            and previous.exists
            and previous.projected_end_cents != month.starting_balance_cents
        ):
            month = await self._months.update_month(
                month.model_copy(update={"starting_balance_cents": previous.projected_end_cents})
            )
            logger.info(
                "starting_balance_resynced",
                month_id=str(month_id),
                starting_balance_cents=month.starting_balance_cents,
            )

        rows = await self._transactions.list_for_month(owner_id, month.id)
        return MonthOverview(
            month=month,
            balances=calculate_balances(rows, month.starting_balance_cents),
            previous_month=previous,
            is_due_date_sorted=is_due_date_sorted(rows, self._settings.missing_day_sort_key),
        )

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    async def _get_transaction(self, owner_id: UUID, transaction_id: UUID) -> Transaction:
        tx = await self._transactions.get_transaction(owner_id, transaction_id)
        if tx is None:
            raise NotFoundError("Transaction not found")
        return tx

    async def list_transactions(self, owner_id: UUID, month_id: UUID) -> list[Transaction]:
        await self.get_month(owner_id, month_id)
        return await self._transactions.list_for_month(owner_id, month_id)

    async def create_transaction(
        self,
        owner_id: UUID,
        month_id: UUID,
        draft: TransactionDraft,
    ) -> Transaction:
        """
        Add a transaction to an existing month. New rows start unpaid.

        Without an explicit order the row is placed by due date, or
        directly below its linked income for a percentage saving.

        Raises:
            NotFoundError: If the month is missing or not the owner's
            TransactionValidationError: If the savings config is invalid
        """
        await self.get_month(owner_id, month_id)
        rows = await self._transactions.list_for_month(owner_id, month_id)

        fields = draft.model_dump(exclude={"order"})
        tx = Transaction(month_id=month_id, owner_id=owner_id, is_paid=False, **fields)
        self._check(tx, rows)

        if draft.order is not None:
            order = draft.order
        else:
            plan = plan_insertion(
                rows,
                tx.date,
                tx.kind,
                linked_income_id=tx.linked_income_id,
                missing=self._settings.missing_day_sort_key,
            )
            if plan.renumbered:
                await self._transactions.apply_orders(owner_id, plan.renumbered)
                logger.info(
                    "transactions_renormalized",
                    month_id=str(month_id),
                    count=len(plan.renumbered),
                )
            order = plan.order

        tx = _with_cached_amount(tx.model_copy(update={"order": order}), rows)
        [saved] = await self._transactions.save_transactions([tx])
        logger.info(
            "transaction_created",
            transaction_id=str(saved.id),
            month_id=str(month_id),
            kind=saved.kind.value,
        )
        return saved

    async def add_transaction(
        self,
        owner_id: UUID,
        year: int,
        month_index: int,
        draft: TransactionDraft,
    ) -> Transaction:
        """Create a transaction, creating its month first when needed."""
        month = await self.ensure_month(owner_id, year, month_index)
        return await self.create_transaction(owner_id, month.id, draft)

    async def update_transaction(
        self,
        owner_id: UUID,
        transaction_id: UUID,
        patch: TransactionPatch,
    ) -> Transaction:
        """
        Apply only the fields set on `patch`.

        Raises:
            NotFoundError: If the transaction is missing or not the owner's
            TransactionValidationError: If the result is invalid
        """
        tx = await self._get_transaction(owner_id, transaction_id)
        data = tx.model_dump()
        data.update(patch.model_dump(exclude_unset=True))
        candidate = Transaction.model_validate(data)

        rows = await self._transactions.list_for_month(owner_id, tx.month_id)
        others = [row for row in rows if row.id != tx.id]
        self._check(candidate, others)

        updated = await self._transactions.update_transaction(_with_cached_amount(candidate, others))
        logger.info(
            "transaction_updated",
            transaction_id=str(transaction_id),
            fields=sorted(patch.model_fields_set),
        )
        return updated

    async def toggle_paid(self, owner_id: UUID, transaction_id: UUID) -> Transaction:
        tx = await self._get_transaction(owner_id, transaction_id)
        updated = await self._transactions.update_transaction(
            tx.model_copy(update={"is_paid": not tx.is_paid})
        )
        logger.info("transaction_paid_toggled", transaction_id=str(transaction_id), is_paid=updated.is_paid)
        return updated

    async def update_savings_config(
        self,
        owner_id: UUID,
        transaction_id: UUID,
        mode: SavingsMode,
        savings_percentage: Optional[float] = None,
        linked_income_id: Optional[UUID] = None,
    ) -> Transaction:
        """Replace mode, percentage and link together (None clears them)."""
        patch = TransactionPatch(
            mode=mode,
            savings_percentage=savings_percentage,
            linked_income_id=linked_income_id,
        )
        return await self.update_transaction(owner_id, transaction_id, patch)

    async def delete_transaction(self, owner_id: UUID, transaction_id: UUID) -> None:
        """
        Raises:
            NotFoundError: If the transaction is missing or not the owner's
        """
        deleted = await self._transactions.delete_transaction(owner_id, transaction_id)
        if not deleted:
            raise NotFoundError("Transaction not found")
        logger.info("transaction_deleted", transaction_id=str(transaction_id))

    async def reorder(self, owner_id: UUID, month_id: UUID, ordered_ids: list[UUID]) -> None:
        """
        Give the month's transactions the orders 0..n-1 in list order.

        Raises:
            ReorderRejectedError: If any id is foreign to the month (nothing is written)
        """
        rows = await self.list_transactions(owner_id, month_id)
        try:
            check_transaction_reorder(ordered_ids, rows)
        except ReorderRejectedError as e:
            logger.warning("reorder_rejected", month_id=str(month_id), reason=str(e))
            raise
        await self._transactions.apply_orders(owner_id, renumber(ordered_ids))
        logger.info("transactions_reordered", month_id=str(month_id), count=len(ordered_ids))

    async def sort_by_due_date(self, owner_id: UUID, month_id: UUID) -> int:
        """Reorder by day of month. Returns how many rows moved."""
        rows = await self.list_transactions(owner_id, month_id)
        updates = sort_by_due_date_updates(rows, self._settings.missing_day_sort_key)
        if updates:
            await self._transactions.apply_orders(owner_id, updates)
        logger.info("transactions_sorted_by_due_date", month_id=str(month_id), changed=len(updates))
        return len(updates)

    def _check(self, tx: Transaction, month_rows: list[Transaction]) -> None:
        try:
            self._validator.check(tx, month_rows)
        except TransactionValidationError as e:
            logger.warning(
                "transaction_rejected",
                month_id=str(tx.month_id),
                errors=e.result.messages(),
            )
            raise

    # =========================================================================
    # ROLLOVER
    # =========================================================================

    async def _append_to_month(self, owner_id: UUID, target: Month, rows: list[Transaction]) -> list[Transaction]:
        """Save copied rows after whatever the target month already holds."""
        existing = await self._transactions.list_for_month(owner_id, target.id)
        if existing and rows:
            offset = max(tx.order for tx in existing) + 1 - min(tx.order for tx in rows)
            rows = [tx.model_copy(update={"order": tx.order + offset}) for tx in rows]
        return await self._transactions.save_transactions(rows)

    async def copy_from_month(
        self,
        owner_id: UUID,
        source_month_id: UUID,
        target_year: int,
        target_month_index: int,
        include_days: bool = True,
        include_amounts: bool = True,
    ) -> Month:
        """
        Copy every transaction of a month into another month.

        A missing target is created with a zero starting balance and the
        source's currency. An existing target keeps its rows and gets the
        copies appended.
        """
        source = await self.get_month(owner_id, source_month_id)
        target = await self.ensure_month(
            owner_id,
            target_year,
            target_month_index,
            currency=source.currency,
        )
        rows = await self._transactions.list_for_month(owner_id, source.id)
        copies = copy_transactions_for_month(
            rows,
            target.id,
            target_year,
            target_month_index,
            include_days=include_days,
            include_amounts=include_amounts,
        )
        await self._append_to_month(owner_id, target, copies)
        logger.info(
            "month_copied",
            source_month_id=str(source.id),
            target_month_id=str(target.id),
            count=len(copies),
        )
        return target

    async def clone_month_with_recurring(
        self,
        owner_id: UUID,
        source_month_id: UUID,
        target_year: int,
        target_month_index: int,
        starting_balance_cents: int = 0,
        copy_non_recurring_as_zero: bool = False,
    ) -> Month:
        """
        Start a month from another month's recurring transactions.

        A missing target is created with the given starting balance, the
        source's currency and the target month's own name.
        """
        source = await self.get_month(owner_id, source_month_id)
        target = await self.ensure_month(
            owner_id,
            target_year,
            target_month_index,
            starting_balance_cents=starting_balance_cents,
            currency=source.currency,
        )
        rows = await self._transactions.list_for_month(owner_id, source.id)
        clones = clone_recurring_transactions(rows, target.id, copy_non_recurring_as_zero)
        await self._append_to_month(owner_id, target, clones)
        logger.info(
            "month_cloned",
            source_month_id=str(source.id),
            target_month_id=str(target.id),
            count=len(clones),
        )
        return target
