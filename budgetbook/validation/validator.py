"""
Validation

TRANSACTION VALIDATION happens in two distinct stages:

STAGE 1 - FIELD VALIDATION:
- Percentage savings carry a percentage between 0 and 100
- Only savings may be percentage based

STAGE 2 - MONTH VALIDATION:
- A percentage saving's link points at an income in the same month
- This needs the month's other transactions, so it runs second

ORDER VALIDATION covers reorders and moves. The supplied ids must be
exactly the container being reordered: no foreign ids and no missing
ones, so the container always ends up numbered 0..n-1.
All checks run before the caller writes anything, so a mismatch
rejects the whole request and no partial order is ever persisted.

IMPORTANT: Validation NEVER silently fixes issues. It reports them.
"""

from typing import Iterable, Mapping, Optional, Sequence
from uuid import UUID

from budgetbook.models.monthly import SavingsMode, Transaction, TransactionKind
from budgetbook.models.results import ValidationIssue, ValidationResult
from budgetbook.models.yearly import SectionKey, YearlyLineItem, YearlySubsection


class TransactionValidationError(ValueError):
    """A transaction failed validation; `result` holds the issues."""

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__("; ".join(result.messages()) or "Invalid transaction")


class ReorderRejectedError(ValueError):
    """A reorder or move request did not match its container."""
    pass


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionValidator:
    """
    Validates a transaction (new or patched) against its month.

    Accepts the candidate Transaction as it would be stored, so create
    and update share one code path.
    """

    def _validate_fields(self, tx: Transaction) -> tuple[bool, list[ValidationIssue]]:
        """Stage 1: checks that need nothing but the transaction itself."""
        issues = []

        if tx.mode == SavingsMode.PERCENTAGE and tx.kind != TransactionKind.SAVING:
            issues.append(ValidationIssue(
                field="mode",
                issue_type="invalid_value",
                message="Only savings can be a percentage of income",
                severity="error",
                suggested_fix="Switch the amount mode to fixed",
            ))

        if tx.is_percentage_saving:
            pct = tx.savings_percentage
            if pct is None:
                issues.append(ValidationIssue(
                    field="savings_percentage",
                    issue_type="missing",
                    message="Choose what percentage of income to save",
                    severity="error",
                ))
            elif not 0 <= pct <= 100:
                issues.append(ValidationIssue(
                    field="savings_percentage",
                    issue_type="invalid_value",
                    message="Savings percentage must be between 0 and 100",
                    severity="error",
                ))
            if tx.linked_income_id is None:
                issues.append(ValidationIssue(
                    field="linked_income_id",
                    issue_type="missing",
                    message="Not linked to an income yet, so it counts as $0",
                    severity="warning",
                    suggested_fix="Pick the income this saving comes out of",
                ))

        if tx.mode == SavingsMode.FIXED and tx.linked_income_id is not None:
            issues.append(ValidationIssue(
                field="linked_income_id",
                issue_type="ignored",
                message="Fixed savings ignore the linked income",
                severity="info",
            ))

        valid = not any(issue.severity == "error" for issue in issues)
        return valid, issues

    def _validate_month(
        self,
        tx: Transaction,
        month_transactions: Iterable[Transaction],
    ) -> tuple[bool, list[ValidationIssue]]:
        """Stage 2: checks against the other rows of the month."""
        issues = []

        if tx.is_percentage_saving and tx.linked_income_id is not None:
            linked = next(
                (other for other in month_transactions if other.id == tx.linked_income_id),
                None,
            )
            if linked is None or linked.month_id != tx.month_id:
                issues.append(ValidationIssue(
                    field="linked_income_id",
                    issue_type="dangling_link",
                    message="The linked income is not in this month",
                    severity="error",
                ))
            elif linked.kind != TransactionKind.INCOME:
                issues.append(ValidationIssue(
                    field="linked_income_id",
                    issue_type="invalid_value",
                    message="Savings can only be linked to an income",
                    severity="error",
                ))

        valid = not any(issue.severity == "error" for issue in issues)
        return valid, issues

    def validate(
        self,
        tx: Transaction,
        month_transactions: Iterable[Transaction] = (),
    ) -> ValidationResult:
        """Run both stages. Stage 2 is skipped when stage 1 fails."""
        fields_valid, issues = self._validate_fields(tx)
        month_valid = False
        if fields_valid:
            month_valid, month_issues = self._validate_month(tx, month_transactions)
            issues.extend(month_issues)
        return ValidationResult(
            fields_valid=fields_valid,
            month_valid=month_valid,
            issues=issues,
        )

    def check(self, tx: Transaction, month_transactions: Iterable[Transaction] = ()) -> ValidationResult:
        """Like validate(), but raises TransactionValidationError on errors."""
        result = self.validate(tx, month_transactions)
        if not result.is_valid:
            raise TransactionValidationError(result)
        return result


# =============================================================================
# ORDERING
# =============================================================================

def _check_unique(ordered_ids: Sequence[UUID]) -> None:
    if len(set(ordered_ids)) != len(ordered_ids):
        raise ReorderRejectedError("The new order lists an entry twice")


def check_transaction_reorder(
    ordered_ids: Sequence[UUID],
    month_transactions: Iterable[Transaction],
) -> None:
    """
    The ids must be exactly the month's transactions, each once.

    `month_transactions` is the owner's rows for that month, so foreign
    or other-month ids are simply absent and get rejected.
    """
    _check_unique(ordered_ids)
    known = {tx.id for tx in month_transactions}
    unknown = [tx_id for tx_id in ordered_ids if tx_id not in known]
    if unknown:
        raise ReorderRejectedError("Transaction does not belong to this month")
    if len(ordered_ids) != len(known):
        raise ReorderRejectedError("The new order must list every transaction in the month")


def check_subsection_reorder(
    year: int,
    section_key: SectionKey,
    ordered_ids: Sequence[UUID],
    subsections: Mapping[UUID, YearlySubsection],
) -> None:
    """The ids are exactly the owner's subsections in (year, section)."""
    _check_unique(ordered_ids)
    for sub_id in ordered_ids:
        sub = subsections.get(sub_id)
        if sub is None or sub.year != year or sub.section_key != section_key:
            raise ReorderRejectedError("Subsection does not match year or section")
    expected = {
        sub.id for sub in subsections.values()
        if sub.year == year and sub.section_key == section_key
    }
    if set(ordered_ids) != expected:
        raise ReorderRejectedError("The new order must list every subsection in the section")


def _in_container(
    item: Optional[YearlyLineItem],
    year: int,
    section_key: SectionKey,
    subsection_id: Optional[UUID],
) -> bool:
    return (
        item is not None
        and item.year == year
        and item.section_key == section_key
        and item.container_id == subsection_id
    )


def _container_ids(
    items: Mapping[UUID, YearlyLineItem],
    year: int,
    section_key: SectionKey,
    subsection_id: Optional[UUID],
) -> set[UUID]:
    return {
        item_id for item_id, item in items.items()
        if _in_container(item, year, section_key, subsection_id)
    }


def check_line_item_reorder(
    year: int,
    section_key: SectionKey,
    subsection_id: Optional[UUID],
    ordered_ids: Sequence[UUID],
    items: Mapping[UUID, YearlyLineItem],
) -> None:
    """The ids are exactly the owner's items in this container."""
    _check_unique(ordered_ids)
    for item_id in ordered_ids:
        if not _in_container(items.get(item_id), year, section_key, subsection_id):
            raise ReorderRejectedError("Line item does not match year, section, or subsection")
    if set(ordered_ids) != _container_ids(items, year, section_key, subsection_id):
        raise ReorderRejectedError("The new order must list every line item in the container")


def check_destination_subsection(
    item: YearlyLineItem,
    destination: Optional[YearlySubsection],
    to_subsection_id: Optional[UUID],
) -> None:
    """A move target must exist and share the item's year and section."""
    if to_subsection_id is None:
        return
    if item.section_key == SectionKey.INCOME:
        raise ReorderRejectedError("Income items cannot be moved to subsections")
    if destination is None:
        raise ReorderRejectedError("Destination subsection not found")
    if destination.year != item.year or destination.section_key != item.section_key:
        raise ReorderRejectedError("Cannot move item to a different section")


def check_move(
    item: YearlyLineItem,
    to_subsection_id: Optional[UUID],
    source_ordered_ids: Sequence[UUID],
    dest_ordered_ids: Sequence[UUID],
    items: Mapping[UUID, YearlyLineItem],
) -> None:
    """
    Validate both halves of a move before anything is written.

    The source list holds the items left behind (never the moved one);
    the destination list holds the destination's items plus the moved one.
    """
    _check_unique(source_ordered_ids)
    _check_unique(dest_ordered_ids)
    section_key = SectionKey(item.section_key)

    if item.id in source_ordered_ids:
        raise ReorderRejectedError("The moved item cannot stay in the source order")
    for item_id in source_ordered_ids:
        if not _in_container(items.get(item_id), item.year, section_key, item.container_id):
            raise ReorderRejectedError("Line item does not match source container")
    source_expected = _container_ids(items, item.year, section_key, item.container_id) - {item.id}
    if set(source_ordered_ids) != source_expected:
        raise ReorderRejectedError("Source order must list every item left in the source container")

    if item.id not in dest_ordered_ids:
        raise ReorderRejectedError("Destination order must include the moved item")
    for item_id in dest_ordered_ids:
        if item_id == item.id:
            continue
        if not _in_container(items.get(item_id), item.year, section_key, to_subsection_id):
            raise ReorderRejectedError("Line item does not match destination container")
    dest_expected = _container_ids(items, item.year, section_key, to_subsection_id) | {item.id}
    if set(dest_ordered_ids) != dest_expected:
        raise ReorderRejectedError("Destination order must list every item in the destination container")
