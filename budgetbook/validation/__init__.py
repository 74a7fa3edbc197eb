"""Validation package."""

from budgetbook.validation.validator import (
    ReorderRejectedError,
    TransactionValidationError,
    TransactionValidator,
    check_destination_subsection,
    check_line_item_reorder,
    check_move,
    check_subsection_reorder,
    check_transaction_reorder,
)

__all__ = [
    "ReorderRejectedError",
    "TransactionValidationError",
    "TransactionValidator",
    "check_destination_subsection",
    "check_line_item_reorder",
    "check_move",
    "check_subsection_reorder",
    "check_transaction_reorder",
]
