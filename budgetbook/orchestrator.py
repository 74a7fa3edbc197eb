"""
Main Orchestrator for Budgetbook

This module ties the storage backends to the two flows:
1. Monthly budget (months, transactions, balances, rollover)
2. Yearly plan (worksheet sections, subsections, rollup)

DESIGN DECISION: The backend is picked once, here. Flows only see the
abstract storage interfaces, so the UI and the tests run the exact
same code against memory or Google Sheets.
"""

from typing import Optional

from budgetbook.config import get_settings
from budgetbook.flows import MonthlyBudgetFlow, YearlyPlanFlow
from budgetbook.log_config import get_logger
from budgetbook.services.storage import (
    InMemoryMonthStorage,
    InMemoryTransactionStorage,
    InMemoryYearlyStorage,
    StorageError,
)

logger = get_logger(__name__)


def _memory_flows() -> tuple[MonthlyBudgetFlow, YearlyPlanFlow]:
    monthly = MonthlyBudgetFlow(InMemoryMonthStorage(), InMemoryTransactionStorage())
    yearly = YearlyPlanFlow(InMemoryYearlyStorage())
    return monthly, yearly


def create_app_components(backend: Optional[str] = None):
    """
    Factory function to create all application components.

    Args:
        backend: "memory" or "google_sheets". Defaults to STORAGE_BACKEND.
                 If Google Sheets cannot be reached, falls back to memory.

    Returns:
        (monthly_flow, yearly_flow, sheets_client)
        sheets_client is None for the memory backend.
    """
    backend = backend or get_settings().storage.backend

    if backend != "google_sheets":
        monthly, yearly = _memory_flows()
        logger.info("app_components_created", backend="memory")
        return monthly, yearly, None

    # Imported here so the memory backend never needs gspread credentials
    from budgetbook.services.storage.google_sheets import (
        GoogleSheetsClient,
        GoogleSheetsMonthStorage,
        GoogleSheetsTransactionStorage,
        GoogleSheetsYearlyStorage,
    )

    try:
        sheets_client = GoogleSheetsClient()
        sheets_client.connect()
    except (StorageError, ValueError) as e:
        # Storage not configured - continue without it
        logger.warning("sheets_unavailable", error=str(e), fallback="memory")
        monthly, yearly = _memory_flows()
        return monthly, yearly, None

    monthly = MonthlyBudgetFlow(
        GoogleSheetsMonthStorage(sheets_client),
        GoogleSheetsTransactionStorage(sheets_client),
    )
    yearly = YearlyPlanFlow(GoogleSheetsYearlyStorage(sheets_client))
    logger.info("app_components_created", backend="google_sheets")
    return monthly, yearly, sheets_client
