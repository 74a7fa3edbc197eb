"""Configuration package."""

from budgetbook.config.settings import (
    BudgetSettings,
    GoogleSheetsSettings,
    LoggingSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "BudgetSettings",
    "GoogleSheetsSettings",
    "LoggingSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
