"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the hosted backend; the in-memory backend serves local
runs and tests.
"""

from expense_tracker.services.storage.interface import (
    AuditStorageInterface,
    ExpenseStoreInterface,
    NotFoundError,
    PreferenceStoreInterface,
    StorageError,
    StoreUnavailableError,
    Subscription,
)
from expense_tracker.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryExpenseStore,
    InMemoryPreferenceStore,
)
from expense_tracker.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStore,
    GoogleSheetsPreferenceStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ExpenseStoreInterface",
    "PreferenceStoreInterface",
    "Subscription",
    # Exceptions
    "NotFoundError",
    "StorageError",
    "StoreUnavailableError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryExpenseStore",
    "InMemoryPreferenceStore",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStore",
    "GoogleSheetsPreferenceStore",
]
