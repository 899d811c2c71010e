"""Services package."""

from expense_tracker.services.storage import (
    AuditStorageInterface,
    ExpenseStoreInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStore,
    GoogleSheetsPreferenceStore,
    InMemoryAuditStorage,
    InMemoryExpenseStore,
    InMemoryPreferenceStore,
    NotFoundError,
    PreferenceStoreInterface,
    StorageError,
    StoreUnavailableError,
    Subscription,
)

__all__ = [
    "AuditStorageInterface",
    "ExpenseStoreInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStore",
    "GoogleSheetsPreferenceStore",
    "InMemoryAuditStorage",
    "InMemoryExpenseStore",
    "InMemoryPreferenceStore",
    "NotFoundError",
    "PreferenceStoreInterface",
    "StorageError",
    "StoreUnavailableError",
    "Subscription",
]
