"""
Data Models Package

This package contains all Pydantic models used in the Expense Tracker.
All data flowing through the system must conform to these schemas.
"""

from expense_tracker.models.expense import (
    CATEGORY_CATALOG,
    DEFAULT_CATEGORY,
    FALLBACK_COLOR,
    Category,
    CategoryInfo,
    Expense,
    ExpenseDraft,
    ExpenseForm,
    ValidationIssue,
    ValidationResult,
    badge_markup,
    lookup_category,
    order_expenses,
)
from expense_tracker.models.currency import (
    CURRENCIES,
    DEFAULT_CURRENCY,
    Currency,
    CurrencyInfo,
    format_money,
    parse_currency,
)
from expense_tracker.models.report import (
    BreakdownEntry,
    MonthKey,
    MonthlyReport,
)
from expense_tracker.models.user import UserIdentity
from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Expense models
    "CATEGORY_CATALOG",
    "DEFAULT_CATEGORY",
    "FALLBACK_COLOR",
    "Category",
    "CategoryInfo",
    "Expense",
    "ExpenseDraft",
    "ExpenseForm",
    "ValidationIssue",
    "ValidationResult",
    "badge_markup",
    "lookup_category",
    "order_expenses",
    # Currency
    "CURRENCIES",
    "DEFAULT_CURRENCY",
    "Currency",
    "CurrencyInfo",
    "format_money",
    "parse_currency",
    # Reports
    "BreakdownEntry",
    "MonthKey",
    "MonthlyReport",
    # Identity
    "UserIdentity",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
