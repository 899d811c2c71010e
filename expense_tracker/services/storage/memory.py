"""
In-Memory Storage Implementation

Keeps everything in process memory. Used for local development
(storage_backend=memory), as the fallback when the hosted store cannot be
initialised, and in tests.

Nothing survives a restart.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Optional
from uuid import uuid4

from expense_tracker.models.audit import AuditEvent
from expense_tracker.models.expense import Expense, ExpenseDraft, order_expenses
from expense_tracker.services.storage.interface import (
    AuditStorageInterface,
    ExpenseStoreInterface,
    NotFoundError,
    PreferenceStoreInterface,
)

Clock = Callable[[], datetime]


def utc_clock() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryExpenseStore(ExpenseStoreInterface):
    """
    Expense store backed by a dict per user.

    The clock is injectable so tests can control created_at ordering.
    """

    def __init__(self, clock: Optional[Clock] = None):
        super().__init__()
        self._clock = clock or utc_clock
        self._expenses: dict[str, dict[str, Expense]] = {}

    async def list_expenses(self, user_id: str) -> list[Expense]:
        return order_expenses(self._expenses.get(user_id, {}).values())

    async def _insert_expense(self, user_id: str, draft: ExpenseDraft) -> Expense:
        now = self._clock()
        expense = Expense(
            id=uuid4().hex,
            title=draft.title,
            amount=draft.amount,
            category=draft.category,
            date=draft.date,
            created_at=now,
            updated_at=now,
        )
        self._expenses.setdefault(user_id, {})[expense.id] = expense
        return expense

    async def _replace_expense(
        self,
        user_id: str,
        expense_id: str,
        draft: ExpenseDraft,
    ) -> Expense:
        existing = self._expenses.get(user_id, {}).get(expense_id)
        if existing is None:
            raise NotFoundError(f"Expense not found: {expense_id}")

        updated = existing.model_copy(update={
            "title": draft.title,
            "amount": draft.amount,
            "category": draft.category.value,
            "date": draft.date,
            "updated_at": self._clock(),
        })
        self._expenses[user_id][expense_id] = updated
        return updated

    async def _remove_expense(self, user_id: str, expense_id: str) -> bool:
        return self._expenses.get(user_id, {}).pop(expense_id, None) is not None


class InMemoryPreferenceStore(PreferenceStoreInterface):
    """Preference store backed by a dict per user."""

    def __init__(self):
        self._preferences: dict[str, dict[str, Any]] = {}

    async def get_preferences(self, user_id: str) -> dict[str, Any]:
        return dict(self._preferences.get(user_id, {}))

    async def set_preferences(self, user_id: str, fields: dict[str, Any]) -> None:
        self._preferences.setdefault(user_id, {}).update(fields)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_recent_events(
        self,
        limit: int = 100,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if user_id is None or e.user_id == user_id
        ]
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
