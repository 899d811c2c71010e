"""
Abstract Storage Interface

We define abstract interfaces for the expense store, the preference store
and the audit log. This allows us to:
1. Swap Google Sheets for another hosted store later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The expense store is push-based: callers subscribe to a user's expense
list and receive a fresh, fully ordered snapshot after every write.
Concrete stores only implement the read/write primitives; subscription
bookkeeping lives in ExpenseStoreInterface itself.
"""

import inspect
import weakref
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional
from uuid import uuid4

import structlog

from expense_tracker.models.audit import AuditEvent
from expense_tracker.models.currency import Currency, parse_currency
from expense_tracker.models.expense import Expense, ExpenseDraft

logger = structlog.get_logger(__name__)

SnapshotListener = Callable[[list[Expense]], None]
ErrorListener = Callable[[Exception], None]


def _hold(callback: Optional[Callable]) -> Callable[[], Optional[Callable]]:
    """
    Reference to a listener that does not keep its owner alive.

    Bound methods are held weakly so a session that is dropped without
    unsubscribing stops receiving snapshots once it is garbage collected.
    Plain functions are held strongly.
    """
    if inspect.ismethod(callback):
        return weakref.WeakMethod(callback)
    return lambda: callback


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class StoreUnavailableError(StorageError):
    """Could not reach the storage backend, or a read/write against it failed."""
    pass


class Subscription:
    """Handle returned by subscribe(); call unsubscribe() to stop deliveries."""

    def __init__(self, store: "ExpenseStoreInterface", user_id: str, key: str):
        self._store = store
        self.user_id = user_id
        self._key = key

    @property
    def active(self) -> bool:
        return self._store._has_listener(self.user_id, self._key)

    def unsubscribe(self) -> None:
        self._store._remove_listener(self.user_id, self._key)


class ExpenseStoreInterface(ABC):
    """
    Abstract interface for per-user expense storage.

    Any storage implementation must implement the abstract methods.
    Every list it returns must already be ordered newest first
    (see order_expenses).
    """

    def __init__(self):
        self._listeners: dict[str, dict[str, tuple[Callable, Callable]]] = {}

    @abstractmethod
    async def list_expenses(self, user_id: str) -> list[Expense]:
        """
        Get the user's expenses, ordered by date then creation time, newest first.

        Raises:
            StoreUnavailableError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def _insert_expense(self, user_id: str, draft: ExpenseDraft) -> Expense:
        """Store a new expense, assigning id and timestamps."""
        pass

    @abstractmethod
    async def _replace_expense(
        self,
        user_id: str,
        expense_id: str,
        draft: ExpenseDraft,
    ) -> Expense:
        """
        Replace title, amount, category and date; refresh updated_at.

        Raises:
            NotFoundError: If the user has no expense with this id
        """
        pass

    @abstractmethod
    async def _remove_expense(self, user_id: str, expense_id: str) -> bool:
        """Delete an expense. Returns False if it did not exist."""
        pass

    async def get_expense(self, user_id: str, expense_id: str) -> Optional[Expense]:
        """Retrieve one expense by id, None if the user has no such expense."""
        for expense in await self.list_expenses(user_id):
            if expense.id == expense_id:
                return expense
        return None

    async def create_expense(self, user_id: str, draft: ExpenseDraft) -> str:
        """
        Create an expense for the user.

        Returns:
            The id assigned by the store
        """
        expense = await self._insert_expense(user_id, draft)
        await self._notify(user_id)
        return expense.id

    async def update_expense(
        self,
        user_id: str,
        expense_id: str,
        draft: ExpenseDraft,
    ) -> Expense:
        """
        Replace the editable fields of an existing expense.

        Raises:
            NotFoundError: If the expense doesn't exist
        """
        expense = await self._replace_expense(user_id, expense_id, draft)
        await self._notify(user_id)
        return expense

    async def delete_expense(self, user_id: str, expense_id: str) -> bool:
        """
        Delete an expense by id. Irreversible.

        Returns:
            True if it existed and was deleted
        """
        deleted = await self._remove_expense(user_id, expense_id)
        if deleted:
            await self._notify(user_id)
        return deleted

    async def subscribe(
        self,
        user_id: str,
        listener: SnapshotListener,
        on_error: Optional[ErrorListener] = None,
    ) -> Subscription:
        """
        Register for the user's expense list.

        The current snapshot is delivered to the new listener before this
        returns. Later snapshots follow every successful write.

        If the first read fails and no on_error is given, the listener is
        removed again and the error is raised.

        Bound-method listeners are held weakly: when their owner is
        garbage collected the subscription lapses on its own.
        """
        key = uuid4().hex
        self._listeners.setdefault(user_id, {})[key] = (_hold(listener), _hold(on_error))
        subscription = Subscription(self, user_id, key)

        try:
            snapshot = await self.list_expenses(user_id)
        except StorageError as e:
            if on_error is None:
                subscription.unsubscribe()
                raise
            on_error(e)
        else:
            listener(snapshot)

        return subscription

    async def refresh(self, user_id: str) -> None:
        """Re-read the user's expenses and push the snapshot to every listener."""
        await self._notify(user_id)

    def listener_count(self, user_id: str) -> int:
        return len(self._live_listeners(user_id))

    def _has_listener(self, user_id: str, key: str) -> bool:
        return key in self._live_listeners(user_id)

    def _remove_listener(self, user_id: str, key: str) -> None:
        listeners = self._listeners.get(user_id)
        if listeners is not None:
            listeners.pop(key, None)
            if not listeners:
                del self._listeners[user_id]

    def _live_listeners(
        self,
        user_id: str,
    ) -> dict[str, tuple[SnapshotListener, Optional[ErrorListener]]]:
        """Resolve the user's listeners, dropping those whose owner is gone."""
        live = {}
        for key, (listener_ref, on_error_ref) in list(self._listeners.get(user_id, {}).items()):
            listener = listener_ref()
            if listener is None:
                self._remove_listener(user_id, key)
                continue
            live[key] = (listener, on_error_ref())
        return live

    def _deliver(self, user_id: str, callback: Callable, payload: Any) -> None:
        # Failures are logged and never reach the writer.
        try:
            callback(payload)
        except Exception as e:
            logger.error(
                "listener_failed",
                user_id=user_id,
                listener=getattr(callback, "__qualname__", repr(callback)),
                error=str(e),
            )

    async def _notify(self, user_id: str) -> None:
        listeners = list(self._live_listeners(user_id).values())
        if not listeners:
            return

        try:
            snapshot = await self.list_expenses(user_id)
        except StorageError as e:
            logger.warning("snapshot_read_failed", user_id=user_id, error=str(e))
            for _, on_error in listeners:
                if on_error is not None:
                    self._deliver(user_id, on_error, e)
            return

        for listener, _ in listeners:
            self._deliver(user_id, listener, snapshot)


class PreferenceStoreInterface(ABC):
    """
    Abstract interface for per-user preferences.

    Writes merge: fields not named in a write are left untouched.
    """

    @abstractmethod
    async def get_preferences(self, user_id: str) -> dict[str, Any]:
        """All stored preference fields for the user (empty if none)."""
        pass

    @abstractmethod
    async def set_preferences(self, user_id: str, fields: dict[str, Any]) -> None:
        """Merge the given fields into the user's preferences."""
        pass

    async def get_currency(self, user_id: str) -> Optional[Currency]:
        """
        The user's saved currency.

        Returns:
            None if nothing is saved or the saved code is not supported
        """
        preferences = await self.get_preferences(user_id)
        return parse_currency(preferences.get("currency"))

    async def set_currency(self, user_id: str, currency: Currency) -> None:
        await self.set_preferences(user_id, {"currency": currency.value})


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events, optionally for one user.

        Returns:
            List of recent events (newest first)
        """
        pass
