"""
Tests for the in-memory stores and the subscription mechanics shared by
every expense store.
"""

import asyncio
import gc
import pytest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from expense_tracker.models.audit import AuditEventBuilder
from expense_tracker.models.currency import Currency
from expense_tracker.models.expense import Category, ExpenseDraft
from expense_tracker.services.storage import (
    InMemoryAuditStorage,
    InMemoryExpenseStore,
    InMemoryPreferenceStore,
    NotFoundError,
    StoreUnavailableError,
)


class TickingClock:
    """Returns a strictly increasing timestamp on every call."""

    def __init__(self):
        self._now = datetime(2024, 3, 1, tzinfo=timezone.utc)

    def __call__(self):
        self._now += timedelta(seconds=1)
        return self._now


def _draft(title="Lunch", amount="10", category=Category.FOOD, day="2024-03-05"):
    return ExpenseDraft(
        title=title,
        amount=Decimal(amount),
        category=category,
        date=date.fromisoformat(day),
    )


@pytest.fixture
def store():
    return InMemoryExpenseStore(clock=TickingClock())


class FailingReadStore(InMemoryExpenseStore):
    """Writes succeed, reads fail once `broken` is set."""

    def __init__(self):
        super().__init__(clock=TickingClock())
        self.broken = False

    async def list_expenses(self, user_id):
        if self.broken:
            raise StoreUnavailableError("backend down")
        return await super().list_expenses(user_id)


class TestInMemoryExpenseStore:
    """CRUD and ordering."""

    def test_create_assigns_id_and_timestamps(self, store):
        expense_id = asyncio.run(store.create_expense("u1", _draft()))
        expense = asyncio.run(store.get_expense("u1", expense_id))

        assert expense_id
        assert expense.title == "Lunch"
        assert expense.category == "Food"
        assert expense.created_at == expense.updated_at

    def test_users_are_isolated(self, store):
        asyncio.run(store.create_expense("u1", _draft()))
        assert asyncio.run(store.list_expenses("u2")) == []

    def test_list_ordered_by_date_then_creation(self, store):
        async def scenario():
            a = await store.create_expense("u1", _draft(title="a", day="2024-03-05"))
            b = await store.create_expense("u1", _draft(title="b", day="2024-03-09"))
            c = await store.create_expense("u1", _draft(title="c", day="2024-03-05"))
            return [a, b, c], await store.list_expenses("u1")

        (a, b, c), expenses = asyncio.run(scenario())
        assert [e.id for e in expenses] == [b, c, a]

    def test_update_replaces_fields(self, store):
        async def scenario():
            expense_id = await store.create_expense("u1", _draft())
            updated = await store.update_expense(
                "u1",
                expense_id,
                _draft(title="Dinner", amount="25.50", category=Category.ENTERTAINMENT),
            )
            return expense_id, updated

        expense_id, updated = asyncio.run(scenario())
        assert updated.id == expense_id
        assert updated.title == "Dinner"
        assert updated.amount == Decimal("25.50")
        assert updated.category == "Entertainment"
        assert updated.updated_at > updated.created_at

    def test_update_missing_raises(self, store):
        with pytest.raises(NotFoundError):
            asyncio.run(store.update_expense("u1", "nope", _draft()))

    def test_update_other_users_expense_raises(self, store):
        expense_id = asyncio.run(store.create_expense("u1", _draft()))
        with pytest.raises(NotFoundError):
            asyncio.run(store.update_expense("u2", expense_id, _draft()))

    def test_delete(self, store):
        async def scenario():
            expense_id = await store.create_expense("u1", _draft())
            first = await store.delete_expense("u1", expense_id)
            second = await store.delete_expense("u1", expense_id)
            return first, second, await store.list_expenses("u1")

        first, second, remaining = asyncio.run(scenario())
        assert first is True
        assert second is False
        assert remaining == []


class TestSubscriptions:
    """Push-based snapshots."""

    def test_initial_snapshot_delivered_on_subscribe(self, store):
        snapshots = []

        async def scenario():
            await store.create_expense("u1", _draft())
            await store.subscribe("u1", snapshots.append)

        asyncio.run(scenario())
        assert len(snapshots) == 1
        assert len(snapshots[0]) == 1

    def test_snapshot_after_every_write(self, store):
        snapshots = []

        async def scenario():
            await store.subscribe("u1", snapshots.append)
            expense_id = await store.create_expense("u1", _draft())
            await store.update_expense("u1", expense_id, _draft(title="Edited"))
            await store.delete_expense("u1", expense_id)

        asyncio.run(scenario())
        assert [len(s) for s in snapshots] == [0, 1, 1, 0]
        assert snapshots[2][0].title == "Edited"

    def test_other_users_writes_not_delivered(self, store):
        snapshots = []

        async def scenario():
            await store.subscribe("u1", snapshots.append)
            await store.create_expense("u2", _draft())

        asyncio.run(scenario())
        assert snapshots == [[]]

    def test_unsubscribe_stops_delivery(self, store):
        snapshots = []

        async def scenario():
            subscription = await store.subscribe("u1", snapshots.append)
            subscription.unsubscribe()
            await store.create_expense("u1", _draft())
            return subscription

        subscription = asyncio.run(scenario())
        assert len(snapshots) == 1
        assert not subscription.active
        assert store.listener_count("u1") == 0

    def test_unsubscribe_twice_is_harmless(self, store):
        subscription = asyncio.run(store.subscribe("u1", lambda _: None))
        subscription.unsubscribe()
        subscription.unsubscribe()
        assert store.listener_count("u1") == 0

    def test_refresh_pushes_snapshot(self, store):
        snapshots = []

        async def scenario():
            await store.subscribe("u1", snapshots.append)
            await store.refresh("u1")

        asyncio.run(scenario())
        assert len(snapshots) == 2

    def test_read_failure_after_write_goes_to_on_error(self):
        store = FailingReadStore()
        snapshots, errors = [], []

        async def scenario():
            await store.subscribe("u1", snapshots.append, on_error=errors.append)
            store.broken = True
            return await store.create_expense("u1", _draft())

        expense_id = asyncio.run(scenario())
        assert expense_id
        assert len(snapshots) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], StoreUnavailableError)

    def test_initial_read_failure_without_on_error_raises(self):
        store = FailingReadStore()
        store.broken = True

        with pytest.raises(StoreUnavailableError):
            asyncio.run(store.subscribe("u1", lambda _: None))
        assert store.listener_count("u1") == 0

    def test_initial_read_failure_with_on_error_keeps_listener(self):
        store = FailingReadStore()
        store.broken = True
        errors = []

        subscription = asyncio.run(store.subscribe("u1", lambda _: None, on_error=errors.append))
        assert len(errors) == 1
        assert subscription.active

    def test_failing_listener_does_not_block_others(self, store):
        snapshots = []

        def fails_once_filled(expenses):
            if expenses:
                raise RuntimeError("render failed")

        async def scenario():
            await store.subscribe("u1", fails_once_filled)
            await store.subscribe("u1", snapshots.append)
            return await store.create_expense("u1", _draft())

        expense_id = asyncio.run(scenario())
        assert expense_id
        assert [len(s) for s in snapshots] == [0, 1]
        assert store.listener_count("u1") == 2

    def test_bound_method_listener_lapses_with_owner(self, store):
        class Screen:
            def __init__(self):
                self.snapshots = []

            def show(self, expenses):
                self.snapshots.append(expenses)

        kept, dropped = Screen(), Screen()

        async def scenario():
            await store.subscribe("u1", kept.show)
            await store.subscribe("u1", dropped.show)

        asyncio.run(scenario())
        assert store.listener_count("u1") == 2

        del dropped
        gc.collect()
        assert store.listener_count("u1") == 1

        asyncio.run(store.create_expense("u1", _draft()))
        assert [len(s) for s in kept.snapshots] == [0, 1]

    def test_plain_function_listener_held_strongly(self, store):
        snapshots = []
        asyncio.run(store.subscribe("u1", lambda expenses: snapshots.append(expenses)))
        gc.collect()

        asyncio.run(store.create_expense("u1", _draft()))
        assert [len(s) for s in snapshots] == [0, 1]


class TestInMemoryPreferenceStore:
    """Preferences merge on write."""

    def test_currency_unset(self):
        prefs = InMemoryPreferenceStore()
        assert asyncio.run(prefs.get_currency("u1")) is None

    def test_currency_round_trip(self):
        prefs = InMemoryPreferenceStore()

        async def scenario():
            await prefs.set_currency("u1", Currency.INR)
            return await prefs.get_currency("u1")

        assert asyncio.run(scenario()) == Currency.INR

    def test_merge_leaves_other_fields(self):
        prefs = InMemoryPreferenceStore()

        async def scenario():
            await prefs.set_preferences("u1", {"theme": "dark"})
            await prefs.set_currency("u1", Currency.INR)
            return await prefs.get_preferences("u1")

        assert asyncio.run(scenario()) == {"theme": "dark", "currency": "INR"}

    def test_unknown_saved_currency_reads_as_none(self):
        prefs = InMemoryPreferenceStore()

        async def scenario():
            await prefs.set_preferences("u1", {"currency": "EUR"})
            return await prefs.get_currency("u1")

        assert asyncio.run(scenario()) is None


class TestInMemoryAuditStorage:

    def test_recent_events_newest_first_and_filtered(self):
        storage = InMemoryAuditStorage()

        async def scenario():
            await storage.append_event(AuditEventBuilder.user_signed_in("u1"))
            await storage.append_event(AuditEventBuilder.user_signed_in("u2"))
            await storage.append_event(AuditEventBuilder.user_signed_out("u1"))
            return (
                await storage.get_recent_events(),
                await storage.get_recent_events(user_id="u1"),
                await storage.get_recent_events(limit=1),
            )

        everything, for_u1, latest = asyncio.run(scenario())
        assert len(everything) == 3
        assert all(e.user_id == "u1" for e in for_u1)
        assert len(for_u1) == 2
        assert len(latest) == 1
