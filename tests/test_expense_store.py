import asyncio
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import httpx
import pytest

from spendwise.categories import Category, PaymentMode
from spendwise.db.models import Expense, ExpenseDraft
from spendwise.services.api_client import (
    ApiError,
    ExpenseApi,
    NotAuthenticatedError,
    NotFoundError,
    TransportError,
)
from spendwise.services.expense_store import ExpenseStore


def _exp(expense_id: str, amount: float = 10.0) -> Expense:
    return Expense(
        id=expense_id,
        amount=amount,
        category=Category.OTHERS,
        payment_mode=PaymentMode.CASH,
        date=datetime(2024, 3, 1, tzinfo=UTC),
    )


def _store(token: str | None = "tok") -> tuple[ExpenseStore, AsyncMock, AsyncMock]:
    api = AsyncMock()
    notify = AsyncMock()
    store = ExpenseStore(api, notify)
    if token:
        store.set_token(token)
    return store, api, notify


async def test_load_replaces_state():
    store, api, notify = _store()
    api.list_expenses.return_value = [_exp("a"), _exp("b")]

    await store.load()

    api.list_expenses.assert_awaited_once_with("tok")
    assert [e.id for e in store.expenses] == ["a", "b"]
    assert store.is_loaded
    assert not store.is_loading
    notify.assert_not_awaited()


async def test_ensure_loaded_fetches_once_per_token():
    store, api, _ = _store()
    api.list_expenses.return_value = [_exp("a")]

    await store.ensure_loaded()
    await store.ensure_loaded()
    assert api.list_expenses.await_count == 1

    store.set_token("tok2")
    assert store.expenses == []
    await store.ensure_loaded()
    assert api.list_expenses.await_count == 2
    api.list_expenses.assert_awaited_with("tok2")


async def test_load_failure_notifies_once_and_keeps_state():
    store, api, notify = _store()
    api.list_expenses.return_value = [_exp("a")]
    await store.load()

    api.list_expenses.side_effect = TransportError("down")
    with pytest.raises(TransportError):
        await store.load()

    notify.assert_awaited_once_with("Failed to fetch expenses")
    assert [e.id for e in store.expenses] == ["a"]
    assert not store.is_loading


async def test_no_token_makes_no_remote_call():
    store, api, notify = _store(token=None)

    with pytest.raises(NotAuthenticatedError):
        await store.load()
    with pytest.raises(NotAuthenticatedError):
        await store.create(ExpenseDraft(amount=5))
    with pytest.raises(NotAuthenticatedError):
        await store.remove("a")

    api.list_expenses.assert_not_awaited()
    api.create_expense.assert_not_awaited()
    api.delete_expense.assert_not_awaited()
    assert notify.await_count == 3


async def test_create_appends_server_record():
    store, api, notify = _store()
    api.list_expenses.return_value = [_exp("a")]
    await store.load()
    api.create_expense.return_value = _exp("new", 42.0)

    draft = ExpenseDraft(amount=42.0)
    created = await store.create(draft)

    api.create_expense.assert_awaited_once_with("tok", draft)
    assert created.id == "new"
    assert [e.id for e in store.expenses] == ["a", "new"]
    assert api.list_expenses.await_count == 1
    notify.assert_not_awaited()


async def test_create_failure_leaves_state_unchanged():
    store, api, notify = _store()
    api.list_expenses.return_value = [_exp("a")]
    await store.load()
    before = store.expenses
    api.create_expense.side_effect = TransportError("down")

    with pytest.raises(TransportError):
        await store.create(ExpenseDraft(amount=1))

    assert store.expenses == before
    notify.assert_awaited_once_with("Failed to add expense")


async def test_remove_drops_record_after_confirmation():
    store, api, _ = _store()
    api.list_expenses.return_value = [_exp("a"), _exp("b")]
    await store.load()

    await store.remove("a")

    api.delete_expense.assert_awaited_once_with("tok", "a")
    assert [e.id for e in store.expenses] == ["b"]


async def test_remove_unknown_id_is_noop_locally():
    store, api, notify = _store()
    api.list_expenses.return_value = [_exp("a")]
    await store.load()

    await store.remove("missing")

    assert [e.id for e in store.expenses] == ["a"]
    notify.assert_not_awaited()


async def test_remove_failure_leaves_state_unchanged():
    store, api, notify = _store()
    api.list_expenses.return_value = [_exp("a")]
    await store.load()
    api.delete_expense.side_effect = NotFoundError("Expense not found", status_code=404)

    with pytest.raises(NotFoundError):
        await store.remove("a")

    assert [e.id for e in store.expenses] == ["a"]
    notify.assert_awaited_once_with("Failed to delete expense")


async def test_stale_load_is_discarded():
    store, api, notify = _store("old")
    release = asyncio.Event()

    async def slow_list(token):
        if token == "old":
            await release.wait()
            return [_exp("old-user")]
        return [_exp("new-user")]

    api.list_expenses.side_effect = slow_list

    stale = asyncio.create_task(store.load())
    await asyncio.sleep(0)
    store.set_token("new")
    await store.load()
    release.set()
    await stale

    assert [e.id for e in store.expenses] == ["new-user"]
    assert store.is_loaded
    notify.assert_not_awaited()


async def test_stale_load_failure_is_silent():
    store, api, notify = _store("old")
    release = asyncio.Event()

    async def failing_list(token):
        await release.wait()
        raise TransportError("down")

    api.list_expenses.side_effect = failing_list

    stale = asyncio.create_task(store.load())
    await asyncio.sleep(0)
    store.set_token(None)
    release.set()
    await stale

    notify.assert_not_awaited()
    assert store.expenses == []


async def test_expenses_property_is_a_copy():
    store, api, _ = _store()
    api.list_expenses.return_value = [_exp("a")]
    await store.load()

    store.expenses.clear()
    assert len(store.expenses) == 1
    assert store.get("a").id == "a"
    assert store.get("zzz") is None


async def test_concurrent_ensure_loaded_shares_one_fetch():
    store, api, notify = _store()
    release = asyncio.Event()

    async def slow_list(token):
        await release.wait()
        return [_exp("a")]

    api.list_expenses.side_effect = slow_list

    first = asyncio.create_task(store.ensure_loaded())
    second = asyncio.create_task(store.ensure_loaded())
    await asyncio.sleep(0)
    assert store.is_loading
    release.set()
    await asyncio.gather(first, second)

    assert api.list_expenses.await_count == 1
    assert [e.id for e in store.expenses] == ["a"]
    assert not store.is_loading
    notify.assert_not_awaited()


async def test_concurrent_ensure_loaded_failure_notifies_once():
    store, api, notify = _store()
    release = asyncio.Event()

    async def failing_list(token):
        await release.wait()
        raise TransportError("down")

    api.list_expenses.side_effect = failing_list

    first = asyncio.create_task(store.ensure_loaded())
    second = asyncio.create_task(store.ensure_loaded())
    await asyncio.sleep(0)
    release.set()
    results = await asyncio.gather(first, second, return_exceptions=True)

    assert all(isinstance(r, TransportError) for r in results)
    assert api.list_expenses.await_count == 1
    notify.assert_awaited_once_with("Failed to fetch expenses")
    assert not store.is_loaded


async def test_create_with_malformed_reply_notifies_once():
    store, _, notify = _store()
    store.api = ExpenseApi(
        base_url="http://api.test",
        transport=httpx.MockTransport(lambda request: httpx.Response(201, json={"amount": 5})),
    )

    with pytest.raises(ApiError, match="Malformed expense record"):
        await store.create(ExpenseDraft(amount=5, date=datetime(2024, 3, 1, tzinfo=UTC)))

    notify.assert_awaited_once_with("Failed to add expense")
    assert store.expenses == []
