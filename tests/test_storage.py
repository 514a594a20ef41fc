"""Tests for the key-value stores and BudgetRepository."""

from __future__ import annotations

import asyncio
import json

from structlog.testing import capture_logs

from budget_tracker.config import (
    CREDIT_CARDS_KEY,
    EXPENSES_KEY,
    INCOME_KEY,
    LOANS_KEY,
    SAVINGS_KEY,
)
from budget_tracker.models import (
    BudgetState,
    CreditCard,
    Expense,
    Expenses,
    Income,
    IncomeSource,
    Loan,
    SavingsGoal,
)
from budget_tracker.storage import (
    BudgetRepository,
    InMemoryStore,
    JsonFileStore,
    StorageError,
    StoredValue,
)


def _full_state() -> BudgetState:
    return BudgetState(
        income=Income(monthly=4200.0, additional=(IncomeSource(id=1, name='Rental', amount=650.0),)),
        expenses=Expenses(
            fixed=(Expense(id=2, name='Rent', amount=1500.0, category='Housing'),),
            variable=(Expense(id=3, name='Takeout', amount=120.0),),
        ),
        savings=(SavingsGoal(id=4, name='Car', target=8000.0, current=1250.0),),
        credit_cards=(CreditCard(id=5, name='Amex', balance=900.0, min_payment=35.0, apr=27.5, due_date='2024-06-01'),),
        loans=(Loan(id=6, name='Student', balance=12000.0, payment=110.0, apr=4.5, frequency='bi-weekly'),),
    )


def test_in_memory_store_get_and_set() -> None:
    store = InMemoryStore()
    assert asyncio.run(store.get('missing')) is None
    asyncio.run(store.set('k', 'v'))
    assert asyncio.run(store.get('k')) == StoredValue('v')


def test_json_file_store_persists_across_instances(tmp_path) -> None:
    path = tmp_path / 'nested' / 'store.json'
    asyncio.run(JsonFileStore(path).set('budget-income', '{"monthly": 1}'))
    asyncio.run(JsonFileStore(path).set('budget-loans', '[]'))
    reopened = JsonFileStore(path)
    assert asyncio.run(reopened.get('budget-income')).value == '{"monthly": 1}'
    assert asyncio.run(reopened.get('budget-loans')).value == '[]'
    assert asyncio.run(reopened.get('budget-savings')) is None
    assert not (tmp_path / 'nested' / 'store.json.tmp').exists()


def test_json_file_store_raises_storage_error_on_corrupt_file(tmp_path) -> None:
    path = tmp_path / 'store.json'
    path.write_text('{not json', encoding='utf-8')
    store = JsonFileStore(path)
    try:
        asyncio.run(store.get('budget-income'))
    except StorageError:
        pass
    else:
        raise AssertionError("corrupt store should raise StorageError")


def test_repository_round_trip_in_memory() -> None:
    repository = BudgetRepository(InMemoryStore())
    state = _full_state()
    assert asyncio.run(repository.save_state(state)) is True
    assert asyncio.run(repository.load_state()) == state


def test_repository_round_trip_on_disk(tmp_path) -> None:
    state = _full_state()
    asyncio.run(BudgetRepository(JsonFileStore(tmp_path / 'store.json')).save_state(state))
    loaded = asyncio.run(BudgetRepository(JsonFileStore(tmp_path / 'store.json')).load_state())
    assert loaded == state


def test_repository_writes_original_key_layout() -> None:
    store = InMemoryStore()
    asyncio.run(BudgetRepository(store).save_state(_full_state()))
    assert json.loads(store.data[CREDIT_CARDS_KEY])[0]['minPayment'] == 35.0
    assert json.loads(store.data[LOANS_KEY])[0]['dueDate'] == ''
    assert set(json.loads(store.data[EXPENSES_KEY])) == {'fixed', 'variable'}
    assert json.loads(store.data[SAVINGS_KEY])[0]['current'] == 1250.0


def test_first_run_loads_empty_defaults() -> None:
    with capture_logs() as logs:
        state = asyncio.run(BudgetRepository(InMemoryStore()).load_state())
    assert state == BudgetState()
    assert not [entry for entry in logs if entry['log_level'] in ('warning', 'error')]


def test_broken_key_falls_back_without_losing_others() -> None:
    store = InMemoryStore({
        INCOME_KEY: json.dumps({'monthly': 2500, 'additional': []}),
        LOANS_KEY: '{broken',
        SAVINGS_KEY: json.dumps([{'id': 1, 'name': 'Car', 'target': 5000}, {'name': 'no id'}]),
    })
    with capture_logs() as logs:
        state = asyncio.run(BudgetRepository(store).load_state())
    assert state.income.monthly == 2500.0
    assert state.loans == ()
    assert [goal.name for goal in state.savings] == ['Car']
    failed = sorted(entry['key'] for entry in logs if entry['event'] == 'storage_parse_failed')
    assert failed == [LOANS_KEY]
    skipped = [entry for entry in logs if entry['event'] == 'malformed_entry_skipped']
    assert [(entry['kind'], entry['position']) for entry in skipped] == [('SavingsGoal', 1)]


class _ReadOnlyStore(InMemoryStore):
    async def set(self, key, value):
        raise StorageError("read-only")


def test_save_failures_are_logged_not_raised() -> None:
    with capture_logs() as logs:
        ok = asyncio.run(BudgetRepository(_ReadOnlyStore()).save_state(_full_state()))
    assert ok is False
    assert len([entry for entry in logs if entry['event'] == 'storage_write_failed']) == 5
