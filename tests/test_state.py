"""Tests for the pure state transitions and BudgetController."""

from __future__ import annotations

import asyncio
import json

import pytest
from structlog.testing import capture_logs

from budget_tracker import state as st_
from budget_tracker.config import CREDIT_CARDS_KEY, INCOME_KEY, LOANS_KEY, SAVINGS_KEY, STORAGE_KEYS
from budget_tracker.models import BudgetState, CreditCard, SavingsGoal
from budget_tracker.state import BudgetController, IdGenerator
from budget_tracker.storage import (
    BudgetRepository,
    InMemoryStore,
    JsonFileStore,
    KeyValueStore,
    StorageError,
)


def _fixed_clock(value: float):
    return lambda: value


def _controller(store=None) -> BudgetController:
    repository = BudgetRepository(store if store is not None else InMemoryStore())
    return BudgetController(repository, id_generator=IdGenerator(clock=_fixed_clock(1_700_000_000.0)))


def test_id_generator_never_repeats_within_same_millisecond() -> None:
    ids = IdGenerator(clock=_fixed_clock(1.5))
    assert [ids(), ids(), ids()] == [1500, 1501, 1502]


def test_id_generator_survives_clock_going_backwards() -> None:
    ticks = iter([10.0, 5.0])
    ids = IdGenerator(clock=lambda: next(ticks))
    first = ids()
    assert ids() == first + 1


def test_id_generator_observe_moves_past_loaded_ids() -> None:
    ids = IdGenerator(clock=_fixed_clock(0.001))
    ids.observe(500)
    assert ids() == 501


def test_add_functions_append_defaults() -> None:
    state = BudgetState()
    state = st_.add_expense(state, 'fixed', item_id=1)
    state = st_.add_expense(state, 'variable', item_id=2)
    state = st_.add_credit_card(state, item_id=3)
    state = st_.add_loan(state, item_id=4)
    state = st_.add_savings_goal(state, item_id=5)
    state = st_.add_additional_income(state, item_id=6)
    assert state.expenses.fixed[0].amount == 0.0
    assert state.expenses.variable[0].id == 2
    assert state.credit_cards == (CreditCard(id=3),)
    assert state.loans[0].frequency == 'monthly'
    assert state.savings == (SavingsGoal(id=5),)
    assert state.income.additional[0].id == 6


def test_pure_functions_do_not_touch_input_snapshot() -> None:
    before = st_.add_credit_card(BudgetState(), item_id=1)
    after = st_.update_credit_card(before, 1, 'balance', '250')
    assert before.credit_cards[0].balance == 0.0
    assert after.credit_cards[0].balance == 250.0


def test_update_only_touches_matching_id() -> None:
    state = BudgetState()
    for item_id in (1, 2, 3):
        state = st_.add_savings_goal(state, item_id=item_id)
    state = st_.update_savings_goal(state, 2, 'target', 900)
    assert [goal.target for goal in state.savings] == [0.0, 900.0, 0.0]
    unchanged = st_.update_savings_goal(state, 42, 'target', 1)
    assert unchanged == state


def test_delete_removes_exactly_one_and_keeps_order() -> None:
    state = BudgetState()
    for item_id in (1, 2, 3, 4):
        state = st_.add_expense(state, 'variable', item_id=item_id)
    state = st_.delete_expense(state, 'variable', 2)
    assert [e.id for e in state.expenses.variable] == [1, 3, 4]
    assert st_.delete_expense(state, 'variable', 99) == state


@pytest.mark.parametrize(
    "add, delete, collection",
    [
        (st_.add_credit_card, st_.delete_credit_card, lambda s: s.credit_cards),
        (st_.add_loan, st_.delete_loan, lambda s: s.loans),
        (st_.add_savings_goal, st_.delete_savings_goal, lambda s: s.savings),
        (st_.add_additional_income, st_.delete_additional_income, lambda s: s.income.additional),
    ],
)
def test_delete_for_every_collection(add, delete, collection) -> None:
    state = BudgetState()
    for item_id in (10, 20, 30):
        state = add(state, item_id=item_id)
    state = delete(state, 10)
    assert [item.id for item in collection(state)] == [20, 30]


def test_expense_kind_is_validated() -> None:
    with pytest.raises(ValueError):
        st_.add_expense(BudgetState(), 'weekly', item_id=1)


def test_add_rejects_an_id_already_in_use() -> None:
    state = st_.add_expense(BudgetState(), 'fixed', item_id=7)
    with pytest.raises(ValueError):
        st_.add_credit_card(state, item_id=7)
    with pytest.raises(ValueError):
        st_.add_expense(state, 'variable', item_id=7)
    assert state.ids() == {7}


def test_add_without_id_continues_past_existing_ids() -> None:
    far_future = 10 ** 15
    state = BudgetState(savings=(SavingsGoal(id=far_future),))
    state = st_.add_loan(state)
    state = st_.add_savings_goal(state)
    assert state.loans[0].id > far_future
    assert state.savings[1].id > state.loans[0].id


def test_monthly_income_coerces() -> None:
    assert st_.set_monthly_income(BudgetState(), 'abc').income.monthly == 0.0
    assert st_.set_monthly_income(BudgetState(), '3000').income.monthly == 3000.0


def test_controller_recomputes_totals_after_edits() -> None:
    controller = _controller()
    controller.set_monthly_income(3000)
    controller.add_expense('fixed')
    fixed_id = controller.state.expenses.fixed[0].id
    controller.update_expense('fixed', fixed_id, 'amount', 1200)
    controller.add_expense('variable')
    variable_id = controller.state.expenses.variable[0].id
    controller.update_expense('variable', variable_id, 'amount', '300')
    controller.add_credit_card()
    card_id = controller.state.credit_cards[0].id
    controller.update_credit_card(card_id, 'balance', 500)
    controller.update_credit_card(card_id, 'minPayment', 50)
    controller.update_credit_card(card_id, 'apr', 20)

    totals = controller.totals
    assert totals.total_income == 3000
    assert totals.total_expenses == 1500
    assert totals.total_debt_payments == 50
    assert totals.remaining == 1450


def test_controller_ids_are_unique_across_collections() -> None:
    controller = _controller()
    controller.add_loan()
    controller.add_credit_card()
    controller.add_savings_goal()
    ids = [controller.state.loans[0].id, controller.state.credit_cards[0].id, controller.state.savings[0].id]
    assert len(set(ids)) == 3


def test_controller_persists_after_every_mutation_without_loop() -> None:
    store = InMemoryStore()
    controller = _controller(store)
    controller.set_monthly_income(1800)
    assert set(store.data) == set(STORAGE_KEYS)
    assert json.loads(store.data[INCOME_KEY])['monthly'] == 1800.0

    controller.add_loan()
    assert len(json.loads(store.data[LOANS_KEY])) == 1
    controller.delete_loan(controller.state.loans[0].id)
    assert json.loads(store.data[LOANS_KEY]) == []


def test_controller_schedules_save_inside_running_loop() -> None:
    store = InMemoryStore()
    controller = _controller(store)

    async def scenario():
        controller.add_credit_card()
        await controller.wait_for_pending()

    asyncio.run(scenario())
    assert len(json.loads(store.data[CREDIT_CARDS_KEY])) == 1


class _BrokenStore(KeyValueStore):
    async def get(self, key):
        raise StorageError("disk on fire")

    async def set(self, key, value):
        raise StorageError("disk on fire")


def test_controller_swallows_storage_failures() -> None:
    controller = _controller(_BrokenStore())
    asyncio.run(controller.load())
    controller.add_savings_goal()
    assert len(controller.state.savings) == 1


def test_controller_survives_store_path_under_a_file(tmp_path) -> None:
    blocker = tmp_path / 'file.txt'
    blocker.write_text('not a directory')
    controller = _controller(JsonFileStore(blocker / 'store.json'))
    with capture_logs() as logs:
        controller.add_loan()
    assert len(controller.state.loans) == 1
    assert blocker.read_text() == 'not a directory'
    assert len([entry for entry in logs if entry['event'] == 'storage_write_failed']) == len(STORAGE_KEYS)


class _OSErrorStore(InMemoryStore):
    async def set(self, key, value):
        raise PermissionError(13, "Permission denied")


def test_controller_survives_raw_os_errors_from_store() -> None:
    controller = _controller(_OSErrorStore())
    with capture_logs() as logs:
        controller.set_monthly_income(100)
    assert controller.totals.total_income == 100.0
    assert any(entry['event'] == 'storage_write_failed' for entry in logs)


class _ExplodingRepository(BudgetRepository):
    async def save_state(self, state):
        raise RuntimeError("serializer blew up")


def test_background_save_errors_are_logged() -> None:
    controller = BudgetController(_ExplodingRepository(InMemoryStore()))

    async def scenario():
        controller.add_loan()
        await controller.wait_for_pending()

    with capture_logs() as logs:
        asyncio.run(scenario())
    failures = [entry for entry in logs if entry['event'] == 'background_save_failed']
    assert len(failures) == 1
    assert 'serializer blew up' in failures[0]['error']
    assert len(controller.state.loans) == 1


def test_entry_without_id_is_not_lost_on_next_save() -> None:
    store = InMemoryStore({
        SAVINGS_KEY: json.dumps([
            {'id': 1, 'name': 'Car', 'target': 5000, 'current': 0},
            {'name': 'no id'},
        ]),
    })
    controller = _controller(store)
    asyncio.run(controller.load())
    controller.add_loan()
    stored = json.loads(store.data[SAVINGS_KEY])
    assert [goal['name'] for goal in stored] == ['Car']
    assert stored[0]['target'] == 5000.0


def test_controller_load_rehydrates_and_continues_ids() -> None:
    store = InMemoryStore()
    first = _controller(store)
    first.add_credit_card()
    card_id = first.state.credit_cards[0].id
    first.update_credit_card(card_id, 'name', 'Visa')

    second = BudgetController(
        BudgetRepository(store),
        id_generator=IdGenerator(clock=_fixed_clock(0.0)),
    )
    asyncio.run(second.load())
    assert second.state == first.state
    second.add_credit_card()
    assert second.state.credit_cards[1].id == card_id + 1


def test_controller_without_repository_keeps_state_in_memory() -> None:
    controller = BudgetController()
    controller.add_loan()
    assert asyncio.run(controller.load()) == controller.state
    assert len(controller.state.loans) == 1
