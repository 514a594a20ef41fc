"""Budget state transitions and the controller that owns the live snapshot.

The functions in this module are pure: each takes a :class:`BudgetState`
and returns a new one.  :class:`BudgetController` applies them to the
current snapshot, recomputes totals on demand and hands every new
snapshot to the repository for persistence.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import replace
from typing import Any, Callable, Optional, Set, Tuple, TypeVar

import structlog

try:
    from .aggregator import BudgetTotals, calculate_totals
    from .models import (
        BudgetState,
        CreditCard,
        Expense,
        IncomeSource,
        Item,
        Loan,
        SavingsGoal,
        to_number,
    )
    from .storage import BudgetRepository
except ImportError:
    from aggregator import BudgetTotals, calculate_totals
    from models import (
        BudgetState,
        CreditCard,
        Expense,
        IncomeSource,
        Item,
        Loan,
        SavingsGoal,
        to_number,
    )
    from storage import BudgetRepository

logger = structlog.get_logger(__name__)

T = TypeVar('T', bound=Item)


class IdGenerator:
    """Hands out creation-time ids in milliseconds that are never reused.

    Two ids requested within the same millisecond, or after the clock moved
    backwards, continue from the last id issued.
    """

    def __init__(self, clock: Callable[[], float] = time.time, last_id: Optional[int] = None):
        self._clock = clock
        self._last = last_id if last_id is not None else 0

    def observe(self, item_id: Optional[int]) -> None:
        """Make sure future ids are greater than ``item_id``."""
        if item_id is not None and item_id > self._last:
            self._last = item_id

    def __call__(self) -> int:
        candidate = int(self._clock() * 1000)
        if candidate <= self._last:
            candidate = self._last + 1
        self._last = candidate
        return candidate


_default_ids = IdGenerator()


def next_id(state: Optional[BudgetState] = None) -> int:
    """Next id from the module generator, past any id already in ``state``."""
    if state is not None:
        _default_ids.observe(state.max_id())
    return _default_ids()


def _claim_id(state: BudgetState, item_id: Optional[int]) -> int:
    if item_id is None:
        return next_id(state)
    if item_id in state.ids():
        raise ValueError(f"Item id {item_id} is already in use")
    return item_id


# -- generic tuple helpers ---------------------------------------------------

def _update_items(items: Tuple[T, ...], item_id: int, field: str, value: Any) -> Tuple[T, ...]:
    return tuple(item.with_field(field, value) if item.id == item_id else item for item in items)


def _delete_items(items: Tuple[T, ...], item_id: int) -> Tuple[T, ...]:
    return tuple(item for item in items if item.id != item_id)


# -- income ------------------------------------------------------------------

def set_monthly_income(state: BudgetState, value: Any) -> BudgetState:
    return replace(state, income=replace(state.income, monthly=to_number(value)))


def add_additional_income(state: BudgetState, item_id: Optional[int] = None) -> BudgetState:
    source = IncomeSource(id=_claim_id(state, item_id))
    income = replace(state.income, additional=state.income.additional + (source,))
    return replace(state, income=income)


def update_additional_income(state: BudgetState, item_id: int, field: str, value: Any) -> BudgetState:
    additional = _update_items(state.income.additional, item_id, field, value)
    return replace(state, income=replace(state.income, additional=additional))


def delete_additional_income(state: BudgetState, item_id: int) -> BudgetState:
    additional = _delete_items(state.income.additional, item_id)
    return replace(state, income=replace(state.income, additional=additional))


# -- expenses ----------------------------------------------------------------

def add_expense(state: BudgetState, kind: str, item_id: Optional[int] = None) -> BudgetState:
    current = state.expenses.of_kind(kind)
    expense = Expense(id=_claim_id(state, item_id))
    return replace(state, expenses=replace(state.expenses, **{kind: current + (expense,)}))


def update_expense(state: BudgetState, kind: str, item_id: int, field: str, value: Any) -> BudgetState:
    updated = _update_items(state.expenses.of_kind(kind), item_id, field, value)
    return replace(state, expenses=replace(state.expenses, **{kind: updated}))


def delete_expense(state: BudgetState, kind: str, item_id: int) -> BudgetState:
    remaining = _delete_items(state.expenses.of_kind(kind), item_id)
    return replace(state, expenses=replace(state.expenses, **{kind: remaining}))


# -- savings goals -----------------------------------------------------------

def add_savings_goal(state: BudgetState, item_id: Optional[int] = None) -> BudgetState:
    goal = SavingsGoal(id=_claim_id(state, item_id))
    return replace(state, savings=state.savings + (goal,))


def update_savings_goal(state: BudgetState, item_id: int, field: str, value: Any) -> BudgetState:
    return replace(state, savings=_update_items(state.savings, item_id, field, value))


def delete_savings_goal(state: BudgetState, item_id: int) -> BudgetState:
    return replace(state, savings=_delete_items(state.savings, item_id))


# -- credit cards ------------------------------------------------------------

def add_credit_card(state: BudgetState, item_id: Optional[int] = None) -> BudgetState:
    card = CreditCard(id=_claim_id(state, item_id))
    return replace(state, credit_cards=state.credit_cards + (card,))


def update_credit_card(state: BudgetState, item_id: int, field: str, value: Any) -> BudgetState:
    return replace(state, credit_cards=_update_items(state.credit_cards, item_id, field, value))


def delete_credit_card(state: BudgetState, item_id: int) -> BudgetState:
    return replace(state, credit_cards=_delete_items(state.credit_cards, item_id))


# -- loans -------------------------------------------------------------------

def add_loan(state: BudgetState, item_id: Optional[int] = None) -> BudgetState:
    loan = Loan(id=_claim_id(state, item_id))
    return replace(state, loans=state.loans + (loan,))


def update_loan(state: BudgetState, item_id: int, field: str, value: Any) -> BudgetState:
    return replace(state, loans=_update_items(state.loans, item_id, field, value))


def delete_loan(state: BudgetState, item_id: int) -> BudgetState:
    return replace(state, loans=_delete_items(state.loans, item_id))


class BudgetController:
    """Owns the current :class:`BudgetState` and mirrors it to storage.

    Every mutating method replaces the snapshot and schedules a save.  When
    an event loop is running the save becomes a background task; otherwise
    it runs to completion before the method returns.  Save failures are
    logged by the repository and never reach the caller.
    """

    def __init__(
        self,
        repository: Optional[BudgetRepository] = None,
        state: Optional[BudgetState] = None,
        id_generator: Optional[IdGenerator] = None,
    ):
        self.repository = repository
        self._state = state or BudgetState()
        self._ids = id_generator or IdGenerator()
        self._ids.observe(self._state.max_id())
        self._pending: Set[asyncio.Task] = set()

    @property
    def state(self) -> BudgetState:
        return self._state

    @property
    def totals(self) -> BudgetTotals:
        return calculate_totals(self._state)

    async def load(self) -> BudgetState:
        """Rehydrate the snapshot from storage, keeping defaults for missing keys."""
        if self.repository is None:
            return self._state
        self._state = await self.repository.load_state()
        self._ids.observe(self._state.max_id())
        logger.info("budget_state_loaded", max_id=self._state.max_id())
        return self._state

    async def save(self) -> None:
        if self.repository is None:
            return
        await self.repository.save_state(self._state)

    async def wait_for_pending(self) -> None:
        """Wait for background saves scheduled inside a running loop."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _commit(self, new_state: BudgetState) -> BudgetState:
        self._state = new_state
        self._schedule_save()
        return new_state

    def _schedule_save(self) -> None:
        if self.repository is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(self.save())
            return
        task = loop.create_task(self.save())
        self._pending.add(task)
        task.add_done_callback(self._on_save_done)

    def _on_save_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("background_save_failed", error=repr(error))

    # income
    def set_monthly_income(self, value: Any) -> BudgetState:
        return self._commit(set_monthly_income(self._state, value))

    def add_additional_income(self) -> BudgetState:
        return self._commit(add_additional_income(self._state, self._ids()))

    def update_additional_income(self, item_id: int, field: str, value: Any) -> BudgetState:
        return self._commit(update_additional_income(self._state, item_id, field, value))

    def delete_additional_income(self, item_id: int) -> BudgetState:
        return self._commit(delete_additional_income(self._state, item_id))

    # expenses
    def add_expense(self, kind: str) -> BudgetState:
        return self._commit(add_expense(self._state, kind, self._ids()))

    def update_expense(self, kind: str, item_id: int, field: str, value: Any) -> BudgetState:
        return self._commit(update_expense(self._state, kind, item_id, field, value))

    def delete_expense(self, kind: str, item_id: int) -> BudgetState:
        return self._commit(delete_expense(self._state, kind, item_id))

    # savings goals
    def add_savings_goal(self) -> BudgetState:
        return self._commit(add_savings_goal(self._state, self._ids()))

    def update_savings_goal(self, item_id: int, field: str, value: Any) -> BudgetState:
        return self._commit(update_savings_goal(self._state, item_id, field, value))

    def delete_savings_goal(self, item_id: int) -> BudgetState:
        return self._commit(delete_savings_goal(self._state, item_id))

    # credit cards
    def add_credit_card(self) -> BudgetState:
        return self._commit(add_credit_card(self._state, self._ids()))

    def update_credit_card(self, item_id: int, field: str, value: Any) -> BudgetState:
        return self._commit(update_credit_card(self._state, item_id, field, value))

    def delete_credit_card(self, item_id: int) -> BudgetState:
        return self._commit(delete_credit_card(self._state, item_id))

    # loans
    def add_loan(self) -> BudgetState:
        return self._commit(add_loan(self._state, self._ids()))

    def update_loan(self, item_id: int, field: str, value: Any) -> BudgetState:
        return self._commit(update_loan(self._state, item_id, field, value))

    def delete_loan(self, item_id: int) -> BudgetState:
        return self._commit(delete_loan(self._state, item_id))
