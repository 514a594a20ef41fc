"""Budget data model.

Every collection the tracker owns is represented by a frozen dataclass so
a :class:`BudgetState` snapshot can be shared between the controller, the
aggregator and the UI without anyone mutating it underneath the others.
Lists are stored as tuples for the same reason.

Attribute names are snake_case.  The JSON form produced by ``to_dict``
keeps the camelCase keys (``minPayment``, ``dueDate``, ``creditCards``)
used by previously stored data.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, replace
from typing import Any, ClassVar, Dict, Iterable, Mapping, Optional, Set, Tuple, Type, TypeVar

import structlog

try:
    from .config import (
        DEFAULT_LOAN_FREQUENCY,
        EXPENSE_CATEGORIES,
        EXPENSE_KINDS,
        LOAN_FREQUENCIES,
    )
except ImportError:
    from config import (
        DEFAULT_LOAN_FREQUENCY,
        EXPENSE_CATEGORIES,
        EXPENSE_KINDS,
        LOAN_FREQUENCIES,
    )

logger = structlog.get_logger(__name__)

T = TypeVar('T', bound='Item')


def to_number(value: Any) -> float:
    """Coerce a user-entered value to a float.

    Missing, empty and non-numeric values become ``0.0`` instead of raising.
    Leading numeric prefixes are not salvaged: ``"12abc"`` is ``0.0``.

    Example:
        >>> to_number("12.5")
        12.5
        >>> to_number("abc")
        0.0
        >>> to_number(None)
        0.0
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def _to_text(value: Any) -> str:
    return '' if value is None else str(value)


@dataclass(frozen=True)
class Item:
    """Base class for list entries identified by a creation timestamp."""

    id: int

    # attribute name -> JSON key, where they differ
    JSON_KEYS: ClassVar[Mapping[str, str]] = {}
    NUMERIC_FIELDS: ClassVar[Tuple[str, ...]] = ()

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls) if f.name != 'id')

    @classmethod
    def _json_key(cls, name: str) -> str:
        return cls.JSON_KEYS.get(name, name)

    def with_field(self: T, name: str, value: Any) -> T:
        """Return a copy with one field replaced, coercing numeric input.

        Raises:
            ValueError: If ``name`` is not an editable field of this item.
        """
        attr = self._resolve_field(name)
        if attr in self.NUMERIC_FIELDS:
            value = to_number(value)
        else:
            value = self._validate_text(attr, _to_text(value))
        return replace(self, **{attr: value})

    def _validate_text(self, name: str, value: str) -> str:
        return value

    @classmethod
    def _resolve_field(cls, name: str) -> str:
        names = cls.field_names()
        if name in names:
            return name
        for attr, key in cls.JSON_KEYS.items():
            if key == name:
                return attr
        raise ValueError(f"{cls.__name__} has no editable field '{name}'")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'id': self.id}
        for name in self.field_names():
            data[self._json_key(name)] = getattr(self, name)
        return data

    @classmethod
    def from_dict(cls: Type[T], data: Mapping[str, Any]) -> T:
        kwargs: Dict[str, Any] = {}
        for name in cls.field_names():
            raw = data.get(cls._json_key(name), data.get(name))
            if name in cls.NUMERIC_FIELDS:
                kwargs[name] = to_number(raw)
            else:
                kwargs[name] = _to_text(raw)
        item_id = data.get('id')
        try:
            item_id = int(item_id)
        except (TypeError, ValueError):
            raise ValueError(f"{cls.__name__} entry has no usable id: {item_id!r}") from None
        return cls(id=item_id, **kwargs)


@dataclass(frozen=True)
class IncomeSource(Item):
    name: str = ''
    amount: float = 0.0

    NUMERIC_FIELDS = ('amount',)


@dataclass(frozen=True)
class Expense(Item):
    name: str = ''
    amount: float = 0.0
    category: str = ''

    NUMERIC_FIELDS = ('amount',)

    def _validate_text(self, name: str, value: str) -> str:
        if name == 'category' and value and value not in EXPENSE_CATEGORIES:
            raise ValueError(f"Unknown expense category '{value}'")
        return value

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Expense':
        expense = super().from_dict(data)
        if expense.category and expense.category not in EXPENSE_CATEGORIES:
            logger.warning("unknown_category_dropped", category=expense.category, id=expense.id)
            expense = replace(expense, category='')
        return expense


@dataclass(frozen=True)
class SavingsGoal(Item):
    name: str = ''
    target: float = 0.0
    current: float = 0.0

    NUMERIC_FIELDS = ('target', 'current')


@dataclass(frozen=True)
class CreditCard(Item):
    name: str = ''
    balance: float = 0.0
    min_payment: float = 0.0
    apr: float = 0.0
    due_date: str = ''

    JSON_KEYS = {'min_payment': 'minPayment', 'due_date': 'dueDate'}
    NUMERIC_FIELDS = ('balance', 'min_payment', 'apr')


@dataclass(frozen=True)
class Loan(Item):
    name: str = ''
    balance: float = 0.0
    payment: float = 0.0
    apr: float = 0.0
    due_date: str = ''
    frequency: str = DEFAULT_LOAN_FREQUENCY

    JSON_KEYS = {'due_date': 'dueDate'}
    NUMERIC_FIELDS = ('balance', 'payment', 'apr')

    def _validate_text(self, name: str, value: str) -> str:
        if name == 'frequency' and value not in LOAN_FREQUENCIES:
            raise ValueError(f"Unknown loan frequency '{value}'")
        return value

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Loan':
        loan = super().from_dict(data)
        if loan.frequency not in LOAN_FREQUENCIES:
            logger.warning("unknown_frequency_reset", frequency=loan.frequency, id=loan.id)
            loan = replace(loan, frequency=DEFAULT_LOAN_FREQUENCY)
        return loan


def _items_from(cls: Type[T], raw: Any) -> Tuple[T, ...]:
    if not isinstance(raw, list):
        return ()
    items = []
    for position, entry in enumerate(raw):
        if not isinstance(entry, Mapping):
            logger.warning("malformed_entry_skipped", kind=cls.__name__, position=position)
            continue
        try:
            items.append(cls.from_dict(entry))
        except ValueError as e:
            # One bad entry must not cost the rest of the collection
            logger.warning("malformed_entry_skipped", kind=cls.__name__, position=position, error=str(e))
    return tuple(items)


@dataclass(frozen=True)
class Income:
    monthly: float = 0.0
    additional: Tuple[IncomeSource, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'monthly': self.monthly,
            'additional': [source.to_dict() for source in self.additional],
        }

    @classmethod
    def from_dict(cls, data: Any) -> 'Income':
        if not isinstance(data, Mapping):
            return cls()
        return cls(
            monthly=to_number(data.get('monthly')),
            additional=_items_from(IncomeSource, data.get('additional')),
        )


@dataclass(frozen=True)
class Expenses:
    fixed: Tuple[Expense, ...] = ()
    variable: Tuple[Expense, ...] = ()

    def of_kind(self, kind: str) -> Tuple[Expense, ...]:
        if kind not in EXPENSE_KINDS:
            raise ValueError(f"Expense kind must be one of {EXPENSE_KINDS}, got '{kind}'")
        return getattr(self, kind)

    def all(self) -> Tuple[Expense, ...]:
        return self.fixed + self.variable

    def to_dict(self) -> Dict[str, Any]:
        return {
            'fixed': [expense.to_dict() for expense in self.fixed],
            'variable': [expense.to_dict() for expense in self.variable],
        }

    @classmethod
    def from_dict(cls, data: Any) -> 'Expenses':
        if not isinstance(data, Mapping):
            return cls()
        return cls(
            fixed=_items_from(Expense, data.get('fixed')),
            variable=_items_from(Expense, data.get('variable')),
        )


def items_to_list(items: Iterable[Item]) -> list:
    return [item.to_dict() for item in items]


def savings_from_list(raw: Any) -> Tuple[SavingsGoal, ...]:
    return _items_from(SavingsGoal, raw)


def credit_cards_from_list(raw: Any) -> Tuple[CreditCard, ...]:
    return _items_from(CreditCard, raw)


def loans_from_list(raw: Any) -> Tuple[Loan, ...]:
    return _items_from(Loan, raw)


@dataclass(frozen=True)
class BudgetState:
    """Immutable snapshot of everything the tracker owns."""

    income: Income = field(default_factory=Income)
    expenses: Expenses = field(default_factory=Expenses)
    savings: Tuple[SavingsGoal, ...] = ()
    credit_cards: Tuple[CreditCard, ...] = ()
    loans: Tuple[Loan, ...] = ()

    def ids(self) -> Set[int]:
        """Every item id currently in use, across all collections."""
        return {
            item.id
            for group in (
                self.income.additional,
                self.expenses.fixed,
                self.expenses.variable,
                self.savings,
                self.credit_cards,
                self.loans,
            )
            for item in group
        }

    def max_id(self) -> Optional[int]:
        ids = self.ids()
        return max(ids) if ids else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'income': self.income.to_dict(),
            'expenses': self.expenses.to_dict(),
            'savings': items_to_list(self.savings),
            'creditCards': items_to_list(self.credit_cards),
            'loans': items_to_list(self.loans),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'BudgetState':
        return cls(
            income=Income.from_dict(data.get('income')),
            expenses=Expenses.from_dict(data.get('expenses')),
            savings=savings_from_list(data.get('savings')),
            credit_cards=credit_cards_from_list(data.get('creditCards')),
            loans=loans_from_list(data.get('loans')),
        )
