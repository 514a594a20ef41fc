"""Key-value persistence for the budget state.

The tracker talks to storage through :class:`KeyValueStore`, an async
interface with ``get``/``set`` of string values.  :class:`BudgetRepository`
maps the five collections onto their fixed keys and turns missing or
unreadable values into defaults so the app always starts.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import structlog

try:
    from .config import (
        CREDIT_CARDS_KEY,
        EXPENSES_KEY,
        INCOME_KEY,
        LOANS_KEY,
        SAVINGS_KEY,
        STORE_PATH,
    )
    from .models import (
        BudgetState,
        Expenses,
        Income,
        credit_cards_from_list,
        items_to_list,
        loans_from_list,
        savings_from_list,
    )
except ImportError:
    from config import (
        CREDIT_CARDS_KEY,
        EXPENSES_KEY,
        INCOME_KEY,
        LOANS_KEY,
        SAVINGS_KEY,
        STORE_PATH,
    )
    from models import (
        BudgetState,
        Expenses,
        Income,
        credit_cards_from_list,
        items_to_list,
        loans_from_list,
        savings_from_list,
    )

logger = structlog.get_logger(__name__)


class StorageError(Exception):
    """Raised by a store when a value cannot be read or written."""


@dataclass(frozen=True)
class StoredValue:
    value: str


class KeyValueStore(ABC):
    """Async string key-value store."""

    @abstractmethod
    async def get(self, key: str) -> Optional[StoredValue]:
        """Return the stored value, or ``None`` if the key was never set."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``.

        Raises:
            StorageError: If the value cannot be written
        """


class InMemoryStore(KeyValueStore):
    """Dictionary-backed store, used by tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[StoredValue]:
        if key not in self.data:
            return None
        return StoredValue(self.data[key])

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value


class JsonFileStore(KeyValueStore):
    """Store every key in a single JSON document on disk."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else STORE_PATH

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open('r', encoding='utf-8') as handle:
                data = json.load(handle)
        except (json.JSONDecodeError, OSError) as e:
            raise StorageError(f"Failed to read store {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Store {self.path} does not contain a JSON object")
        return data

    async def get(self, key: str) -> Optional[StoredValue]:
        data = self._read_all()
        if key not in data:
            return None
        value = data[key]
        if not isinstance(value, str):
            raise StorageError(f"Value for '{key}' in {self.path} is not a string")
        return StoredValue(value)

    async def set(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open('w', encoding='utf-8') as handle:
                json.dump(data, handle, indent=2, sort_keys=True)
            tmp_path.replace(self.path)
        except OSError as e:
            raise StorageError(f"Failed to write store {self.path}: {e}") from e


class BudgetRepository:
    """Loads and saves a :class:`BudgetState` through a key-value store."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def _load_key(self, key: str, parse: Callable[[Any], Any], default: Any) -> Any:
        try:
            stored = await self.store.get(key)
        except (StorageError, OSError) as e:
            logger.warning("storage_read_failed", key=key, error=str(e))
            return default
        if stored is None:
            logger.debug("storage_key_missing", key=key)
            return default
        try:
            return parse(json.loads(stored.value))
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning("storage_parse_failed", key=key, error=str(e))
            return default

    async def load_state(self) -> BudgetState:
        """Rehydrate every collection; absent or broken keys keep their defaults."""
        return BudgetState(
            income=await self._load_key(INCOME_KEY, Income.from_dict, Income()),
            expenses=await self._load_key(EXPENSES_KEY, Expenses.from_dict, Expenses()),
            savings=await self._load_key(SAVINGS_KEY, savings_from_list, ()),
            credit_cards=await self._load_key(CREDIT_CARDS_KEY, credit_cards_from_list, ()),
            loans=await self._load_key(LOANS_KEY, loans_from_list, ()),
        )

    async def save_state(self, state: BudgetState) -> bool:
        """Write every collection under its key.

        Returns:
            True if all keys were written.  Failures are logged, not raised.
        """
        payloads = {
            INCOME_KEY: state.income.to_dict(),
            EXPENSES_KEY: state.expenses.to_dict(),
            SAVINGS_KEY: items_to_list(state.savings),
            CREDIT_CARDS_KEY: items_to_list(state.credit_cards),
            LOANS_KEY: items_to_list(state.loans),
        }
        ok = True
        for key, payload in payloads.items():
            try:
                await self.store.set(key, json.dumps(payload))
            except (StorageError, OSError) as e:
                logger.error("storage_write_failed", key=key, error=str(e))
                ok = False
        return ok
