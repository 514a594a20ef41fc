"""Configuration management for the budget tracker.

This module centralizes all configuration values including paths,
storage keys, category tables and environment variable overrides.
"""

from __future__ import annotations

import os
from pathlib import Path

# Base project root - assumes this file is in budget_tracker/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directories
DATA_DIR = Path(os.getenv("BUDGET_TRACKER_DATA_DIR", _PROJECT_ROOT / "data"))

# Key-value store backing file
STORE_PATH = Path(
    os.getenv("BUDGET_TRACKER_STORE_PATH", DATA_DIR / "budget_store.json")
).resolve()

# Logging
LOG_LEVEL = os.getenv("BUDGET_TRACKER_LOG_LEVEL", "INFO").upper()
LOG_JSON = os.getenv("BUDGET_TRACKER_LOG_JSON", "0") == "1"

# Storage keys, one per collection
INCOME_KEY = "budget-income"
EXPENSES_KEY = "budget-expenses"
SAVINGS_KEY = "budget-savings"
CREDIT_CARDS_KEY = "budget-creditcards"
LOANS_KEY = "budget-loans"
STORAGE_KEYS = (INCOME_KEY, EXPENSES_KEY, SAVINGS_KEY, CREDIT_CARDS_KEY, LOANS_KEY)

# Expense categories and their chart colours
CATEGORY_COLORS = {
    'Housing': '#2D5F4F',
    'Transportation': '#4A7C8E',
    'Food': '#6B8E7F',
    'Utilities': '#5A7A8C',
    'Entertainment': '#8B9E96',
    'Healthcare': '#3E6B7D',
    'Insurance': '#547A6E',
    'Other': '#6D8A87',
}
EXPENSE_CATEGORIES = tuple(CATEGORY_COLORS)
DEFAULT_CATEGORY = 'Other'

EXPENSE_KINDS = ('fixed', 'variable')

LOAN_FREQUENCIES = ('weekly', 'bi-weekly', 'monthly')
DEFAULT_LOAN_FREQUENCY = 'monthly'

# Insight thresholds
DEBT_TO_INCOME_LIMIT = 2.0
FIXED_EXPENSE_SHARE_LIMIT = 0.5
HEALTHY_SURPLUS_SHARE = 0.2
HIGH_APR_THRESHOLD = 25.0


def ensure_data_directories() -> None:
    """Create all required data directories if they don't exist."""
    for directory in [DATA_DIR, STORE_PATH.parent]:
        directory.mkdir(parents=True, exist_ok=True)


def get_store_path() -> str:
    """Get the key-value store path as a string."""
    return str(STORE_PATH)
