"""Advisory insights derived from budget totals.

Each rule is an independent predicate; none depends on another having
fired.  ``generate_insights`` evaluates all of them and returns the
messages for the ones that hold.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, List, Tuple

try:
    from .aggregator import BudgetTotals
    from .config import (
        DEBT_TO_INCOME_LIMIT,
        FIXED_EXPENSE_SHARE_LIMIT,
        HEALTHY_SURPLUS_SHARE,
        HIGH_APR_THRESHOLD,
    )
    from .models import CreditCard, to_number
except ImportError:
    from aggregator import BudgetTotals
    from config import (
        DEBT_TO_INCOME_LIMIT,
        FIXED_EXPENSE_SHARE_LIMIT,
        HEALTHY_SURPLUS_SHARE,
        HIGH_APR_THRESHOLD,
    )
    from models import CreditCard, to_number


@dataclass(frozen=True)
class Insight:
    key: str
    level: str  # 'error', 'warning' or 'success'
    message: str


def is_overspending(totals: BudgetTotals) -> bool:
    return totals.remaining < 0


def has_high_debt_load(totals: BudgetTotals) -> bool:
    return totals.total_debt > totals.total_income * DEBT_TO_INCOME_LIMIT


def has_heavy_fixed_costs(totals: BudgetTotals) -> bool:
    return totals.total_fixed > totals.total_income * FIXED_EXPENSE_SHARE_LIMIT


def is_debt_free_saver(totals: BudgetTotals) -> bool:
    return totals.total_debt == 0 and totals.remaining > totals.total_income * HEALTHY_SURPLUS_SHARE


def has_high_apr_card(cards: Iterable[CreditCard]) -> bool:
    return any(to_number(card.apr) > HIGH_APR_THRESHOLD for card in cards)


_TOTALS_RULES: Tuple[Tuple[Callable[[BudgetTotals], bool], Insight], ...] = (
    (
        is_overspending,
        Insight(
            'overspending',
            'error',
            "You're spending more than you earn. Consider reducing expenses or increasing income.",
        ),
    ),
    (
        has_high_debt_load,
        Insight(
            'high_debt',
            'warning',
            "Your total debt is over 2x your monthly income. Focus on debt reduction.",
        ),
    ),
    (
        has_heavy_fixed_costs,
        Insight(
            'high_fixed_expenses',
            'warning',
            "Fixed expenses are over 50% of income. Look for ways to reduce them.",
        ),
    ),
    (
        is_debt_free_saver,
        Insight(
            'debt_free_saver',
            'success',
            "Excellent! You're debt-free and saving over 20% of your income.",
        ),
    ),
)

HIGH_APR_INSIGHT = Insight(
    'high_apr',
    'error',
    "You have credit cards with APR over 25%. Consider balance transfer or debt consolidation.",
)


def generate_insights(totals: BudgetTotals, cards: Iterable[CreditCard] = ()) -> List[Insight]:
    """Return every insight whose rule holds, in a stable order."""
    fired = [insight for rule, insight in _TOTALS_RULES if rule(totals)]
    if has_high_apr_card(cards):
        fired.append(HIGH_APR_INSIGHT)
    return fired
