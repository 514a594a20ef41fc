"""Budget aggregation and per-item estimates.

This module derives every summary figure the tracker displays from a
:class:`~budget_tracker.models.BudgetState` snapshot.  All functions are
pure; recomputing after each edit is just another call.

Amounts are summed with pandas so that anything non-numeric that slipped
through (hand-edited store files, ``None``) counts as zero rather than
raising.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List

import pandas as pd

try:
    from .config import DEFAULT_CATEGORY
    from .models import BudgetState, CreditCard, Expense, Loan, SavingsGoal, to_number
except ImportError:
    from config import DEFAULT_CATEGORY
    from models import BudgetState, CreditCard, Expense, Loan, SavingsGoal, to_number


@dataclass(frozen=True)
class BudgetTotals:
    total_income: float = 0.0
    total_fixed: float = 0.0
    total_variable: float = 0.0
    total_expenses: float = 0.0
    total_credit_card_debt: float = 0.0
    total_credit_card_payments: float = 0.0
    total_loan_debt: float = 0.0
    total_loan_payments: float = 0.0
    total_debt: float = 0.0
    total_debt_payments: float = 0.0
    total_savings_goal: float = 0.0
    remaining: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def sum_field(items: Iterable[Any], field: str) -> float:
    """Sum one attribute across items, treating unparseable values as 0.

    Args:
        items: Dataclass items or plain mappings
        field: Attribute (or key) to sum

    Returns:
        The total as a plain float; ``0.0`` for an empty iterable

    Example:
        >>> sum_field([{'amount': '10'}, {'amount': 'abc'}, {}], 'amount')
        10.0
    """
    values = [
        item.get(field) if isinstance(item, dict) else getattr(item, field, None)
        for item in items
    ]
    if not values:
        return 0.0
    series = pd.to_numeric(pd.Series(values, dtype=object), errors='coerce').fillna(0.0)
    return float(series.sum())


def calculate_totals(state: BudgetState) -> BudgetTotals:
    """Compute every budget-level total for a snapshot."""
    total_income = to_number(state.income.monthly) + sum_field(state.income.additional, 'amount')

    total_fixed = sum_field(state.expenses.fixed, 'amount')
    total_variable = sum_field(state.expenses.variable, 'amount')
    total_expenses = total_fixed + total_variable

    total_credit_card_debt = sum_field(state.credit_cards, 'balance')
    total_credit_card_payments = sum_field(state.credit_cards, 'min_payment')
    total_loan_debt = sum_field(state.loans, 'balance')
    total_loan_payments = sum_field(state.loans, 'payment')

    total_debt = total_credit_card_debt + total_loan_debt
    total_debt_payments = total_credit_card_payments + total_loan_payments

    return BudgetTotals(
        total_income=total_income,
        total_fixed=total_fixed,
        total_variable=total_variable,
        total_expenses=total_expenses,
        total_credit_card_debt=total_credit_card_debt,
        total_credit_card_payments=total_credit_card_payments,
        total_loan_debt=total_loan_debt,
        total_loan_payments=total_loan_payments,
        total_debt=total_debt,
        total_debt_payments=total_debt_payments,
        total_savings_goal=sum_field(state.savings, 'target'),
        remaining=total_income - total_expenses - total_debt_payments,
    )


def total_saved(state: BudgetState) -> float:
    return sum_field(state.savings, 'current')


def remaining_percent_of_income(totals: BudgetTotals) -> float:
    """Share of income left after expenses and debt payments, in percent."""
    if totals.total_income <= 0:
        return 0.0
    return totals.remaining / totals.total_income * 100


def overview_rows(totals: BudgetTotals) -> List[Dict[str, Any]]:
    """Rows for the monthly overview bar chart.

    Remaining is clamped at zero; a deficit shows up as an insight instead.
    """
    return [
        {'name': 'Income', 'amount': totals.total_income},
        {'name': 'Expenses', 'amount': totals.total_expenses},
        {'name': 'Debt Payments', 'amount': totals.total_debt_payments},
        {'name': 'Remaining', 'amount': max(totals.remaining, 0.0)},
    ]


def expenses_by_category(expenses: Iterable[Expense]) -> Dict[str, float]:
    """Group expense amounts by category in first-seen order.

    Expenses without a category are counted under ``Other``.

    Example:
        >>> expenses_by_category([Expense(id=1, amount=50.0, category='Food'),
        ...                       Expense(id=2, amount=20.0)])
        {'Food': 50.0, 'Other': 20.0}
    """
    rows = [
        {'category': expense.category or DEFAULT_CATEGORY, 'amount': expense.amount}
        for expense in expenses
    ]
    if not rows:
        return {}
    frame = pd.DataFrame(rows)
    frame['amount'] = pd.to_numeric(frame['amount'], errors='coerce').fillna(0.0)
    grouped = frame.groupby('category', sort=False)['amount'].sum()
    return {str(category): float(amount) for category, amount in grouped.items()}


def category_breakdown(state: BudgetState) -> Dict[str, float]:
    """Category totals across both fixed and variable expenses."""
    return expenses_by_category(state.expenses.all())


def _payoff_periods(balance: float, payment: float) -> int:
    if balance > 0 and payment > 0:
        return math.ceil(balance / payment)
    return 0


def credit_card_monthly_interest(card: CreditCard) -> float:
    """Approximate one month of interest: balance × APR / 100 / 12."""
    return to_number(card.balance) * to_number(card.apr) / 100 / 12


def credit_card_payoff_months(card: CreditCard) -> int:
    """Months to clear the balance at the minimum payment, ignoring interest.

    Example:
        >>> credit_card_payoff_months(CreditCard(id=1, balance=1200, min_payment=100))
        12
    """
    return _payoff_periods(to_number(card.balance), to_number(card.min_payment))


def loan_payoff_payments(loan: Loan) -> int:
    """Number of payments (at the loan's frequency) to clear the balance."""
    return _payoff_periods(to_number(loan.balance), to_number(loan.payment))


def savings_progress(goal: SavingsGoal) -> float:
    """Percentage of the target reached; 0 when there is no target."""
    target = to_number(goal.target)
    if target <= 0:
        return 0.0
    return to_number(goal.current) / target * 100


def savings_display_progress(goal: SavingsGoal) -> float:
    """Progress clamped to [0, 100] for progress bars."""
    return min(max(savings_progress(goal), 0.0), 100.0)
