"""Streamlit UI components for the budget tracker.

The components in this module only read from a
:class:`~budget_tracker.state.BudgetController` and call its mutation
methods from widget callbacks; every figure shown comes from
:mod:`budget_tracker.aggregator`.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional

import streamlit as st
from streamlit.errors import StreamlitAPIException

try:
    from . import aggregator as agg
    from . import visualization as viz
    from .config import EXPENSE_CATEGORIES, LOAN_FREQUENCIES, ensure_data_directories
    from .formatting import display_name, escape_dollar_for_markdown, format_currency, format_percent
    from .insights import generate_insights
    from .logging_setup import configure_logging
    from .models import CreditCard, Expense, Loan, SavingsGoal
    from .state import BudgetController
    from .storage import BudgetRepository, JsonFileStore
except ImportError:
    import aggregator as agg
    import visualization as viz
    from config import EXPENSE_CATEGORIES, LOAN_FREQUENCIES, ensure_data_directories
    from formatting import display_name, escape_dollar_for_markdown, format_currency, format_percent
    from insights import generate_insights
    from logging_setup import configure_logging
    from models import CreditCard, Expense, Loan, SavingsGoal
    from state import BudgetController
    from storage import BudgetRepository, JsonFileStore

CONTROLLER_KEY = 'budget_controller'

_INSIGHT_ICONS = {
    'overspending': '⚠️',
    'high_debt': '💡',
    'high_fixed_expenses': '📊',
    'debt_free_saver': '✅',
    'high_apr': '🔴',
}


def get_controller() -> BudgetController:
    """Return the session's controller, loading it from disk on first use."""
    if CONTROLLER_KEY not in st.session_state:
        configure_logging()
        ensure_data_directories()
        controller = BudgetController(BudgetRepository(JsonFileStore()))
        asyncio.run(controller.load())
        st.session_state[CONTROLLER_KEY] = controller
    return st.session_state[CONTROLLER_KEY]


def _apply_widget(update: Callable[..., Any], widget_key: str, *args: Any) -> None:
    update(*args, st.session_state[widget_key])


# Captions, markdown and progress labels all render as markdown, where an
# unescaped pair of "$" opens a LaTeX span.

def total_line(label: str, amount: float) -> str:
    return f"**{label}:** {escape_dollar_for_markdown(amount)}"


def card_summary_caption(card: CreditCard) -> str:
    return (
        f"{display_name(card.name, 'Unnamed Card')}: {escape_dollar_for_markdown(card.balance)}"
        f" (due {card.due_date or 'N/A'})"
    )


def loan_summary_caption(loan: Loan) -> str:
    return (
        f"{display_name(loan.name, 'Unnamed Loan')}: {escape_dollar_for_markdown(loan.balance)}"
        f" ({escape_dollar_for_markdown(loan.payment)}/{loan.frequency or 'month'})"
    )


def card_estimate_caption(card: CreditCard) -> str:
    return (
        f"Monthly Interest: ~{escape_dollar_for_markdown(agg.credit_card_monthly_interest(card))}"
        f" · Payoff Time: {agg.credit_card_payoff_months(card)} months"
    )


def goal_progress_text(goal: SavingsGoal) -> str:
    return (
        f"{format_percent(agg.savings_progress(goal))} Complete · "
        f"{escape_dollar_for_markdown(goal.current)} / {escape_dollar_for_markdown(goal.target)}"
    )


class BudgetTrackerUI:
    """Form components for each collection plus the overview."""
    _PAGE_CONFIGURED = False

    def __init__(self, controller: Optional[BudgetController] = None, *, configure_page: bool = False):
        if configure_page:
            self.setup_page_config()
        self.controller = controller or get_controller()

    def setup_page_config(self) -> None:
        """Configure Streamlit page settings."""
        if BudgetTrackerUI._PAGE_CONFIGURED:
            return
        try:
            st.set_page_config(
                page_title="Personal Budget Tracker",
                page_icon="💰",
                layout="wide",
                initial_sidebar_state="expanded",
            )
        except StreamlitAPIException:
            # Already configured by the page script
            pass
        finally:
            BudgetTrackerUI._PAGE_CONFIGURED = True

    def render_header(self) -> None:
        st.title("💰 Personal Budget Tracker")
        st.markdown("Take control of your finances")

    # -- overview --------------------------------------------------------

    def render_overview(self) -> None:
        state = self.controller.state
        totals = self.controller.totals

        col1, col2, col3, col4 = st.columns(4)
        col1.metric("📈 Total Income", format_currency(totals.total_income))
        col2.metric("📉 Total Expenses", format_currency(totals.total_expenses))
        col3.metric(
            "💳 Total Debt",
            format_currency(totals.total_debt),
            help=f"{format_currency(totals.total_debt_payments)}/mo in payments",
        )
        col4.metric(
            "💵 After Debt Payments",
            format_currency(totals.remaining),
            delta=f"{format_percent(agg.remaining_percent_of_income(totals))} of income",
            delta_color="normal" if totals.remaining >= 0 else "inverse",
        )

        left, right = st.columns(2)
        with left:
            st.subheader("💳 Credit Card Summary")
            st.markdown(total_line("Total Balance", totals.total_credit_card_debt))
            st.markdown(total_line("Monthly Payments", totals.total_credit_card_payments))
            for card in state.credit_cards:
                st.caption(card_summary_caption(card))
        with right:
            st.subheader("🏦 Loan Summary")
            st.markdown(total_line("Total Balance", totals.total_loan_debt))
            st.markdown(total_line("Monthly Payments", totals.total_loan_payments))
            for loan in state.loans:
                st.caption(loan_summary_caption(loan))

        left, right = st.columns(2)
        with left:
            breakdown = agg.category_breakdown(state)
            st.plotly_chart(viz.create_category_pie_chart(breakdown), use_container_width=True)
        with right:
            st.plotly_chart(
                viz.create_overview_bar_chart(agg.overview_rows(totals)),
                use_container_width=True,
            )

        self.render_insights()

    def render_insights(self) -> None:
        st.subheader("Quick Insights")
        insights = generate_insights(self.controller.totals, self.controller.state.credit_cards)
        if not insights:
            st.info("Add your income and expenses to see insights.")
            return
        for insight in insights:
            message = f"{_INSIGHT_ICONS.get(insight.key, '')} {insight.message}".strip()
            if insight.level == 'error':
                st.error(message)
            elif insight.level == 'warning':
                st.warning(message)
            else:
                st.success(message)

    # -- income ----------------------------------------------------------

    def render_income(self) -> None:
        controller = self.controller
        income = controller.state.income

        st.subheader("Monthly Income")
        st.number_input(
            "Primary monthly income",
            min_value=0.0,
            step=100.0,
            value=float(income.monthly),
            key='income_monthly',
            on_change=lambda: controller.set_monthly_income(st.session_state['income_monthly']),
        )

        st.subheader("Additional Income")
        if st.button("➕ Add Income Source", key='add_income'):
            controller.add_additional_income()
            st.rerun()

        for source in controller.state.income.additional:
            col1, col2, col3 = st.columns([3, 2, 1])
            name_key = f"income_name_{source.id}"
            amount_key = f"income_amount_{source.id}"
            col1.text_input(
                "Source", value=source.name, key=name_key, placeholder="Income source",
                on_change=_apply_widget,
                args=(controller.update_additional_income, name_key, source.id, 'name'),
            )
            col2.number_input(
                "Amount", value=float(source.amount), step=50.0, key=amount_key,
                on_change=_apply_widget,
                args=(controller.update_additional_income, amount_key, source.id, 'amount'),
            )
            col3.button(
                "🗑️", key=f"delete_income_{source.id}",
                on_click=controller.delete_additional_income, args=(source.id,),
            )

        st.metric("Total Monthly Income", format_currency(controller.totals.total_income))

    # -- expenses --------------------------------------------------------

    def render_expenses(self, kind: str) -> None:
        controller = self.controller
        label = 'Fixed' if kind == 'fixed' else 'Variable'
        st.subheader(f"{label} Expenses")

        if st.button(f"➕ Add {label} Expense", key=f"add_{kind}"):
            controller.add_expense(kind)
            st.rerun()

        options = [''] + list(EXPENSE_CATEGORIES)
        for expense in controller.state.expenses.of_kind(kind):
            self._render_expense_row(kind, expense, options)

        total = controller.totals.total_fixed if kind == 'fixed' else controller.totals.total_variable
        st.markdown(total_line(f"Total {label}", total))

    def _render_expense_row(self, kind: str, expense: Expense, options: list) -> None:
        controller = self.controller
        col1, col2, col3, col4 = st.columns([3, 2, 2, 1])
        name_key = f"{kind}_name_{expense.id}"
        category_key = f"{kind}_category_{expense.id}"
        amount_key = f"{kind}_amount_{expense.id}"
        col1.text_input(
            "Expense", value=expense.name, key=name_key, placeholder="Expense name",
            on_change=_apply_widget,
            args=(controller.update_expense, name_key, kind, expense.id, 'name'),
        )
        col2.selectbox(
            "Category", options, index=options.index(expense.category), key=category_key,
            format_func=lambda c: c or 'Category',
            on_change=_apply_widget,
            args=(controller.update_expense, category_key, kind, expense.id, 'category'),
        )
        col3.number_input(
            "Amount", value=float(expense.amount), step=10.0, key=amount_key,
            on_change=_apply_widget,
            args=(controller.update_expense, amount_key, kind, expense.id, 'amount'),
        )
        col4.button(
            "🗑️", key=f"delete_{kind}_{expense.id}",
            on_click=controller.delete_expense, args=(kind, expense.id),
        )

    # -- credit cards ----------------------------------------------------

    def render_credit_cards(self) -> None:
        controller = self.controller
        st.subheader("💳 Credit Cards")
        st.caption("Track balances, payments, and due dates")

        if st.button("➕ Add Credit Card", key='add_card'):
            controller.add_credit_card()
            st.rerun()

        for card in controller.state.credit_cards:
            with st.expander(display_name(card.name, 'Unnamed Card'), expanded=True):
                col1, col2, col3 = st.columns(3)
                self._text(col1, "Card name", card.name, f"card_name_{card.id}",
                           controller.update_credit_card, card.id, 'name')
                self._number(col2, "Balance", card.balance, f"card_balance_{card.id}",
                             controller.update_credit_card, card.id, 'balance')
                self._number(col3, "Min payment", card.min_payment, f"card_min_{card.id}",
                             controller.update_credit_card, card.id, 'min_payment')
                col1, col2, col3 = st.columns(3)
                self._number(col1, "APR %", card.apr, f"card_apr_{card.id}",
                             controller.update_credit_card, card.id, 'apr')
                self._text(col2, "Due date", card.due_date, f"card_due_{card.id}",
                           controller.update_credit_card, card.id, 'due_date')
                col3.button(
                    "🗑️ Delete", key=f"delete_card_{card.id}",
                    on_click=controller.delete_credit_card, args=(card.id,),
                )
                st.caption(card_estimate_caption(card))

        totals = controller.totals
        col1, col2 = st.columns(2)
        col1.metric("Total Balance", format_currency(totals.total_credit_card_debt))
        col2.metric("Total Min Payments", f"{format_currency(totals.total_credit_card_payments)}/mo")

    # -- loans -----------------------------------------------------------

    def render_loans(self) -> None:
        controller = self.controller
        st.subheader("🏦 Personal Loans")
        st.caption("Track loan balances and payment schedules")

        if st.button("➕ Add Loan", key='add_loan'):
            controller.add_loan()
            st.rerun()

        for loan in controller.state.loans:
            with st.expander(display_name(loan.name, 'Unnamed Loan'), expanded=True):
                col1, col2, col3 = st.columns(3)
                self._text(col1, "Loan name", loan.name, f"loan_name_{loan.id}",
                           controller.update_loan, loan.id, 'name')
                self._number(col2, "Balance", loan.balance, f"loan_balance_{loan.id}",
                             controller.update_loan, loan.id, 'balance')
                self._number(col3, "Payment", loan.payment, f"loan_payment_{loan.id}",
                             controller.update_loan, loan.id, 'payment')
                col1, col2, col3, col4 = st.columns(4)
                self._number(col1, "APR %", loan.apr, f"loan_apr_{loan.id}",
                             controller.update_loan, loan.id, 'apr')
                self._text(col2, "Due date", loan.due_date, f"loan_due_{loan.id}",
                           controller.update_loan, loan.id, 'due_date')
                frequency_key = f"loan_frequency_{loan.id}"
                col3.selectbox(
                    "Frequency", LOAN_FREQUENCIES,
                    index=LOAN_FREQUENCIES.index(loan.frequency), key=frequency_key,
                    on_change=_apply_widget,
                    args=(controller.update_loan, frequency_key, loan.id, 'frequency'),
                )
                col4.button(
                    "🗑️ Delete", key=f"delete_loan_{loan.id}",
                    on_click=controller.delete_loan, args=(loan.id,),
                )
                st.caption(f"Payoff Time: {agg.loan_payoff_payments(loan)} payments")

        totals = controller.totals
        col1, col2 = st.columns(2)
        col1.metric("Total Balance", format_currency(totals.total_loan_debt))
        col2.metric("Total Payments", f"{format_currency(totals.total_loan_payments)}/mo")

    # -- savings ---------------------------------------------------------

    def render_savings(self) -> None:
        controller = self.controller
        st.subheader("🎯 Savings Goals")

        if st.button("➕ Add Savings Goal", key='add_goal'):
            controller.add_savings_goal()
            st.rerun()

        for goal in controller.state.savings:
            col1, col2, col3, col4 = st.columns([3, 2, 2, 1])
            self._text(col1, "Goal name", goal.name, f"goal_name_{goal.id}",
                       controller.update_savings_goal, goal.id, 'name')
            self._number(col2, "Target", goal.target, f"goal_target_{goal.id}",
                         controller.update_savings_goal, goal.id, 'target')
            self._number(col3, "Current", goal.current, f"goal_current_{goal.id}",
                         controller.update_savings_goal, goal.id, 'current')
            col4.button(
                "🗑️", key=f"delete_goal_{goal.id}",
                on_click=controller.delete_savings_goal, args=(goal.id,),
            )
            st.progress(
                agg.savings_display_progress(goal) / 100,
                text=goal_progress_text(goal),
            )

        if controller.state.savings:
            rows = [
                {'name': goal.name, 'current': goal.current, 'target': goal.target}
                for goal in controller.state.savings
            ]
            st.plotly_chart(viz.create_savings_progress_chart(rows), use_container_width=True)
            col1, col2 = st.columns(2)
            col1.metric("Total Saved", format_currency(agg.total_saved(controller.state)))
            col2.metric("Total Goals", format_currency(controller.totals.total_savings_goal))
        else:
            st.info("No savings goals yet. Add one to start tracking progress.")

    # -- widget helpers --------------------------------------------------

    @staticmethod
    def _text(container, label: str, value: str, key: str, update, item_id: int, field: str) -> None:
        container.text_input(
            label, value=value, key=key,
            on_change=_apply_widget, args=(update, key, item_id, field),
        )

    @staticmethod
    def _number(container, label: str, value: float, key: str, update, item_id: int, field: str) -> None:
        container.number_input(
            label, value=float(value), step=10.0, key=key,
            on_change=_apply_widget, args=(update, key, item_id, field),
        )
