"""Plotly visualisation helpers for the budget tracker.

Each function accepts the plain data returned by
:mod:`budget_tracker.aggregator` and returns a
``plotly.graph_objects.Figure`` that Streamlit renders via
``st.plotly_chart``.  Empty inputs produce an empty figure titled
"No data to display" rather than raising.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

try:
    from .config import CATEGORY_COLORS
except ImportError:
    from config import CATEGORY_COLORS


def _empty_figure(title: str = "No data to display") -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title=title)
    return fig


def create_category_pie_chart(
    breakdown: Mapping[str, float],
    title: Optional[str] = None,
) -> go.Figure:
    """Generate a pie chart of expenses by category.

    Parameters
    ----------
    breakdown : mapping
        Category name to summed amount, as returned by
        :func:`budget_tracker.aggregator.category_breakdown`.
    title : str, optional
        Title for the chart.

    Returns
    -------
    plotly.graph_objects.Figure
        Pie chart coloured with the fixed category palette.  Categories with
        a zero or negative total are left out.
    """
    df = pd.DataFrame(
        [{"Category": name, "Value": value} for name, value in breakdown.items() if value > 0]
    )
    if df.empty:
        return _empty_figure()
    fig = px.pie(
        df,
        names="Category",
        values="Value",
        color="Category",
        color_discrete_map=dict(CATEGORY_COLORS),
    )
    fig.update_traces(textinfo="label+percent")
    fig.update_layout(title=title or "Expenses by Category")
    return fig


def create_overview_bar_chart(
    rows: List[Dict[str, Any]],
    title: Optional[str] = None,
) -> go.Figure:
    """Generate the monthly overview bar chart.

    Parameters
    ----------
    rows : list of dict
        ``{'name': ..., 'amount': ...}`` rows from
        :func:`budget_tracker.aggregator.overview_rows`.
    title : str, optional
        Title for the chart.

    Returns
    -------
    plotly.graph_objects.Figure
        Bar chart of income, expenses, debt payments and remaining.
    """
    if not rows:
        return _empty_figure()
    df = pd.DataFrame(rows)
    fig = px.bar(df, x="name", y="amount")
    fig.update_traces(marker_color="#14b8a6")
    fig.update_layout(
        title=title or "Monthly Financial Overview",
        xaxis_title="",
        yaxis_title="Amount ($)",
    )
    return fig


def create_savings_progress_chart(
    goals: List[Dict[str, Any]],
    title: Optional[str] = None,
) -> go.Figure:
    """Horizontal bars of saved amount against target for each goal.

    ``goals`` rows carry ``name``, ``current`` and ``target`` keys.
    """
    if not goals:
        return _empty_figure()
    df = pd.DataFrame(goals)
    df["name"] = df["name"].replace("", "Unnamed Goal")
    fig = go.Figure()
    fig.add_trace(go.Bar(y=df["name"], x=df["target"], name="Target", orientation="h",
                         marker_color="#475569"))
    fig.add_trace(go.Bar(y=df["name"], x=df["current"], name="Saved", orientation="h",
                         marker_color="#14b8a6"))
    fig.update_layout(
        title=title or "Savings Goals",
        barmode="overlay",
        xaxis_title="Amount ($)",
    )
    return fig
