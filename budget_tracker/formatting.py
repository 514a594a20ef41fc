"""Formatting utilities for currency and text display."""

from __future__ import annotations

from typing import Union


def escape_dollar_for_markdown(amount: float) -> str:
    """Format a dollar amount and escape the dollar sign for markdown rendering.

    Streamlit markdown treats ``$`` as a LaTeX delimiter, so two amounts on
    one line would otherwise render as italic maths.

    Example:
        >>> escape_dollar_for_markdown(1234.56)
        '\\\\$1,234.56'
    """
    return format_currency(amount).replace("$", "\\$")


def format_currency(amount: Union[float, int], include_sign: bool = True) -> str:
    """Format a currency amount with two decimals and thousands separators.

    Negative amounts put the minus sign before the dollar sign.

    Example:
        >>> format_currency(1234.56)
        '$1,234.56'
        >>> format_currency(-50)
        '-$50.00'
        >>> format_currency(1234.56, include_sign=False)
        '1,234.56'
    """
    formatted = f"{abs(amount):,.2f}"
    prefix = "-" if amount < 0 else ""
    return f"{prefix}${formatted}" if include_sign else f"{prefix}{formatted}"


def format_percent(value: float, digits: int = 1) -> str:
    return f"{value:.{digits}f}%"


def display_name(name: str, fallback: str) -> str:
    """Return ``name`` or ``fallback`` when the user left it blank."""
    return name.strip() if name and name.strip() else fallback
