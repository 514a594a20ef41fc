"""Main entry point for the Streamlit multi-page app.

This page shows the budget overview.  Pages in the pages/ directory
(income, expenses, credit cards, loans, savings) appear in the sidebar.
"""

from __future__ import annotations

import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent.resolve()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from budget_tracker.ui import BudgetTrackerUI


def main() -> None:
    """Render the overview page."""
    ui = BudgetTrackerUI(configure_page=True)
    ui.render_header()
    ui.render_overview()


if __name__ == "__main__":
    main()
