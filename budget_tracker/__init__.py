"""Top‑level package for the Personal Budget Tracker.

The primary modules are:

* ``models`` – immutable income, expense, debt and savings types
* ``state`` – pure state transitions and the ``BudgetController``
* ``aggregator`` – totals, payoff estimates and category breakdowns
* ``insights`` – advisory messages derived from the totals
* ``storage`` – async key-value persistence
* ``ui`` – Streamlit components (requires streamlit)

To run the tracker from the command line you can execute:

```bash
streamlit run budget_tracker/Home.py
```

or use ``run_budget_tracker.py`` in the project root.
"""

from . import aggregator  # noqa: F401  # re-exported for convenience
from . import insights  # noqa: F401  # re-exported for convenience
from .models import BudgetState  # noqa: F401
from .state import BudgetController  # noqa: F401
from .storage import BudgetRepository, InMemoryStore, JsonFileStore  # noqa: F401
# Import the UI lazily.  Streamlit may not be installed in all
# environments (e.g. during unit testing).
try:
    from . import ui  # type: ignore  # noqa: F401
except ModuleNotFoundError:
    ui = None  # type: ignore


__all__ = [
    "aggregator",
    "insights",
    "ui",
    "BudgetState",
    "BudgetController",
    "BudgetRepository",
    "InMemoryStore",
    "JsonFileStore",
]
