"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the budget transaction model used by ``budget_monitoring``.
"""

from .budget import STAGE_VALUES, STATUS_VALUES, Base, BudgetTransactionRow

__all__ = [
    "Base",
    "BudgetTransactionRow",
    "STAGE_VALUES",
    "STATUS_VALUES",
]
