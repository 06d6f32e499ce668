"""SplitLedger - Record shared expenses and work out who owes whom."""

__version__ = "0.1.0"

from .balance import compute_balance
from .config import Settings, load_settings
from .db import Database
from .models import (
    Expense,
    ExpenseSummary,
    MonthlyReport,
    ParticipantShare,
    PercentageShare,
    SettlementTransaction,
    User,
)
from .report import generate_monthly_report
from .service import LedgerService
from .simplifier import simplify_debts
from .splitter import split_by_custom_amount, split_equally

__all__ = [
    "Settings",
    "load_settings",
    "Database",
    "Expense",
    "ExpenseSummary",
    "MonthlyReport",
    "ParticipantShare",
    "PercentageShare",
    "SettlementTransaction",
    "User",
    "compute_balance",
    "simplify_debts",
    "split_equally",
    "split_by_custom_amount",
    "generate_monthly_report",
    "LedgerService",
]
