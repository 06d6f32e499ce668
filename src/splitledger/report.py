"""Monthly spending report."""

import logging
from datetime import datetime
from decimal import Decimal

from .models import DailyExpense, Expense, MonthlyReport
from .money import round_cents

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"


def _to_local_naive(value: datetime) -> datetime:
    """Convert aware datetimes to naive local time so they compare with now()."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def generate_monthly_report(
    expenses: list[Expense], user_id: str, now: datetime | None = None
) -> MonthlyReport:
    """
    Summarize what a user paid for so far this calendar month.

    Only expenses the user paid for, dated from the first of the month
    through ``now`` inclusive, are counted. Expenses where the user is just
    a participant are excluded.

    Args:
        expenses: Candidate expenses (any date, any payer)
        user_id: The paying user to report on
        now: Reference time, defaults to the current local time

    Returns:
        Report with the total, the average per elapsed day of the month,
        totals by category and totals by calendar day (ascending)
    """
    current = _to_local_naive(now or datetime.now())
    month_start = current.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    total_amount = Decimal("0")
    category_summary: dict[str, Decimal] = {}
    daily_totals: dict[str, Decimal] = {}

    for expense in expenses:
        if expense.paid_by != user_id:
            continue

        expense_date = _to_local_naive(expense.date)
        if not month_start <= expense_date <= current:
            continue

        total_amount += expense.amount

        category = expense.category or UNCATEGORIZED
        category_summary[category] = category_summary.get(category, Decimal("0")) + expense.amount

        day = expense_date.date().isoformat()
        daily_totals[day] = daily_totals.get(day, Decimal("0")) + expense.amount

    daily_expenses = [
        DailyExpense(date=day, amount=amount) for day, amount in sorted(daily_totals.items())
    ]

    logger.debug(
        f"Monthly report for {user_id}: {len(daily_expenses)} days, total {total_amount}"
    )

    return MonthlyReport(
        total_amount=total_amount,
        average_per_day=round_cents(total_amount / current.day),
        category_summary=category_summary,
        daily_expenses=daily_expenses,
    )
