"""Per-user balance summary over a list of expenses."""

from decimal import Decimal

from .models import Expense, ExpenseSummary


def compute_balance(expenses: list[Expense], user_id: str) -> ExpenseSummary:
    """
    Reduce expenses to one user's aggregate financial position.

    When the user paid, the full amount counts as spent and every other
    participant's share is owed back to them (whether or not the payer's own
    share is listed). Otherwise the user's own share, if they have one, is
    what they owe.

    Args:
        expenses: Expenses to summarize
        user_id: The user whose position to compute

    Returns:
        Summary with net_balance = total_owed_to_you - total_owed
    """
    total_spent = Decimal("0")
    total_owed = Decimal("0")
    total_owed_to_you = Decimal("0")

    for expense in expenses:
        if expense.paid_by == user_id:
            total_spent += expense.amount
            for participant in expense.participants:
                if participant.user_id != user_id:
                    total_owed_to_you += participant.amount
        else:
            share = expense.get_participant_share(user_id)
            if share is not None:
                total_owed += share

    return ExpenseSummary(
        total_spent=total_spent,
        total_owed=total_owed,
        total_owed_to_you=total_owed_to_you,
        net_balance=total_owed_to_you - total_owed,
    )
