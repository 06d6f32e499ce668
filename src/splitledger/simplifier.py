"""Greedy debt simplification: who should pay whom to settle up."""

import logging
from dataclasses import dataclass
from decimal import Decimal

from .models import Expense, SettlementTransaction, User
from .money import SETTLED_EPSILON, round_cents

logger = logging.getLogger(__name__)


@dataclass
class _Position:
    """Outstanding magnitude owed to (creditor) or by (debtor) a user."""

    user_id: str
    remaining: Decimal


def compute_net_balances(expenses: list[Expense], users: list[User]) -> dict[str, Decimal]:
    """
    Compute each user's net balance across expenses.

    The payer is credited the full amount and every participant is debited
    their share, so a payer who also participates nets the difference.
    Listed users come first in ``users`` order; ids that only appear in
    expenses follow in first-seen order.

    Returns:
        Mapping of user id to balance (positive = owed money)
    """
    balances: dict[str, Decimal] = {}
    for user in users:
        balances.setdefault(user.id, Decimal("0"))

    for expense in expenses:
        balances[expense.paid_by] = balances.get(expense.paid_by, Decimal("0")) + expense.amount
        for participant in expense.participants:
            balances[participant.user_id] = (
                balances.get(participant.user_id, Decimal("0")) - participant.amount
            )

    return balances


def simplify_debts(expenses: list[Expense], users: list[User]) -> list[SettlementTransaction]:
    """
    Reduce expenses to a small set of settle-up transactions.

    Greedy largest-vs-largest matching: the largest remaining debtor pays the
    largest remaining creditor ``min(debt, credit)``, and a party drops out
    once less than a cent remains. This is fast but not guaranteed to produce
    the minimal number of transactions.

    Ties in magnitude keep ``users`` order (stable sort). Balances of ids not
    present in ``users`` still take part in matching, but no transaction is
    emitted for them since there's no User to report.

    Args:
        expenses: Expenses to settle
        users: Users to report transactions for

    Returns:
        Transactions with amounts rounded to cents, always > 0
    """
    balances = compute_net_balances(expenses, users)
    users_by_id: dict[str, User] = {}
    for user in users:
        users_by_id.setdefault(user.id, user)

    creditors = [
        _Position(user_id, balance)
        for user_id, balance in balances.items()
        if balance >= SETTLED_EPSILON
    ]
    debtors = [
        _Position(user_id, -balance)
        for user_id, balance in balances.items()
        if balance <= -SETTLED_EPSILON
    ]

    creditors.sort(key=lambda p: p.remaining, reverse=True)
    debtors.sort(key=lambda p: p.remaining, reverse=True)

    transactions: list[SettlementTransaction] = []
    i, j = 0, 0

    while i < len(creditors) and j < len(debtors):
        creditor = creditors[i]
        debtor = debtors[j]

        amount = min(creditor.remaining, debtor.remaining)

        from_user = users_by_id.get(debtor.user_id)
        to_user = users_by_id.get(creditor.user_id)
        if from_user and to_user:
            transactions.append(
                SettlementTransaction(
                    from_user=from_user, to_user=to_user, amount=round_cents(amount)
                )
            )
        else:
            logger.debug(
                f"Skipping transaction {debtor.user_id} -> {creditor.user_id}: "
                f"user not in list"
            )

        creditor.remaining -= amount
        debtor.remaining -= amount

        if creditor.remaining < SETTLED_EPSILON:
            i += 1
        if debtor.remaining < SETTLED_EPSILON:
            j += 1

    logger.debug(
        f"Simplified {len(expenses)} expenses into {len(transactions)} transactions"
    )

    return transactions
