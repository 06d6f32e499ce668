"""Decimal currency helpers shared by the ledger engine and the service layer."""

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from .exceptions import ShareMismatchError, SplitValidationError
from .models import Expense

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

# Remainders below one cent count as settled.
SETTLED_EPSILON = CENT

ZERO = Decimal("0")


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """
    Convert a user-supplied amount to Decimal.

    Floats go through ``str`` so that 0.1 becomes Decimal("0.1") rather than
    its binary expansion.

    Raises:
        SplitValidationError: If the value isn't a number
    """
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise SplitValidationError(f"Not a valid amount: {value!r}") from e


def round_cents(amount: Decimal) -> Decimal:
    """
    Round to two decimal places.
    Uses ROUND_HALF_UP for consistency.
    """
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def has_unusual_precision(amount: Decimal) -> bool:
    """True if the amount carries more than two decimal places."""
    exponent = amount.as_tuple().exponent
    return isinstance(exponent, int) and exponent < -2


def check_share_total(expense: Expense) -> Decimal:
    """
    Verify that an expense's participant shares add up to its amount.

    Per-share rounding can leave the shares up to one cent per participant
    away from the total; that residual is accepted and logged. Anything
    larger indicates the shares were entered incorrectly.

    Args:
        expense: The expense to check

    Returns:
        The residual (amount - share total)

    Raises:
        ShareMismatchError: If the residual exceeds the rounding allowance
    """
    share_total = expense.share_total
    residual = expense.amount - share_total
    threshold = CENT * len(expense.participants)

    if abs(residual) > threshold:
        raise ShareMismatchError(
            expense_id=expense.id,
            amount=expense.amount,
            share_total=share_total,
            message=(
                f"Participant shares don't match expense total:\n"
                f"  Expense:   {expense.amount}\n"
                f"  Shares:    {share_total}\n"
                f"  Residual:  {residual}\n"
                f"  Threshold: {threshold}"
            ),
        )

    if residual != 0:
        logger.info(
            f"Accepted rounding residual of {residual} on expense {expense.id}"
        )

    return residual
