"""Split an expense amount into participant shares.

Each share is rounded to cents independently, so the shares can add up to a
few cents more or less than the amount (at most one cent per participant).
That drift is expected; callers that need exact totals reconcile it
themselves.
"""

from decimal import Decimal

from .exceptions import SplitValidationError
from .models import ParticipantShare, PercentageShare
from .money import ZERO, round_cents, to_decimal

HUNDRED = Decimal("100")

# Percentages within this distance of 100 are used as given.
PERCENTAGE_TOLERANCE = Decimal("0.01")


def _validate_amount(amount: Decimal | int | float | str) -> Decimal:
    value = to_decimal(amount)
    if not value.is_finite():
        raise SplitValidationError(f"Amount must be a finite number, got {value}")
    if value < ZERO:
        raise SplitValidationError(f"Amount must not be negative, got {value}")
    return value


def split_equally(
    amount: Decimal | int | float | str, participant_ids: list[str]
) -> list[ParticipantShare]:
    """
    Split an amount equally among participants.

    Args:
        amount: Total to split
        participant_ids: Participants, one share each, in this order

    Returns:
        One share per participant, each round(amount / n, 2)

    Raises:
        SplitValidationError: If there are no participants or the amount is
            negative or not finite
    """
    value = _validate_amount(amount)
    if not participant_ids:
        raise SplitValidationError("Cannot split an expense among zero participants")

    per_person = round_cents(value / len(participant_ids))

    return [ParticipantShare(user_id=user_id, amount=per_person) for user_id in participant_ids]


def split_by_custom_amount(
    amount: Decimal | int | float | str, participants: list[PercentageShare]
) -> list[ParticipantShare]:
    """
    Split an amount by percentage.

    If the percentages don't sum to 100 (within 0.01) they are scaled
    proportionally so they do, e.g. 10/30 behaves like 25/75.

    Args:
        amount: Total to split
        participants: Participants with their percentage, in output order

    Returns:
        One share per participant, each round(percentage / 100 * amount, 2)

    Raises:
        SplitValidationError: If there are no participants, any percentage is
            negative or not finite, the percentages sum to zero, or the amount
            is negative or not finite
    """
    value = _validate_amount(amount)
    if not participants:
        raise SplitValidationError("Cannot split an expense among zero participants")

    percentages = []
    for participant in participants:
        percentage = to_decimal(participant.percentage)
        if not percentage.is_finite() or percentage < ZERO:
            raise SplitValidationError(
                f"Invalid percentage {percentage} for user {participant.user_id}"
            )
        percentages.append(percentage)

    total_percentage = sum(percentages, ZERO)
    if total_percentage == ZERO:
        raise SplitValidationError("Split percentages sum to zero")

    if abs(total_percentage - HUNDRED) > PERCENTAGE_TOLERANCE:
        percentages = [p / total_percentage * HUNDRED for p in percentages]

    return [
        ParticipantShare(
            user_id=participant.user_id,
            amount=round_cents(percentage / HUNDRED * value),
        )
        for participant, percentage in zip(participants, percentages, strict=True)
    ]
