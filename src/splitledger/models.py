"""Pydantic domain models for SplitLedger.

Fields are snake_case in Python and camelCase on the wire: dump with
``model_dump(by_alias=True)`` to get ``paidBy``, ``totalOwedToYou`` and so on.
Both spellings are accepted on input.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def new_id() -> str:
    """Generate an opaque record identifier."""
    return uuid.uuid4().hex


class LedgerModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Ledger records
# ============================================================================


class User(LedgerModel):
    """A person who can pay for or share in expenses."""

    id: str = Field(default_factory=new_id)
    display_name: str
    email: str
    photo_url: str | None = Field(default=None, alias="photoURL")
    is_admin: bool = False
    created_at: datetime = Field(default_factory=datetime.now)


class ParticipantShare(LedgerModel):
    """The portion of an expense one participant owes."""

    user_id: str
    amount: Decimal = Field(ge=0)


class PercentageShare(LedgerModel):
    """Custom split input: a participant and their percentage of the total."""

    user_id: str
    percentage: Decimal


class Expense(LedgerModel):
    """A shared expense paid by a single user."""

    id: str = Field(default_factory=new_id)
    title: str
    amount: Decimal = Field(gt=0)
    paid_by: str
    date: datetime
    group_id: str | None = None
    participants: list[ParticipantShare] = Field(default_factory=list)
    notes: str | None = None
    category: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    def get_participant_share(self, user_id: str) -> Decimal | None:
        """Get the share owed by a participant, or None if they aren't one."""
        for participant in self.participants:
            if participant.user_id == user_id:
                return participant.amount
        return None

    @property
    def share_total(self) -> Decimal:
        """Sum of all participant shares."""
        return sum((p.amount for p in self.participants), Decimal("0"))

    def involves(self, user_id: str) -> bool:
        """True if the user paid for or shares in this expense."""
        return self.paid_by == user_id or self.get_participant_share(user_id) is not None


class Group(LedgerModel):
    """A named set of users who share expenses."""

    id: str = Field(default_factory=new_id)
    name: str
    members: list[str] = Field(default_factory=list)
    created_by: str
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class Settlement(LedgerModel):
    """A recorded payment from one user to another."""

    id: str = Field(default_factory=new_id)
    from_user_id: str
    to_user_id: str
    amount: Decimal = Field(gt=0)
    date: datetime = Field(default_factory=datetime.now)
    group_id: str | None = None
    status: Literal["pending", "completed"] = "pending"


class SortOption(LedgerModel):
    """How expense listings are ordered."""

    field: Literal["date", "amount", "title"] = "date"
    direction: Literal["asc", "desc"] = "desc"


# ============================================================================
# Engine outputs
# ============================================================================


class ExpenseSummary(LedgerModel):
    """One user's aggregate position across a set of expenses."""

    total_spent: Decimal = Decimal("0")
    total_owed: Decimal = Decimal("0")
    total_owed_to_you: Decimal = Decimal("0")
    net_balance: Decimal = Decimal("0")


class SettlementTransaction(LedgerModel):
    """A proposed payment that reduces the imbalance between two users."""

    from_user: User
    to_user: User
    amount: Decimal


class DailyExpense(LedgerModel):
    """Amount spent on one calendar day (ISO ``YYYY-MM-DD``)."""

    date: str
    amount: Decimal


class MonthlyReport(LedgerModel):
    """Spending report for the current month."""

    total_amount: Decimal = Decimal("0")
    average_per_day: Decimal = Decimal("0")
    category_summary: dict[str, Decimal] = Field(default_factory=dict)
    daily_expenses: list[DailyExpense] = Field(default_factory=list)
