"""Service layer that composes the ledger engine with persistence.

The engine functions are pure and take explicit collections; this service
loads those collections from the database, calls the engine and persists
whatever the caller asked to change.
"""

import calendar
import logging
from datetime import datetime
from decimal import Decimal
from typing import Literal

from .balance import compute_balance
from .config import Settings
from .db import Database
from .exceptions import (
    ExpenseNotFoundError,
    GroupNotFoundError,
    SettlementNotFoundError,
    SettlementValidationError,
    SplitValidationError,
    UserNotFoundError,
)
from .models import (
    Expense,
    ExpenseSummary,
    Group,
    MonthlyReport,
    ParticipantShare,
    PercentageShare,
    Settlement,
    SettlementTransaction,
    SortOption,
    User,
)
from .money import ZERO, check_share_total, has_unusual_precision, to_decimal
from .report import generate_monthly_report
from .simplifier import simplify_debts
from .splitter import split_by_custom_amount, split_equally

logger = logging.getLogger(__name__)


class LedgerService:
    """Service for recording shared expenses and settling up."""

    def __init__(self, settings: Settings, database: Database):
        """Initialize the ledger service."""
        self.settings = settings
        self.db = database

    # ========================================================================
    # Users
    # ========================================================================

    def add_user(self, display_name: str, email: str) -> User:
        """Create and save a new user."""
        user = User(display_name=display_name, email=email)
        self.db.save_user(user)
        logger.info(f"Added user {user.display_name} ({user.id})")
        return user

    def get_user(self, user_id: str) -> User:
        """Get a user or raise UserNotFoundError."""
        user = self.db.get_user(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def list_users(self) -> list[User]:
        """List all users."""
        return self.db.get_users()

    def search_users(self, term: str) -> list[User]:
        """Find users whose display name or email contains the term."""
        return self.db.search_users(term)

    def update_user(
        self,
        user_id: str,
        display_name: str | None = None,
        email: str | None = None,
    ) -> User:
        """Change a user's display name and/or email."""
        user = self.get_user(user_id)
        changes = {}
        if display_name is not None:
            changes["display_name"] = display_name
        if email is not None:
            changes["email"] = email
        if not changes:
            return user

        updated = user.model_copy(update=changes)
        self.db.save_user(updated)
        logger.info(f"Updated user {user_id}: {', '.join(changes)}")
        return updated

    def delete_user(self, user_id: str):
        """Delete a user."""
        if not self.db.delete_user(user_id):
            raise UserNotFoundError(user_id)
        logger.info(f"Deleted user {user_id}")

    # ========================================================================
    # Groups
    # ========================================================================

    def create_group(self, name: str, member_ids: list[str], created_by: str) -> Group:
        """
        Create a group. The creator is always the first member.

        Raises:
            UserNotFoundError: If the creator or any member doesn't exist
        """
        members = list(dict.fromkeys([created_by, *member_ids]))
        for user_id in members:
            self.get_user(user_id)

        group = Group(name=name, members=members, created_by=created_by)
        self.db.save_group(group)
        logger.info(f"Created group '{name}' with {len(members)} members")
        return group

    def get_group(self, group_id: str) -> Group:
        """Get a group or raise GroupNotFoundError."""
        group = self.db.get_group(group_id)
        if group is None:
            raise GroupNotFoundError(group_id)
        return group

    def list_groups(self, user_id: str) -> list[Group]:
        """List groups the user belongs to."""
        return self.db.get_groups_for_user(user_id)

    def rename_group(self, group_id: str, name: str) -> Group:
        """Give a group a new name."""
        group = self.get_group(group_id)
        renamed = group.model_copy(update={"name": name, "updated_at": datetime.now()})
        self.db.save_group(renamed)
        logger.info(f"Renamed group {group_id} from '{group.name}' to '{name}'")
        return renamed

    def add_group_member(self, group_id: str, user_id: str) -> Group:
        """Add a user to a group."""
        self.get_group(group_id)
        self.get_user(user_id)
        self.db.add_group_member(group_id, user_id)
        return self.get_group(group_id)

    def remove_group_member(self, group_id: str, user_id: str) -> Group:
        """Remove a user from a group."""
        self.get_group(group_id)
        self.db.remove_group_member(group_id, user_id)
        return self.get_group(group_id)

    def delete_group(self, group_id: str):
        """Delete a group. Its expenses are kept."""
        if not self.db.delete_group(group_id):
            raise GroupNotFoundError(group_id)
        logger.info(f"Deleted group {group_id}")

    # ========================================================================
    # Expenses
    # ========================================================================

    def add_expense(
        self,
        title: str,
        amount: Decimal | int | float | str,
        paid_by: str,
        participant_ids: list[str] | None = None,
        percentages: list[PercentageShare] | None = None,
        split_type: Literal["equal", "custom"] = "equal",
        date: datetime | None = None,
        group_id: str | None = None,
        notes: str | None = None,
        category: str | None = None,
    ) -> Expense:
        """
        Split and save a new expense.

        Equal splits divide the amount among ``participant_ids`` (defaulting
        to the group's members for group expenses). Custom splits use
        ``percentages``.

        Returns:
            The saved expense with computed participant shares

        Raises:
            UserNotFoundError: If the payer doesn't exist
            GroupNotFoundError: If the group doesn't exist
            SplitValidationError: If the split inputs are invalid
            ShareMismatchError: If the computed shares don't match the amount
        """
        self.get_user(paid_by)
        if group_id is not None and participant_ids is None and split_type == "equal":
            participant_ids = self.get_group(group_id).members
        elif group_id is not None:
            self.get_group(group_id)

        value = self._validate_expense_amount(amount)
        participants = self._split(value, split_type, participant_ids, percentages)

        expense = Expense(
            title=title,
            amount=value,
            paid_by=paid_by,
            date=date or datetime.now(),
            group_id=group_id,
            participants=participants,
            notes=notes,
            category=category,
        )
        check_share_total(expense)

        self.db.save_expense(expense)
        logger.info(
            f"Added expense '{title}' ({value}) paid by {paid_by}, "
            f"split {split_type} among {len(participants)}"
        )
        return expense

    def get_expense(self, expense_id: str) -> Expense:
        """Get an expense or raise ExpenseNotFoundError."""
        expense = self.db.get_expense(expense_id)
        if expense is None:
            raise ExpenseNotFoundError(expense_id)
        return expense

    def update_expense(
        self,
        expense_id: str,
        title: str | None = None,
        amount: Decimal | int | float | str | None = None,
        paid_by: str | None = None,
        participant_ids: list[str] | None = None,
        percentages: list[PercentageShare] | None = None,
        date: datetime | None = None,
        notes: str | None = None,
        category: str | None = None,
    ) -> Expense:
        """
        Edit an expense, re-splitting it when the amount or split changes.

        New ``participant_ids`` split equally and new ``percentages`` split by
        percentage. If only the amount changes, the existing shares are scaled
        proportionally to the new amount.
        """
        expense = self.get_expense(expense_id)
        changes: dict = {"updated_at": datetime.now()}

        if title is not None:
            changes["title"] = title
        if paid_by is not None:
            self.get_user(paid_by)
            changes["paid_by"] = paid_by
        if date is not None:
            changes["date"] = date
        if notes is not None:
            changes["notes"] = notes
        if category is not None:
            changes["category"] = category

        value = expense.amount if amount is None else self._validate_expense_amount(amount)
        changes["amount"] = value

        if percentages is not None:
            changes["participants"] = self._split(value, "custom", None, percentages)
        elif participant_ids is not None:
            changes["participants"] = self._split(value, "equal", participant_ids, None)
        elif value != expense.amount:
            changes["participants"] = _rescale_shares(expense.participants, value)

        updated = Expense.model_validate({**expense.model_dump(), **changes})
        check_share_total(updated)

        self.db.save_expense(updated)
        logger.info(f"Updated expense {expense_id}")
        return updated

    def delete_expense(self, expense_id: str):
        """Delete an expense."""
        if not self.db.delete_expense(expense_id):
            raise ExpenseNotFoundError(expense_id)
        logger.info(f"Deleted expense {expense_id}")

    def list_expenses(
        self,
        user_id: str | None = None,
        group_id: str | None = None,
        sort: SortOption | None = None,
    ) -> list[Expense]:
        """List expenses involving a user and/or in a group, sorted."""
        expenses = self.db.get_expenses(user_id=user_id, group_id=group_id)
        return sort_expenses(expenses, sort or SortOption())

    def list_expenses_since(
        self,
        user_id: str | None = None,
        months: int = 1,
        now: datetime | None = None,
        group_id: str | None = None,
        sort: SortOption | None = None,
    ) -> list[Expense]:
        """List expenses from the last ``months`` months, sorted."""
        since = months_before(now or datetime.now(), months)
        expenses = self.db.get_expenses(user_id=user_id, group_id=group_id, since=since)
        return sort_expenses(expenses, sort or SortOption())

    def _validate_expense_amount(self, amount: Decimal | int | float | str) -> Decimal:
        value = to_decimal(amount)
        if not value.is_finite() or value <= ZERO:
            raise SplitValidationError(f"Expense amount must be positive, got {value}")
        if has_unusual_precision(value):
            logger.warning(f"Expense amount has unusual precision: {value}")
        return value

    def _split(
        self,
        amount: Decimal,
        split_type: Literal["equal", "custom"],
        participant_ids: list[str] | None,
        percentages: list[PercentageShare] | None,
    ) -> list[ParticipantShare]:
        if split_type == "custom":
            return split_by_custom_amount(amount, percentages or [])
        return split_equally(amount, participant_ids or [])

    # ========================================================================
    # Balances, settle-up and reports
    # ========================================================================

    def get_balance(self, user_id: str, group_id: str | None = None) -> ExpenseSummary:
        """Summarize a user's position, optionally within one group."""
        self.get_user(user_id)
        expenses = self.db.get_expenses(user_id=user_id, group_id=group_id)
        return compute_balance(expenses, user_id)

    def get_group_balances(self, group_id: str) -> list[tuple[User, ExpenseSummary]]:
        """
        Summarize every member's position in a group.

        Each member is summarized over the group expenses they share in, so an
        expense a member paid for but isn't a participant of is left out of
        their summary.

        Returns:
            (member, summary) pairs in the group's member order
        """
        group = self.get_group(group_id)
        expenses = self.db.get_expenses(group_id=group_id)

        balances = []
        for member in self.db.get_users(group.members):
            member_expenses = [
                e for e in expenses if e.get_participant_share(member.id) is not None
            ]
            balances.append((member, compute_balance(member_expenses, member.id)))
        return balances

    def get_settle_up(self, group_id: str | None = None) -> list[SettlementTransaction]:
        """
        Suggest settle-up transactions for a group, or across everyone.

        Returns:
            Transactions from the greedy debt simplifier
        """
        if group_id is not None:
            group = self.get_group(group_id)
            users = self.db.get_users(group.members)
            expenses = self.db.get_expenses(group_id=group_id)
        else:
            users = self.db.get_users()
            expenses = self.db.get_expenses()

        transactions = simplify_debts(expenses, users)
        logger.info(
            f"Computed {len(transactions)} settle-up transactions "
            f"from {len(expenses)} expenses"
        )
        return transactions

    def get_monthly_report(self, user_id: str, now: datetime | None = None) -> MonthlyReport:
        """Build the current month's spending report for a user."""
        self.get_user(user_id)
        expenses = self.db.get_expenses(user_id=user_id)
        return generate_monthly_report(expenses, user_id, now=now)

    # ========================================================================
    # Settlements
    # ========================================================================

    def record_settlement(
        self,
        from_user_id: str,
        to_user_id: str,
        amount: Decimal | int | float | str,
        group_id: str | None = None,
        date: datetime | None = None,
    ) -> Settlement:
        """Record a pending payment from one user to another."""
        self.get_user(from_user_id)
        self.get_user(to_user_id)
        if from_user_id == to_user_id:
            raise SettlementValidationError("A settlement needs two different users")

        value = to_decimal(amount)
        if not value.is_finite() or value <= ZERO:
            raise SettlementValidationError(
                f"Settlement amount must be positive, got {value}"
            )

        settlement = Settlement(
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            amount=value,
            date=date or datetime.now(),
            group_id=group_id,
        )
        self.db.save_settlement(settlement)
        logger.info(f"Recorded settlement {from_user_id} -> {to_user_id}: {value}")
        return settlement

    def record_settle_up(
        self, transactions: list[SettlementTransaction], group_id: str | None = None
    ) -> list[Settlement]:
        """Record each suggested transaction as a pending settlement."""
        return [
            self.record_settlement(
                txn.from_user.id, txn.to_user.id, txn.amount, group_id=group_id
            )
            for txn in transactions
        ]

    def complete_settlement(self, settlement_id: str) -> Settlement:
        """Mark a settlement as completed."""
        if not self.db.update_settlement_status(settlement_id, "completed"):
            raise SettlementNotFoundError(settlement_id)
        settlement = self.db.get_settlement(settlement_id)
        if settlement is None:
            raise SettlementNotFoundError(settlement_id)
        logger.info(f"Completed settlement {settlement_id}")
        return settlement

    def delete_settlement(self, settlement_id: str):
        """Delete a settlement record."""
        if not self.db.delete_settlement(settlement_id):
            raise SettlementNotFoundError(settlement_id)

    def list_settlements(
        self, user_id: str | None = None, group_id: str | None = None
    ) -> list[Settlement]:
        """List settlements sent or received by a user and/or within a group."""
        return self.db.get_settlements(user_id=user_id, group_id=group_id)


def sort_expenses(expenses: list[Expense], sort: SortOption) -> list[Expense]:
    """
    Return a sorted copy of expenses.

    This is a pure function; the input list is left untouched.
    """
    reverse = sort.direction == "desc"
    if sort.field == "amount":
        return sorted(expenses, key=lambda e: e.amount, reverse=reverse)
    if sort.field == "title":
        return sorted(expenses, key=lambda e: e.title.lower(), reverse=reverse)
    return sorted(expenses, key=lambda e: e.date, reverse=reverse)


def months_before(now: datetime, months: int) -> datetime:
    """Same time ``months`` calendar months earlier, clamped to month end."""
    month_index = now.year * 12 + (now.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)


def _rescale_shares(
    participants: list[ParticipantShare], amount: Decimal
) -> list[ParticipantShare]:
    """Scale existing shares proportionally to a new amount."""
    if not participants:
        raise SplitValidationError("Expense has no participants to re-split")
    if sum((p.amount for p in participants), ZERO) == ZERO:
        return split_equally(amount, [p.user_id for p in participants])
    return split_by_custom_amount(
        amount,
        [PercentageShare(user_id=p.user_id, percentage=p.amount) for p in participants],
    )
