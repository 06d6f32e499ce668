"""SQLite database operations for SplitLedger."""

import sqlite3
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from .models import Expense, Group, ParticipantShare, Settlement, User


class Database:
    """SQLite database manager."""

    def __init__(self, db_path: Path):
        """Initialize database connection."""
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path))
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        cursor = self.conn.cursor()

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                display_name TEXT NOT NULL,
                email TEXT NOT NULL,
                photo_url TEXT,
                is_admin INTEGER NOT NULL DEFAULT 0,
                created_at TIMESTAMP NOT NULL
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS expense_groups (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                created_by TEXT NOT NULL,
                created_at TIMESTAMP NOT NULL,
                updated_at TIMESTAMP NOT NULL
            )
        """
        )

        # Members keep insertion order via position
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS group_members (
                group_id TEXT NOT NULL REFERENCES expense_groups(id) ON DELETE CASCADE,
                user_id TEXT NOT NULL,
                position INTEGER NOT NULL,
                PRIMARY KEY (group_id, user_id)
            )
        """
        )

        # Amounts are stored as TEXT to keep Decimal precision
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS expenses (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                amount TEXT NOT NULL,
                paid_by TEXT NOT NULL,
                date TIMESTAMP NOT NULL,
                group_id TEXT,
                notes TEXT,
                category TEXT,
                created_at TIMESTAMP NOT NULL,
                updated_at TIMESTAMP NOT NULL
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS expense_participants (
                expense_id TEXT NOT NULL REFERENCES expenses(id) ON DELETE CASCADE,
                user_id TEXT NOT NULL,
                amount TEXT NOT NULL,
                position INTEGER NOT NULL,
                PRIMARY KEY (expense_id, position)
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS settlements (
                id TEXT PRIMARY KEY,
                from_user_id TEXT NOT NULL,
                to_user_id TEXT NOT NULL,
                amount TEXT NOT NULL,
                date TIMESTAMP NOT NULL,
                group_id TEXT,
                status TEXT NOT NULL DEFAULT 'pending',
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    # ========================================================================
    # User operations
    # ========================================================================

    def save_user(self, user: User):
        """Insert or update a user."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO users (id, display_name, email, photo_url, is_admin, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                display_name = excluded.display_name,
                email = excluded.email,
                photo_url = excluded.photo_url,
                is_admin = excluded.is_admin
            """,
            (
                user.id,
                user.display_name,
                user.email,
                user.photo_url,
                int(user.is_admin),
                user.created_at.isoformat(),
            ),
        )
        self.conn.commit()

    def get_user(self, user_id: str) -> User | None:
        """Get a user by id."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM users WHERE id = ?", (user_id,))
        row = cursor.fetchone()
        return _row_to_user(row) if row else None

    def get_users(self, user_ids: list[str] | None = None) -> list[User]:
        """
        Get users, optionally restricted to the given ids.

        When ids are given, users come back in that order and unknown ids
        are skipped.
        """
        cursor = self.conn.cursor()
        if user_ids is None:
            cursor.execute("SELECT * FROM users ORDER BY created_at, id")
            return [_row_to_user(row) for row in cursor.fetchall()]

        users = []
        for user_id in user_ids:
            user = self.get_user(user_id)
            if user:
                users.append(user)
        return users

    def search_users(self, term: str) -> list[User]:
        """Case-insensitive search on display name or email."""
        pattern = f"%{term.lower()}%"
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT * FROM users
            WHERE lower(display_name) LIKE ? OR lower(email) LIKE ?
            ORDER BY display_name
            """,
            (pattern, pattern),
        )
        return [_row_to_user(row) for row in cursor.fetchall()]

    def delete_user(self, user_id: str) -> bool:
        """Delete a user. Returns False if it didn't exist."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM users WHERE id = ?", (user_id,))
        deleted = cursor.rowcount > 0
        cursor.execute("DELETE FROM group_members WHERE user_id = ?", (user_id,))
        self.conn.commit()
        return deleted

    # ========================================================================
    # Group operations
    # ========================================================================

    def save_group(self, group: Group):
        """Insert or update a group and replace its member list."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO expense_groups (id, name, created_by, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                name = excluded.name,
                updated_at = excluded.updated_at
            """,
            (
                group.id,
                group.name,
                group.created_by,
                group.created_at.isoformat(),
                group.updated_at.isoformat(),
            ),
        )
        cursor.execute("DELETE FROM group_members WHERE group_id = ?", (group.id,))
        cursor.executemany(
            "INSERT INTO group_members (group_id, user_id, position) VALUES (?, ?, ?)",
            [(group.id, user_id, pos) for pos, user_id in enumerate(group.members)],
        )
        self.conn.commit()

    def get_group(self, group_id: str) -> Group | None:
        """Get a group by id, with members in join order."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM expense_groups WHERE id = ?", (group_id,))
        row = cursor.fetchone()
        if not row:
            return None
        return self._row_to_group(row)

    def get_groups_for_user(self, user_id: str) -> list[Group]:
        """Get all groups the user is a member of."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT g.* FROM expense_groups g
            JOIN group_members m ON m.group_id = g.id
            WHERE m.user_id = ?
            ORDER BY g.created_at, g.id
            """,
            (user_id,),
        )
        return [self._row_to_group(row) for row in cursor.fetchall()]

    def add_group_member(self, group_id: str, user_id: str):
        """Append a member to a group (no-op if already a member)."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT OR IGNORE INTO group_members (group_id, user_id, position)
            VALUES (
                ?, ?,
                (SELECT COALESCE(MAX(position), -1) + 1
                 FROM group_members WHERE group_id = ?)
            )
            """,
            (group_id, user_id, group_id),
        )
        self._touch_group(group_id)
        self.conn.commit()

    def remove_group_member(self, group_id: str, user_id: str):
        """Remove a member from a group."""
        cursor = self.conn.cursor()
        cursor.execute(
            "DELETE FROM group_members WHERE group_id = ? AND user_id = ?",
            (group_id, user_id),
        )
        self._touch_group(group_id)
        self.conn.commit()

    def delete_group(self, group_id: str) -> bool:
        """Delete a group. Returns False if it didn't exist."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM expense_groups WHERE id = ?", (group_id,))
        deleted = cursor.rowcount > 0
        self.conn.commit()
        return deleted

    def _touch_group(self, group_id: str):
        self.conn.execute(
            "UPDATE expense_groups SET updated_at = ? WHERE id = ?",
            (datetime.now().isoformat(), group_id),
        )

    def _row_to_group(self, row: sqlite3.Row) -> Group:
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT user_id FROM group_members WHERE group_id = ? ORDER BY position",
            (row["id"],),
        )
        return Group(
            id=row["id"],
            name=row["name"],
            members=[member["user_id"] for member in cursor.fetchall()],
            created_by=row["created_by"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    # ========================================================================
    # Expense operations
    # ========================================================================

    def save_expense(self, expense: Expense):
        """Insert or replace an expense together with its participant shares."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO expenses (
                id, title, amount, paid_by, date, group_id, notes,
                category, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                title = excluded.title,
                amount = excluded.amount,
                paid_by = excluded.paid_by,
                date = excluded.date,
                group_id = excluded.group_id,
                notes = excluded.notes,
                category = excluded.category,
                updated_at = excluded.updated_at
            """,
            (
                expense.id,
                expense.title,
                str(expense.amount),
                expense.paid_by,
                expense.date.isoformat(),
                expense.group_id,
                expense.notes,
                expense.category,
                expense.created_at.isoformat(),
                expense.updated_at.isoformat(),
            ),
        )
        cursor.execute(
            "DELETE FROM expense_participants WHERE expense_id = ?", (expense.id,)
        )
        cursor.executemany(
            """
            INSERT INTO expense_participants (expense_id, user_id, amount, position)
            VALUES (?, ?, ?, ?)
            """,
            [
                (expense.id, p.user_id, str(p.amount), pos)
                for pos, p in enumerate(expense.participants)
            ],
        )
        self.conn.commit()

    def get_expense(self, expense_id: str) -> Expense | None:
        """Get an expense by id."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM expenses WHERE id = ?", (expense_id,))
        row = cursor.fetchone()
        return self._row_to_expense(row) if row else None

    def get_expenses(
        self,
        user_id: str | None = None,
        group_id: str | None = None,
        since: datetime | None = None,
    ) -> list[Expense]:
        """
        Get expenses, newest first.

        Args:
            user_id: Only expenses this user paid for or participates in
            group_id: Only expenses in this group
            since: Only expenses dated on or after this time

        Returns:
            Matching expenses ordered by date descending
        """
        clauses = []
        params: list[str] = []

        if user_id is not None:
            clauses.append(
                "(paid_by = ? OR id IN "
                "(SELECT expense_id FROM expense_participants WHERE user_id = ?))"
            )
            params.extend([user_id, user_id])
        if group_id is not None:
            clauses.append("group_id = ?")
            params.append(group_id)
        if since is not None:
            clauses.append("date >= ?")
            params.append(since.isoformat())

        query = "SELECT * FROM expenses"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY date DESC, id"

        cursor = self.conn.cursor()
        cursor.execute(query, params)
        return [self._row_to_expense(row) for row in cursor.fetchall()]

    def delete_expense(self, expense_id: str) -> bool:
        """Delete an expense. Returns False if it didn't exist."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM expenses WHERE id = ?", (expense_id,))
        deleted = cursor.rowcount > 0
        self.conn.commit()
        return deleted

    def _row_to_expense(self, row: sqlite3.Row) -> Expense:
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT user_id, amount FROM expense_participants
            WHERE expense_id = ? ORDER BY position
            """,
            (row["id"],),
        )
        return Expense(
            id=row["id"],
            title=row["title"],
            amount=Decimal(row["amount"]),
            paid_by=row["paid_by"],
            date=datetime.fromisoformat(row["date"]),
            group_id=row["group_id"],
            participants=[
                ParticipantShare(user_id=p["user_id"], amount=Decimal(p["amount"]))
                for p in cursor.fetchall()
            ],
            notes=row["notes"],
            category=row["category"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    # ========================================================================
    # Settlement operations
    # ========================================================================

    def save_settlement(self, settlement: Settlement):
        """Insert or update a settlement record."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO settlements (
                id, from_user_id, to_user_id, amount, date, group_id, status, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                amount = excluded.amount,
                date = excluded.date,
                status = excluded.status,
                updated_at = excluded.updated_at
            """,
            (
                settlement.id,
                settlement.from_user_id,
                settlement.to_user_id,
                str(settlement.amount),
                settlement.date.isoformat(),
                settlement.group_id,
                settlement.status,
                datetime.now().isoformat(),
            ),
        )
        self.conn.commit()

    def get_settlement(self, settlement_id: str) -> Settlement | None:
        """Get a settlement by id."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM settlements WHERE id = ?", (settlement_id,))
        row = cursor.fetchone()
        return _row_to_settlement(row) if row else None

    def update_settlement_status(self, settlement_id: str, status: str) -> bool:
        """Set a settlement's status. Returns False if it didn't exist."""
        cursor = self.conn.cursor()
        cursor.execute(
            "UPDATE settlements SET status = ?, updated_at = ? WHERE id = ?",
            (status, datetime.now().isoformat(), settlement_id),
        )
        updated = cursor.rowcount > 0
        self.conn.commit()
        return updated

    def get_settlements(
        self, user_id: str | None = None, group_id: str | None = None
    ) -> list[Settlement]:
        """Get settlements sent or received by a user and/or within a group."""
        clauses = []
        params: list[str] = []

        if user_id is not None:
            clauses.append("(from_user_id = ? OR to_user_id = ?)")
            params.extend([user_id, user_id])
        if group_id is not None:
            clauses.append("group_id = ?")
            params.append(group_id)

        query = "SELECT * FROM settlements"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY date DESC, id"

        cursor = self.conn.cursor()
        cursor.execute(query, params)
        return [_row_to_settlement(row) for row in cursor.fetchall()]

    def delete_settlement(self, settlement_id: str) -> bool:
        """Delete a settlement. Returns False if it didn't exist."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM settlements WHERE id = ?", (settlement_id,))
        deleted = cursor.rowcount > 0
        self.conn.commit()
        return deleted


def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        display_name=row["display_name"],
        email=row["email"],
        photo_url=row["photo_url"],
        is_admin=bool(row["is_admin"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )


def _row_to_settlement(row: sqlite3.Row) -> Settlement:
    return Settlement(
        id=row["id"],
        from_user_id=row["from_user_id"],
        to_user_id=row["to_user_id"],
        amount=Decimal(row["amount"]),
        date=datetime.fromisoformat(row["date"]),
        group_id=row["group_id"],
        status=row["status"],
    )
