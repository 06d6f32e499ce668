"""Tests for greedy debt simplification."""

from datetime import datetime
from decimal import Decimal

from splitledger.models import Expense, ParticipantShare, User
from splitledger.simplifier import compute_net_balances, simplify_debts


def make_user(id: str) -> User:
    """Create a User for testing."""
    return User(id=id, display_name=f"User {id}", email=f"{id.lower()}@example.com")


def make_expense(id: str, amount: str, paid_by: str, shares: dict[str, str]) -> Expense:
    """Create an Expense for testing."""
    return Expense(
        id=id,
        title=f"Test expense {id}",
        amount=Decimal(amount),
        paid_by=paid_by,
        date=datetime(2025, 1, 15),
        participants=[
            ParticipantShare(user_id=user_id, amount=Decimal(share))
            for user_id, share in shares.items()
        ],
    )


def apply_transactions(balances, transactions):
    """Return balances after each debtor pays each creditor."""
    adjusted = dict(balances)
    for txn in transactions:
        adjusted[txn.from_user.id] += txn.amount
        adjusted[txn.to_user.id] -= txn.amount
    return adjusted


class TestSimplifyDebtsScenario:
    """The 90 split three ways scenario."""

    def test_two_debtors_pay_the_payer(self):
        """Both debtors pay 30 to the payer, in users order on a tie."""
        users = [make_user("U1"), make_user("U2"), make_user("U3")]
        expense = make_expense("e1", "90", "U1", {"U1": "30", "U2": "30", "U3": "30"})

        transactions = simplify_debts([expense], users)

        assert [(t.from_user.id, t.to_user.id, t.amount) for t in transactions] == [
            ("U2", "U1", Decimal("30.00")),
            ("U3", "U1", Decimal("30.00")),
        ]

    def test_net_balances(self):
        """Payer is credited the amount and debited their own share."""
        users = [make_user("U1"), make_user("U2"), make_user("U3")]
        expense = make_expense("e1", "90", "U1", {"U1": "30", "U2": "30", "U3": "30"})

        balances = compute_net_balances([expense], users)

        assert balances == {"U1": Decimal("60"), "U2": Decimal("-30"), "U3": Decimal("-30")}

    def test_output_uses_contract_field_names(self):
        """Transactions dump as fromUser/toUser/amount."""
        users = [make_user("A"), make_user("B")]
        expense = make_expense("e1", "10", "A", {"B": "10"})

        dumped = simplify_debts([expense], users)[0].model_dump(by_alias=True)

        assert set(dumped) == {"fromUser", "toUser", "amount"}
        assert dumped["fromUser"]["displayName"] == "User B"


class TestSimplifyDebtsGreedy:
    """Largest creditor is matched with largest debtor."""

    def test_largest_debtor_pays_largest_creditor_first(self):
        """Greedy order follows magnitudes, not input order."""
        users = [make_user(u) for u in ("A", "B", "C", "D")]
        expenses = [
            make_expense("e1", "100", "A", {"C": "70", "D": "30"}),
            make_expense("e2", "20", "B", {"D": "20"}),
        ]
        # A +100, B +20, C -70, D -50

        transactions = simplify_debts(expenses, users)

        assert [(t.from_user.id, t.to_user.id, t.amount) for t in transactions] == [
            ("C", "A", Decimal("70.00")),
            ("D", "A", Decimal("30.00")),
            ("D", "B", Decimal("20.00")),
        ]

    def test_head_is_not_resorted_after_partial_settlement(self):
        """The current creditor keeps receiving until it's settled."""
        users = [make_user(u) for u in ("A", "B", "C", "D", "E")]
        expenses = [
            make_expense("e1", "100", "A", {"E": "70", "C": "30"}),
            make_expense("e2", "90", "B", {"C": "30", "D": "60"}),
        ]
        # A +100, B +90, C -60, D -60, E -70
        # After E pays A 70, A has 30 left (less than B's 90) but stays first.

        transactions = simplify_debts(expenses, users)

        assert [(t.from_user.id, t.to_user.id, t.amount) for t in transactions] == [
            ("E", "A", Decimal("70.00")),
            ("C", "A", Decimal("30.00")),
            ("C", "B", Decimal("30.00")),
            ("D", "B", Decimal("60.00")),
        ]

    def test_amounts_rounded_to_cents(self):
        """Emitted amounts are quantized to two decimals."""
        users = [make_user("A"), make_user("B")]
        expense = make_expense("e1", "10.005", "A", {"B": "10.005"})

        transactions = simplify_debts([expense], users)

        assert transactions[0].amount == Decimal("10.01")
        assert transactions[0].amount.as_tuple().exponent == -2


class TestSimplifyDebtsProperties:
    """Zero-sum and no-op guarantees."""

    def setup_method(self):
        self.users = [make_user(u) for u in ("A", "B", "C", "D", "E")]
        self.expenses = [
            make_expense("e1", "120.00", "A", {"A": "30.00", "B": "30.00", "C": "30.00", "D": "30.00"}),
            make_expense("e2", "45.50", "C", {"B": "20.25", "D": "25.25"}),
            make_expense("e3", "33.33", "D", {"A": "11.11", "B": "11.11", "D": "11.11"}),
            make_expense("e4", "10.00", "E", {"E": "5.00", "A": "5.00"}),
        ]

    def test_total_equals_smaller_side(self):
        """Sum of transactions equals min(total credit, total debit)."""
        balances = compute_net_balances(self.expenses, self.users)
        credit = sum(b for b in balances.values() if b > 0)
        debit = -sum(b for b in balances.values() if b < 0)

        transactions = simplify_debts(self.expenses, self.users)

        assert sum(t.amount for t in transactions) == min(credit, debit)

    def test_everyone_settled_after_applying(self):
        """Applying all transactions leaves every balance within a cent of zero."""
        balances = compute_net_balances(self.expenses, self.users)

        transactions = simplify_debts(self.expenses, self.users)
        adjusted = apply_transactions(balances, transactions)

        assert all(abs(b) < Decimal("0.01") for b in adjusted.values())

    def test_all_amounts_positive(self):
        """No zero or negative transactions are emitted."""
        transactions = simplify_debts(self.expenses, self.users)

        assert transactions
        assert all(t.amount > 0 for t in transactions)

    def test_balanced_user_never_appears(self):
        """A user whose expenses net to zero is left out."""
        users = self.users + [make_user("Z")]
        expenses = self.expenses + [
            make_expense("e5", "20.00", "Z", {"Z": "10.00", "A": "10.00"}),
            make_expense("e6", "10.00", "A", {"Z": "10.00"}),
        ]

        transactions = simplify_debts(expenses, users)

        assert all("Z" not in (t.from_user.id, t.to_user.id) for t in transactions)

    def test_sub_cent_balance_is_treated_as_settled(self):
        """Balances under the epsilon never produce a transaction."""
        users = [make_user("A"), make_user("B")]
        expense = make_expense("e1", "10.005", "A", {"A": "5.000", "B": "5.000"})
        # A +5.005, B -5.000 -> after settling 5.00, A has 0.005 left

        transactions = simplify_debts([expense], users)

        assert len(transactions) == 1
        assert transactions[0].amount == Decimal("5.00")


class TestSimplifyDebtsEdgeCases:
    """Degenerate inputs degrade to empty results."""

    def test_no_users(self):
        """An empty users list yields no transactions."""
        expense = make_expense("e1", "10", "A", {"B": "10"})

        assert simplify_debts([expense], []) == []

    def test_no_expenses(self):
        """No expenses means nobody owes anything."""
        assert simplify_debts([], [make_user("A"), make_user("B")]) == []

    def test_unknown_user_skipped_but_still_matched(self):
        """Transactions with users missing from the list are not emitted."""
        users = [make_user("A"), make_user("C")]
        expenses = [
            make_expense("e1", "50", "A", {"X": "30", "C": "20"}),
        ]
        # A +50, X -30 (unknown), C -20

        transactions = simplify_debts(expenses, users)

        assert [(t.from_user.id, t.to_user.id, t.amount) for t in transactions] == [
            ("C", "A", Decimal("20.00")),
        ]
