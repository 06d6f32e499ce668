"""CLI for SplitLedger using Typer."""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal

import typer
from rich.console import Console
from rich.table import Table

from .config import Settings, load_settings
from .db import Database
from .exceptions import SplitLedgerError
from .models import Expense, PercentageShare, SettlementTransaction, SortOption, User
from .service import LedgerService
from .ui import confirm, select_category_interactive

app = typer.Typer(
    name="splitledger",
    help="Record shared expenses and work out who owes whom",
)
user_app = typer.Typer(help="Manage users")
group_app = typer.Typer(help="Manage groups")
expense_app = typer.Typer(help="Record and edit expenses")
settlement_app = typer.Typer(help="Record payments between users")

app.add_typer(user_app, name="user")
app.add_typer(group_app, name="group")
app.add_typer(expense_app, name="expense")
app.add_typer(settlement_app, name="settlement")

console = Console()

_state = {"verbose": False}


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output")):
    """Record shared expenses and work out who owes whom."""
    _state["verbose"] = verbose
    setup_logging(verbose)


@contextmanager
def ledger_session() -> Iterator[tuple[Settings, LedgerService]]:
    """Open the database and yield a service, reporting errors on the way out."""
    db = None
    try:
        settings = load_settings()
        db = Database(settings.database_path)
        yield settings, LedgerService(settings, db)
    except (SplitLedgerError, ValueError) as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if _state["verbose"]:
            raise
        sys.exit(1)
    finally:
        if db is not None:
            db.close()


def resolve_user(settings: Settings, user_id: str | None) -> str:
    """Use the given user id, falling back to CURRENT_USER_ID."""
    resolved = user_id or settings.current_user_id
    if not resolved:
        raise ValueError("No user given. Pass --user or set CURRENT_USER_ID in .env")
    return resolved


def format_money(amount: Decimal, symbol: str = "$", use_color: bool = True) -> str:
    """
    Format money in accounting style with alignment.

    Negative amounts use parentheses: ($85.02)
    Positive amounts have spaces:      $85.02
    The spaces ensure decimal points align in tables.
    """
    abs_amount = abs(amount)
    if amount < 0:
        if use_color:
            return f"({symbol}[red]{abs_amount:,.2f}[/red])"
        return f"({symbol}{abs_amount:,.2f})"
    if use_color:
        return f" [green]{symbol}{abs_amount:,.2f}[/green] "
    return f" {symbol}{abs_amount:,.2f} "


def _names(users: list[User]) -> dict[str, str]:
    return {user.id: user.display_name for user in users}


def parse_percentages(values: list[str]) -> list[PercentageShare]:
    """Parse ``user_id=percentage`` pairs."""
    shares = []
    for value in values:
        user_id, sep, percentage = value.partition("=")
        if not sep or not user_id:
            raise ValueError(f"Expected USER_ID=PERCENT, got '{value}'")
        shares.append(PercentageShare(user_id=user_id.strip(), percentage=percentage.strip()))
    return shares


# ============================================================================
# Users
# ============================================================================


@user_app.command("add")
def user_add(
    display_name: str = typer.Argument(..., help="Name shown in listings"),
    email: str = typer.Argument(..., help="Email address"),
):
    """Add a user."""
    with ledger_session() as (_settings, service):
        user = service.add_user(display_name, email)
        console.print(f"[green]✓ Added {user.display_name}[/green] [dim]({user.id})[/dim]")


@user_app.command("list")
def user_list(
    search: str | None = typer.Option(None, "--search", "-s", help="Filter by name or email"),
):
    """List users."""
    with ledger_session() as (_settings, service):
        users = service.search_users(search) if search else service.list_users()
        if not users:
            console.print("[yellow]No users found.[/yellow]")
            return

        table = Table(title="Users", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Email")
        for user in users:
            table.add_row(user.id, user.display_name, user.email)
        console.print(table)


@user_app.command("edit")
def user_edit(
    user_id: str = typer.Argument(..., help="User to edit"),
    display_name: str | None = typer.Option(None, "--name", help="New display name"),
    email: str | None = typer.Option(None, "--email", help="New email address"),
):
    """Edit a user's name or email."""
    with ledger_session() as (_settings, service):
        user = service.update_user(user_id, display_name=display_name, email=email)
        console.print(f"[green]✓ Updated {user.display_name}[/green] [dim]({user.email})[/dim]")


@user_app.command("delete")
def user_delete(user_id: str = typer.Argument(..., help="User to delete")):
    """Delete a user."""
    with ledger_session() as (_settings, service):
        service.delete_user(user_id)
        console.print("[green]✓ User deleted[/green]")


# ============================================================================
# Groups
# ============================================================================


@group_app.command("create")
def group_create(
    name: str = typer.Argument(..., help="Group name"),
    members: list[str] = typer.Option([], "--member", "-m", help="Member user id"),
    user: str | None = typer.Option(None, "--user", "-u", help="Creating user"),
):
    """Create a group. The creator is added as the first member."""
    with ledger_session() as (settings, service):
        group = service.create_group(name, members, resolve_user(settings, user))
        console.print(
            f"[green]✓ Created group {group.name}[/green] [dim]({group.id})[/dim] "
            f"with {len(group.members)} members"
        )


@group_app.command("list")
def group_list(user: str | None = typer.Option(None, "--user", "-u", help="Member user")):
    """List the groups a user belongs to."""
    with ledger_session() as (settings, service):
        groups = service.list_groups(resolve_user(settings, user))
        if not groups:
            console.print("[yellow]No groups found.[/yellow]")
            return

        names = _names(service.list_users())
        table = Table(title="Groups", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Members")
        for group in groups:
            table.add_row(
                group.id,
                group.name,
                ", ".join(names.get(member, member) for member in group.members),
            )
        console.print(table)


@group_app.command("show")
def group_show(group_id: str = typer.Argument(..., help="Group id")):
    """Show each member's balance and the group's settle-up payments."""
    with ledger_session() as (settings, service):
        group = service.get_group(group_id)
        balances = service.get_group_balances(group_id)
        transactions = service.get_settle_up(group_id=group_id)
        symbol = settings.currency_symbol

        console.print(f"\n[bold]{group.name}[/bold] [dim]({len(group.members)} members)[/dim]")

        table = Table(title="Member Balances", show_header=True, header_style="bold magenta")
        table.add_column("Member", style="cyan")
        table.add_column("Spent", justify="right", width=12)
        table.add_column("Owes", justify="right", width=12)
        table.add_column("Owed", justify="right", width=12)
        table.add_column("Net", justify="right", width=12)
        for member, summary in balances:
            table.add_row(
                member.display_name,
                format_money(summary.total_spent, symbol),
                format_money(summary.total_owed, symbol),
                format_money(summary.total_owed_to_you, symbol),
                format_money(summary.net_balance, symbol),
            )
        console.print(table)

        if transactions:
            display_transactions(transactions, symbol)
        else:
            console.print("[green]✓ Everyone is settled up.[/green]")


@group_app.command("rename")
def group_rename(
    group_id: str = typer.Argument(..., help="Group id"),
    name: str = typer.Argument(..., help="New group name"),
):
    """Rename a group."""
    with ledger_session() as (_settings, service):
        group = service.rename_group(group_id, name)
        console.print(f"[green]✓ Group renamed to {group.name}[/green]")


@group_app.command("add-member")
def group_add_member(
    group_id: str = typer.Argument(..., help="Group id"),
    user_id: str = typer.Argument(..., help="User to add"),
):
    """Add a member to a group."""
    with ledger_session() as (_settings, service):
        group = service.add_group_member(group_id, user_id)
        console.print(f"[green]✓ {group.name} now has {len(group.members)} members[/green]")


@group_app.command("remove-member")
def group_remove_member(
    group_id: str = typer.Argument(..., help="Group id"),
    user_id: str = typer.Argument(..., help="User to remove"),
):
    """Remove a member from a group."""
    with ledger_session() as (_settings, service):
        group = service.remove_group_member(group_id, user_id)
        console.print(f"[green]✓ {group.name} now has {len(group.members)} members[/green]")


@group_app.command("delete")
def group_delete(group_id: str = typer.Argument(..., help="Group id")):
    """Delete a group."""
    with ledger_session() as (_settings, service):
        service.delete_group(group_id)
        console.print("[green]✓ Group deleted[/green]")


# ============================================================================
# Expenses
# ============================================================================


@expense_app.command("add")
def expense_add(
    title: str = typer.Argument(..., help="What the expense was for"),
    amount: str = typer.Argument(..., help="Total amount, e.g. 42.50"),
    paid_by: str | None = typer.Option(None, "--paid-by", "-p", help="Paying user"),
    participants: list[str] = typer.Option(
        [], "--with", "-w", help="Participant user id (equal split)"
    ),
    percentages: list[str] = typer.Option(
        [], "--percent", help="USER_ID=PERCENT for a custom split"
    ),
    group: str | None = typer.Option(None, "--group", "-g", help="Group id"),
    category: str | None = typer.Option(None, "--category", "-c", help="Category"),
    notes: str | None = typer.Option(None, "--notes", help="Free-form notes"),
    date: datetime | None = typer.Option(None, "--date", help="Expense date"),
    interactive: bool = typer.Option(
        False, "--interactive", "-i", help="Pick the category interactively"
    ),
):
    """
    Add an expense.

    Use --with for an equal split (defaults to the group's members with
    --group), or --percent for a custom percentage split.
    """
    with ledger_session() as (settings, service):
        if interactive and not category:
            category = select_category_interactive(settings.categories, title)

        custom = bool(percentages)
        expense = service.add_expense(
            title=title,
            amount=amount,
            paid_by=resolve_user(settings, paid_by),
            participant_ids=participants or None,
            percentages=parse_percentages(percentages) if custom else None,
            split_type="custom" if custom else "equal",
            date=date,
            group_id=group,
            notes=notes,
            category=category,
        )

        console.print(f"\n[bold green]✓ Added {expense.title}[/bold green] [dim]({expense.id})[/dim]")
        display_shares(expense, _names(service.list_users()), settings.currency_symbol)


@expense_app.command("edit")
def expense_edit(
    expense_id: str = typer.Argument(..., help="Expense id"),
    title: str | None = typer.Option(None, "--title", help="New title"),
    amount: str | None = typer.Option(None, "--amount", help="New total amount"),
    paid_by: str | None = typer.Option(None, "--paid-by", "-p", help="New payer"),
    participants: list[str] = typer.Option(
        [], "--with", "-w", help="Re-split equally among these users"
    ),
    percentages: list[str] = typer.Option(
        [], "--percent", help="Re-split by USER_ID=PERCENT"
    ),
    category: str | None = typer.Option(None, "--category", "-c", help="New category"),
    notes: str | None = typer.Option(None, "--notes", help="New notes"),
):
    """Edit an expense."""
    with ledger_session() as (settings, service):
        expense = service.update_expense(
            expense_id,
            title=title,
            amount=amount,
            paid_by=paid_by,
            participant_ids=participants or None,
            percentages=parse_percentages(percentages) if percentages else None,
            category=category,
            notes=notes,
        )
        console.print(f"\n[bold green]✓ Updated {expense.title}[/bold green]")
        display_shares(expense, _names(service.list_users()), settings.currency_symbol)


@expense_app.command("delete")
def expense_delete(
    expense_id: str = typer.Argument(..., help="Expense id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
):
    """Delete an expense."""
    with ledger_session() as (_settings, service):
        expense = service.get_expense(expense_id)
        if not yes and not confirm(f"Delete '{expense.title}'?"):
            console.print("[yellow]Cancelled.[/yellow]")
            return
        service.delete_expense(expense_id)
        console.print("[green]✓ Expense deleted[/green]")


@expense_app.command("list")
def expense_list(
    user: str | None = typer.Option(None, "--user", "-u", help="User to list for"),
    group: str | None = typer.Option(None, "--group", "-g", help="Only this group"),
    sort_field: str = typer.Option("date", "--sort", help="date, amount or title"),
    ascending: bool = typer.Option(False, "--asc", help="Sort ascending"),
    last_month: bool = typer.Option(
        False, "--last-month", help="Only expenses from the last month"
    ),
):
    """List expenses."""
    with ledger_session() as (settings, service):
        user_id = None if group else resolve_user(settings, user)
        sort = SortOption(field=sort_field, direction="asc" if ascending else "desc")
        if last_month:
            expenses = service.list_expenses_since(user_id=user_id, group_id=group, sort=sort)
        else:
            expenses = service.list_expenses(user_id=user_id, group_id=group, sort=sort)
        if not expenses:
            console.print("[yellow]No expenses found.[/yellow]")
            return
        display_expenses(expenses, _names(service.list_users()), settings.currency_symbol)


def display_expenses(expenses: list[Expense], names: dict[str, str], symbol: str):
    """Display expenses in a table."""
    table = Table(title="Expenses", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", width=10)
    table.add_column("Date", width=10)
    table.add_column("Title", style="cyan", width=30)
    table.add_column("Amount", justify="right", width=12)
    table.add_column("Paid by")
    table.add_column("Category", style="yellow")

    for expense in expenses:
        table.add_row(
            expense.id[:8],
            expense.date.date().isoformat(),
            expense.title[:30] + "..." if len(expense.title) > 30 else expense.title,
            format_money(expense.amount, symbol),
            names.get(expense.paid_by, expense.paid_by),
            expense.category or "[dim]Uncategorized[/dim]",
        )

    console.print(table)


def display_shares(expense: Expense, names: dict[str, str], symbol: str):
    """Display an expense's participant shares."""
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Participant", style="cyan")
    table.add_column("Share", justify="right")
    for participant in expense.participants:
        table.add_row(
            names.get(participant.user_id, participant.user_id),
            format_money(participant.amount, symbol),
        )
    console.print(table)

    residual = expense.amount - expense.share_total
    if residual == 0:
        console.print("  [green]✓ Shares match the total[/green]")
    else:
        console.print(
            f"  [yellow]Shares differ from the total by "
            f"{symbol}{abs(residual):.2f} (rounding)[/yellow]"
        )


# ============================================================================
# Balances, settle-up and reports
# ============================================================================


@app.command()
def balance(
    user: str | None = typer.Option(None, "--user", "-u", help="User to summarize"),
    group: str | None = typer.Option(None, "--group", "-g", help="Only this group"),
):
    """Show what a user owes and is owed."""
    with ledger_session() as (settings, service):
        summary = service.get_balance(resolve_user(settings, user), group_id=group)
        symbol = settings.currency_symbol

        console.print("\n[bold]Balance:[/bold]")
        console.print(f"  Total spent:       {format_money(summary.total_spent, symbol)}")
        console.print(f"  You owe:           {format_money(-summary.total_owed, symbol)}")
        console.print(f"  Owed to you:       {format_money(summary.total_owed_to_you, symbol)}")
        console.print(f"  Net balance:       {format_money(summary.net_balance, symbol)}")


@app.command("settle-up")
def settle_up(
    group: str | None = typer.Option(None, "--group", "-g", help="Only this group"),
    record: bool = typer.Option(
        False, "--record", help="Record the suggested payments as pending settlements"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
):
    """Suggest payments that settle all balances."""
    with ledger_session() as (settings, service):
        transactions = service.get_settle_up(group_id=group)
        if not transactions:
            console.print("[green]✓ Everyone is settled up.[/green]")
            return

        display_transactions(transactions, settings.currency_symbol)

        if record:
            if not yes and not confirm("Record these payments?"):
                console.print("[yellow]Cancelled.[/yellow]")
                return
            settlements = service.record_settle_up(transactions, group_id=group)
            console.print(f"[green]✓ Recorded {len(settlements)} pending settlements[/green]")


def display_transactions(transactions: list[SettlementTransaction], symbol: str):
    """Display settle-up transactions in a table."""
    table = Table(title="Settle Up", show_header=True, header_style="bold magenta")
    table.add_column("From", style="cyan")
    table.add_column("To", style="cyan")
    table.add_column("Amount", justify="right", width=12)
    for txn in transactions:
        table.add_row(
            txn.from_user.display_name,
            txn.to_user.display_name,
            format_money(txn.amount, symbol),
        )
    console.print(table)


@app.command()
def report(user: str | None = typer.Option(None, "--user", "-u", help="Paying user")):
    """Show this month's spending report."""
    with ledger_session() as (settings, service):
        monthly = service.get_monthly_report(resolve_user(settings, user))
        symbol = settings.currency_symbol

        console.print("\n[bold]This month:[/bold]")
        console.print(f"  Total:         {format_money(monthly.total_amount, symbol)}")
        console.print(f"  Average/day:   {format_money(monthly.average_per_day, symbol)}")

        if monthly.category_summary:
            table = Table(title="By Category", show_header=True, header_style="bold magenta")
            table.add_column("Category", style="yellow")
            table.add_column("Amount", justify="right", width=12)
            for category, amount in sorted(
                monthly.category_summary.items(), key=lambda item: item[1], reverse=True
            ):
                table.add_row(category, format_money(amount, symbol))
            console.print(table)

        if monthly.daily_expenses:
            table = Table(title="By Day", show_header=True, header_style="bold magenta")
            table.add_column("Date")
            table.add_column("Amount", justify="right", width=12)
            for day in monthly.daily_expenses:
                table.add_row(day.date, format_money(day.amount, symbol))
            console.print(table)


# ============================================================================
# Settlements
# ============================================================================


@settlement_app.command("record")
def settlement_record(
    to_user: str = typer.Argument(..., help="User receiving the payment"),
    amount: str = typer.Argument(..., help="Amount paid"),
    from_user: str | None = typer.Option(None, "--from", help="Paying user"),
    group: str | None = typer.Option(None, "--group", "-g", help="Group id"),
):
    """Record a payment to another user."""
    with ledger_session() as (settings, service):
        settlement = service.record_settlement(
            resolve_user(settings, from_user), to_user, amount, group_id=group
        )
        console.print(f"[green]✓ Recorded pending settlement[/green] [dim]({settlement.id})[/dim]")


@settlement_app.command("complete")
def settlement_complete(settlement_id: str = typer.Argument(..., help="Settlement id")):
    """Mark a settlement as completed."""
    with ledger_session() as (_settings, service):
        service.complete_settlement(settlement_id)
        console.print("[green]✓ Settlement completed[/green]")


@settlement_app.command("list")
def settlement_list(
    user: str | None = typer.Option(None, "--user", "-u", help="Sender or receiver"),
    group: str | None = typer.Option(None, "--group", "-g", help="Only this group"),
):
    """List recorded settlements."""
    with ledger_session() as (settings, service):
        user_id = None if group else resolve_user(settings, user)
        settlements = service.list_settlements(user_id=user_id, group_id=group)
        if not settlements:
            console.print("[yellow]No settlements found.[/yellow]")
            return

        names = _names(service.list_users())
        table = Table(title="Settlements", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="dim", width=10)
        table.add_column("Date", width=10)
        table.add_column("From", style="cyan")
        table.add_column("To", style="cyan")
        table.add_column("Amount", justify="right", width=12)
        table.add_column("Status")
        for settlement in settlements:
            status = (
                "[green]completed[/green]"
                if settlement.status == "completed"
                else "[yellow]pending[/yellow]"
            )
            table.add_row(
                settlement.id[:8],
                settlement.date.date().isoformat(),
                names.get(settlement.from_user_id, settlement.from_user_id),
                names.get(settlement.to_user_id, settlement.to_user_id),
                format_money(settlement.amount, settings.currency_symbol),
                status,
            )
        console.print(table)


if __name__ == "__main__":
    app()
