"""CLI entry point for tally."""

import typer

from tally.commands.accounts import create_accounts_command, list_accounts_command, rename_account_command
from tally.commands.admin import health_command, init_command, simulate_command
from tally.commands.budget import create_budget_command, show_budget_command
from tally.commands.categories import create_categories_command, list_categories_command, rename_category_command
from tally.commands.common import load_session
from tally.commands.records import add_record_command, latest_records_command, search_records_command
from tally.commands.users import create_user_command

app = typer.Typer(
    name="tally",
    help="tally - personal budget tracking",
    add_completion=False,
)
user_app = typer.Typer(help="Register users.")
accounts_app = typer.Typer(help="Manage your accounts.")
categories_app = typer.Typer(help="Manage your categories.")
records_app = typer.Typer(help="Record and browse income, expenses and transfers.")
budget_app = typer.Typer(help="Set spending limits per category.")

app.add_typer(user_app, name="user")
app.add_typer(accounts_app, name="accounts")
app.add_typer(categories_app, name="categories")
app.add_typer(records_app, name="records")
app.add_typer(budget_app, name="budget")

USER_OPTION = typer.Option(..., "--user", "-u", help="Id of the user acting")


@app.callback()
def main(
    config: str = typer.Option(None, "--config", help="Config file path or file:// URI"),
    db: str = typer.Option(None, "--db", help="Database file (overrides config)"),
) -> None:
    """tally - personal budget tracking."""
    load_session(config, db)


@app.command(name="init")
def init(
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite existing database and config"),
) -> None:
    """Initialize the tally database and configuration."""
    init_command(force)


@app.command(name="health")
def health() -> None:
    """Check that the database answers."""
    health_command()


@app.command(name="simulate")
def simulate(
    users: int = typer.Option(1, "--users", "-n", min=1, help="Number of users to simulate"),
    start: str = typer.Option(..., "--from", help="First month (YYYY-MM)"),
    end: str = typer.Option(None, "--to", help="Last month, inclusive (YYYY-MM); defaults to --from"),
    seed: int = typer.Option(0, "--seed", help="Seed of the transfer references"),
) -> None:
    """Fill the database with simulated users and records."""
    simulate_command(users, start, end, seed)


@user_app.command(name="create")
def create_user(email: str) -> None:
    """Register a user by email address."""
    create_user_command(email)


@accounts_app.command(name="create")
def create_accounts(
    names: list[str] = typer.Argument(..., help="Accounts as NAME[:CURRENCY[:TYPE]]"),
    user: int = USER_OPTION,
    currency: str = typer.Option("AED", "--currency", "-c", help="Default ISO-4217 currency"),
    account_type: str = typer.Option("Current", "--type", "-t", help="Default type: Current or Saving"),
) -> None:
    """Create one or more accounts."""
    create_accounts_command(user, names, currency, account_type)


@accounts_app.command(name="list")
def list_accounts(user: int = USER_OPTION) -> None:
    """List your accounts with their balances."""
    list_accounts_command(user)


@accounts_app.command(name="rename")
def rename_account(
    account_id: int,
    name: str,
    user: int = USER_OPTION,
    account_type: str = typer.Option(None, "--type", "-t", help="New type: Current or Saving"),
    version: int = typer.Option(None, "--version", help="Version you last saw"),
) -> None:
    """Rename an account and optionally change its type."""
    rename_account_command(user, account_id, name, account_type, version)


@categories_app.command(name="create")
def create_categories(
    names: list[str] = typer.Argument(..., help="Category names"),
    user: int = USER_OPTION,
) -> None:
    """Create one or more categories."""
    create_categories_command(user, names)


@categories_app.command(name="list")
def list_categories(user: int = USER_OPTION) -> None:
    """List your categories, most recently used first."""
    list_categories_command(user)


@categories_app.command(name="rename")
def rename_category(
    category_id: int,
    name: str,
    user: int = USER_OPTION,
    version: int = typer.Option(None, "--version", help="Version you last saw"),
) -> None:
    """Rename a category."""
    rename_category_command(user, category_id, name, version)


@records_app.command(name="add")
def add_record(
    amount: str = typer.Argument(..., help="Amount in major units, e.g. 12.50"),
    user: int = USER_OPTION,
    account: int = typer.Option(..., "--account", "-a", help="Account id"),
    category: int = typer.Option(..., "--category", "-c", help="Category id"),
    record_type: str = typer.Option("expense", "--type", "-t", help="income, expense or transfer"),
    note: str = typer.Option("", "--note", "-m", help="Free-text note"),
    date: str = typer.Option(None, "--date", "-d", help="Date of the record (default: now)"),
    beneficiary: int = typer.Option(None, "--to", help="Receiving account id of a transfer"),
) -> None:
    """Add a record to an account."""
    add_record_command(user, account, category, amount, record_type, note, date, beneficiary)


@records_app.command(name="latest")
def latest_records(
    user: int = USER_OPTION,
    account: int = typer.Option(..., "--account", "-a", help="Account id"),
    month: str = typer.Option(None, "--month", help="Specific month (YYYY-MM)"),
) -> None:
    """Show the records of your latest month."""
    latest_records_command(user, account, month)


@records_app.command(name="search")
def search_records(
    term: str = typer.Argument("", help="Keywords that must all appear in the note"),
    user: int = USER_OPTION,
    account: int = typer.Option(..., "--account", "-a", help="Account id"),
    start: str = typer.Option(None, "--from", help="Earliest date (default: start of this month)"),
    end: str = typer.Option(None, "--to", help="Latest date (default: now)"),
    categories: list[str] = typer.Option([], "--category", "-c", help="Category name, repeatable"),
    record_types: list[str] = typer.Option([], "--type", "-t", help="Record type, repeatable"),
    beneficiaries: list[str] = typer.Option([], "--beneficiary", "-b", help="Receiving account name, repeatable"),
) -> None:
    """Search the records of an account."""
    search_records_command(user, account, term, start, end, categories, record_types, beneficiaries)


@budget_app.command(name="create")
def create_budget(
    user: int = USER_OPTION,
    accounts: list[int] = typer.Option(..., "--account", "-a", help="Account id, repeatable"),
    period: str = typer.Option("Month", "--period", "-p", help="Week or Month"),
    limits: list[str] = typer.Option(..., "--limit", "-l", help="CATEGORY_ID=AMOUNT, repeatable"),
) -> None:
    """Create a budget."""
    create_budget_command(user, accounts, period, limits)


@budget_app.command(name="show")
def show_budget(
    budget_id: int,
    user: int = USER_OPTION,
) -> None:
    """Show a budget against spending in the current period."""
    show_budget_command(user, budget_id)


if __name__ == "__main__":
    app()
