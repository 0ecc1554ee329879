"""Account commands: create, list and rename."""

from rich.table import Table

from tally.commands.common import console, fail, get_database, money_display, request_context, run
from tally.domain.models import AccountId
from tally.services import AccountService
from tally.services.schema import AccountRequest, CreateAccountsRequest, UpdateAccountRequest


def _parse_account(spec: str, currency: str, account_type: str) -> AccountRequest:
    """Parse "Name", "Name:CUR" or "Name:CUR:Type" into a request."""
    parts = [part.strip() for part in spec.split(":")]
    if len(parts) > 3:
        fail(f"Invalid account '{spec}'. Use NAME[:CURRENCY[:TYPE]]")
    name = parts[0]
    if len(parts) > 1 and parts[1]:
        currency = parts[1]
    if len(parts) > 2 and parts[2]:
        account_type = parts[2]
    return AccountRequest(name=name, currency=currency.upper(), type=account_type)


def create_accounts_command(user: int, accounts: list[str], currency: str, account_type: str) -> None:
    """Create every account in one go; none is created if any is invalid."""
    request = CreateAccountsRequest(accounts=tuple(_parse_account(spec, currency, account_type) for spec in accounts))
    service = AccountService(get_database())
    created = run(lambda: service.create_accounts(request_context(user, write=True), request), "/accounts")

    for account in created["accounts"]:
        console.print(f"[green]Created account {account['id']}: {account['name']} ({account['type']}, {account['currency']})[/green]")


def list_accounts_command(user: int) -> None:
    service = AccountService(get_database())
    accounts = run(lambda: service.get_accounts(request_context(user)), "/accounts")["accounts"]

    if not accounts:
        console.print("[yellow]No accounts found.[/yellow]")
        return

    table = Table(title="Accounts")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Name", style="magenta")
    table.add_column("Type")
    table.add_column("Balance", justify="right")
    table.add_column("Version", style="dim", justify="right")

    for account in accounts:
        table.add_row(
            str(account["id"]),
            account["name"],
            account["type"],
            money_display(account["currentBalance"]),
            str(account["version"]),
        )

    console.print(table)


def rename_account_command(user: int, account_id: int, name: str, account_type: str | None, version: int | None) -> None:
    service = AccountService(get_database())
    request = UpdateAccountRequest(name=name, type=account_type, version=version)
    account = run(
        lambda: service.update_account(request_context(user, write=True), AccountId(account_id), request),
        f"/accounts/{account_id}",
    )
    console.print(f"[green]Account {account['id']} is now {account['name']} ({account['type']}), version {account['version']}[/green]")
