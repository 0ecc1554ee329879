"""Record commands: add, latest and search."""

from rich.table import Table

from tally.commands.common import (
    console,
    fail,
    get_database,
    money_display,
    normalize_date,
    parse_money,
    request_context,
    run,
)
from tally.dates import CalendarMonth, parse_rfc3339
from tally.domain.models import AccountId
from tally.domain.record import RecordType
from tally.services import AccountService, RecordService
from tally.services.schema import AmountRequest, CreateRecordRequest, RecordsResponse
from tally.store import RecordSearch


def add_record_command(
    user: int,
    account: int,
    category: int,
    amount: str,
    record_type: str,
    note: str,
    date: str | None,
    beneficiary: int | None,
) -> None:
    """Record income, an expense or a transfer on an account.

    The amount is entered in major units and always positive; expenses and
    outgoing transfers are stored as negative amounts.
    """
    db = get_database()
    accounts = AccountService(db)
    owner = run(lambda: accounts.get_account(request_context(user), AccountId(account)), f"/accounts/{account}")

    request = CreateRecordRequest(
        note=note,
        category_id=category,
        amount=AmountRequest(owner["currency"], parse_money(amount, owner["currency"])),
        date=normalize_date(date),
        type=record_type.upper(),
        beneficiary_id=beneficiary,
    )
    service = RecordService(db)
    record = run(
        lambda: service.create_record(request_context(user, account, write=True), request),
        f"/accounts/{account}/records",
    )

    console.print(f"[green]Recorded {record['type'].lower()} {record['id']}: {money_display(record['amount'])}[/green]")
    transfer = record.get("transfer")
    if transfer is not None:
        name = transfer["beneficiary"].get("name", str(transfer["beneficiary"]["id"]))
        console.print(f"[dim]Transferred to {name}, reference {transfer['reference']}[/dim]")
    balance = record.get("account")
    if balance is not None:
        console.print(f"Balance of {balance['name']}: {money_display(balance['currentBalance'])}")


def _print_records(title: str, response: RecordsResponse) -> None:
    records = response["records"]
    if not records:
        console.print("[yellow]No records found.[/yellow]")
        return

    table = Table(title=title)
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Date")
    table.add_column("Type")
    table.add_column("Category", style="magenta")
    table.add_column("Note")
    table.add_column("Amount", justify="right")

    for record in records:
        table.add_row(
            str(record["id"]),
            record["date"],
            record["type"].title(),
            str(record["category"]["name"]),
            record["note"],
            money_display(record["amount"]),
        )

    console.print(table)

    summary = response["summary"]
    console.print(f"Income:   {money_display(summary['totalIncome'])}")
    console.print(f"Expenses: {money_display(summary['totalExpenses'])}")
    console.print(f"Savings:  {money_display(summary['totalSavings'])}")
    console.print(f"[dim]From {response['search']['from']} to {response['search']['to']}[/dim]")


def latest_records_command(user: int, account: int, month: str | None) -> None:
    """Show the records of a month, by default the account's latest one."""
    service = RecordService(get_database())
    ctx = request_context(user, account)

    if month:
        try:
            target = CalendarMonth.parse(month)
        except ValueError:
            fail("Invalid month format. Use YYYY-MM")
        response = run(lambda: service.get_records_for_month(ctx, AccountId(account), target), f"/accounts/{account}/records")
        _print_records(f"Records for {target.label}", response)
        return

    response = run(lambda: service.get_records(ctx, AccountId(account)), f"/accounts/{account}/records")
    _print_records("Latest records", response)


def search_records_command(
    user: int,
    account: int,
    term: str,
    start: str | None,
    end: str | None,
    categories: list[str],
    record_types: list[str],
    beneficiaries: list[str],
) -> None:
    """Search the records of an account. Dates default to the current month."""
    parsed_types: list[RecordType] = []
    for value in record_types:
        parsed = RecordType.parse(value)
        if parsed is None:
            fail(f"Unknown record type '{value}'. Use income, expense or transfer")
        parsed_types.append(parsed)

    search = RecordSearch(
        term=term,
        start=parse_rfc3339(normalize_date(start)) if start else None,
        end=parse_rfc3339(normalize_date(end)) if end else None,
        category_names=tuple(categories),
        record_types=tuple(parsed_types),
        beneficiary_account_names=tuple(beneficiaries),
    )
    service = RecordService(get_database())
    response = run(
        lambda: service.search(request_context(user, account), AccountId(account), search),
        f"/accounts/{account}/records/search",
    )
    _print_records("Search results", response)
