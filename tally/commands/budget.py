"""Budget commands: create and show."""

from rich.table import Table

from tally.commands.common import console, fail, get_database, money_display, parse_money, request_context, run
from tally.domain.models import AccountId, BudgetId
from tally.services import AccountService, BudgetService
from tally.services.schema import AmountRequest, CategoryBudgetRequest, CreateBudgetRequest


def parse_limit(spec: str, currency: str) -> CategoryBudgetRequest:
    """Parse a "CATEGORY_ID=AMOUNT" limit, the amount in major units.

    Args:
        spec: Limit as typed on the command line, e.g. "4=250.00".
        currency: Currency of the budgeted accounts.

    Returns:
        Category budget request in minor units.
    """
    category, separator, amount = spec.partition("=")
    if not separator:
        fail(f"Invalid limit '{spec}'. Use CATEGORY_ID=AMOUNT")
    try:
        category_id = int(category)
    except ValueError:
        fail(f"Invalid category id '{category}' in limit '{spec}'")
    return CategoryBudgetRequest(category_id=category_id, max_amount=AmountRequest(currency, parse_money(amount, currency)))


def create_budget_command(user: int, accounts: list[int], period: str, limits: list[str]) -> None:
    """Create a budget over accounts, in the currency of the first one."""
    if not accounts:
        fail("At least one account is required")

    db = get_database()
    first = run(
        lambda: AccountService(db).get_account(request_context(user), AccountId(accounts[0])),
        f"/accounts/{accounts[0]}",
    )
    request = CreateBudgetRequest(
        account_ids=tuple(accounts),
        period=period,
        category_budgets=tuple(parse_limit(spec, first["currency"]) for spec in limits),
    )
    service = BudgetService(db)
    budget = run(lambda: service.create_budget(request_context(user, write=True), request), "/budgets")

    console.print(f"[green]Created {budget['period'].lower()}ly budget {budget['id']}[/green]")
    console.print(f"[dim]Tracking {len(budget['categoryBudgets'])} categor{'y' if len(budget['categoryBudgets']) == 1 else 'ies'}[/dim]")


def show_budget_command(user: int, budget_id: int) -> None:
    """Show the limits of a budget against spending in the current period."""
    service = BudgetService(get_database())
    budget = run(lambda: service.get_budget(request_context(user), BudgetId(budget_id)), f"/budgets/{budget_id}")

    table = Table(title=f"Budget {budget['id']} ({budget['period']})")
    table.add_column("Category", style="cyan", justify="right")
    table.add_column("Limit", justify="right")
    table.add_column("Spent", style="magenta", justify="right")
    table.add_column("Status")

    for item in budget["categoryBudgets"]:
        table.add_row(
            str(item["categoryId"]),
            money_display(item["maxAmount"]),
            money_display(item["amountSpent"]),
            "[red]exceeded[/red]" if item["exceeded"] else "[green]ok[/green]",
        )

    console.print(table)
    console.print(f"[dim]Accounts: {', '.join(str(account_id) for account_id in budget['accountIds'])}[/dim]")
