"""Shared state and helpers of the command modules."""

import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import NoReturn, TypeVar

import pandas as pd
from rich.console import Console

from tally.config import Config, ConfigError, load_config
from tally.context import RequestContext
from tally.dates import format_rfc3339
from tally.domain.models import AccountId, UserId
from tally.domain.money import Money, currency_exponent, is_valid_currency
from tally.errors import TallyError, problem_document
from tally.log import configure_logging
from tally.services.schema import AmountResponse
from tally.store import Database

console = Console()

T = TypeVar("T")


@dataclass
class Session:
    """Settings of the running command, filled in by the CLI callback."""

    config: Config = field(default_factory=Config)
    db_path: Path | None = None

    @property
    def database_path(self) -> Path:
        return self.db_path if self.db_path is not None else self.config.database.path


session = Session()


def load_session(config_location: str | None, db_path: str | None) -> None:
    """Load configuration and set up logging before any command runs."""
    try:
        session.config = load_config(config_location)
    except FileNotFoundError:
        fail(f"Config not found: {config_location}")
    except ConfigError as e:
        console.print("[red]Invalid configuration:[/red]", style="bold")
        for problem in e.problems:
            console.print(f"  {problem}")
        sys.exit(1)

    session.db_path = Path(db_path).expanduser() if db_path else None
    configure_logging(session.config.logging.level, session.config.logging.json)


def get_database() -> Database:
    """Database of the session. Exits if it hasn't been initialized."""
    path = session.database_path
    if not path.exists():
        fail("Database not found. Run 'tally init' first.")
    return Database(path)


def request_context(user: int | None, account: int | None = None, write: bool = False) -> RequestContext:
    """Context of a command acting as user, bounded by the configured timeout."""
    server = session.config.server
    ctx = RequestContext(
        user_id=UserId(user) if user is not None else None,
        account_id=AccountId(account) if account is not None else None,
    )
    return ctx.with_timeout(server.write_timeout if write else server.read_timeout)


def fail(message: str) -> NoReturn:
    console.print(f"[red]{message}[/red]", style="bold")
    sys.exit(1)


def run(operation: Callable[[], T], instance: str = "") -> T:
    """Run a service operation, exiting with its problem document on failure."""
    try:
        return operation()
    except TallyError as e:
        problem = problem_document(e, instance)
        console.print(f"[red]{problem['title']} ({problem['status']}): {problem['detail']}[/red]", style="bold")
        for key, value in problem.items():
            if key not in ("type", "title", "status", "detail", "instance"):
                console.print(f"  [dim]{key}:[/dim] {value}")
        sys.exit(1)


def parse_money(amount: str, currency: str) -> int:
    """Parse a major-unit amount such as "12.50" into minor units of currency.

    Exits if the amount is not a number or has more decimals than the
    currency allows.
    """
    if not is_valid_currency(currency):
        fail(f"No such currency '{currency}'")
    exponent = currency_exponent(currency)
    try:
        value = Decimal(amount.replace(",", ""))
    except InvalidOperation:
        fail(f"Invalid amount: {amount}")
    minor = value.scaleb(exponent)
    if minor != minor.to_integral_value():
        fail(f"{currency} amounts have at most {exponent} decimals: {amount}")
    return int(minor)


def normalize_date(date: str | None) -> str:
    """Normalize a user-entered date to an RFC-3339 UTC timestamp.

    Accepts ISO, European and other common formats. Dates without an
    offset are taken as UTC; no date means now.
    """
    if not date:
        return format_rfc3339(datetime.now(UTC))
    try:
        parsed = pd.to_datetime(date, dayfirst=True)
    except (ValueError, pd.errors.ParserError) as e:
        console.print(f"[red]Invalid date format: {e}[/red]")
        console.print("[dim]Accepted formats: YYYY-MM-DD, DD/MM/YYYY, 2021-01-01T22:08:41Z, etc.[/dim]")
        sys.exit(1)
    if parsed.tzinfo is None:
        parsed = parsed.tz_localize("UTC")
    return format_rfc3339(parsed.to_pydatetime())


def money_display(amount: AmountResponse) -> str:
    """Render an amount response, green for money in and red for money out."""
    money = Money(amount["currency"], amount["value"])
    if money.is_negative:
        return f"[red]{money}[/red]"
    return f"[green]{money}[/green]"
