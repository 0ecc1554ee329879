"""Admin commands for init, health and fixture simulation."""

import sqlite3
import sys

from rich.table import Table

from tally.commands.common import console, fail, get_database, run, session
from tally.config import create_default_config, get_config_path
from tally.dates import CalendarMonth
from tally.services import HealthService
from tally.simulation import simulate
from tally.store import Database
from tally.store.schema import init_database


def init_command(force: bool) -> None:
    """Create the database and a default configuration file.

    Existing files are left alone unless force is given; pending migrations
    are applied either way.
    """
    db_path = session.database_path
    config_path = get_config_path()

    if force and db_path.exists():
        db_path.unlink()
        console.print(f"[yellow]Removed existing database: {db_path}[/yellow]")

    try:
        applied = init_database(db_path, session.config.database.migration_dir)
    except sqlite3.Error as e:
        console.print(f"[red]Failed to initialize database: {e}[/red]", style="bold")
        sys.exit(1)

    if applied:
        console.print(f"[green]Database initialized at: {db_path}[/green]")
        console.print(f"[dim]Applied migrations: {', '.join(str(version) for version in applied)}[/dim]")
    else:
        console.print(f"[dim]Database is up to date: {db_path}[/dim]")

    if force or not config_path.exists():
        create_default_config(config_path)
        console.print(f"[green]Config created at: {config_path}[/green]")


def health_command() -> None:
    """Report whether the database answers; exit 1 when it doesn't."""
    status = HealthService(Database(session.database_path)).check()
    if status["database"] == "UP":
        console.print("[green]database: UP[/green]")
        return
    console.print("[red]database: DOWN[/red]", style="bold")
    sys.exit(1)


def simulate_command(users: int, start: str, end: str | None, seed: int) -> None:
    """Fill the database with simulated users and their records."""
    try:
        start_month = CalendarMonth.parse(start)
        end_month = CalendarMonth.parse(end) if end else start_month
    except ValueError:
        fail("Invalid month format. Use YYYY-MM")
    if end_month < start_month:
        fail(f"End month {end_month} is before start month {start_month}")

    db = get_database()
    with console.status(f"Simulating {users} user(s) from {start_month} to {end_month}..."):
        simulated = run(lambda: simulate(db, users, start_month, end_month, seed=seed))

    table = Table(title="Simulated users")
    table.add_column("User", style="cyan", justify="right")
    table.add_column("Current", justify="right")
    table.add_column("Saving", justify="right")
    table.add_column("Records", style="magenta", justify="right")
    for user in simulated:
        table.add_row(
            str(user.user_id),
            str(user.current_account_id),
            str(user.saving_account_id),
            str(user.records_created),
        )
    console.print(table)
