"""End-to-end tests for the tally command line."""

from pathlib import Path

import pytest
from click.testing import Result
from typer.testing import CliRunner

from tally.cli import app

runner = CliRunner()


@pytest.fixture
def db_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    return tmp_path / "tally.db"


def invoke(db_file: Path, *args: str) -> Result:
    return runner.invoke(app, ["--db", str(db_file), *args])


@pytest.fixture
def ready(db_file: Path) -> Path:
    """An initialized database with user 1, accounts 1 and 2 and categories 1 and 2."""
    assert invoke(db_file, "init").exit_code == 0
    assert invoke(db_file, "user", "create", "jack@x.com").exit_code == 0
    assert invoke(db_file, "accounts", "create", "Current", "Saving::Saving", "-u", "1").exit_code == 0
    assert invoke(db_file, "categories", "create", "Salary", "Savings", "-u", "1").exit_code == 0
    return db_file


class TestAdminCommands:
    """Tests for init and health."""

    def test_init(self, db_file: Path, tmp_path: Path) -> None:
        """Should create the database and the default config."""
        result = invoke(db_file, "init")

        assert result.exit_code == 0
        assert "Database initialized" in result.output
        assert db_file.exists()
        assert (tmp_path / "config" / "tally" / "config.toml").exists()

    def test_init_twice(self, db_file: Path) -> None:
        """Should leave an up-to-date database alone."""
        invoke(db_file, "init")

        result = invoke(db_file, "init")

        assert result.exit_code == 0
        assert "up to date" in result.output

    def test_health(self, db_file: Path) -> None:
        """Should report DOWN before init and UP after."""
        assert invoke(db_file, "health").exit_code == 1
        invoke(db_file, "init")

        result = invoke(db_file, "health")

        assert result.exit_code == 0
        assert "database: UP" in result.output

    def test_command_before_init(self, db_file: Path) -> None:
        """Should ask for init when the database is missing."""
        result = invoke(db_file, "user", "create", "jack@x.com")

        assert result.exit_code == 1
        assert "Run 'tally init' first" in result.output


class TestUserCommands:
    """Tests for user create."""

    def test_duplicate_email(self, db_file: Path) -> None:
        """Should print the problem and exit 1 for a registered email."""
        invoke(db_file, "init")
        assert "Created user 1" in invoke(db_file, "user", "create", "jack@x.com").output

        result = invoke(db_file, "user", "create", "jack@x.com")

        assert result.exit_code == 1
        assert "USER_EMAIL_DUPLICATED (400)" in result.output


class TestAccountCommands:
    """Tests for the accounts commands."""

    def test_create_and_list(self, ready: Path) -> None:
        """Should list the created accounts."""
        result = invoke(ready, "accounts", "list", "-u", "1")

        assert result.exit_code == 0
        assert "Current" in result.output
        assert "Saving" in result.output

    def test_invalid_currency(self, ready: Path) -> None:
        """Should report an unknown currency."""
        result = invoke(ready, "accounts", "create", "Travel:XXX", "-u", "1")

        assert result.exit_code == 1
        assert "No such currency 'XXX'" in result.output


class TestRecordCommands:
    """Tests for the records commands."""

    def test_add_and_latest(self, ready: Path) -> None:
        """Should record income and show it in the latest month."""
        added = invoke(ready, "records", "add", "100", "-u", "1", "-a", "1", "-c", "1", "-t", "income", "-d", "2021-01-01")
        latest = invoke(ready, "records", "latest", "-u", "1", "-a", "1")

        assert added.exit_code == 0
        assert "Recorded income 1" in added.output
        assert "AED 100.00" in added.output
        assert latest.exit_code == 0
        assert "Income:   AED 100.00" in latest.output
        assert "Expenses: AED 0.00" in latest.output

    def test_transfer(self, ready: Path) -> None:
        """Should move money to the beneficiary account."""
        result = invoke(
            ready, "records", "add", "25.50", "-u", "1", "-a", "1", "-c", "2", "-t", "transfer", "--to", "2",
            "-d", "2021-01-02",
        )

        assert result.exit_code == 0
        assert "Transferred to Saving" in result.output
        assert "AED -25.50" in result.output

    def test_too_many_decimals(self, ready: Path) -> None:
        """Should refuse amounts finer than the currency allows."""
        result = invoke(ready, "records", "add", "1.234", "-u", "1", "-a", "1", "-c", "1")

        assert result.exit_code == 1
        assert "at most 2 decimals" in result.output

    def test_latest_of_empty_account(self, ready: Path) -> None:
        """Should say so when an account has no records."""
        result = invoke(ready, "records", "latest", "-u", "1", "-a", "2")

        assert result.exit_code == 0
        assert "No records found" in result.output


class TestCategoryCommands:
    """Tests for the categories commands."""

    def test_rename_and_list(self, ready: Path) -> None:
        """Should rename a category and list it under the new name."""
        renamed = invoke(ready, "categories", "rename", "2", "rainy day", "-u", "1")
        listed = invoke(ready, "categories", "list", "-u", "1")

        assert renamed.exit_code == 0
        assert "Rainy Day" in listed.output

    def test_duplicate(self, ready: Path) -> None:
        """Should refuse a name differing only in case."""
        result = invoke(ready, "categories", "create", "SALARY", "-u", "1")

        assert result.exit_code == 1
        assert "CATEGORY_NAME_DUPLICATED" in result.output


class TestBudgetCommands:
    """Tests for the budget commands."""

    def test_create_and_show(self, ready: Path) -> None:
        """Should create a budget and show its limits."""
        created = invoke(ready, "budget", "create", "-u", "1", "-a", "1", "-l", "2=250", "--period", "week")
        shown = invoke(ready, "budget", "show", "1", "-u", "1")

        assert created.exit_code == 0
        assert "Created weekly budget 1" in created.output
        assert shown.exit_code == 0
        assert "AED 250.00" in shown.output

    def test_bad_limit(self, ready: Path) -> None:
        """Should refuse a limit without a category id."""
        result = invoke(ready, "budget", "create", "-u", "1", "-a", "1", "-l", "250")

        assert result.exit_code == 1
        assert "Use CATEGORY_ID=AMOUNT" in result.output


class TestSimulateCommand:
    """Tests for simulate."""

    def test_simulate_month(self, db_file: Path) -> None:
        """Should report the records created per user."""
        invoke(db_file, "init")

        result = invoke(db_file, "simulate", "--from", "2021-06", "-n", "1")

        assert result.exit_code == 0
        assert "65" in result.output

    def test_bad_month(self, db_file: Path) -> None:
        """Should refuse a month not in YYYY-MM form."""
        invoke(db_file, "init")

        result = invoke(db_file, "simulate", "--from", "June")

        assert result.exit_code == 1
        assert "YYYY-MM" in result.output
