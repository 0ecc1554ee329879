"""Account persistence.

Every query is scoped by the owning user id: an account of another user is
indistinguishable from a missing one.
"""

import sqlite3
from collections.abc import Sequence

from tally.domain.account import Account, create_account
from tally.domain.models import AccountId, UserId
from tally.domain.money import Money
from tally.errors import ErrorCode, SystemFailure, ValidationError
from tally.store.database import Transaction
from tally.store.rows import AUDIT_COLUMNS, audit_from_row, audit_values, placeholders

_SELECT_ACCOUNT = """
    SELECT a.id, a.name, a.account_type, a.currency,
           a.created_by, a.created_at, a.modified_by, a.modified_at, a.version,
           COALESCE((SELECT SUM(r.amount_minor_units) FROM record r WHERE r.account_id = a.id), 0) AS balance
    FROM account a
"""


def _account_from_row(row: sqlite3.Row) -> Account:
    return create_account(
        account_id=AccountId(row["id"]),
        name=row["name"],
        account_type=row["account_type"],
        currency=row["currency"],
        audit=audit_from_row(row),
        current_balance=Money(row["currency"], row["balance"]),
    )


def save_accounts(tx: Transaction, user_id: UserId, accounts: Sequence[Account]) -> None:
    """Insert a batch of accounts with one prepared statement.

    Args:
        tx: Open transaction.
        user_id: Owner of the accounts.
        accounts: Accounts to insert. An empty batch writes nothing.

    Raises:
        SystemFailure: DATABASE_STATE if the insert fails, including a duplicate
            name (classify it with is_duplicate_key).
    """
    if not accounts:
        return
    with tx.savepoint("save_accounts"):
        tx.executemany(
            f"""
            INSERT INTO account (id, user_id, name, account_type, currency, {AUDIT_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (account.id, user_id, account.name, account.account_type.value, account.currency)
                + audit_values(account.audit)
                for account in accounts
            ],
        )


def get_account(tx: Transaction, account_id: AccountId, user_id: UserId) -> Account:
    """Load one account of a user, with its current balance.

    Raises:
        ValidationError: ACCOUNT_NOT_FOUND if the user has no such account.
    """
    row = tx.execute(f"{_SELECT_ACCOUNT} WHERE a.id = ? AND a.user_id = ?", (account_id, user_id)).fetchone()
    if row is None:
        raise ValidationError(ErrorCode.ACCOUNT_NOT_FOUND, f"Account with id {account_id} not found")
    return _account_from_row(row)


def get_accounts(tx: Transaction, user_id: UserId) -> list[Account]:
    """Load every account of a user ordered by id."""
    rows = tx.execute(f"{_SELECT_ACCOUNT} WHERE a.user_id = ? ORDER BY a.id", (user_id,)).fetchall()
    return [_account_from_row(row) for row in rows]


def get_accounts_by_ids(tx: Transaction, account_ids: Sequence[AccountId], user_id: UserId) -> dict[AccountId, Account]:
    """Load the accounts among account_ids that belong to the user.

    Returns:
        Accounts keyed by id. Ids of missing or foreign accounts are absent.
    """
    if not account_ids:
        return {}
    rows = tx.execute(
        f"{_SELECT_ACCOUNT} WHERE a.user_id = ? AND a.id IN ({placeholders(len(account_ids))})",
        (user_id, *account_ids),
    ).fetchall()
    return {AccountId(row["id"]): _account_from_row(row) for row in rows}


def get_account_names(tx: Transaction, user_id: UserId) -> set[str]:
    rows = tx.execute("SELECT name FROM account WHERE user_id = ?", (user_id,)).fetchall()
    return {row["name"] for row in rows}


def update_account(tx: Transaction, user_id: UserId, account: Account, expected_version: int) -> None:
    """Write a modified account if nobody changed it since it was read.

    Args:
        tx: Open transaction.
        user_id: Owner of the account.
        account: Account carrying the new name, type and audit.
        expected_version: Version the caller read.

    Raises:
        SystemFailure: DATABASE_STATE if the stored version is no longer
            expected_version, or if the update fails.
    """
    cursor = tx.execute(
        """
        UPDATE account
        SET name = ?, account_type = ?, modified_by = ?, modified_at = ?, version = version + 1
        WHERE id = ? AND user_id = ? AND version = ?
        """,
        (
            account.name,
            account.account_type.value,
            *audit_values(account.audit)[2:4],
            account.id,
            user_id,
            expected_version,
        ),
    )
    if cursor.rowcount == 0:
        raise SystemFailure(ErrorCode.DATABASE_STATE, f"Account with id {account.id} was modified concurrently")
