"""Category persistence, scoped by the owning user id."""

import sqlite3
from collections.abc import Sequence
from datetime import datetime

from tally.domain.category import Category, create_category
from tally.domain.models import CategoryId, UserId
from tally.errors import ErrorCode, SystemFailure, ValidationError
from tally.store.database import Transaction, from_db_time, to_db_time
from tally.store.rows import AUDIT_COLUMNS, audit_from_row, audit_values, placeholders

_SELECT_CATEGORY = f"SELECT id, name, last_used_at, {AUDIT_COLUMNS} FROM category"


def category_from_row(row: sqlite3.Row, prefix: str = "") -> Category:
    """Map a category row, optionally with prefixed column names from a join."""
    return create_category(
        category_id=CategoryId(row[f"{prefix}id"]),
        name=row[f"{prefix}name"],
        audit=audit_from_row(row, prefix),
        last_used_at=from_db_time(row[f"{prefix}last_used_at"]),
    )


def save_categories(tx: Transaction, user_id: UserId, categories: Sequence[Category]) -> None:
    """Insert a batch of categories with one prepared statement.

    Args:
        tx: Open transaction.
        user_id: Owner of the categories.
        categories: Categories to insert. An empty batch writes nothing.

    Raises:
        SystemFailure: DATABASE_STATE if the insert fails, including a duplicate
            name (classify it with is_duplicate_key).
    """
    if not categories:
        return
    with tx.savepoint("save_categories"):
        tx.executemany(
            f"INSERT INTO category (id, user_id, name, last_used_at, {AUDIT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            [
                (
                    category.id,
                    user_id,
                    category.name,
                    to_db_time(category.last_used_at) if category.last_used_at is not None else None,
                    *audit_values(category.audit),
                )
                for category in categories
            ],
        )


def get_category(tx: Transaction, category_id: CategoryId, user_id: UserId) -> Category:
    """Load one category of a user.

    Raises:
        ValidationError: CATEGORIES_NOT_FOUND if the user has no such category.
    """
    row = tx.execute(f"{_SELECT_CATEGORY} WHERE id = ? AND user_id = ?", (category_id, user_id)).fetchone()
    if row is None:
        raise ValidationError(ErrorCode.CATEGORIES_NOT_FOUND, f"Category with id {category_id} not found")
    return category_from_row(row)


def get_categories(tx: Transaction, user_id: UserId) -> list[Category]:
    """Load every category of a user, most recently used first, then by name."""
    rows = tx.execute(
        f"{_SELECT_CATEGORY} WHERE user_id = ? ORDER BY last_used_at IS NULL, last_used_at DESC, name",
        (user_id,),
    ).fetchall()
    return [category_from_row(row) for row in rows]


def get_categories_by_ids(
    tx: Transaction, category_ids: Sequence[CategoryId], user_id: UserId
) -> dict[CategoryId, Category]:
    """Load the categories among category_ids that belong to the user, keyed by id."""
    if not category_ids:
        return {}
    rows = tx.execute(
        f"{_SELECT_CATEGORY} WHERE user_id = ? AND id IN ({placeholders(len(category_ids))})",
        (user_id, *category_ids),
    ).fetchall()
    return {CategoryId(row["id"]): category_from_row(row) for row in rows}


def get_category_names(tx: Transaction, user_id: UserId) -> set[str]:
    rows = tx.execute("SELECT name FROM category WHERE user_id = ?", (user_id,)).fetchall()
    return {row["name"] for row in rows}


def update_category_last_used(tx: Transaction, category_id: CategoryId, used_at: datetime) -> None:
    """Move a category's last_used_at forward to used_at. Never moves it back."""
    tx.execute(
        "UPDATE category SET last_used_at = ? WHERE id = ? AND (last_used_at IS NULL OR last_used_at < ?)",
        (to_db_time(used_at), category_id, to_db_time(used_at)),
    )


def update_category(tx: Transaction, user_id: UserId, category: Category, expected_version: int) -> None:
    """Write a renamed category if nobody changed it since it was read.

    Raises:
        SystemFailure: DATABASE_STATE if the stored version is no longer
            expected_version, or if the update fails.
    """
    cursor = tx.execute(
        """
        UPDATE category
        SET name = ?, modified_by = ?, modified_at = ?, version = version + 1
        WHERE id = ? AND user_id = ? AND version = ?
        """,
        (category.name, *audit_values(category.audit)[2:4], category.id, user_id, expected_version),
    )
    if cursor.rowcount == 0:
        raise SystemFailure(ErrorCode.DATABASE_STATE, f"Category with id {category.id} was modified concurrently")
