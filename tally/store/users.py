"""User persistence."""

from datetime import UTC, datetime

from tally.domain.models import UserId
from tally.domain.user import User
from tally.errors import ErrorCode, ValidationError
from tally.store.database import Transaction, to_db_time


def save_user(tx: Transaction, user: User) -> None:
    """Insert a user.

    Args:
        tx: Open transaction.
        user: User to insert.

    Raises:
        SystemFailure: DATABASE_STATE if the insert fails, including a duplicate
            email (classify it with is_duplicate_key).
    """
    tx.execute(
        "INSERT INTO user (id, email, created_at) VALUES (?, ?, ?)",
        (user.id, user.email, to_db_time(datetime.now(UTC))),
    )


def get_user(tx: Transaction, user_id: UserId) -> User:
    """Load a user by id.

    Raises:
        ValidationError: USER_NOT_FOUND if there is no such user.
    """
    row = tx.execute("SELECT id, email FROM user WHERE id = ?", (user_id,)).fetchone()
    if row is None:
        raise ValidationError(ErrorCode.USER_NOT_FOUND, f"User with id {user_id} not found")
    return User(id=UserId(row["id"]), email=row["email"])
