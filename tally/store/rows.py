"""Id issuance and the row mapping shared by every aggregate table."""

import sqlite3
from typing import Literal

from tally.domain.audit import AuditInfo, make_audit_for_modification
from tally.domain.models import UpdatedBy
from tally.errors import ErrorCode, SystemFailure
from tally.store.database import Transaction, from_db_time, to_db_time

Entity = Literal["user", "account", "category", "record", "budget"]

AUDIT_COLUMNS = "created_by, created_at, modified_by, modified_at, version"


def new_id(tx: Transaction, entity: Entity) -> int:
    """Issue the next id of an entity's monotonic sequence.

    Args:
        tx: Open transaction. The id is only consumed if tx commits.
        entity: Sequence name.

    Returns:
        Next id, starting at 1.

    Raises:
        SystemFailure: DATABASE_STATE if the sequence can't be advanced.
    """
    row = tx.execute(
        """
        INSERT INTO id_sequence (entity, value) VALUES (?, 1)
        ON CONFLICT (entity) DO UPDATE SET value = value + 1
        RETURNING value
        """,
        (entity,),
    ).fetchone()
    if row is None:
        raise SystemFailure(ErrorCode.DATABASE_STATE, f"Sequence {entity} returned no value")
    return int(row[0])


def audit_values(audit: AuditInfo) -> tuple[str, str, str, str | None, int]:
    """Column values for AUDIT_COLUMNS, in order."""
    return (
        str(audit.created_by),
        to_db_time(audit.created_at),
        str(audit.modified_by),
        to_db_time(audit.modified_at) if audit.modified_at is not None else None,
        audit.version,
    )


def audit_from_row(row: sqlite3.Row, prefix: str = "") -> AuditInfo:
    """Rebuild the audit of a row. prefix selects aliased columns of a join."""
    return make_audit_for_modification(
        created_by=UpdatedBy.parse(row[f"{prefix}created_by"]),
        created_at=from_db_time(row[f"{prefix}created_at"]),
        modified_by=UpdatedBy.parse(row[f"{prefix}modified_by"] or ""),
        modified_at=from_db_time(row[f"{prefix}modified_at"]),
        version=row[f"{prefix}version"],
    )


def placeholders(count: int) -> str:
    """Comma-separated "?" markers for an IN clause of count values."""
    return ", ".join("?" * count)
