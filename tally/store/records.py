"""Record persistence and record queries."""

import sqlite3
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from tally.dates import CalendarMonth
from tally.domain.account import AccountType
from tally.domain.models import AccountId, RecordId
from tally.domain.money import Money
from tally.domain.record import Record, Records, RecordType, create_record
from tally.store.categories import category_from_row
from tally.store.database import Transaction, from_db_time, to_db_time
from tally.store.rows import AUDIT_COLUMNS, audit_from_row, audit_values, placeholders

_SELECT_RECORD = """
    SELECT r.id, r.note, r.currency, r.amount_minor_units, r.date, r.record_type,
           r.source_account_id, r.beneficiary_id, r.beneficiary_type, r.transfer_reference,
           r.created_by, r.created_at, r.modified_by, r.modified_at, r.version,
           c.id AS c_id, c.name AS c_name, c.last_used_at AS c_last_used_at,
           c.created_by AS c_created_by, c.created_at AS c_created_at,
           c.modified_by AS c_modified_by, c.modified_at AS c_modified_at, c.version AS c_version
    FROM record r
    JOIN category c ON c.id = r.category_id
"""

# Characters removed from search keywords before they reach the query
_UNSAFE_KEYWORD_CHARS = str.maketrans("", "", "\";")


@dataclass(frozen=True)
class RecordSearch:
    """Optional filters of a record search. Empty filters match everything.

    Attributes:
        term: Space-separated keywords that must all appear in the note.
        start: Earliest date, inclusive. Defaults to the current month's first day.
        end: Latest date, inclusive. Defaults to now.
        category_names: Category names, any of which matches.
        record_types: Record types, any of which matches.
        beneficiary_account_names: Receiving account names, any of which matches.
    """

    term: str = ""
    start: datetime | None = None
    end: datetime | None = None
    category_names: tuple[str, ...] = ()
    record_types: tuple[RecordType, ...] = ()
    beneficiary_account_names: tuple[str, ...] = ()

    def keywords(self) -> list[str]:
        cleaned = (word.translate(_UNSAFE_KEYWORD_CHARS) for word in self.term.split())
        return [word for word in cleaned if word]


def _record_from_row(row: sqlite3.Row) -> Record:
    beneficiary_type = row["beneficiary_type"]
    return create_record(
        record_id=RecordId(row["id"]),
        note=row["note"],
        category=category_from_row(row, prefix="c_"),
        amount=Money(row["currency"], row["amount_minor_units"]),
        date=from_db_time(row["date"]),
        record_type=row["record_type"],
        audit=audit_from_row(row),
        source_account_id=row["source_account_id"] or 0,
        beneficiary_id=row["beneficiary_id"] or 0,
        beneficiary_type=AccountType(beneficiary_type) if beneficiary_type else None,
        transfer_reference=row["transfer_reference"] or "",
    )


def save_record(tx: Transaction, account_id: AccountId, record: Record) -> None:
    """Insert a record against the account it belongs to.

    Args:
        tx: Open transaction.
        account_id: Account whose history the record is part of.
        record: Record to insert.

    Raises:
        SystemFailure: DATABASE_STATE if the insert fails.
    """
    tx.execute(
        f"""
        INSERT INTO record (
            id, account_id, category_id, note, currency, amount_minor_units, date, record_type,
            source_account_id, beneficiary_id, beneficiary_type, transfer_reference, {AUDIT_COLUMNS}
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            record.id,
            account_id,
            record.category.id,
            record.note,
            record.amount.currency,
            record.amount.minor_units,
            to_db_time(record.date),
            record.record_type.value,
            record.source_account_id or None,
            record.beneficiary_id or None,
            record.beneficiary_type.value if record.beneficiary_type is not None else None,
            record.transfer_reference or None,
            *audit_values(record.audit),
        ),
    )


def _select(tx: Transaction, where: str, params: Sequence[Any], order: str = "r.date, r.id") -> Records:
    rows = tx.execute(f"{_SELECT_RECORD} WHERE {where} ORDER BY {order}", params).fetchall()
    return Records(_record_from_row(row) for row in rows)


def get_records_between(tx: Transaction, account_ids: Sequence[AccountId], start: datetime, end: datetime) -> Records:
    """Records of any of the accounts dated in [start, end)."""
    if not account_ids:
        return Records()
    return _select(
        tx,
        f"r.account_id IN ({placeholders(len(account_ids))}) AND r.date >= ? AND r.date < ?",
        (*account_ids, to_db_time(start), to_db_time(end)),
    )


def get_records_for_month(tx: Transaction, account_id: AccountId, month: CalendarMonth) -> Records:
    """Records of an account dated within a calendar month."""
    return get_records_between(tx, [account_id], month.first_day(), month.next_month().first_day())


def get_latest_month(tx: Transaction, account_id: AccountId) -> CalendarMonth | None:
    """Calendar month of the account's newest record, None if it has no records."""
    row = tx.execute("SELECT MAX(date) FROM record WHERE account_id = ?", (account_id,)).fetchone()
    latest = from_db_time(row[0]) if row is not None else None
    return CalendarMonth.of_date(latest) if latest is not None else None


def get_records_for_last_period(tx: Transaction, account_id: AccountId) -> Records:
    """Records of the calendar month holding the account's newest record."""
    month = get_latest_month(tx, account_id)
    if month is None:
        return Records()
    return get_records_for_month(tx, account_id, month)


def get_transfer_records(tx: Transaction, transfer_reference: str) -> Records:
    """Both halves of a transfer."""
    return _select(tx, "r.transfer_reference = ?", (transfer_reference,))


def search_records(tx: Transaction, account_id: AccountId, search: RecordSearch) -> Records:
    """Records of an account matching every filter of search.

    Args:
        tx: Open transaction.
        account_id: Account to search.
        search: Filters to apply.

    Returns:
        Matching records in ascending date order.
    """
    now = datetime.now(UTC)
    start = search.start if search.start is not None else CalendarMonth.of_date(now).first_day()
    end = search.end if search.end is not None else now

    clauses = ["r.account_id = ?", "r.date >= ?", "r.date <= ?"]
    params: list[Any] = [account_id, to_db_time(start), to_db_time(end)]

    for keyword in search.keywords():
        escaped = keyword.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        clauses.append("r.note LIKE ? ESCAPE '\\'")
        params.append(f"%{escaped}%")

    if search.category_names:
        clauses.append(f"c.name IN ({placeholders(len(search.category_names))})")
        params.extend(search.category_names)

    if search.record_types:
        clauses.append(f"r.record_type IN ({placeholders(len(search.record_types))})")
        params.extend(record_type.value for record_type in search.record_types)

    if search.beneficiary_account_names:
        clauses.append(
            "r.beneficiary_id IN (SELECT b.id FROM account b WHERE b.name IN "
            f"({placeholders(len(search.beneficiary_account_names))}) "
            "AND b.user_id = (SELECT o.user_id FROM account o WHERE o.id = ?))"
        )
        params.extend(search.beneficiary_account_names)
        params.append(account_id)

    return _select(tx, " AND ".join(clauses), params, order="r.date DESC, r.id DESC")
