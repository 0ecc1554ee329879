"""Database schema initialization and migrations."""

import os
import re
import sqlite3
from datetime import UTC, datetime
from pathlib import Path

import structlog

log = structlog.get_logger(__name__)

SEQUENCE_ENTITIES = ("user", "account", "category", "record", "budget")

# Ordered (version, name, statements). Applied once each, tracked in schema_version.
MIGRATIONS: list[tuple[int, str, list[str]]] = [
    (
        1,
        "initial schema",
        [
            """
            CREATE TABLE IF NOT EXISTS id_sequence (
                entity TEXT PRIMARY KEY,
                value INTEGER NOT NULL
            )
            """,
            """
            CREATE TABLE IF NOT EXISTS user (
                id INTEGER PRIMARY KEY,
                email TEXT NOT NULL UNIQUE,
                created_at TEXT NOT NULL
            )
            """,
            """
            CREATE TABLE IF NOT EXISTS account (
                id INTEGER PRIMARY KEY,
                user_id INTEGER NOT NULL REFERENCES user(id),
                name TEXT NOT NULL,
                account_type TEXT NOT NULL,
                currency TEXT NOT NULL,
                created_by TEXT NOT NULL,
                created_at TEXT NOT NULL,
                modified_by TEXT NOT NULL DEFAULT '',
                modified_at TEXT,
                version INTEGER NOT NULL DEFAULT 1,
                UNIQUE (user_id, name)
            )
            """,
            """
            CREATE TABLE IF NOT EXISTS category (
                id INTEGER PRIMARY KEY,
                user_id INTEGER NOT NULL REFERENCES user(id),
                name TEXT NOT NULL,
                last_used_at TEXT,
                created_by TEXT NOT NULL,
                created_at TEXT NOT NULL,
                modified_by TEXT NOT NULL DEFAULT '',
                modified_at TEXT,
                version INTEGER NOT NULL DEFAULT 1,
                UNIQUE (user_id, name)
            )
            """,
            """
            CREATE TABLE IF NOT EXISTS record (
                id INTEGER PRIMARY KEY,
                account_id INTEGER NOT NULL REFERENCES account(id),
                category_id INTEGER NOT NULL REFERENCES category(id),
                note TEXT NOT NULL DEFAULT '',
                currency TEXT NOT NULL,
                amount_minor_units INTEGER NOT NULL,
                date TEXT NOT NULL,
                record_type TEXT NOT NULL,
                source_account_id INTEGER,
                beneficiary_id INTEGER,
                beneficiary_type TEXT,
                transfer_reference TEXT,
                created_by TEXT NOT NULL,
                created_at TEXT NOT NULL,
                modified_by TEXT NOT NULL DEFAULT '',
                modified_at TEXT,
                version INTEGER NOT NULL DEFAULT 1
            )
            """,
            """
            CREATE TABLE IF NOT EXISTS budget (
                id INTEGER PRIMARY KEY,
                user_id INTEGER NOT NULL REFERENCES user(id),
                period_type TEXT NOT NULL,
                created_by TEXT NOT NULL,
                created_at TEXT NOT NULL,
                modified_by TEXT NOT NULL DEFAULT '',
                modified_at TEXT,
                version INTEGER NOT NULL DEFAULT 1
            )
            """,
            """
            CREATE TABLE IF NOT EXISTS budget_per_category (
                budget_id INTEGER NOT NULL REFERENCES budget(id),
                category_id INTEGER NOT NULL REFERENCES category(id),
                currency TEXT NOT NULL,
                max_limit_minor_units INTEGER NOT NULL,
                PRIMARY KEY (budget_id, category_id)
            )
            """,
            """
            CREATE TABLE IF NOT EXISTS account_budget (
                account_id INTEGER NOT NULL REFERENCES account(id),
                budget_id INTEGER NOT NULL REFERENCES budget(id),
                PRIMARY KEY (account_id, budget_id)
            )
            """,
            "CREATE INDEX IF NOT EXISTS idx_record_account_date ON record(account_id, date)",
            "CREATE INDEX IF NOT EXISTS idx_record_transfer_reference ON record(transfer_reference)",
            "CREATE INDEX IF NOT EXISTS idx_category_user_last_used ON category(user_id, last_used_at)",
        ],
    ),
]

_SCRIPT_VERSION = re.compile(r"^(\d+)")


def get_xdg_data_home() -> Path:
    """Get XDG data directory, with fallback to ~/.local/share."""
    xdg_data = os.environ.get("XDG_DATA_HOME")
    if xdg_data:
        return Path(xdg_data)
    return Path.home() / ".local" / "share"


def get_db_path() -> Path:
    """Get the default database path (XDG compliant)."""
    return get_xdg_data_home() / "tally" / "tally.db"


def database_exists(db_path: Path | None = None) -> bool:
    """Check if the database file exists.

    Args:
        db_path: Path to check. If None, uses default location.

    Returns:
        True if database exists, False otherwise.
    """
    if db_path is None:
        db_path = get_db_path()
    return db_path.exists()


def _applied_versions(cursor: sqlite3.Cursor) -> set[int]:
    cursor.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_version (
            version INTEGER PRIMARY KEY,
            name TEXT NOT NULL,
            applied_at TEXT NOT NULL
        )
        """
    )
    cursor.execute("SELECT version FROM schema_version")
    return {row[0] for row in cursor.fetchall()}


def _migration_scripts(migration_dir: Path) -> list[tuple[int, str, str]]:
    """Extra migrations: *.sql files whose name starts with their version number."""
    scripts: list[tuple[int, str, str]] = []
    for path in sorted(migration_dir.glob("*.sql")):
        match = _SCRIPT_VERSION.match(path.name)
        if match is None:
            log.warning("migration_skipped", script=str(path), reason="no leading version number")
            continue
        scripts.append((int(match.group(1)), path.stem, path.read_text()))
    return scripts


def init_database(db_path: Path | None = None, migration_dir: Path | None = None) -> list[int]:
    """Initialize the database and apply every pending migration.

    Args:
        db_path: Path to the database file. If None, uses default location.
        migration_dir: Directory of extra "<version>_<name>.sql" scripts, applied
            in name order after the built-in migrations.

    Returns:
        Versions applied by this call, empty if the schema was up to date.

    Raises:
        sqlite3.Error: If database initialization fails.
    """
    if db_path is None:
        db_path = get_db_path()

    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()
    applied: list[int] = []

    try:
        done = _applied_versions(cursor)
        now = datetime.now(UTC).isoformat(timespec="seconds")

        for version, name, statements in MIGRATIONS:
            if version in done:
                continue
            for statement in statements:
                cursor.execute(statement)
            cursor.execute(
                "INSERT INTO schema_version (version, name, applied_at) VALUES (?, ?, ?)",
                (version, name, now),
            )
            applied.append(version)

        cursor.executemany(
            "INSERT OR IGNORE INTO id_sequence (entity, value) VALUES (?, 0)",
            [(entity,) for entity in SEQUENCE_ENTITIES],
        )
        conn.commit()

        if migration_dir is not None:
            for version, name, script in _migration_scripts(migration_dir):
                if version in done or version in applied:
                    continue
                # executescript commits first, so each script is its own unit
                cursor.executescript(script)
                cursor.execute(
                    "INSERT INTO schema_version (version, name, applied_at) VALUES (?, ?, ?)",
                    (version, name, now),
                )
                conn.commit()
                applied.append(version)

    except sqlite3.Error:
        conn.rollback()
        raise
    finally:
        conn.close()

    if applied:
        log.info("migrations_applied", db_path=str(db_path), versions=applied)
    return applied
