"""Tests for the transactional store: transactions, sequences and migrations."""

import sqlite3
from pathlib import Path

import pytest

from tally.context import RequestContext
from tally.domain.models import UserId
from tally.domain.user import create_user
from tally.errors import ErrorCode, RequestCancelled, SystemFailure, ValidationError
from tally.store import Database, database_exists, get_user, init_database, is_duplicate_key, new_id, rollback, save_user


def count_users(db_path: Path) -> int:
    with sqlite3.connect(db_path) as conn:
        return conn.execute("SELECT COUNT(*) FROM user").fetchone()[0]


class TestInitDatabase:
    """Tests for init_database."""

    def test_creates_schema_once(self, tmp_path: Path) -> None:
        """Should apply the built-in migrations once and then be up to date."""
        db_path = tmp_path / "nested" / "tally.db"

        assert init_database(db_path) == [1]
        assert init_database(db_path) == []
        assert database_exists(db_path)

    def test_seeds_sequences(self, db_path: Path) -> None:
        """Should seed one sequence row per entity."""
        with sqlite3.connect(db_path) as conn:
            entities = {row[0] for row in conn.execute("SELECT entity FROM id_sequence")}

        assert entities == {"user", "account", "category", "record", "budget"}

    def test_applies_extra_scripts_in_order(self, tmp_path: Path) -> None:
        """Should apply numbered scripts from the migration directory after the built-in ones."""
        migrations = tmp_path / "migrations"
        migrations.mkdir()
        (migrations / "0003_tags.sql").write_text("ALTER TABLE tag ADD COLUMN colour TEXT;")
        (migrations / "0002_tags.sql").write_text("CREATE TABLE tag (id INTEGER PRIMARY KEY, name TEXT);")
        (migrations / "notes.txt").write_text("not a migration")
        db_path = tmp_path / "tally.db"

        assert init_database(db_path, migrations) == [1, 2, 3]
        assert init_database(db_path, migrations) == []
        with sqlite3.connect(db_path) as conn:
            columns = [row[1] for row in conn.execute("PRAGMA table_info(tag)")]
        assert columns == ["id", "name", "colour"]

    def test_missing_database(self, tmp_path: Path) -> None:
        """Should report a missing file as not existing."""
        assert not database_exists(tmp_path / "absent.db")


class TestTransaction:
    """Tests for Database.begin and Transaction."""

    def test_commit_persists(self, db: Database, db_path: Path) -> None:
        """Should make writes visible after commit."""
        with db.begin(RequestContext()) as tx:
            save_user(tx, create_user(UserId(new_id(tx, "user")), "alice@x.com"))
            tx.commit()

        assert count_users(db_path) == 1

    def test_exit_without_commit_rolls_back(self, db: Database, db_path: Path) -> None:
        """Should discard writes when the block ends without commit."""
        with db.begin(RequestContext()) as tx:
            save_user(tx, create_user(UserId(new_id(tx, "user")), "alice@x.com"))

        assert count_users(db_path) == 0

    def test_exception_rolls_back(self, db: Database, db_path: Path) -> None:
        """Should discard writes when the block raises."""
        with pytest.raises(RuntimeError):
            with db.begin(RequestContext()) as tx:
                save_user(tx, create_user(UserId(new_id(tx, "user")), "alice@x.com"))
                raise RuntimeError("boom")

        assert count_users(db_path) == 0

    def test_rollback_is_idempotent(self, db: Database) -> None:
        """Should allow rolling back twice and rolling back nothing."""
        tx = db.begin(RequestContext())
        tx.rollback()
        tx.rollback()
        rollback(tx)
        rollback(None)

    def test_statement_after_finish_fails(self, db: Database) -> None:
        """Should refuse statements once the transaction is finished."""
        tx = db.begin(RequestContext())
        tx.commit()

        with pytest.raises(SystemFailure) as exc_info:
            tx.execute("SELECT 1")

        assert exc_info.value.code is ErrorCode.DATABASE_STATE

    def test_statement_error_is_wrapped(self, db: Database) -> None:
        """Should wrap driver errors as DATABASE_STATE chained to the cause."""
        with db.begin(RequestContext()) as tx:
            with pytest.raises(SystemFailure) as exc_info:
                tx.execute("SELECT * FROM no_such_table")

        assert exc_info.value.code is ErrorCode.DATABASE_STATE
        assert isinstance(exc_info.value.__cause__, sqlite3.OperationalError)

    def test_savepoint_undoes_only_its_block(self, db: Database, db_path: Path) -> None:
        """Should undo the savepoint's statements and keep earlier ones."""
        with db.begin(RequestContext()) as tx:
            save_user(tx, create_user(UserId(new_id(tx, "user")), "alice@x.com"))
            with pytest.raises(SystemFailure):
                with tx.savepoint("second"):
                    save_user(tx, create_user(UserId(new_id(tx, "user")), "bob@x.com"))
                    save_user(tx, create_user(UserId(new_id(tx, "user")), "alice@x.com"))
            tx.commit()

        assert count_users(db_path) == 1


class TestCancellation:
    """Tests for request cancellation in the store."""

    def test_begin_on_cancelled_context(self, db: Database) -> None:
        """Should not open a transaction for a cancelled request."""
        ctx = RequestContext()
        ctx.cancel()

        with pytest.raises(RequestCancelled) as exc_info:
            db.begin(ctx)

        assert exc_info.value.code is ErrorCode.UNKNOWN
        assert exc_info.value.detail == "Request cancelled"

    def test_cancel_before_commit_writes_nothing(self, db: Database, db_path: Path) -> None:
        """Should roll back instead of committing once the request is cancelled."""
        ctx = RequestContext()
        with pytest.raises(RequestCancelled):
            with db.begin(ctx) as tx:
                save_user(tx, create_user(UserId(new_id(tx, "user")), "alice@x.com"))
                ctx.cancel()
                tx.commit()

        assert count_users(db_path) == 0

    def test_expired_deadline(self, db: Database) -> None:
        """Should treat a passed deadline as cancellation."""
        ctx = RequestContext().with_timeout(-1)

        with pytest.raises(RequestCancelled):
            db.begin(ctx)


class TestNewId:
    """Tests for new_id."""

    def test_sequences_are_independent_and_monotonic(self, db: Database) -> None:
        """Should count each entity separately from 1."""
        with db.begin(RequestContext()) as tx:
            assert [new_id(tx, "record") for _ in range(3)] == [1, 2, 3]
            assert new_id(tx, "account") == 1
            tx.commit()

        with db.begin(RequestContext()) as tx:
            assert new_id(tx, "record") == 4
            tx.commit()

    def test_rolled_back_ids_are_reissued(self, db: Database) -> None:
        """Should only consume ids of committed transactions."""
        with db.begin(RequestContext()) as tx:
            assert new_id(tx, "user") == 1

        with db.begin(RequestContext()) as tx:
            assert new_id(tx, "user") == 1


class TestIsDuplicateKey:
    """Tests for is_duplicate_key."""

    def test_unique_violation(self, db: Database) -> None:
        """Should classify a unique violation wrapped in SystemFailure."""
        with db.begin(RequestContext()) as tx:
            save_user(tx, create_user(UserId(1), "alice@x.com"))
            with pytest.raises(SystemFailure) as exc_info:
                save_user(tx, create_user(UserId(2), "alice@x.com"))

        detail, duplicated = is_duplicate_key(exc_info.value)
        assert duplicated
        assert "UNIQUE" in detail

    def test_primary_key_violation(self, db: Database) -> None:
        """Should classify a primary key violation."""
        with db.begin(RequestContext()) as tx:
            save_user(tx, create_user(UserId(1), "alice@x.com"))
            with pytest.raises(SystemFailure) as exc_info:
                save_user(tx, create_user(UserId(1), "bob@x.com"))

        assert is_duplicate_key(exc_info.value)[1]

    def test_other_errors(self) -> None:
        """Should not classify unrelated errors."""
        assert is_duplicate_key(ValueError("nope")) == ("", False)
        assert not is_duplicate_key(sqlite3.IntegrityError("NOT NULL constraint failed"))[1]


class TestPing:
    """Tests for Database.ping and get_user."""

    def test_ping_initialized(self, db: Database) -> None:
        """Should answer for an initialized database."""
        assert db.ping()

    def test_ping_missing(self, tmp_path: Path) -> None:
        """Should not create a missing database while pinging it."""
        path = tmp_path / "absent.db"

        assert not Database(path).ping()
        assert not path.exists()

    def test_get_user_not_found(self, db: Database) -> None:
        """Should raise USER_NOT_FOUND for an unknown id."""
        with db.begin(RequestContext()) as tx:
            with pytest.raises(ValidationError) as exc_info:
                get_user(tx, UserId(42))

        assert exc_info.value.code is ErrorCode.USER_NOT_FOUND
