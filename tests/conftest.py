"""Shared fixtures: a fresh database per test and a user with accounts and categories."""

from dataclasses import dataclass
from pathlib import Path

import pytest

from tally.context import RequestContext
from tally.domain.models import AccountId, CategoryId, UserId
from tally.services import AccountService, CategoriesService, UserService
from tally.services.schema import (
    AccountRequest,
    CategoryRequest,
    CreateAccountsRequest,
    CreateCategoriesRequest,
    CreateUserRequest,
)
from tally.store import Database, init_database


@dataclass(frozen=True)
class Household:
    """One registered user with a Current and a Saving account in AED."""

    user_id: UserId
    current_id: AccountId
    saving_id: AccountId
    category_ids: dict[str, CategoryId]

    @property
    def ctx(self) -> RequestContext:
        return RequestContext(user_id=self.user_id)

    def on(self, account_id: AccountId) -> RequestContext:
        return self.ctx.with_account(account_id)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    path = tmp_path / "tally.db"
    init_database(path)
    return path


@pytest.fixture
def db(db_path: Path) -> Database:
    return Database(db_path)


def register(db: Database, email: str) -> Household:
    """Register a user with two AED accounts and a few categories."""
    user = UserService(db).create_user(RequestContext(), CreateUserRequest(email=email))
    ctx = RequestContext(user_id=UserId(user["id"]))
    accounts = AccountService(db).create_accounts(
        ctx,
        CreateAccountsRequest(
            accounts=(
                AccountRequest(name="Current", currency="AED", type="Current"),
                AccountRequest(name="Saving", currency="AED", type="Saving"),
            )
        ),
    )["accounts"]
    categories = CategoriesService(db).create_categories(
        ctx,
        CreateCategoriesRequest(
            categories=tuple(CategoryRequest(name=name) for name in ("Salary", "Savings", "Food", "Bills"))
        ),
    )["categories"]
    return Household(
        user_id=UserId(user["id"]),
        current_id=AccountId(accounts[0]["id"]),
        saving_id=AccountId(accounts[1]["id"]),
        category_ids={item["name"]: CategoryId(item["id"]) for item in categories},
    )


@pytest.fixture
def household(db: Database) -> Household:
    return register(db, "alice@x.com")


@pytest.fixture
def neighbour(db: Database, household: Household) -> Household:
    """A second user, registered after household."""
    return register(db, "bob@x.com")
