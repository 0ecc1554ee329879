"""Tests for AccountService."""

import pytest

from tally.context import RequestContext
from tally.domain.models import AccountId
from tally.errors import ErrorCode, SystemFailure, ValidationError
from tally.services import AccountService
from tally.services.schema import AccountRequest, CreateAccountsRequest, UpdateAccountRequest
from tally.store import Database

from conftest import Household


class TestCreateAccounts:
    """Tests for AccountService.create_accounts."""

    def test_invalid_currency(self, db: Database, household: Household) -> None:
        """Should reject an unknown currency with the field message as detail."""
        request = CreateAccountsRequest(accounts=(AccountRequest(name="Current", currency="XXX", type="Current"),))

        with pytest.raises(ValidationError) as exc_info:
            AccountService(db).create_accounts(household.ctx, request)

        assert exc_info.value.code is ErrorCode.ACCOUNT_VALIDATION_FAILED
        assert exc_info.value.detail == "No such currency 'XXX'"

    def test_requires_user(self, db: Database) -> None:
        """Should refuse an anonymous caller."""
        with pytest.raises(ValidationError) as exc_info:
            AccountService(db).create_accounts(RequestContext(), CreateAccountsRequest(accounts=()))

        assert exc_info.value.code is ErrorCode.SERVICE_REQUIRED_USER_ID
        assert exc_info.value.status == 401

    def test_empty_batch(self, db: Database, household: Household) -> None:
        """Should accept an empty batch and write nothing."""
        created = AccountService(db).create_accounts(household.ctx, CreateAccountsRequest(accounts=()))

        assert created == {"accounts": []}
        assert len(AccountService(db).get_accounts(household.ctx)["accounts"]) == 2

    def test_duplicate_with_stored_name(self, db: Database, household: Household) -> None:
        """Should name the account that already exists."""
        request = CreateAccountsRequest(
            accounts=(
                AccountRequest(name="Holiday", currency="AED", type="Saving"),
                AccountRequest(name="current", currency="AED", type="Current"),
            )
        )

        with pytest.raises(ValidationError) as exc_info:
            AccountService(db).create_accounts(household.ctx, request)

        assert exc_info.value.code is ErrorCode.ACCOUNT_NAME_DUPLICATED
        assert exc_info.value.detail == 'Account named "Current" already exists'
        assert len(AccountService(db).get_accounts(household.ctx)["accounts"]) == 2

    def test_duplicates_within_batch(self, db: Database, household: Household) -> None:
        """Should list every name repeated in the batch."""
        request = CreateAccountsRequest(
            accounts=tuple(AccountRequest(name=name, currency="AED", type="Current") for name in ("A", "B", "a", "b"))
        )

        with pytest.raises(ValidationError) as exc_info:
            AccountService(db).create_accounts(household.ctx, request)

        assert exc_info.value.detail == "Account names must be unique. Duplicated: A, B"

    def test_same_name_for_another_user(self, db: Database, household: Household, neighbour: Household) -> None:
        """Should scope name uniqueness to the owner."""
        accounts = AccountService(db).get_accounts(neighbour.ctx)["accounts"]

        assert [account["name"] for account in accounts] == ["Current", "Saving"]


class TestGetAccounts:
    """Tests for AccountService.get_accounts and get_account."""

    def test_lists_with_zero_balances(self, db: Database, household: Household) -> None:
        """Should list the caller's accounts with their balances."""
        accounts = AccountService(db).get_accounts(household.ctx)["accounts"]

        assert accounts[0] == {
            "id": household.current_id,
            "name": "Current",
            "currency": "AED",
            "type": "Current",
            "currentBalance": {"currency": "AED", "value": 0},
            "version": 1,
        }

    def test_foreign_account(self, db: Database, household: Household, neighbour: Household) -> None:
        """Should not reveal another user's account."""
        with pytest.raises(ValidationError) as exc_info:
            AccountService(db).get_account(neighbour.ctx, household.current_id)

        assert exc_info.value.code is ErrorCode.ACCOUNT_NOT_FOUND
        assert exc_info.value.status == 404


class TestUpdateAccount:
    """Tests for AccountService.update_account."""

    def test_rename_bumps_version(self, db: Database, household: Household) -> None:
        """Should rename, change type and increment the version."""
        updated = AccountService(db).update_account(
            household.ctx, household.saving_id, UpdateAccountRequest(name="rainy day", type="Current")
        )

        assert updated["name"] == "Rainy Day"
        assert updated["type"] == "Current"
        assert updated["version"] == 2
        assert AccountService(db).get_account(household.ctx, household.saving_id)["version"] == 2

    def test_stale_version(self, db: Database, household: Household) -> None:
        """Should refuse an update based on a version that has moved on."""
        service = AccountService(db)
        service.update_account(household.ctx, household.saving_id, UpdateAccountRequest(name="Rainy Day", version=1))

        with pytest.raises(SystemFailure) as exc_info:
            service.update_account(household.ctx, household.saving_id, UpdateAccountRequest(name="Pot", version=1))

        assert exc_info.value.code is ErrorCode.DATABASE_STATE
        assert service.get_account(household.ctx, household.saving_id)["name"] == "Rainy Day"

    def test_rename_to_taken_name(self, db: Database, household: Household) -> None:
        """Should reject a name another account of the caller has."""
        with pytest.raises(ValidationError) as exc_info:
            AccountService(db).update_account(household.ctx, household.saving_id, UpdateAccountRequest(name="Current"))

        assert exc_info.value.code is ErrorCode.ACCOUNT_NAME_DUPLICATED

    def test_unknown_account(self, db: Database, household: Household) -> None:
        """Should raise ACCOUNT_NOT_FOUND for a missing account."""
        with pytest.raises(ValidationError) as exc_info:
            AccountService(db).update_account(household.ctx, AccountId(999), UpdateAccountRequest(name="Pot"))

        assert exc_info.value.code is ErrorCode.ACCOUNT_NOT_FOUND
