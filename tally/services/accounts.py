"""Account creation, listing and renaming."""

import structlog

from tally.context import RequestContext, require_user_id
from tally.domain.account import create_account
from tally.domain.audit import bump_audit, make_audit_for_creation
from tally.domain.models import AccountId, UpdatedBy
from tally.domain.validation import duplicated_names, duplicated_names_message
from tally.errors import ErrorCode, TallyError, ValidationError
from tally.services.schema import (
    AccountResponse,
    AccountsResponse,
    CreateAccountsRequest,
    UpdateAccountRequest,
    account_response,
)
from tally.store import Database, Transaction, is_duplicate_key, new_id
from tally.store import accounts as account_store

log = structlog.get_logger(__name__)


def _duplicate_name_error(tx: Transaction, ctx: RequestContext, names: list[str]) -> ValidationError:
    stored = account_store.get_account_names(tx, require_user_id(ctx))
    offending = duplicated_names(names, stored) or names
    log.info("duplicate_key_translated", entity="account", names=offending)
    message = duplicated_names_message("Account", offending)
    return ValidationError(ErrorCode.ACCOUNT_NAME_DUPLICATED, message, {"name": message})


class AccountService:
    def __init__(self, db: Database) -> None:
        self._db = db

    def create_accounts(self, ctx: RequestContext, request: CreateAccountsRequest) -> AccountsResponse:
        """Create a batch of accounts for the caller in one bulk insert.

        Args:
            ctx: Request context carrying the caller.
            request: Accounts to create. An empty batch writes nothing.

        Returns:
            The created accounts, in request order.

        Raises:
            ValidationError: SERVICE_REQUIRED_USER_ID without a caller,
                ACCOUNT_VALIDATION_FAILED for an invalid account,
                ACCOUNT_NAME_DUPLICATED if a name is taken.
            SystemFailure: If the store fails.
        """
        user_id = require_user_id(ctx)
        with self._db.begin(ctx) as tx:
            accounts = [
                create_account(
                    account_id=AccountId(new_id(tx, "account")),
                    name=item.name,
                    account_type=item.type,
                    currency=item.currency,
                    audit=make_audit_for_creation(UpdatedBy.for_user(user_id)),
                )
                for item in request.accounts
            ]
            try:
                account_store.save_accounts(tx, user_id, accounts)
            except TallyError as err:
                _, duplicated = is_duplicate_key(err)
                if not duplicated:
                    raise
                raise _duplicate_name_error(tx, ctx, [account.name for account in accounts]) from err
            tx.commit()

        log.info("accounts_created", user_id=user_id, count=len(accounts))
        return {"accounts": [account_response(account) for account in accounts]}

    def get_accounts(self, ctx: RequestContext) -> AccountsResponse:
        """All accounts of the caller, with current balances, ordered by id."""
        user_id = require_user_id(ctx)
        with self._db.begin(ctx) as tx:
            accounts = account_store.get_accounts(tx, user_id)
            tx.commit()
        return {"accounts": [account_response(account) for account in accounts]}

    def get_account(self, ctx: RequestContext, account_id: AccountId) -> AccountResponse:
        """One account of the caller.

        Raises:
            ValidationError: ACCOUNT_NOT_FOUND if the caller has no such account.
        """
        user_id = require_user_id(ctx)
        with self._db.begin(ctx) as tx:
            account = account_store.get_account(tx, account_id, user_id)
            tx.commit()
        return account_response(account)

    def update_account(self, ctx: RequestContext, account_id: AccountId, request: UpdateAccountRequest) -> AccountResponse:
        """Rename an account and optionally change its type.

        Args:
            ctx: Request context carrying the caller.
            account_id: Account to update.
            request: New name and type, and the version the caller read.

        Returns:
            The updated account.

        Raises:
            ValidationError: ACCOUNT_NOT_FOUND, ACCOUNT_VALIDATION_FAILED or
                ACCOUNT_NAME_DUPLICATED.
            SystemFailure: DATABASE_STATE if the account changed since it was read.
        """
        user_id = require_user_id(ctx)
        with self._db.begin(ctx) as tx:
            current = account_store.get_account(tx, account_id, user_id)
            expected_version = request.version if request.version is not None else current.audit.version
            updated = create_account(
                account_id=current.id,
                name=request.name,
                account_type=request.type if request.type is not None else current.account_type,
                currency=current.currency,
                audit=bump_audit(current.audit, UpdatedBy.for_user(user_id)),
                current_balance=current.current_balance,
            )
            try:
                account_store.update_account(tx, user_id, updated, expected_version)
            except TallyError as err:
                _, duplicated = is_duplicate_key(err)
                if not duplicated:
                    raise
                raise _duplicate_name_error(tx, ctx, [updated.name]) from err
            tx.commit()

        log.info("account_updated", user_id=user_id, account_id=account_id, version=updated.audit.version)
        return account_response(updated)
