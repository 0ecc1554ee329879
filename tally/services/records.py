"""Record creation and record queries.

create_record is the one place where several aggregates change together: a
transfer writes two linked records, bumps the category's last use and reads
the new balance back, all in one transaction.
"""

from dataclasses import replace
from random import Random

import structlog

from tally.context import RequestContext, require_account_id, require_user_id
from tally.dates import CalendarMonth, parse_rfc3339
from tally.domain.account import Account
from tally.domain.audit import make_audit_for_creation
from tally.domain.models import AccountId, RecordId, UpdatedBy
from tally.domain.money import Money
from tally.domain.record import RecordType, create_record, make_transfer_reference
from tally.domain.validation import normalize_name
from tally.errors import ErrorCode, ValidationError
from tally.services.schema import CreateRecordRequest, RecordResponse, RecordsResponse, record_response, records_response
from tally.store import Database, RecordSearch, new_id
from tally.store import accounts as account_store
from tally.store import categories as category_store
from tally.store import records as record_store

log = structlog.get_logger(__name__)


def _record_error(field: str, message: str) -> ValidationError:
    return ValidationError(ErrorCode.RECORD_VALIDATION_FAILED, message, {field: message})


class RecordService:
    """Creates and queries the records of the caller's accounts.

    Args:
        db: Database to work on.
        rng: Source of transfer references. Seed it for reproducible fixtures.
    """

    def __init__(self, db: Database, rng: Random | None = None) -> None:
        self._db = db
        self._rng = rng

    def create_record(self, ctx: RequestContext, request: CreateRecordRequest) -> RecordResponse:
        """Create a record on the account addressed by ctx.

        A transfer creates two records sharing a transfer reference: a negative
        one on the owning account and a positive one on the beneficiary.
        Nothing is written unless every step succeeds.

        Args:
            ctx: Request context carrying the caller and the owning account.
            request: Record to create.

        Returns:
            The owning account's record, with the account's new balance.

        Raises:
            ValidationError: SERVICE_REQUIRED_USER_ID, SERVICE_REQUIRED_ACCOUNT_ID,
                CATEGORIES_NOT_FOUND, ACCOUNT_NOT_FOUND, CURRENCY_INVALID_CODE,
                AMOUNT_MISMATCHING_CURRENCIES or RECORD_VALIDATION_FAILED.
            SystemFailure: If the store fails or the request is cancelled.
        """
        user_id = require_user_id(ctx)
        account_id = require_account_id(ctx)

        with self._db.begin(ctx) as tx:
            record_id = RecordId(new_id(tx, "record"))
            category = category_store.get_category(tx, request.category_id, user_id)
            account = account_store.get_account(tx, account_id, user_id)

            amount = Money(request.amount.currency, request.amount.value)
            if amount.currency != account.currency:
                raise ValidationError(
                    ErrorCode.AMOUNT_MISMATCHING_CURRENCIES,
                    f"Amount in {amount.currency} cannot be recorded on a {account.currency} account",
                    {"amount": f"currency must be {account.currency}"},
                )
            try:
                date = parse_rfc3339(request.date)
            except ValueError as err:
                raise _record_error("date", f"date must be an RFC-3339 timestamp, got {request.date!r}") from err

            audit = make_audit_for_creation(UpdatedBy.for_user(user_id))
            record_type = RecordType.parse(request.type)
            beneficiary: Account | None = None
            transfer_reference = ""

            if record_type is RecordType.TRANSFER and request.beneficiary_id is not None:
                beneficiary = account_store.get_account(tx, AccountId(request.beneficiary_id), user_id)
                if beneficiary.id == account.id:
                    raise _record_error("beneficiary", "Cannot transfer to the same account")
                if beneficiary.currency != account.currency:
                    raise _record_error(
                        "beneficiary",
                        f"Cannot transfer from a {account.currency} account to a {beneficiary.currency} account",
                    )
                transfer_reference = make_transfer_reference(self._rng)
                amount = amount.abs().negate()

            record = create_record(
                record_id=record_id,
                note=request.note,
                category=category,
                amount=amount,
                date=date,
                record_type=request.type,
                audit=audit,
                source_account_id=account.id if beneficiary is not None else 0,
                beneficiary_id=request.beneficiary_id or 0,
                beneficiary_type=beneficiary.account_type if beneficiary is not None else None,
                transfer_reference=transfer_reference,
            )
            record_store.save_record(tx, account.id, record)

            if beneficiary is not None:
                counterpart = replace(record, id=RecordId(new_id(tx, "record")), amount=record.amount.abs())
                record_store.save_record(tx, beneficiary.id, counterpart)

            category_store.update_category_last_used(tx, category.id, record.date)
            account = account_store.get_account(tx, account.id, user_id)
            tx.commit()

        log.info(
            "record_created",
            user_id=user_id,
            account_id=account_id,
            record_id=record.id,
            record_type=record.record_type.value,
            transfer_reference=record.transfer_reference or None,
        )
        return record_response(record, account, beneficiary)

    def get_records(self, ctx: RequestContext, account_id: AccountId) -> RecordsResponse:
        """Records of the account's latest month, with their summary.

        The latest month is the calendar month of the account's newest record.
        An account without records yields no records and a zero summary.

        Raises:
            ValidationError: ACCOUNT_NOT_FOUND if the caller has no such account.
        """
        user_id = require_user_id(ctx)
        with self._db.begin(ctx) as tx:
            account = account_store.get_account(tx, account_id, user_id)
            records = record_store.get_records_for_last_period(tx, account.id)
            tx.commit()
        return records_response(records, account.currency)

    def get_records_for_month(self, ctx: RequestContext, account_id: AccountId, month: CalendarMonth) -> RecordsResponse:
        """Records of the account dated within month, with their summary."""
        user_id = require_user_id(ctx)
        with self._db.begin(ctx) as tx:
            account = account_store.get_account(tx, account_id, user_id)
            records = record_store.get_records_for_month(tx, account.id, month)
            tx.commit()
        return records_response(records, account.currency)

    def search(self, ctx: RequestContext, account_id: AccountId, search: RecordSearch) -> RecordsResponse:
        """Records of the account matching every filter of search.

        Category and beneficiary account names match case-insensitively.
        """
        user_id = require_user_id(ctx)
        search = replace(
            search,
            category_names=tuple(normalize_name(name) for name in search.category_names),
            beneficiary_account_names=tuple(normalize_name(name) for name in search.beneficiary_account_names),
        )
        with self._db.begin(ctx) as tx:
            account = account_store.get_account(tx, account_id, user_id)
            records = record_store.search_records(tx, account.id, search)
            tx.commit()
        log.debug("records_searched", account_id=account_id, matches=len(records))
        return records_response(records, account.currency)
