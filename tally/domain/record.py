"""Record aggregate and the aggregations over a collection of records.

A record is either stand-alone (income or expense) or one half of a
transfer. Both halves of a transfer share a transfer reference and each
stores the other side's account id by value.
"""

import uuid
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from random import Random
from typing import overload

from tally.domain.account import AccountType
from tally.domain.audit import AuditInfo
from tally.domain.category import Category
from tally.domain.models import AccountId, RecordId
from tally.domain.money import Money
from tally.domain.validation import FieldErrors, check_length
from tally.errors import ErrorCode, SystemFailure

NOTE_MAX_LENGTH = 50


class RecordType(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    TRANSFER = "TRANSFER"

    @classmethod
    def parse(cls, value: "str | RecordType") -> "RecordType | None":
        if isinstance(value, RecordType):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return None


@dataclass(frozen=True)
class Record:
    id: RecordId
    note: str
    category: Category
    amount: Money
    date: datetime
    record_type: RecordType
    audit: AuditInfo
    source_account_id: AccountId = AccountId(0)
    beneficiary_id: AccountId = AccountId(0)
    beneficiary_type: AccountType | None = None
    transfer_reference: str = ""

    @property
    def is_transfer(self) -> bool:
        return self.record_type is RecordType.TRANSFER

    @property
    def is_transfer_to_saving_account(self) -> bool:
        return self.is_transfer and self.beneficiary_type is AccountType.SAVING


def make_transfer_reference(rng: Random | None = None) -> str:
    """Mint an opaque reference shared by both halves of a transfer.

    Args:
        rng: Source of randomness for reproducible references, e.g. in fixtures.
    """
    if rng is None:
        return str(uuid.uuid4())
    return str(uuid.UUID(int=rng.getrandbits(128), version=4))


def canonical_amount(amount: Money, record_type: RecordType) -> Money:
    """Expenses are stored negative and income positive. Transfers keep their sign."""
    if record_type is RecordType.EXPENSE and amount.is_positive:
        return amount.negate()
    if record_type is RecordType.INCOME and amount.is_negative:
        return amount.abs()
    return amount


def create_record(
    record_id: RecordId,
    note: str,
    category: Category,
    amount: Money,
    date: datetime | None,
    record_type: "str | RecordType",
    audit: AuditInfo,
    source_account_id: int = 0,
    beneficiary_id: int = 0,
    beneficiary_type: AccountType | None = None,
    transfer_reference: str = "",
) -> Record:
    """Build a validated Record with its amount in canonical sign.

    Args:
        record_id: Store-issued id.
        note: Free text, up to 50 characters.
        category: Category the record is filed under.
        amount: Non-zero amount.
        date: When the record happened. Naive values are taken as UTC.
        record_type: INCOME, EXPENSE or TRANSFER.
        audit: Audit information.
        source_account_id: Sending account, transfers only.
        beneficiary_id: Receiving account, transfers only.
        beneficiary_type: Type of the receiving account, transfers only.
        transfer_reference: Reference shared by both halves, transfers only.

    Returns:
        The record.

    Raises:
        ValidationError: RECORD_VALIDATION_FAILED listing every violated field.
    """
    errors = FieldErrors()
    if record_id <= 0:
        errors.add("id", "id must be greater than 0")
    check_length(errors, "note", note, 0, NOTE_MAX_LENGTH)
    if amount.is_zero:
        errors.add("amount", "amount must not be zero")
    if date is None:
        errors.add("date", "date is required")

    parsed_type = RecordType.parse(record_type)
    if parsed_type is None:
        errors.add("type", f"Unknown record type '{record_type}'")
    elif parsed_type is RecordType.TRANSFER:
        if source_account_id <= 0:
            errors.add("sourceAccountId", "sourceAccountId is required for a transfer")
        if beneficiary_id <= 0:
            errors.add("beneficiaryId", "beneficiaryId is required for a transfer")
        if not transfer_reference:
            errors.add("transferReference", "transferReference is required for a transfer")
    else:
        if source_account_id != 0:
            errors.add("sourceAccountId", "sourceAccountId is only allowed for a transfer")
        if beneficiary_id != 0:
            errors.add("beneficiaryId", "beneficiaryId is only allowed for a transfer")
        if transfer_reference:
            errors.add("transferReference", "transferReference is only allowed for a transfer")
    errors.raise_if_any(ErrorCode.RECORD_VALIDATION_FAILED)

    assert parsed_type is not None and date is not None
    is_transfer = parsed_type is RecordType.TRANSFER
    return Record(
        id=record_id,
        note=note,
        category=category,
        amount=canonical_amount(amount, parsed_type),
        date=date.replace(tzinfo=UTC) if date.tzinfo is None else date.astimezone(UTC),
        record_type=parsed_type,
        audit=audit,
        source_account_id=AccountId(source_account_id),
        beneficiary_id=AccountId(beneficiary_id),
        beneficiary_type=beneficiary_type if is_transfer else None,
        transfer_reference=transfer_reference,
    )


@dataclass(frozen=True)
class RecordsSummary:
    total: Money
    total_income: Money
    total_expenses: Money
    total_savings: Money
    period_start: datetime
    period_end: datetime


class Records(Sequence[Record]):
    """Records ordered by date ascending, ties kept in insertion order.

    Every aggregation fails on an empty collection and on mixed currencies.
    """

    def __init__(self, records: Iterable[Record] = ()) -> None:
        self._records: tuple[Record, ...] = tuple(sorted(records, key=lambda record: record.date))

    @overload
    def __getitem__(self, index: int) -> Record: ...

    @overload
    def __getitem__(self, index: slice) -> "Records": ...

    def __getitem__(self, index: int | slice) -> "Record | Records":
        if isinstance(index, slice):
            return Records(self._records[index])
        return self._records[index]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self._records)

    def __repr__(self) -> str:
        return f"Records({list(self._records)!r})"

    def _zero(self) -> Money:
        if not self._records:
            raise SystemFailure(ErrorCode.AMOUNT_TOTAL_OF_EMPTY_SET, "Cannot total an empty set of records")
        return Money.zero(self._records[0].amount.currency)

    def _sum(self, keep: Callable[[Record], bool], amount_of: Callable[[Record], Money]) -> Money:
        total = self._zero()
        for record in self._records:
            if record.amount.currency != total.currency:
                # raises AMOUNT_MISMATCHING_CURRENCIES
                total.add(record.amount)
            if keep(record):
                total = total.add(amount_of(record))
        return total

    def total(self) -> Money:
        """Sum of every amount."""
        return self._sum(lambda record: True, lambda record: record.amount)

    def total_income(self) -> Money:
        """Sum of every positive amount, including money received by transfer."""
        return self._sum(lambda record: record.amount.is_positive, lambda record: record.amount)

    def total_expenses(self) -> Money:
        """Sum of the absolute value of every negative expense."""
        return self._sum(
            lambda record: record.amount.is_negative and record.record_type is RecordType.EXPENSE,
            lambda record: record.amount.abs(),
        )

    def total_savings(self) -> Money:
        """Sum of the absolute value of every transfer into a saving account."""
        return self._sum(lambda record: record.is_transfer_to_saving_account, lambda record: record.amount.abs())

    def period(self) -> tuple[datetime, datetime]:
        """Earliest and latest record dates.

        Raises:
            SystemFailure: RECORDS_PERIOD_OF_EMPTY_SET if there are no records.
        """
        if not self._records:
            raise SystemFailure(ErrorCode.RECORDS_PERIOD_OF_EMPTY_SET, "Cannot compute the period of no records")
        return self._records[0].date, self._records[-1].date

    def summary(self) -> RecordsSummary:
        """Compute every aggregation in a single pass over the records."""
        total = income = expenses = savings = self._zero()
        for record in self._records:
            amount = record.amount
            total = total.add(amount)
            if amount.is_positive:
                income = income.add(amount)
            if amount.is_negative and record.record_type is RecordType.EXPENSE:
                expenses = expenses.add(amount.abs())
            if record.is_transfer_to_saving_account:
                savings = savings.add(amount.abs())

        start, end = self.period()
        return RecordsSummary(
            total=total,
            total_income=income,
            total_expenses=expenses,
            total_savings=savings,
            period_start=start,
            period_end=end,
        )
