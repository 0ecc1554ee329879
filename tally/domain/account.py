"""Account aggregate."""

from dataclasses import dataclass
from enum import Enum

from tally.domain.audit import AuditInfo
from tally.domain.models import AccountId
from tally.domain.money import Money, is_valid_currency
from tally.domain.validation import NAME_MAX_LENGTH, NAME_MIN_LENGTH, FieldErrors, check_length, normalize_name
from tally.errors import ErrorCode


class AccountType(str, Enum):
    CURRENT = "Current"
    SAVING = "Saving"

    @classmethod
    def parse(cls, value: "str | AccountType") -> "AccountType | None":
        """Match a type name case-insensitively, None if unknown."""
        if isinstance(value, AccountType):
            return value
        for member in cls:
            if member.value.lower() == str(value).strip().lower():
                return member
        return None


@dataclass(frozen=True)
class Account:
    """A named pot of money of a single currency, owned by one user.

    current_balance is derived by the store from the account's records.
    """

    id: AccountId
    name: str
    account_type: AccountType
    currency: str
    audit: AuditInfo
    current_balance: Money


def validate_account_fields(
    errors: FieldErrors, name: str, account_type: "str | AccountType", currency: str
) -> AccountType | None:
    check_length(errors, "name", name, NAME_MIN_LENGTH, NAME_MAX_LENGTH)

    parsed_type = AccountType.parse(account_type)
    if parsed_type is None:
        errors.add("type", f"Unknown account type '{account_type}'")

    if not currency:
        errors.add("currency", "currency is required")
    elif not is_valid_currency(currency):
        errors.add("currency", f"No such currency '{currency}'")

    return parsed_type


def create_account(
    account_id: AccountId,
    name: str,
    account_type: "str | AccountType",
    currency: str,
    audit: AuditInfo,
    current_balance: Money | None = None,
) -> Account:
    """Build a validated Account.

    Args:
        account_id: Store-issued id.
        name: Display name, 1 to 25 characters, title-cased on the way in.
        account_type: "Current" or "Saving".
        currency: ISO-4217 code.
        audit: Audit information.
        current_balance: Balance computed by the store, zero if omitted.

    Returns:
        The account.

    Raises:
        ValidationError: ACCOUNT_VALIDATION_FAILED listing every violated field.
    """
    errors = FieldErrors()
    if account_id <= 0:
        errors.add("id", "id must be greater than 0")

    name = normalize_name(name)
    parsed_type = validate_account_fields(errors, name, account_type, currency)
    if current_balance is not None and current_balance.currency != currency:
        errors.add("currentBalance", f"Balance currency {current_balance.currency} differs from {currency}")
    errors.raise_if_any(ErrorCode.ACCOUNT_VALIDATION_FAILED)

    assert parsed_type is not None
    return Account(
        id=account_id,
        name=name,
        account_type=parsed_type,
        currency=currency,
        audit=audit,
        current_balance=current_balance if current_balance is not None else Money.zero(currency),
    )
