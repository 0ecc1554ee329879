"""Wire codec: JSON payloads to request objects, aggregates to responses.

Monetary values travel as {"currency": "AED", "value": <int64 minor units>}
and timestamps as RFC-3339 UTC strings.
"""

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict

from tally.dates import format_rfc3339
from tally.domain.account import Account
from tally.domain.budget import Budget
from tally.domain.category import Category
from tally.domain.money import Money, fits_int64
from tally.domain.record import Record, Records
from tally.domain.user import User
from tally.errors import ErrorCode, ValidationError

# Requests


def _fail(message: str, field: str | None = None) -> ValidationError:
    fields = {field: message} if field else None
    return ValidationError(ErrorCode.REQUEST_UNMARSHALLING_FAILED, message, fields)


def decode_json(payload: str | bytes | Mapping[str, Any]) -> Mapping[str, Any]:
    """Decode a JSON object.

    Raises:
        ValidationError: REQUEST_UNMARSHALLING_FAILED if payload is not a JSON object.
    """
    if isinstance(payload, Mapping):
        return payload
    try:
        decoded = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as err:
        raise _fail(f"Malformed JSON: {err}") from err
    if not isinstance(decoded, dict):
        raise _fail("Request body must be a JSON object")
    return decoded


def _object(data: Mapping[str, Any], field: str) -> Mapping[str, Any]:
    value = data.get(field)
    if not isinstance(value, Mapping):
        raise _fail(f"{field} must be an object", field)
    return value


def _string(data: Mapping[str, Any], field: str, default: str | None = None) -> str:
    value = data.get(field, default)
    if not isinstance(value, str):
        raise _fail(f"{field} must be a string", field)
    return value


def _int64(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise _fail(f"{field} must be an integer", field)
    if not fits_int64(value):
        raise _fail(f"{field} {value} does not fit in 64 bits", field)
    return value


def _id(value: Any, field: str) -> int:
    """An id given either as a number or as {"id": number}."""
    if isinstance(value, Mapping):
        value = value.get("id")
    identifier = _int64(value, field)
    if identifier <= 0:
        raise _fail(f"{field} must be greater than 0", field)
    return identifier


def _list(data: Mapping[str, Any], field: str) -> Sequence[Any]:
    value = data.get(field, [])
    if not isinstance(value, list):
        raise _fail(f"{field} must be a list", field)
    return value


@dataclass(frozen=True)
class AmountRequest:
    currency: str
    value: int

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "AmountRequest":
        return cls(currency=_string(data, "currency"), value=_int64(data.get("value"), "value"))


@dataclass(frozen=True)
class CreateUserRequest:
    email: str

    @classmethod
    def from_json(cls, payload: str | bytes | Mapping[str, Any]) -> "CreateUserRequest":
        return cls(email=_string(decode_json(payload), "email"))


@dataclass(frozen=True)
class AccountRequest:
    name: str
    currency: str
    type: str

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "AccountRequest":
        return cls(name=_string(data, "name"), currency=_string(data, "currency"), type=_string(data, "type"))


@dataclass(frozen=True)
class CreateAccountsRequest:
    accounts: tuple[AccountRequest, ...]

    @classmethod
    def from_json(cls, payload: str | bytes | Mapping[str, Any]) -> "CreateAccountsRequest":
        items = _list(decode_json(payload), "accounts")
        if not all(isinstance(item, Mapping) for item in items):
            raise _fail("accounts must be a list of objects", "accounts")
        return cls(accounts=tuple(AccountRequest.from_json(item) for item in items))


@dataclass(frozen=True)
class UpdateAccountRequest:
    """Rename an account and optionally change its type.

    version is the version the caller read. None skips the staleness check
    against the caller's copy; the store still rejects concurrent writers.
    """

    name: str
    type: str | None = None
    version: int | None = None

    @classmethod
    def from_json(cls, payload: str | bytes | Mapping[str, Any]) -> "UpdateAccountRequest":
        data = decode_json(payload)
        account_type = data.get("type")
        if account_type is not None and not isinstance(account_type, str):
            raise _fail("type must be a string", "type")
        version = data.get("version")
        return cls(
            name=_string(data, "name"),
            type=account_type,
            version=_int64(version, "version") if version is not None else None,
        )


@dataclass(frozen=True)
class CategoryRequest:
    name: str


@dataclass(frozen=True)
class CreateCategoriesRequest:
    categories: tuple[CategoryRequest, ...]

    @classmethod
    def from_json(cls, payload: str | bytes | Mapping[str, Any]) -> "CreateCategoriesRequest":
        items = _list(decode_json(payload), "categories")
        if not all(isinstance(item, Mapping) for item in items):
            raise _fail("categories must be a list of objects", "categories")
        return cls(categories=tuple(CategoryRequest(name=_string(item, "name")) for item in items))


@dataclass(frozen=True)
class UpdateCategoryRequest:
    name: str
    version: int | None = None

    @classmethod
    def from_json(cls, payload: str | bytes | Mapping[str, Any]) -> "UpdateCategoryRequest":
        data = decode_json(payload)
        version = data.get("version")
        return cls(name=_string(data, "name"), version=_int64(version, "version") if version is not None else None)


@dataclass(frozen=True)
class CreateRecordRequest:
    note: str
    category_id: int
    amount: AmountRequest
    date: str
    type: str
    beneficiary_id: int | None = None

    @classmethod
    def from_json(cls, payload: str | bytes | Mapping[str, Any]) -> "CreateRecordRequest":
        data = decode_json(payload)

        beneficiary_id: int | None = None
        transfer = data.get("transfer")
        if isinstance(transfer, Mapping) and transfer.get("beneficiary") is not None:
            beneficiary_id = _id(transfer["beneficiary"], "beneficiary")
        elif data.get("beneficiaryId") is not None:
            beneficiary_id = _id(data["beneficiaryId"], "beneficiaryId")

        return cls(
            note=_string(data, "note", default=""),
            category_id=_id(data.get("category", data.get("categoryId")), "category"),
            amount=AmountRequest.from_json(_object(data, "amount")),
            date=_string(data, "date"),
            type=_string(data, "type"),
            beneficiary_id=beneficiary_id,
        )


@dataclass(frozen=True)
class CategoryBudgetRequest:
    category_id: int
    max_amount: AmountRequest


@dataclass(frozen=True)
class CreateBudgetRequest:
    account_ids: tuple[int, ...]
    period: str
    category_budgets: tuple[CategoryBudgetRequest, ...]

    @classmethod
    def from_json(cls, payload: str | bytes | Mapping[str, Any]) -> "CreateBudgetRequest":
        data = decode_json(payload)
        category_budgets = []
        for item in _list(data, "categoryBudgets"):
            if not isinstance(item, Mapping):
                raise _fail("categoryBudgets must be a list of objects", "categoryBudgets")
            category_budgets.append(
                CategoryBudgetRequest(
                    category_id=_id(item.get("categoryId"), "categoryId"),
                    max_amount=AmountRequest.from_json(_object(item, "maxAmount")),
                )
            )
        return cls(
            account_ids=tuple(_id(value, "accountIds") for value in _list(data, "accountIds")),
            period=_string(data, "period"),
            category_budgets=tuple(category_budgets),
        )


# Responses


class AmountResponse(TypedDict):
    currency: str
    value: int


class UserResponse(TypedDict):
    id: int
    email: str


class AccountResponse(TypedDict):
    id: int
    name: str
    currency: str
    type: str
    currentBalance: AmountResponse
    version: int


class AccountsResponse(TypedDict):
    accounts: list[AccountResponse]


class CategoryResponse(TypedDict):
    id: int
    name: str
    lastUsedAt: str | None
    version: int


class CategoriesResponse(TypedDict):
    categories: list[CategoryResponse]


class BeneficiaryResponse(TypedDict):
    id: int
    type: str | None
    name: NotRequired[str]


class TransferResponse(TypedDict):
    reference: str
    source: int
    beneficiary: BeneficiaryResponse


class RecordResponse(TypedDict):
    id: int
    note: str
    category: dict[str, Any]
    amount: AmountResponse
    date: str
    type: str
    transfer: NotRequired[TransferResponse]
    account: NotRequired[dict[str, Any]]


class SummaryResponse(TypedDict):
    totalExpenses: AmountResponse
    totalIncome: AmountResponse
    totalSavings: AmountResponse


class RecordsResponse(TypedDict):
    records: list[RecordResponse]
    summary: SummaryResponse
    search: dict[str, str | None]


class CategoryBudgetResponse(TypedDict):
    categoryId: int
    maxAmount: AmountResponse
    amountSpent: AmountResponse
    exceeded: bool


class BudgetResponse(TypedDict):
    id: int
    accountIds: list[int]
    period: str
    categoryBudgets: list[CategoryBudgetResponse]


class HealthResponse(TypedDict):
    database: str


def amount_response(amount: Money) -> AmountResponse:
    return {"currency": amount.currency, "value": amount.minor_units}


def user_response(user: User) -> UserResponse:
    return {"id": user.id, "email": user.email}


def account_response(account: Account) -> AccountResponse:
    return {
        "id": account.id,
        "name": account.name,
        "currency": account.currency,
        "type": account.account_type.value,
        "currentBalance": amount_response(account.current_balance),
        "version": account.audit.version,
    }


def category_response(category: Category) -> CategoryResponse:
    return {
        "id": category.id,
        "name": category.name,
        "lastUsedAt": format_rfc3339(category.last_used_at) if category.last_used_at is not None else None,
        "version": category.audit.version,
    }


def record_response(record: Record, account: Account | None = None, beneficiary: Account | None = None) -> RecordResponse:
    """Project a record, optionally with its account balance and named beneficiary."""
    response: RecordResponse = {
        "id": record.id,
        "note": record.note,
        "category": {"id": record.category.id, "name": record.category.name},
        "amount": amount_response(record.amount),
        "date": format_rfc3339(record.date),
        "type": record.record_type.value,
    }
    if record.is_transfer:
        beneficiary_response: BeneficiaryResponse = {
            "id": record.beneficiary_id,
            "type": record.beneficiary_type.value if record.beneficiary_type is not None else None,
        }
        if beneficiary is not None:
            beneficiary_response["name"] = beneficiary.name
        response["transfer"] = {
            "reference": record.transfer_reference,
            "source": record.source_account_id,
            "beneficiary": beneficiary_response,
        }
    if account is not None:
        response["account"] = {
            "id": account.id,
            "name": account.name,
            "currentBalance": amount_response(account.current_balance),
        }
    return response


def records_response(records: Records, currency: str) -> RecordsResponse:
    """Project records with their summary and covered period.

    Args:
        records: Records to project.
        currency: Currency of the zero summary returned for no records.
    """
    if not records:
        zero = amount_response(Money.zero(currency))
        return {
            "records": [],
            "summary": {"totalExpenses": zero, "totalIncome": zero, "totalSavings": zero},
            "search": {"from": None, "to": None},
        }

    summary = records.summary()
    return {
        "records": [record_response(record) for record in records],
        "summary": {
            "totalExpenses": amount_response(summary.total_expenses),
            "totalIncome": amount_response(summary.total_income),
            "totalSavings": amount_response(summary.total_savings),
        },
        "search": {"from": format_rfc3339(summary.period_start), "to": format_rfc3339(summary.period_end)},
    }


def budget_response(budget: Budget) -> BudgetResponse:
    return {
        "id": budget.id,
        "accountIds": list(budget.account_ids),
        "period": budget.period_type.value,
        "categoryBudgets": [
            {
                "categoryId": item.category_id,
                "maxAmount": amount_response(item.max_limit),
                "amountSpent": amount_response(item.amount_spent),
                "exceeded": item.exceeded,
            }
            for item in budget.category_budgets
        ],
    }
