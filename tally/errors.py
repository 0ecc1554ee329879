"""Error model shared by the domain, the store and the services.

Two families of failure exist:
- ValidationError: the caller's input or ownership is wrong (4xx).
- SystemFailure: the store or infrastructure failed (5xx).

Both carry a stable numeric ErrorCode whose name and HTTP status are part of
the wire contract, so call sites route them without string matching.
"""

from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Stable error codes, dense from 1000."""

    UNKNOWN = 1000
    DATABASE_CONNECTIVITY = 1001
    DATABASE_STATE = 1002
    USER_ID_DUPLICATED = 1003
    USER_EMAIL_INVALID = 1004
    USER_EMAIL_DUPLICATED = 1005
    USER_NOT_FOUND = 1006
    ACCOUNT_VALIDATION_FAILED = 1007
    ACCOUNT_NOT_FOUND = 1008
    ACCOUNT_NAME_DUPLICATED = 1009
    CURRENCY_INVALID_CODE = 1010
    CATEGORY_VALIDATION_FAILED = 1011
    CATEGORY_NAME_DUPLICATED = 1012
    CATEGORIES_NOT_FOUND = 1013
    RECORD_VALIDATION_FAILED = 1014
    RECORDS_PERIOD_OF_EMPTY_SET = 1015
    AMOUNT_OVERFLOW = 1016
    AMOUNT_MISMATCHING_CURRENCIES = 1017
    AMOUNT_TOTAL_OF_EMPTY_SET = 1018
    AUDIT_VALIDATION_FAILED = 1019
    AUDIT_UPDATED_BY_BAD_FORMAT = 1020
    REQUEST_UNMARSHALLING_FAILED = 1021
    SERVICE_REQUIRED_USER_ID = 1022
    SERVICE_REQUIRED_ACCOUNT_ID = 1023
    BUDGET_VALIDATION_FAILED = 1024

    @property
    def status(self) -> int:
        """HTTP status the code maps to."""
        return _STATUS_BY_CODE.get(self, 500)


_BAD_REQUEST = {
    ErrorCode.USER_ID_DUPLICATED,
    ErrorCode.USER_EMAIL_INVALID,
    ErrorCode.USER_EMAIL_DUPLICATED,
    ErrorCode.ACCOUNT_VALIDATION_FAILED,
    ErrorCode.ACCOUNT_NAME_DUPLICATED,
    ErrorCode.CURRENCY_INVALID_CODE,
    ErrorCode.CATEGORY_VALIDATION_FAILED,
    ErrorCode.CATEGORY_NAME_DUPLICATED,
    ErrorCode.RECORD_VALIDATION_FAILED,
    ErrorCode.AMOUNT_MISMATCHING_CURRENCIES,
    ErrorCode.AUDIT_VALIDATION_FAILED,
    ErrorCode.AUDIT_UPDATED_BY_BAD_FORMAT,
    ErrorCode.REQUEST_UNMARSHALLING_FAILED,
    ErrorCode.SERVICE_REQUIRED_ACCOUNT_ID,
    ErrorCode.BUDGET_VALIDATION_FAILED,
}

_NOT_FOUND = {
    ErrorCode.USER_NOT_FOUND,
    ErrorCode.ACCOUNT_NOT_FOUND,
    ErrorCode.CATEGORIES_NOT_FOUND,
}

_STATUS_BY_CODE: dict[ErrorCode, int] = {
    **{code: 400 for code in _BAD_REQUEST},
    **{code: 404 for code in _NOT_FOUND},
    ErrorCode.SERVICE_REQUIRED_USER_ID: 401,
}

PROBLEM_TYPE_PREFIX = "/api/v1/problems/"


class TallyError(Exception):
    """Base class for every error raised by tally."""

    def __init__(
        self,
        code: ErrorCode,
        detail: str = "",
        fields: dict[str, str] | None = None,
    ) -> None:
        self.code = code
        self.detail = detail
        self.fields: dict[str, str] = dict(fields or {})
        super().__init__(str(self))

    @property
    def title(self) -> str:
        return self.code.name

    @property
    def status(self) -> int:
        return self.code.status

    def __str__(self) -> str:
        parts: list[str] = []
        if self.detail:
            parts.append(self.detail if self.detail.endswith(".") else f"{self.detail}.")
        cause = self.__cause__
        if cause is not None:
            reason = str(cause)
            parts.append(f"Reason: {reason}" if reason.endswith(".") else f"Reason: {reason}.")
        if self.fields and not self.detail:
            parts.append(", ".join(sorted(self.fields.values())))
        return " ".join(parts) or self.title

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code.name}, {self.detail!r})"


class ValidationError(TallyError):
    """Caller input or ownership is invalid. Never leaves state mutated."""


class SystemFailure(TallyError):
    """The store or the infrastructure failed."""


class RequestCancelled(SystemFailure):
    """The request's deadline passed or it was cancelled before completion."""

    def __init__(self, detail: str = "Request cancelled") -> None:
        super().__init__(ErrorCode.UNKNOWN, detail)


def problem_document(error: BaseException, instance: str = "") -> dict[str, Any]:
    """Render an error as an RFC-7807 problem document.

    Args:
        error: Error raised while serving a request.
        instance: URI reference identifying the failing request.

    Returns:
        Problem document with per-field diagnostics merged in at the top level.
    """
    if not isinstance(error, TallyError):
        error = SystemFailure(ErrorCode.UNKNOWN, "Unexpected error")

    document: dict[str, Any] = {
        "type": f"{PROBLEM_TYPE_PREFIX}{int(error.code)}",
        "title": error.title,
        "status": error.status,
        "detail": error.detail or str(error),
        "instance": instance,
    }
    for field, message in error.fields.items():
        document.setdefault(field, message)
    return document
