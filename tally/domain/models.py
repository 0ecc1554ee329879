"""Domain type definitions for tally.

These NewTypes keep aggregate ids apart at type-check time:
- UserId, AccountId, CategoryId, RecordId, BudgetId: positive store-issued ids
- Version: optimistic concurrency counter carried by every aggregate
"""

from dataclasses import dataclass
from typing import NewType

from tally.errors import ErrorCode, ValidationError

UserId = NewType("UserId", int)
AccountId = NewType("AccountId", int)
CategoryId = NewType("CategoryId", int)
RecordId = NewType("RecordId", int)
BudgetId = NewType("BudgetId", int)

# Starts at 1 on creation, incremented by every successful update
Version = NewType("Version", int)

UINT64_MAX = 2**64 - 1


@dataclass(frozen=True)
class UpdatedBy:
    """Principal that created or modified an aggregate.

    The zero value (user_id 0) means "nobody", used for never-modified audits.
    Persisted as the text "UserId: <n>".
    """

    user_id: UserId = UserId(0)

    @classmethod
    def for_user(cls, user_id: UserId) -> "UpdatedBy":
        return cls(user_id)

    @property
    def is_zero(self) -> bool:
        return self.user_id == 0

    @classmethod
    def parse(cls, text: str) -> "UpdatedBy":
        """Parse the persisted form back into a principal.

        Args:
            text: Text such as "UserId: 7". Empty text is the zero principal.

        Returns:
            Parsed principal.

        Raises:
            ValidationError: AUDIT_UPDATED_BY_BAD_FORMAT if the text is malformed.
        """
        if not text.strip():
            return cls()

        user_id: int | None = None
        for part in text.split(";"):
            if not part.strip():
                continue
            key, sep, value = part.partition(":")
            if not sep or key.strip() != "UserId":
                raise ValidationError(
                    ErrorCode.AUDIT_UPDATED_BY_BAD_FORMAT, f"Unexpected principal format {text!r}"
                )
            try:
                user_id = int(value.strip())
            except ValueError as err:
                raise ValidationError(
                    ErrorCode.AUDIT_UPDATED_BY_BAD_FORMAT, f"Unexpected principal format {text!r}"
                ) from err

        if user_id is None or user_id < 0:
            raise ValidationError(ErrorCode.AUDIT_UPDATED_BY_BAD_FORMAT, f"Unexpected principal format {text!r}")
        return cls(UserId(user_id))

    def __str__(self) -> str:
        if self.is_zero:
            return ""
        return f"UserId: {self.user_id}"
