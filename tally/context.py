"""Per-request context: caller identity, owning account and cancellation."""

import threading
import time
from dataclasses import dataclass, field, replace

from tally.domain.models import AccountId, UserId
from tally.errors import ErrorCode, RequestCancelled, ValidationError


@dataclass(frozen=True)
class RequestContext:
    """What a service needs to know about the request it serves.

    Attributes:
        user_id: Caller identity, None when the caller is anonymous.
        account_id: Account addressed by the request path, if any.
        deadline: time.monotonic() value after which the request is abandoned.
        cancelled: Set to abandon the request from another thread.
    """

    user_id: UserId | None = None
    account_id: AccountId | None = None
    deadline: float | None = None
    cancelled: threading.Event = field(default_factory=threading.Event, compare=False)

    def with_account(self, account_id: AccountId) -> "RequestContext":
        return replace(self, account_id=account_id)

    def with_timeout(self, seconds: float) -> "RequestContext":
        """Copy of the context that expires after seconds, sharing the cancellation event."""
        deadline = time.monotonic() + seconds
        if self.deadline is not None:
            deadline = min(deadline, self.deadline)
        return replace(self, deadline=deadline)

    def cancel(self) -> None:
        self.cancelled.set()

    def done(self) -> bool:
        if self.cancelled.is_set():
            return True
        return self.deadline is not None and time.monotonic() >= self.deadline

    def raise_if_done(self) -> None:
        """Raise RequestCancelled once the deadline passed or cancel() was called."""
        if self.done():
            raise RequestCancelled()


def require_user_id(ctx: RequestContext) -> UserId:
    """Caller identity, mandatory for every user-scoped operation.

    Raises:
        ValidationError: SERVICE_REQUIRED_USER_ID if the caller is anonymous.
    """
    if ctx.user_id is None or ctx.user_id <= 0:
        raise ValidationError(ErrorCode.SERVICE_REQUIRED_USER_ID, "User id is required")
    return ctx.user_id


def require_account_id(ctx: RequestContext) -> AccountId:
    """Owning account of the request.

    Raises:
        ValidationError: SERVICE_REQUIRED_ACCOUNT_ID if no account was addressed.
    """
    if ctx.account_id is None or ctx.account_id <= 0:
        raise ValidationError(ErrorCode.SERVICE_REQUIRED_ACCOUNT_ID, "Account id is required")
    return ctx.account_id
