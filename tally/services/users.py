"""User registration."""

import structlog

from tally.context import RequestContext
from tally.domain.models import UserId
from tally.domain.user import create_user
from tally.errors import ErrorCode, TallyError, ValidationError
from tally.services.schema import CreateUserRequest, UserResponse, user_response
from tally.store import Database, is_duplicate_key, new_id, save_user

log = structlog.get_logger(__name__)


class UserService:
    def __init__(self, db: Database) -> None:
        self._db = db

    def create_user(self, ctx: RequestContext, request: CreateUserRequest) -> UserResponse:
        """Register a user under a fresh id.

        Args:
            ctx: Request context. No caller identity is needed.
            request: Email of the new user.

        Returns:
            The created user.

        Raises:
            ValidationError: USER_EMAIL_INVALID if the email does not parse,
                USER_EMAIL_DUPLICATED if it is already registered.
            SystemFailure: If the store fails.
        """
        with self._db.begin(ctx) as tx:
            user = create_user(UserId(new_id(tx, "user")), request.email)
            try:
                save_user(tx, user)
            except TallyError as err:
                detail, duplicated = is_duplicate_key(err)
                if not duplicated:
                    raise
                log.info("duplicate_key_translated", entity="user", detail=detail)
                raise ValidationError(
                    ErrorCode.USER_EMAIL_DUPLICATED,
                    f"User with email {user.email} already exists",
                    {"email": f"{user.email} is already registered"},
                ) from err
            tx.commit()

        log.info("user_created", user_id=user.id)
        return user_response(user)
