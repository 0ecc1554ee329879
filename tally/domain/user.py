"""User aggregate."""

from dataclasses import dataclass

from email_validator import EmailNotValidError, validate_email

from tally.domain.models import UserId
from tally.errors import ErrorCode, SystemFailure, ValidationError


@dataclass(frozen=True)
class User:
    id: UserId
    email: str


def parse_email(email: str) -> str:
    """Parse an RFC-5322 address into its normalized form.

    Raises:
        ValidationError: USER_EMAIL_INVALID if the address does not parse.
    """
    try:
        return validate_email(email, check_deliverability=False).normalized
    except EmailNotValidError as err:
        raise ValidationError(
            ErrorCode.USER_EMAIL_INVALID,
            f"Invalid email address {email!r}",
            {"email": str(err)},
        ) from err


def create_user(user_id: UserId, email: str) -> User:
    """Build a validated User.

    Raises:
        ValidationError: USER_EMAIL_INVALID if the email is invalid.
        SystemFailure: UNKNOWN if the id was not issued by the store.
    """
    if user_id <= 0:
        raise SystemFailure(ErrorCode.UNKNOWN, f"User id must be greater than 0, got {user_id}")
    return User(id=user_id, email=parse_email(email))
