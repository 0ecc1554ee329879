"""Category aggregate."""

from dataclasses import dataclass
from datetime import datetime

from tally.domain.audit import AuditInfo
from tally.domain.models import CategoryId
from tally.domain.validation import NAME_MAX_LENGTH, NAME_MIN_LENGTH, FieldErrors, check_length, normalize_name
from tally.errors import ErrorCode


@dataclass(frozen=True)
class Category:
    """Label for records. last_used_at follows the newest record saved under it."""

    id: CategoryId
    name: str
    audit: AuditInfo
    last_used_at: datetime | None = None


def create_category(
    category_id: CategoryId,
    name: str,
    audit: AuditInfo,
    last_used_at: datetime | None = None,
) -> Category:
    """Build a validated Category with a title-cased name.

    Raises:
        ValidationError: CATEGORY_VALIDATION_FAILED listing every violated field.
    """
    errors = FieldErrors()
    if category_id <= 0:
        errors.add("id", "id must be greater than 0")

    name = normalize_name(name)
    check_length(errors, "name", name, NAME_MIN_LENGTH, NAME_MAX_LENGTH)
    errors.raise_if_any(ErrorCode.CATEGORY_VALIDATION_FAILED)

    return Category(id=category_id, name=name, audit=audit, last_used_at=last_used_at)
