"""Audit information carried by every mutable aggregate."""

from dataclasses import dataclass, replace
from datetime import UTC, datetime

from tally.domain.models import UpdatedBy, Version
from tally.errors import ErrorCode, ValidationError


@dataclass(frozen=True)
class AuditInfo:
    """Who created/modified an aggregate, when, and at which version.

    modified_at is None until the first modification.
    """

    created_by: UpdatedBy
    created_at: datetime
    modified_by: UpdatedBy
    modified_at: datetime | None
    version: Version


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def make_audit_for_creation(created_by: UpdatedBy, now: datetime | None = None) -> AuditInfo:
    """Audit of a freshly created aggregate.

    Args:
        created_by: Creating principal.
        now: Creation time. Defaults to the current UTC time.

    Returns:
        Audit at version 1 with no modification recorded.
    """
    return AuditInfo(
        created_by=created_by,
        created_at=_as_utc(now) if now is not None else _utcnow(),
        modified_by=UpdatedBy(),
        modified_at=None,
        version=Version(1),
    )


def make_audit_for_modification(
    created_by: UpdatedBy,
    created_at: datetime | None,
    modified_by: UpdatedBy,
    modified_at: datetime | None,
    version: int,
) -> AuditInfo:
    """Rebuild audit information loaded from the store.

    Args:
        created_by: Creating principal, must not be the zero principal.
        created_at: Creation time, must be present.
        modified_by: Last modifying principal, zero if never modified.
        modified_at: Last modification time, None if never modified.
        version: Current version, must be positive.

    Returns:
        Audit with both timestamps in UTC.

    Raises:
        ValidationError: AUDIT_VALIDATION_FAILED listing every violated field.
    """
    fields: dict[str, str] = {}
    if created_by.is_zero:
        fields["createdBy"] = "createdBy is required"
    if created_at is None:
        fields["createdAt"] = "createdAt is required"
    if version <= 0:
        fields["version"] = "version must be greater than 0"
    if fields:
        raise ValidationError(
            ErrorCode.AUDIT_VALIDATION_FAILED,
            ", ".join(fields[key] for key in sorted(fields)),
            fields,
        )

    assert created_at is not None
    return AuditInfo(
        created_by=created_by,
        created_at=_as_utc(created_at),
        modified_by=modified_by,
        modified_at=_as_utc(modified_at) if modified_at is not None else None,
        version=Version(version),
    )


def bump_audit(audit: AuditInfo, modified_by: UpdatedBy, now: datetime | None = None) -> AuditInfo:
    """Audit after one successful modification: version + 1, modified now."""
    return replace(
        audit,
        modified_by=modified_by,
        modified_at=_as_utc(now) if now is not None else _utcnow(),
        version=Version(audit.version + 1),
    )
