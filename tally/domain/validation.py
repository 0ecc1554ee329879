"""Per-field validation helpers shared by the aggregate constructors."""

from tally.errors import ErrorCode, ValidationError

NAME_MIN_LENGTH = 1
NAME_MAX_LENGTH = 25


class FieldErrors:
    """Collects per-field messages and raises them as one ValidationError."""

    def __init__(self) -> None:
        self._messages: dict[str, list[str]] = {}

    def add(self, field: str, message: str) -> None:
        self._messages.setdefault(field, []).append(message)

    def __bool__(self) -> bool:
        return bool(self._messages)

    def as_fields(self) -> dict[str, str]:
        return {field: ", ".join(messages) for field, messages in self._messages.items()}

    def detail(self) -> str:
        return ", ".join(sorted(message for messages in self._messages.values() for message in messages))

    def raise_if_any(self, code: ErrorCode) -> None:
        """Raise a ValidationError with code if any message was collected.

        The detail is every message, sorted and comma-joined.
        """
        if self:
            raise ValidationError(code, self.detail(), self.as_fields())


def check_length(errors: FieldErrors, field: str, value: str, minimum: int, maximum: int) -> None:
    length = len(value)
    if length < minimum or length > maximum:
        errors.add(field, f"{field} must be between {minimum} and {maximum} characters long")


def normalize_name(name: str) -> str:
    """Title-case a name so "health" and "HEALTH" collide."""
    return name.strip().lower().title()


def duplicated_names(requested: list[str], stored: set[str]) -> list[str]:
    """Names that collide, either within requested or with stored names.

    Returns:
        Offending names in request order, each once.
    """
    seen: set[str] = set()
    offending: dict[str, None] = {}
    for name in requested:
        if name in seen or name in stored:
            offending[name] = None
        seen.add(name)
    return list(offending)


def duplicated_names_message(kind: str, names: list[str]) -> str:
    """Message for a duplicate-name failure, e.g. 'Category named "Food" already exists'."""
    if len(names) == 1:
        return f'{kind} named "{names[0]}" already exists'
    return f"{kind} names must be unique. Duplicated: {', '.join(names)}"
