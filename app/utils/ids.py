import uuid
from typing import Any

from app.errors import InvalidArgumentError


def coerce_uuid(value: Any, field: str) -> uuid.UUID:
    """Accept a UUID or its string form; anything else is an invalid argument."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(f"{field} is not a valid id: {value!r}") from exc
