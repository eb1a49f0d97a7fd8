import uuid
from typing import Optional, TypeVar

from .errors import PreconditionViolation

T = TypeVar('T')


def invariant(value: Optional[T], message: str) -> T:
    """Ensure a required value is present.

    Args:
        value: The value to check
        message: Description of what is missing

    Returns:
        The value if it is not None or empty

    Raises:
        PreconditionViolation: If the value is None or empty
    """
    if value is None or value == "":
        raise PreconditionViolation(message)
    return value


def short_id() -> str:
    """Short random identifier used for transient and new group branch names."""
    return str(uuid.uuid4())[:8]
