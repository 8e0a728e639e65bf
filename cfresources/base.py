"""Resource state, errors and validators shared by every resource."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

_NOT_FOUND_MARKER = "HTTP status 404"

_COLLECTIONS = (str, bytes, list, tuple, set, frozenset, dict)


class ApiError(Exception):
    """Raised by an API client when a request fails."""


class ResourceError(Exception):
    """Raised when a resource operation cannot be completed."""


def _is_zero(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, _COLLECTIONS):
        return len(value) == 0
    return not bool(value)


@dataclass
class ResourceData:
    """The identifier and attributes of one managed resource."""

    id: str = ""
    attributes: dict[str, Any] = field(default_factory=dict)

    def get(self, key: str) -> Any:
        """Return the attribute's value, or None when it was never set."""
        return self.attributes.get(key)

    def get_ok(self, key: str) -> tuple[Any, bool]:
        """Return the value and whether it is set to something non-empty."""
        value = self.attributes.get(key)
        return value, not _is_zero(value)

    def set(self, key: str, value: Any) -> None:
        """Store an attribute value."""
        self.attributes[key] = value


def float_between(minimum: float, maximum: float) -> Callable[[Any, str], None]:
    """Build a validator that accepts floats within [minimum, maximum]."""

    def validate(value: Any, key: str) -> None:
        if not isinstance(value, float):
            raise TypeError(f"expected type of {key} to be float")
        if value < minimum or value > maximum:
            raise ValueError(f"expected {key} to be within {minimum:g} and {maximum:g}")

    return validate


def is_not_found(error: BaseException) -> bool:
    """Tell whether an API error reports a missing object."""
    return _NOT_FOUND_MARKER in str(error)