"""ChangeRecord model: one field-level difference between two entity states."""

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Final

from pydantic_core import to_jsonable_python


class _Absent:
    """Marker for a value that does not exist on one side of a diff.

    Distinct from ``None``: a key holding ``None`` is present with a null
    value, while an absent key has no value at all.
    """

    _instance: "_Absent | None" = None

    def __new__(cls) -> "_Absent":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> "_Absent":
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> "_Absent":
        return self

    def __reduce__(self) -> str:
        return "ABSENT"


ABSENT: Final = _Absent()


def _plain_numbers(value: Any) -> Any:
    if isinstance(value, Decimal):
        if value.is_finite() and value == value.to_integral_value():
            return int(value)
        return float(value)
    if isinstance(value, Mapping):
        return {key: _plain_numbers(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [_plain_numbers(item) for item in value]
    return value


def to_jsonable(value: Any) -> Any:
    """Convert a value to JSON-compatible data, keeping ``Decimal`` numeric.

    pydantic serializes ``Decimal`` as a string; audit values tagged
    "number" must stay numbers in every persisted format.
    """
    return to_jsonable_python(_plain_numbers(value))


def value_type(value: Any) -> str:
    """Return the type tag recorded for a value.

    Tags: null, undefined (absent), boolean, number, string, array, object.
    Anything else is tagged with its lowercased class name.
    """
    if value is ABSENT:
        return "undefined"
    if value is None:
        return "null"
    # bool is a subclass of int
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int | float | Decimal):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list | tuple):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__.lower()


@dataclass(frozen=True)
class ChangeRecord:
    """A single detected difference.

    Attributes:
        path: Dot/bracket path to the field, e.g. ``address.city`` or ``items[2]``
        old_value: Previous value, ``None`` for CREATE, ``ABSENT`` when added
        new_value: New value, ``None`` for DELETE, ``ABSENT`` when removed
        value_type: Type tag of the new value, or of the old one if the new is absent
    """

    path: str
    old_value: Any
    new_value: Any
    value_type: str

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted camelCase shape, omitting absent values."""
        data: dict[str, Any] = {"path": self.path}
        if self.old_value is not ABSENT:
            data["oldValue"] = to_jsonable(self.old_value)
        if self.new_value is not ABSENT:
            data["newValue"] = to_jsonable(self.new_value)
        data["valueType"] = self.value_type
        return data
