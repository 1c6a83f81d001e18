"""Structural equality and path helpers over JSON-like values."""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping, Sequence
from typing import Any, Final


class _Missing:
    """Marker for an absent value, distinct from an explicit JSON null."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False

    def __deepcopy__(self, memo: dict[int, Any]) -> _Missing:
        return self


MISSING: Final = _Missing()

ModelWrapper = MutableMapping[str, Any] | list[Any]
ModelKey = str | int


def _is_sequence(value: object) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def structurally_equal(left: object, right: object) -> bool:
    """Compare two JSON-like values by content.

    Booleans never equal numbers, mappings compare regardless of key order,
    sequences compare element-wise regardless of their concrete type.

    Args:
        left (object): First value.
        right (object): Second value.

    Returns:
        bool: True when both values have the same structure and content.
    """
    if left is right:
        return True
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, Mapping) and isinstance(right, Mapping):
        if left.keys() != right.keys():
            return False
        return all(structurally_equal(left[key], right[key]) for key in left)
    if _is_sequence(left) and _is_sequence(right):
        left_seq = list(left)  # type: ignore[call-overload]
        right_seq = list(right)  # type: ignore[call-overload]
        if len(left_seq) != len(right_seq):
            return False
        return all(structurally_equal(a, b) for a, b in zip(left_seq, right_seq, strict=True))
    if isinstance(left, Mapping) or isinstance(right, Mapping) or _is_sequence(left) or _is_sequence(right):
        return False
    return left == right


def get_path(root: object, path: str) -> Any:  # noqa: ANN401
    """Read a dotted path (`a.b.0.c`) from nested mappings and lists.

    Args:
        root (object): Document root.
        path (str): Dotted path; numeric segments index lists.

    Returns:
        Any: Value found, or `MISSING` when any segment is absent.
    """
    current: Any = root
    for segment in (part for part in path.split(".") if part):
        if isinstance(current, Mapping):
            if segment not in current:
                return MISSING
            current = current[segment]
        elif _is_sequence(current) and segment.isdigit():
            index = int(segment)
            if index >= len(current):
                return MISSING
            current = current[index]
        else:
            return MISSING
    return current


def slot_value(wrapper: ModelWrapper, key: ModelKey) -> Any:  # noqa: ANN401
    """Return the value held in a wrapper slot, or `MISSING` when unset."""
    if isinstance(wrapper, list):
        if not isinstance(key, int) or not 0 <= key < len(wrapper):
            return MISSING
        return wrapper[key]
    return wrapper.get(key, MISSING)  # type: ignore[arg-type]


def set_slot_value(wrapper: ModelWrapper, key: ModelKey, value: Any) -> None:  # noqa: ANN401
    """Write a value into a wrapper slot, growing list wrappers when needed."""
    if isinstance(wrapper, list):
        index = int(key)
        if index < 0:
            msg = f"Negative list slot: {index}"
            raise IndexError(msg)
        while len(wrapper) <= index:
            wrapper.append(None)
        wrapper[index] = value
        return
    wrapper[key] = value  # type: ignore[index]
