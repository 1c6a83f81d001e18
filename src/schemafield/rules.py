"""Validation rules derived from an effective schema."""

from __future__ import annotations

import re
from collections.abc import Callable, Sized
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from schemafield.typing.models import EffectiveSchema, FieldOptions

Rule = Callable[[Any], bool | str]


def _is_empty(value: Any) -> bool:  # noqa: ANN401
    if value is None or value == "":
        return True
    return isinstance(value, (list, tuple)) and not value


def required_rule(message: str) -> Rule:
    """Return a rule rejecting empty values with `message`."""

    def _rule(value: Any) -> bool | str:  # noqa: ANN401
        return not _is_empty(value) or message

    return _rule


def build_rules(schema: EffectiveSchema, required: bool, options: FieldOptions) -> list[Rule]:  # noqa: FBT001
    """Derive UI rules for a field.

    Every rule returns True for a valid value, else a message. Empty values only
    fail the required rule, so optional fields stay valid while blank.

    Args:
        schema (EffectiveSchema): Effective schema of the field.
        required (bool): Whether the parent marks the field as required.
        options (FieldOptions): Field options (required message).

    Returns:
        list[Rule]: Rules in evaluation order.
    """
    rules: list[Rule] = []
    if required:
        rules.append(required_rule(options.required_message))

    if schema.min_length is not None:
        min_length = schema.min_length
        rules.append(lambda v: _is_empty(v) or len(str(v)) >= min_length or f"{min_length} characters minimum")
    if schema.max_length is not None:
        max_length = schema.max_length
        rules.append(lambda v: _is_empty(v) or len(str(v)) <= max_length or f"{max_length} characters maximum")
    if schema.minimum is not None:
        minimum = schema.minimum
        rules.append(lambda v: _is_empty(v) or _at_least(v, minimum) or f"{_format_number(minimum)} minimum")
    if schema.maximum is not None:
        maximum = schema.maximum
        rules.append(lambda v: _is_empty(v) or _at_most(v, maximum) or f"{_format_number(maximum)} maximum")
    if schema.pattern is not None:
        pattern = re.compile(schema.pattern)
        rules.append(lambda v: _is_empty(v) or bool(pattern.search(str(v))) or f"Must match {schema.pattern}")
    if schema.min_items is not None:
        min_items = schema.min_items
        rules.append(lambda v: not isinstance(v, Sized) or len(v) >= min_items or f"{min_items} items minimum")
    if schema.max_items is not None:
        max_items = schema.max_items
        rules.append(lambda v: not isinstance(v, Sized) or len(v) <= max_items or f"{max_items} items maximum")
    return rules


def _as_number(value: Any) -> float | None:  # noqa: ANN401
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _at_least(value: Any, minimum: float) -> bool:  # noqa: ANN401
    number = _as_number(value)
    return number is not None and number >= minimum


def _at_most(value: Any, maximum: float) -> bool:  # noqa: ANN401
    number = _as_number(value)
    return number is not None and number <= maximum


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def validate(value: Any, rules: list[Rule]) -> list[str]:  # noqa: ANN401
    """Return the messages of every failing rule."""
    return [result for rule in rules if isinstance(result := rule(value), str)]
