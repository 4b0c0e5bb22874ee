"""
Field Value Validation

Raw JSON field values are checked against their ``FieldDefinition`` and
turned into one of a closed set of typed values:

    text      -> TextValue
    textarea  -> MultilineTextValue
    number    -> NumberValue
    boolean   -> BooleanValue
    select    -> EnumValue
    media     -> MediaRefValue (single id, or a list when "multiple")

``validate_field`` is pure. Media references are only checked for shape
here; whether the ids exist is resolved afterwards in one batch against the
media index (see ``media_ids``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Tuple, Union

from ..core.errors import ValidationError
from .models import ContentType, FieldDefinition


# ---------------------------------------------------------------------
# Typed Values
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class TextValue:
    value: str


@dataclass(frozen=True)
class MultilineTextValue:
    value: str


@dataclass(frozen=True)
class NumberValue:
    value: Union[int, float]


@dataclass(frozen=True)
class BooleanValue:
    value: bool


@dataclass(frozen=True)
class EnumValue:
    value: str


@dataclass(frozen=True)
class MediaRefValue:
    """One media id (possibly empty) or a tuple of ids when ``multiple``."""
    ids: Tuple[str, ...]
    multiple: bool = False

    @property
    def value(self) -> Union[str, List[str]]:
        if self.multiple:
            return list(self.ids)
        return self.ids[0] if self.ids else ""


FieldValue = Union[
    TextValue,
    MultilineTextValue,
    NumberValue,
    BooleanValue,
    EnumValue,
    MediaRefValue,
]


# ---------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------

def _require_str(definition: FieldDefinition, raw: Any) -> str:
    if not isinstance(raw, str):
        raise ValidationError(f"Field {definition.field_name} should be a string")
    return raw


def validate_field(definition: FieldDefinition, raw: Any) -> FieldValue:
    """
    Check one raw value against its definition.

    Raises
    ------
    ValidationError
        Naming the field, when the value has the wrong shape for its type
        or is not one of the allowed options.
    """
    name = definition.field_name
    kind = definition.field_type

    if kind == "text":
        return TextValue(_require_str(definition, raw))

    if kind == "textarea":
        return MultilineTextValue(_require_str(definition, raw))

    if kind == "number":
        # bool is an int subclass; JSON true/false is not a number.
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            raise ValidationError(f"Field {name} should be a number")
        return NumberValue(raw)

    if kind == "boolean":
        if not isinstance(raw, bool):
            raise ValidationError(f"Field {name} should be a boolean")
        return BooleanValue(raw)

    if kind == "select":
        option = _require_str(definition, raw)
        if option not in definition.options:
            raise ValidationError(f"Field {name} has invalid option {option}")
        return EnumValue(option)

    if kind == "media":
        if definition.multiple:
            if not isinstance(raw, list):
                raise ValidationError(f"Field {name} should be an array of media IDs")
            if not all(isinstance(item, str) for item in raw):
                raise ValidationError(f"Field {name} should contain string media IDs")
            return MediaRefValue(tuple(raw), multiple=True)

        if not isinstance(raw, str):
            raise ValidationError(f"Field {name} should be a string media ID")
        return MediaRefValue((raw,) if raw else ())

    raise ValidationError(f"Unsupported field type {kind} for field {name}")


def validate_values(
    content_type: ContentType,
    values: Mapping[str, Any],
) -> Dict[str, FieldValue]:
    """
    Validate a whole document body against ``content_type``.

    Unknown fields and missing required fields are rejected. Returns the
    typed values keyed by field name.
    """
    typed: Dict[str, FieldValue] = {}

    for name, raw in values.items():
        definition = content_type.field(name)
        if definition is None:
            raise ValidationError(f"Field {name} is not defined in content type")
        typed[name] = validate_field(definition, raw)

    for definition in content_type.fields:
        if definition.is_required and definition.field_name not in values:
            raise ValidationError(f"Field {definition.field_name} is required")

    return typed


def media_ids(typed: Mapping[str, FieldValue]) -> Dict[str, List[str]]:
    """Media ids referenced by each media field, for the existence check."""
    return {
        name: list(value.ids)
        for name, value in typed.items()
        if isinstance(value, MediaRefValue) and value.ids
    }
