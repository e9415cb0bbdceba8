"""Translation of provider JSON parameter schemas into closed parameter contracts."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, create_model


class ParamKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ENUM = "enum"
    ARRAY = "array"
    ANY = "any"


@dataclass(frozen=True)
class ParamSpec:
    """One named parameter of a tool contract.

    ``choices`` is set only for ``ENUM``; ``items`` only for ``ARRAY``.
    """

    name: str
    kind: ParamKind
    required: bool = False
    description: str = ""
    choices: tuple[str, ...] = ()
    items: ParamSpec | None = None


def _schema_type(schema: dict[str, Any]) -> str | None:
    declared = schema.get("type")
    if isinstance(declared, list):
        # Union types such as ["string", "null"] collapse to their first concrete member.
        concrete = [value for value in declared if value != "null"]
        return concrete[0] if concrete else None
    return declared if isinstance(declared, str) else None


def _string_choices(schema: dict[str, Any]) -> tuple[str, ...]:
    values = schema.get("enum")
    if not isinstance(values, list) or not values:
        return ()
    if not all(isinstance(value, str) for value in values):
        return ()
    return tuple(values)


def _element_spec(name: str, items: Any) -> ParamSpec:
    if not isinstance(items, dict):
        return ParamSpec(name=name, kind=ParamKind.ANY, required=True)

    choices = _string_choices(items)
    if choices:
        return ParamSpec(name=name, kind=ParamKind.ENUM, required=True, choices=choices)

    item_type = _schema_type(items)
    if item_type == "string":
        return ParamSpec(name=name, kind=ParamKind.STRING, required=True)
    if item_type in ("number", "integer"):
        return ParamSpec(name=name, kind=ParamKind.NUMBER, required=True)
    if item_type == "boolean":
        return ParamSpec(name=name, kind=ParamKind.BOOLEAN, required=True)
    return ParamSpec(name=name, kind=ParamKind.ANY, required=True)


def translate_property(name: str, schema: dict[str, Any], *, required: bool) -> ParamSpec:
    description = str(schema.get("description") or "")
    declared_type = _schema_type(schema)

    if declared_type == "array":
        return ParamSpec(
            name=name,
            kind=ParamKind.ARRAY,
            required=required,
            description=description,
            items=_element_spec(name, schema.get("items")),
        )

    if declared_type == "string":
        choices = _string_choices(schema)
        if choices:
            return ParamSpec(name=name, kind=ParamKind.ENUM, required=required, description=description, choices=choices)

    if declared_type in ("number", "integer"):
        return ParamSpec(name=name, kind=ParamKind.NUMBER, required=required, description=description)
    if declared_type == "boolean":
        return ParamSpec(name=name, kind=ParamKind.BOOLEAN, required=required, description=description)
    return ParamSpec(name=name, kind=ParamKind.STRING, required=required, description=description)


def translate_input_schema(input_schema: dict[str, Any] | None) -> tuple[ParamSpec, ...]:
    """Build parameter specs from an object schema; anything else yields no parameters."""

    if not isinstance(input_schema, dict) or input_schema.get("type") != "object":
        return ()
    properties = input_schema.get("properties")
    if not isinstance(properties, dict):
        return ()

    required_names = input_schema.get("required")
    required = set(required_names) if isinstance(required_names, list) else set()

    specs: list[ParamSpec] = []
    for name, schema in properties.items():
        if not isinstance(schema, dict):
            raise ValueError(f"property {name!r} schema must be an object")
        specs.append(translate_property(name, schema, required=name in required))
    return tuple(specs)


def _python_type(spec: ParamSpec) -> Any:
    if spec.kind is ParamKind.STRING:
        return str
    if spec.kind is ParamKind.NUMBER:
        return int | float
    if spec.kind is ParamKind.BOOLEAN:
        return bool
    if spec.kind is ParamKind.ENUM:
        return Literal[spec.choices]  # type: ignore[valid-type]
    if spec.kind is ParamKind.ARRAY:
        assert spec.items is not None
        return list[_python_type(spec.items)]  # type: ignore[misc]
    return Any


def build_arguments_model(tool_name: str, params: tuple[ParamSpec, ...]) -> type[BaseModel]:
    """Create the pydantic model that validates arguments for one tool."""

    # Provider property names need not be valid Python identifiers, so fields get
    # positional names and carry the provider name as their alias.
    fields: dict[str, Any] = {}
    for index, spec in enumerate(params):
        annotation = _python_type(spec)
        if spec.required:
            fields[f"param_{index}"] = (annotation, Field(..., alias=spec.name, description=spec.description))
        else:
            fields[f"param_{index}"] = (
                Optional[annotation],
                Field(default=None, alias=spec.name, description=spec.description),
            )

    model_name = "".join(part.capitalize() for part in tool_name.replace("-", "_").split("_") if part) or "Tool"
    return create_model(
        f"{model_name}Arguments",
        __config__=ConfigDict(extra="ignore"),
        **fields,
    )
