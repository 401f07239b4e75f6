"""Deterministic example payloads for named contract schemas."""

from __future__ import annotations

from copy import deepcopy
from typing import Any

from contract_parser.models import Schema, ref_name

from .composition import ALL_OF, ANY_OF, ONE_OF, compact_json

MAX_DEPTH = 10

STRING_FORMAT_EXAMPLES: dict[str, str] = {
    "date": "2020-02-02",
    "date-time": "2020-02-02T20:20:20Z",
    "email": "cats@example.com",
    "uuid": "f3a1c2d4-5b6e-4f70-8a91-b2c3d4e5f607",
    "uri": "https://example.com/resource",
    "url": "https://example.com/resource",
    "hostname": "example.com",
    "ipv4": "10.10.10.10",
    "ipv6": "2001:db8::1",
    "byte": "Y2F0cw==",
    "password": "c4tsP4ssword!",
}


class SchemaNotFoundError(LookupError):
    """Raised when a schema name or reference is missing from the contract."""


class PayloadGenerator:
    """Builds example payloads with composition markers left in place.

    One instance is bound to a schema dictionary. ``discriminators`` and
    ``request_data_types`` accumulate across every ``generate`` call made on
    the instance.
    """

    def __init__(self, schemas: dict[str, Schema], *, max_depth: int = MAX_DEPTH) -> None:
        self._schemas = schemas
        self._max_depth = max_depth
        self._discriminators: list[str] = []
        self._request_data_types: dict[str, Schema] = {}

    @property
    def discriminators(self) -> list[str]:
        return list(self._discriminators)

    @property
    def request_data_types(self) -> dict[str, Schema]:
        return dict(self._request_data_types)

    def generate(self, schema_name: str) -> list[dict[str, str]]:
        schema = self._lookup(schema_name)
        example = self._resolve(schema, path="", depth=0, stack=(schema_name,))
        return [{"example": compact_json(example)}]

    def _lookup(self, name: str) -> Schema:
        try:
            return self._schemas[name]
        except KeyError:
            raise SchemaNotFoundError(f"Schema {name} is not defined in the contract") from None

    def _dereference(self, schema: Schema) -> Schema:
        return self._lookup(ref_name(schema.ref)) if schema.ref else schema

    def _resolve(self, schema: Schema, *, path: str, depth: int, stack: tuple[str, ...]) -> Any:
        if depth > self._max_depth:
            return None
        if schema.ref:
            name = ref_name(schema.ref)
            if name in stack:
                return {}
            return self._resolve(self._lookup(name), path=path, depth=depth, stack=stack + (name,))
        if schema.example is not None:
            return deepcopy(schema.example)
        if schema.is_composed:
            return self._resolve_composed(schema, path=path, depth=depth, stack=stack)
        if schema.enum:
            return schema.enum[0]
        if schema.default is not None:
            return deepcopy(schema.default)
        if schema.is_array:
            return [self._resolve(schema.items or Schema(), path=path, depth=depth + 1, stack=stack)]
        if schema.properties or schema.type == "object":
            return self._resolve_object(schema, path=path, depth=depth, stack=stack)
        return _primitive_example(schema, path)

    def _resolve_composed(self, schema: Schema, *, path: str, depth: int, stack: tuple[str, ...]) -> Any:
        values: dict[str, Any] = self._resolve_object(schema, path=path, depth=depth, stack=stack)
        if schema.all_of:
            merged: dict[str, Any] = {}
            for branch in schema.all_of:
                example = self._resolve(branch, path=path, depth=depth + 1, stack=stack)
                if isinstance(example, dict):
                    merged.update(example)
            values[ALL_OF] = merged
        alternatives = schema.one_of or schema.any_of
        if alternatives:
            # outside of an object property there is no key to carry markers: use the first branch
            first = self._resolve(alternatives[0], path=path, depth=depth + 1, stack=stack)
            if not isinstance(first, dict):
                return first if not values else values
            values.update(first)
        return values

    def _resolve_object(self, schema: Schema, *, path: str, depth: int, stack: tuple[str, ...]) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for name, property_schema in schema.properties.items():
            property_path = f"{path}#{name}" if path else name
            self._request_data_types[property_path] = property_schema
            target = self._dereference(property_schema)
            if target.one_of or target.any_of:
                values.update(self._alternative_markers(name, target, property_path, depth, stack))
            else:
                values[name] = self._resolve(property_schema, path=property_path, depth=depth + 1, stack=stack)
        return values

    def _alternative_markers(
        self,
        name: str,
        schema: Schema,
        property_path: str,
        depth: int,
        stack: tuple[str, ...],
    ) -> dict[str, Any]:
        if schema.discriminator is not None:
            self._discriminators.append(f"{name}#{schema.discriminator.property_name}")
        markers: dict[str, Any] = {}
        for marker, branches in ((ONE_OF, schema.one_of or []), (ANY_OF, schema.any_of or [])):
            for index, branch in enumerate(branches):
                key = f"{name}{marker}{_branch_reference(branch, index)}"
                markers[key] = self._resolve(branch, path=property_path, depth=depth + 1, stack=stack)
        return markers


def _branch_reference(branch: Schema, index: int) -> str:
    if branch.ref:
        return branch.ref
    return f"#/inline/{branch.title or f'option{index}'}"


def _primitive_example(schema: Schema, path: str) -> Any:
    match schema.type:
        case "integer":
            return int(_bounded_number(schema, 1))
        case "number":
            return float(_bounded_number(schema, 1.5))
        case "boolean":
            return True
        case "string":
            return _string_example(schema, path)
        case _:
            return None


def _bounded_number(schema: Schema, fallback: float) -> float:
    if schema.minimum is not None:
        return schema.minimum
    if schema.maximum is not None:
        return min(schema.maximum, fallback) if schema.maximum >= 0 else schema.maximum
    return fallback


def _string_example(schema: Schema, path: str) -> str:
    if schema.format in STRING_FORMAT_EXAMPLES:
        return STRING_FORMAT_EXAMPLES[schema.format]
    value = path.rsplit("#", 1)[-1] or "cats"
    if schema.min_length is not None and len(value) < schema.min_length:
        value = value + "a" * (schema.min_length - len(value))
    if schema.max_length is not None:
        value = value[: schema.max_length]
    return value
