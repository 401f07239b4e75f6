"""Immutable request scenarios produced by the fuzzing data factory."""

from __future__ import annotations

import json
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from contract_parser.models import Parameter, PathItem, Schema


class HttpMethod(str, Enum):
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    GET = "GET"
    DELETE = "DELETE"
    HEAD = "HEAD"

    @property
    def requires_body(self) -> bool:
        return self in BODY_METHODS


BODY_METHODS = frozenset({HttpMethod.POST, HttpMethod.PUT, HttpMethod.PATCH})


class CatsHeader(BaseModel):
    """Header declared by an operation parameter located in ``header``."""

    model_config = ConfigDict(frozen=True)

    name: str
    required: bool = False
    schema_: Schema = Field(default_factory=Schema)

    @classmethod
    def from_header_parameter(cls, parameter: Parameter) -> "CatsHeader":
        return cls(name=parameter.name, required=parameter.required, schema_=parameter.schema_)

    def sample_value(self) -> str:
        """Value sent for the header when the scenario is executed unchanged."""

        schema = self.schema_
        for candidate in (schema.example, schema.default, (schema.enum or [None])[0]):
            if candidate is not None:
                return candidate if isinstance(candidate, str) else json.dumps(candidate)
        if schema.type in {"integer", "number"}:
            return "1"
        if schema.type == "boolean":
            return "true"
        return f"{self.name}-value"


class FuzzingData(BaseModel):
    """One concrete request scenario derived from a documented operation.

    ``payload`` is always a JSON document. For GET-style operations it holds the
    path and query parameters; for body methods it is the request body.
    """

    model_config = ConfigDict(frozen=True)

    method: HttpMethod
    path: str
    headers: tuple[CatsHeader, ...] = ()
    payload: str = "{}"
    response_codes: frozenset[str] = frozenset()
    req_schema: Schema = Field(default_factory=Schema)
    path_item: PathItem | None = None
    schema_map: dict[str, Schema] = Field(default_factory=dict)
    responses: dict[str, list[str]] = Field(default_factory=dict)
    request_property_types: dict[str, Schema] = Field(default_factory=dict)

    @property
    def all_fields(self) -> list[str]:
        """Every request property path (``parent#child``) known for this scenario."""

        return list(self.request_property_types)

    def describe(self) -> str:
        return f"{self.method.value} {self.path}"
