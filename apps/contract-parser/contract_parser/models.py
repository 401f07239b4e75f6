"""Pydantic models for OpenAPI contracts consumed by the fuzzer."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def ref_name(ref: str) -> str:
    """Return the last segment of a JSON reference (``#/components/schemas/Pet`` -> ``Pet``)."""

    return ref[ref.rfind("/") + 1 :]


class ContractModel(BaseModel):
    """Base for contract objects: OpenAPI keys are accepted by alias and unknown keys ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Discriminator(ContractModel):
    property_name: str = Field(alias="propertyName")


class Schema(ContractModel):
    """Subset of the OpenAPI schema object needed to build sample payloads."""

    ref: str | None = Field(default=None, alias="$ref")
    type: str | None = None
    format: str | None = None
    title: str | None = None
    properties: dict[str, Schema] = Field(default_factory=dict)
    items: Schema | None = None
    required: list[str] = Field(default_factory=list)
    all_of: list[Schema] | None = Field(default=None, alias="allOf")
    one_of: list[Schema] | None = Field(default=None, alias="oneOf")
    any_of: list[Schema] | None = Field(default=None, alias="anyOf")
    discriminator: Discriminator | None = None
    enum: list[Any] | None = None
    example: Any = None
    default: Any = None
    minimum: float | None = None
    maximum: float | None = None
    min_length: int | None = Field(default=None, alias="minLength")
    max_length: int | None = Field(default=None, alias="maxLength")
    pattern: str | None = None
    nullable: bool = False

    @field_validator("type", mode="before")
    @classmethod
    def _first_non_null_type(cls, value: Any) -> Any:
        # OpenAPI 3.1 allows a list of types
        if isinstance(value, list):
            concrete = [item for item in value if item != "null"]
            return concrete[0] if concrete else None
        return value

    @property
    def is_array(self) -> bool:
        return self.type == "array"

    @property
    def is_composed(self) -> bool:
        return bool(self.all_of or self.one_of or self.any_of)


class Parameter(ContractModel):
    name: str
    location: str = Field(alias="in")
    required: bool = False
    schema_: Schema = Field(default_factory=Schema, alias="schema")


class MediaType(ContractModel):
    schema_: Schema | None = Field(default=None, alias="schema")


class RequestBody(ContractModel):
    required: bool = False
    content: dict[str, MediaType] = Field(default_factory=dict)


class ApiResponse(ContractModel):
    ref: str | None = Field(default=None, alias="$ref")
    description: str | None = None
    content: dict[str, MediaType] = Field(default_factory=dict)


class Operation(ContractModel):
    """Represents a single API operation extracted from an input contract."""

    operation_id: str | None = Field(default=None, alias="operationId")
    summary: str | None = None
    description: str | None = None
    parameters: list[Parameter] = Field(default_factory=list)
    request_body: RequestBody | None = Field(default=None, alias="requestBody")
    responses: dict[str, ApiResponse] = Field(default_factory=dict)

    @field_validator("responses", mode="before")
    @classmethod
    def _string_response_codes(cls, value: Any) -> Any:
        # YAML loads bare 200: keys as integers
        if isinstance(value, dict):
            return {str(code): response for code, response in value.items()}
        return value


class PathItem(ContractModel):
    post: Operation | None = None
    put: Operation | None = None
    patch: Operation | None = None
    get: Operation | None = None
    delete: Operation | None = None
    head: Operation | None = None

    def operations(self) -> dict[str, Operation]:
        """Return the defined operations keyed by upper-case HTTP method, body methods first."""

        ordered = {
            "POST": self.post,
            "PUT": self.put,
            "PATCH": self.patch,
            "GET": self.get,
            "DELETE": self.delete,
            "HEAD": self.head,
        }
        return {method: operation for method, operation in ordered.items() if operation is not None}


class ContractIR(BaseModel):
    """Normalized contract: every path with its operations plus the shared schema dictionary."""

    service: str
    version: str
    protocol: str = "openapi"
    source_path: str
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: dict[str, Any] = Field(default_factory=dict)
    paths: dict[str, PathItem] = Field(default_factory=dict)
    schemas: dict[str, Schema] = Field(default_factory=dict)

    def operation_count(self) -> int:
        return sum(len(item.operations()) for item in self.paths.values())
