"""Creates FuzzingData scenarios for every operation of a contract path."""

from __future__ import annotations

import re
from typing import Callable

import structlog

from contract_parser.models import ApiResponse, MediaType, Operation, Parameter, PathItem, Schema, ref_name

from .composition import duplicate_as_array, generate_sample
from .models import CatsHeader, FuzzingData, HttpMethod
from .payload_generator import PayloadGenerator

LOGGER = structlog.get_logger("fuzzing_data_builder")

APPLICATION_JSON = "application/json"
ANY_MEDIA_TYPE = "*/*"
SYNTH_SCHEMA_PREFIX = "getSchema"
SYNTH_BODY_PREFIX = "bodySchema"

GeneratorFactory = Callable[[dict[str, Schema]], PayloadGenerator]


class FuzzingDataFactory:
    """Turns documented operations into request scenarios.

    More than one scenario is produced for an operation when its request uses
    ``oneOf``/``anyOf`` composition: every alternative gets its own payload.
    """

    def __init__(self, generator_factory: GeneratorFactory = PayloadGenerator) -> None:
        self._generator_factory = generator_factory

    def from_path_item(self, path: str, item: PathItem, schemas: dict[str, Schema]) -> list[FuzzingData]:
        fuzzing_data: list[FuzzingData] = []
        for method_name, operation in item.operations().items():
            method = HttpMethod(method_name)
            if method.requires_body:
                fuzzing_data.extend(self._fuzz_data_for_body(path, item, schemas, operation, method))
            else:
                fuzzing_data.extend(self._fuzz_data_for_get(path, item, schemas, operation, method))
        return fuzzing_data

    def _fuzz_data_for_get(
        self,
        path: str,
        item: PathItem,
        schemas: dict[str, Schema],
        operation: Operation,
        method: HttpMethod,
    ) -> list[FuzzingData]:
        """GET-style operations are fuzzed through a synthetic object holding their path and query params."""

        synthetic_schema = _synthetic_schema_for_get(operation.parameters)
        schema_name = f"{SYNTH_SCHEMA_PREFIX}{_operation_key(operation, method, path)}"
        schemas[schema_name] = synthetic_schema

        generator = self._generator_factory(schemas)
        payloads = generate_sample(generator, schema_name)
        headers = _extract_headers(operation)
        responses = self._response_payloads(operation, schemas)

        return [
            FuzzingData(
                method=method,
                path=path,
                headers=headers,
                payload=payload,
                response_codes=frozenset(operation.responses),
                req_schema=synthetic_schema,
                path_item=item,
                schema_map=schemas,
                responses=responses,
                request_property_types=generator.request_data_types,
            )
            for payload in payloads
        ]

    def _fuzz_data_for_body(
        self,
        path: str,
        item: PathItem,
        schemas: dict[str, Schema],
        operation: Operation,
        method: HttpMethod,
    ) -> list[FuzzingData]:
        media_type = _media_type(operation)
        if media_type is None or media_type.schema_ is None:
            LOGGER.debug("operation_skipped_no_json_body", path=path, method=method.value)
            return []

        schema_names = self._request_schema_names(media_type.schema_, schemas, operation, method, path)
        headers = _extract_headers(operation)
        responses = self._response_payloads(operation, schemas)
        is_array = media_type.schema_.is_array

        fuzzing_data: list[FuzzingData] = []
        for schema_name in schema_names:
            generator = self._generator_factory(schemas)
            payloads = generate_sample(generator, schema_name)
            if is_array:
                payloads = duplicate_as_array(payloads)
            fuzzing_data.extend(
                FuzzingData(
                    method=method,
                    path=path,
                    headers=headers,
                    payload=payload,
                    response_codes=frozenset(operation.responses),
                    req_schema=schemas[schema_name],
                    path_item=item,
                    schema_map=schemas,
                    responses=responses,
                    request_property_types=generator.request_data_types,
                )
                for payload in payloads
            )
        return fuzzing_data

    def _request_schema_names(
        self,
        schema: Schema,
        schemas: dict[str, Schema],
        operation: Operation,
        method: HttpMethod,
        path: str,
    ) -> list[str]:
        """Schema names for the request body: one per ``anyOf``/``oneOf`` branch, else exactly one."""

        if schema.ref:
            return [ref_name(schema.ref)]
        if schema.is_array and schema.items is not None and schema.items.ref:
            return [ref_name(schema.items.ref)]
        branches = [branch for branch in (schema.any_of or []) + (schema.one_of or []) if branch.ref]
        if branches:
            return [ref_name(branch.ref) for branch in branches]

        # inline body schema: register it so it goes through the same pipeline
        inline = schema.items if schema.is_array and schema.items is not None else schema
        name = f"{SYNTH_BODY_PREFIX}{_operation_key(operation, method, path)}"
        schemas[name] = inline
        return [name]

    def _response_payloads(self, operation: Operation, schemas: dict[str, Schema]) -> dict[str, list[str]]:
        """Structural samples for every documented response code; an empty list means an empty body."""

        generator = self._generator_factory(schemas)
        responses: dict[str, list[str]] = {}
        for code, response in operation.responses.items():
            schema_ref = _response_schema_ref(response)
            responses[code] = generate_sample(generator, ref_name(schema_ref)) if schema_ref else []
        return responses


def _synthetic_schema_for_get(parameters: list[Parameter]) -> Schema:
    properties: dict[str, Schema] = {}
    required: list[str] = []
    for parameter in parameters:
        if parameter.location.lower() in {"path", "query"}:
            properties[parameter.name] = parameter.schema_
            if parameter.required:
                required.append(parameter.name)
    return Schema(type="object", properties=properties, required=required)


def _operation_key(operation: Operation, method: HttpMethod, path: str) -> str:
    if operation.operation_id:
        return operation.operation_id
    return re.sub(r"[^a-zA-Z0-9]+", "_", f"{method.value}{path}").strip("_")


def _media_type(operation: Operation) -> MediaType | None:
    if operation.request_body is None:
        return None
    content = operation.request_body.content
    return content.get(APPLICATION_JSON) or content.get(ANY_MEDIA_TYPE)


def _response_schema_ref(response: ApiResponse) -> str | None:
    if response.ref:
        return response.ref
    media_type = response.content.get(APPLICATION_JSON)
    if media_type is not None and media_type.schema_ is not None:
        return media_type.schema_.ref
    return None


def _extract_headers(operation: Operation) -> tuple[CatsHeader, ...]:
    headers: dict[str, CatsHeader] = {}
    for parameter in operation.parameters:
        if parameter.location.lower() == "header":
            headers.setdefault(parameter.name, CatsHeader.from_header_parameter(parameter))
    return tuple(headers.values())
