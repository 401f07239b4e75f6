"""Field-level fuzzers: each one mutates request fields and checks the service's reaction."""

from __future__ import annotations

from dataclasses import dataclass
from functools import partial
from typing import Any, Iterable, Protocol

import structlog

from contract_parser.models import Schema, ref_name
from fuzzing_data_builder.models import FuzzingData
from test_executor.classifier import ResponseCodeFamily

from . import payload_utils
from .strategy import FuzzingStrategy, StrategyKind

LOGGER = structlog.get_logger("field_fuzzers")

WHITESPACE = "   "
SINGLE_CODE_POINT_EMOJIS = ("\U0001f47b", "\U0001f635", "\U0001f913", "\U0001f608", "\U0001f4a9")
DECIMAL_LEFT_BOUNDARY = "-999999999999999999999999999999999999999999.99999999999"
EXTREME_NEGATIVE_DECIMAL = "-" + "9" * 100 + "." + "9" * 30
EXTREME_POSITIVE_INTEGER = "9223372036854775807"
NEW_FIELD_NAME = "catsFuzzyField"
# stands in for the original value when a fragment is shaped into a marker
SAMPLE_VALUE = "value"


class Ledger(Protocol):
    def create_and_execute_test(self, fuzzer_name: str, body: Any) -> None: ...

    def add_scenario(self, test_id: str, scenario: str) -> None: ...

    def add_expected_result(self, test_id: str, expected: str) -> None: ...

    def skip_test(self, test_id: str, reason: str) -> None: ...

    def report_result(self, test_id: str, data: FuzzingData, response: Any, expected: ResponseCodeFamily) -> None: ...


class RequestCaller(Protocol):
    def call(self, test_id: str, data: FuzzingData, payload: str) -> Any: ...


class Fuzzer(Protocol):
    name: str

    def describe(self) -> str: ...

    def fuzz(self, data: FuzzingData, listener: Ledger, caller: RequestCaller) -> None: ...


class UnknownFuzzerError(ValueError):
    """Raised when a fuzzer is requested by a name that is not in the catalog."""


@dataclass(frozen=True)
class FieldFuzzer:
    """Sends every applicable request field with a mutated value, one test case per field and value.

    A field is applicable when its declared type is in ``schema_types``. Each
    entry of ``values`` is shaped into a marker according to ``placement`` and
    classified by ``FuzzingStrategy.from_value``, so prefix and trail
    fragments must be whitespace padding. ``optional_family`` overrides the
    expected response family for fields the contract does not mark as
    required.
    """

    name: str
    description: str
    sent_data: str
    schema_types: frozenset[str]
    values: tuple[str, ...]
    placement: StrategyKind
    expected_family: ResponseCodeFamily
    optional_family: ResponseCodeFamily | None = None
    skip_enums: bool = False

    def __post_init__(self) -> None:
        if self.placement in (StrategyKind.PREFIX, StrategyKind.TRAIL):
            invalid = [value for value in self.values if value.strip()]
            if invalid:
                raise ValueError(f"{self.name}: {self.placement.value} fragments must be whitespace, got {invalid}")

    def describe(self) -> str:
        return self.description

    def boundary_check(self, schema: Schema) -> bool:
        return schema.type in self.schema_types

    def data_variant(self, schema: Schema) -> list[FuzzingStrategy]:
        if self.skip_enums and schema.enum:
            return [FuzzingStrategy.skip().with_data(f"Field has enum values, {self.sent_data} are not relevant")]
        return [FuzzingStrategy.from_value(self._marker(value), value) for value in self.values]

    def _marker(self, value: str) -> str:
        match self.placement:
            case StrategyKind.PREFIX:
                return value + SAMPLE_VALUE
            case StrategyKind.TRAIL:
                return SAMPLE_VALUE + value
            case _:
                return value

    def fuzz(self, data: FuzzingData, listener: Ledger, caller: RequestCaller) -> None:
        fields = [field for field in data.all_fields if self.boundary_check(field_schema(data, field))]
        LOGGER.info("fuzzer_started", fuzzer=self.name, endpoint=data.describe(), fields=len(fields))
        for field in fields:
            for strategy in self.data_variant(field_schema(data, field)):
                body = partial(
                    self._process, data=data, field=field, strategy=strategy, listener=listener, caller=caller
                )
                listener.create_and_execute_test(self.name, body)

    def expected_for(self, data: FuzzingData, field: str) -> ResponseCodeFamily:
        if self.optional_family is not None and not is_required(data, field):
            return self.optional_family
        return self.expected_family

    def _process(
        self,
        test_id: str,
        *,
        data: FuzzingData,
        field: str,
        strategy: FuzzingStrategy,
        listener: Ledger,
        caller: RequestCaller,
    ) -> None:
        expected = self.expected_for(data, field)
        listener.add_scenario(
            test_id,
            f"Send [{self.sent_data}] in request fields: field [{field}], value [{strategy.truncated()}]",
        )
        listener.add_expected_result(test_id, f"Should return [{expected.as_string}]")
        if strategy.is_skip():
            listener.skip_test(test_id, strategy.data)
            return
        if not payload_utils.is_primitive_field(data.payload, field):
            listener.skip_test(test_id, f"Field [{field}] is not a primitive value present in the payload")
            return

        replacement = payload_utils.replace_field(data.payload, field, strategy)
        response = caller.call(test_id, data, replacement.payload)
        listener.report_result(test_id, data, response, expected)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class NewFieldsFuzzer:
    """Adds a field the contract does not declare and expects the service to ignore it."""

    name: str = "NewFieldsFuzzer"
    field_name: str = NEW_FIELD_NAME
    expected_family: ResponseCodeFamily = ResponseCodeFamily.TWOXX

    def describe(self) -> str:
        return "send a happy flow request and add a new field inside the request body"

    def boundary_check(self, schema: Schema) -> bool:
        return True

    def data_variant(self, schema: Schema) -> list[FuzzingStrategy]:
        return [FuzzingStrategy.from_value(self.field_name, self.field_name)]

    def fuzz(self, data: FuzzingData, listener: Ledger, caller: RequestCaller) -> None:
        LOGGER.info("fuzzer_started", fuzzer=self.name, endpoint=data.describe())
        body = partial(self._process, data=data, listener=listener, caller=caller)
        listener.create_and_execute_test(self.name, body)

    def _process(self, test_id: str, *, data: FuzzingData, listener: Ledger, caller: RequestCaller) -> None:
        (strategy,) = self.data_variant(data.req_schema)
        listener.add_scenario(
            test_id,
            f"Add new field inside the request: name [{self.field_name}], value [{strategy.data}]. "
            "All other details are similar to a happy flow",
        )
        listener.add_expected_result(test_id, f"Should get a [{self.expected_family.as_string}] response code")
        payload = payload_utils.add_field(data.payload, self.field_name, strategy.process(None))
        response = caller.call(test_id, data, payload)
        listener.report_result(test_id, data, response, self.expected_family)

    def __str__(self) -> str:
        return self.name


def field_schema(data: FuzzingData, field: str) -> Schema:
    """Declared schema of a request field, following ``$ref`` into the schema dictionary."""

    schema = data.request_property_types.get(field, Schema())
    return dereference(schema, data.schema_map)


def dereference(schema: Schema | None, schemas: dict[str, Schema]) -> Schema:
    seen: set[str] = set()
    while schema is not None and schema.ref and schema.ref not in seen:
        seen.add(schema.ref)
        schema = schemas.get(ref_name(schema.ref))
    return schema or Schema()


def is_required(data: FuzzingData, field: str) -> bool:
    parent, _, leaf = field.rpartition(payload_utils.FIELD_SEPARATOR)
    owner = dereference(data.request_property_types.get(parent) if parent else data.req_schema, data.schema_map)
    if owner.is_array and owner.items is not None:
        owner = dereference(owner.items, data.schema_map)
    required = set(owner.required)
    for branch in owner.all_of or []:
        required.update(dereference(branch, data.schema_map).required)
    return leaf in required


def default_fuzzers() -> list[Fuzzer]:
    """The catalog of fuzzers run when no explicit selection is configured."""

    strings = frozenset({"string"})
    return [
        FieldFuzzer(
            name="LeadingSpacesInFieldsTrimValidateFuzzer",
            description="iterate through each field and send requests with spaces prefixing the value",
            sent_data="values prefixed with spaces",
            schema_types=strings,
            values=(WHITESPACE,),
            placement=StrategyKind.PREFIX,
            expected_family=ResponseCodeFamily.TWOXX,
            skip_enums=True,
        ),
        FieldFuzzer(
            name="TrailingSpacesInFieldsTrimValidateFuzzer",
            description="iterate through each field and send requests with trailing spaces in the value",
            sent_data="values suffixed with spaces",
            schema_types=strings,
            values=(WHITESPACE,),
            placement=StrategyKind.TRAIL,
            expected_family=ResponseCodeFamily.TWOXX,
            skip_enums=True,
        ),
        FieldFuzzer(
            name="OnlyWhitespacesInFieldsTrimValidateFuzzer",
            description="iterate through each field and send requests with only spaces as value",
            sent_data="values with spaces only",
            schema_types=strings,
            values=(WHITESPACE,),
            placement=StrategyKind.REPLACE,
            expected_family=ResponseCodeFamily.FOURXX,
            optional_family=ResponseCodeFamily.TWOXX,
            skip_enums=True,
        ),
        FieldFuzzer(
            name="OnlySingleCodePointEmojisInFieldsValidateTrimFuzzer",
            description="iterate through each field and send values with single code point emojis only",
            sent_data="values with single code point emojis only",
            schema_types=strings,
            values=SINGLE_CODE_POINT_EMOJIS,
            placement=StrategyKind.REPLACE,
            expected_family=ResponseCodeFamily.FOURXX,
        ),
        FieldFuzzer(
            name="DecimalFieldsLeftBoundaryFuzzer",
            description="iterate through each Number field and send requests with outside the range values on the left side",
            sent_data="outside the boundary values (left)",
            schema_types=frozenset({"number"}),
            values=(DECIMAL_LEFT_BOUNDARY,),
            placement=StrategyKind.REPLACE,
            expected_family=ResponseCodeFamily.FOURXX,
        ),
        FieldFuzzer(
            name="ExtremeNegativeValueDecimalFieldsFuzzer",
            description="iterate through each Number field and send requests with the lowest value possible",
            sent_data="extreme negative values",
            schema_types=frozenset({"number"}),
            values=(EXTREME_NEGATIVE_DECIMAL,),
            placement=StrategyKind.REPLACE,
            expected_family=ResponseCodeFamily.FOURXX,
        ),
        FieldFuzzer(
            name="ExtremePositiveValueInIntegerFieldsFuzzer",
            description="iterate through each Integer field and send requests with the highest value possible",
            sent_data="extreme positive values",
            schema_types=frozenset({"integer"}),
            values=(EXTREME_POSITIVE_INTEGER,),
            placement=StrategyKind.REPLACE,
            expected_family=ResponseCodeFamily.FOURXX,
        ),
        NewFieldsFuzzer(),
    ]


def select_fuzzers(names: Iterable[str] | None = None) -> list[Fuzzer]:
    """Catalog entries matching ``names`` in catalog order; every fuzzer when ``names`` is empty."""

    catalog = default_fuzzers()
    wanted = list(names or [])
    if not wanted:
        return catalog
    known = {fuzzer.name for fuzzer in catalog}
    unknown = sorted(set(wanted) - known)
    if unknown:
        raise UnknownFuzzerError(f"Unknown fuzzer(s): {', '.join(unknown)}. Available: {', '.join(sorted(known))}")
    return [fuzzer for fuzzer in catalog if fuzzer.name in wanted]
