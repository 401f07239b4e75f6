import json

from contract_parser.models import ContractIR
from contract_parser.normalizers import normalize_openapi
from fuzzing_data_builder.factory import FuzzingDataFactory
from fuzzing_data_builder.models import HttpMethod
from fuzzing_data_builder.payload_generator import PayloadGenerator

PET_REF = {"$ref": "#/components/schemas/Pet"}


def _contract(paths: dict, schemas: dict | None = None) -> ContractIR:
    document = {
        "openapi": "3.0.3",
        "info": {"title": "Petstore", "version": "1.0.0"},
        "paths": paths,
        "components": {
            "schemas": {
                "Pet": {
                    "type": "object",
                    "properties": {"id": {"type": "integer"}, "name": {"type": "string"}},
                },
                "Error": {"type": "object", "properties": {"message": {"type": "string"}}},
                **(schemas or {}),
            }
        },
    }
    return normalize_openapi(document)


def _json_body(schema: dict) -> dict:
    return {"content": {"application/json": {"schema": schema}}}


def _build(contract: ContractIR, path: str, factory: FuzzingDataFactory | None = None):
    factory = factory or FuzzingDataFactory()
    return factory.from_path_item(path, contract.paths[path], contract.schemas)


def test_post_with_referenced_body() -> None:
    contract = _contract(
        {
            "/pets": {
                "post": {
                    "operationId": "createPet",
                    "parameters": [{"name": "X-Request-Id", "in": "header", "required": True}],
                    "requestBody": _json_body(PET_REF),
                    "responses": {
                        "201": _json_body(PET_REF),
                        "400": _json_body({"$ref": "#/components/schemas/Error"}),
                        "204": {"description": "nothing"},
                    },
                }
            }
        }
    )

    (data,) = _build(contract, "/pets")

    assert data.method is HttpMethod.POST
    assert json.loads(data.payload) == {"id": 1, "name": "name"}
    assert data.response_codes == {"201", "400", "204"}
    assert [header.name for header in data.headers] == ["X-Request-Id"]
    assert [json.loads(body) for body in data.responses["201"]] == [{"id": 1, "name": "name"}]
    assert data.responses["204"] == []
    assert set(data.all_fields) == {"id", "name"}


def test_body_without_json_media_type_is_skipped() -> None:
    contract = _contract(
        {
            "/upload": {
                "post": {
                    "requestBody": {"content": {"text/plain": {"schema": {"type": "string"}}}},
                    "responses": {"200": {"description": "ok"}},
                }
            }
        }
    )

    assert _build(contract, "/upload") == []


def test_wildcard_media_type_is_accepted() -> None:
    contract = _contract(
        {"/pets": {"put": {"requestBody": {"content": {"*/*": {"schema": PET_REF}}}, "responses": {"200": {}}}}}
    )

    (data,) = _build(contract, "/pets")

    assert data.method is HttpMethod.PUT


def test_array_body_is_sent_as_two_identical_elements() -> None:
    contract = _contract(
        {
            "/pets/batch": {
                "post": {
                    "requestBody": _json_body({"type": "array", "items": PET_REF}),
                    "responses": {"200": {}},
                }
            }
        }
    )

    (data,) = _build(contract, "/pets/batch")

    first, second = json.loads(data.payload)
    assert first == second == {"id": 1, "name": "name"}


def test_one_of_request_gives_one_scenario_per_branch() -> None:
    contract = _contract(
        {
            "/animals": {
                "post": {
                    "requestBody": _json_body(
                        {"oneOf": [{"$ref": "#/components/schemas/Cat"}, {"$ref": "#/components/schemas/Dog"}]}
                    ),
                    "responses": {"200": {}},
                }
            }
        },
        schemas={
            "Cat": {"type": "object", "properties": {"meows": {"type": "boolean"}}},
            "Dog": {"type": "object", "properties": {"barks": {"type": "boolean"}}},
        },
    )
    calls = []

    def counting_generator(schemas):
        calls.append(schemas)
        return PayloadGenerator(schemas)

    scenarios = _build(contract, "/animals", FuzzingDataFactory(generator_factory=counting_generator))

    assert [json.loads(scenario.payload) for scenario in scenarios] == [{"meows": True}, {"barks": True}]
    assert scenarios[0].req_schema == contract.schemas["Cat"]
    assert scenarios[1].req_schema == contract.schemas["Dog"]
    # one generator for the response samples plus one per request branch
    assert len(calls) == 3


def test_discriminated_property_is_expanded_into_variants() -> None:
    contract = _contract(
        {"/owners": {"post": {"requestBody": _json_body({"$ref": "#/components/schemas/Owner"}), "responses": {"200": {}}}}},
        schemas={
            "Owner": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "pet": {
                        "oneOf": [{"$ref": "#/components/schemas/Cat"}, {"$ref": "#/components/schemas/Dog"}],
                        "discriminator": {"propertyName": "petType"},
                    },
                },
            },
            "Cat": {"type": "object", "properties": {"petType": {"type": "string"}}},
            "Dog": {"type": "object", "properties": {"petType": {"type": "string"}}},
        },
    )

    scenarios = _build(contract, "/owners")

    assert [json.loads(scenario.payload) for scenario in scenarios] == [
        {"name": "name", "pet": {"petType": "Cat"}},
        {"name": "name", "pet": {"petType": "Dog"}},
    ]


def test_get_parameters_are_fuzzed_through_synthetic_schema() -> None:
    contract = _contract(
        {
            "/pets/{petId}": {
                "get": {
                    "operationId": "getPet",
                    "parameters": [
                        {"name": "petId", "in": "path", "required": True, "schema": {"type": "integer"}},
                        {"name": "verbose", "in": "query", "schema": {"type": "boolean"}},
                        {"name": "X-Trace", "in": "header", "schema": {"type": "string"}},
                    ],
                    "responses": {"200": _json_body(PET_REF)},
                },
                "delete": {
                    "parameters": [{"name": "petId", "in": "path", "required": True, "schema": {"type": "integer"}}],
                    "responses": {"204": {}},
                },
            }
        }
    )

    get_data, delete_data = _build(contract, "/pets/{petId}")

    assert get_data.method is HttpMethod.GET
    assert json.loads(get_data.payload) == {"petId": 1, "verbose": True}
    assert [header.name for header in get_data.headers] == ["X-Trace"]
    assert contract.schemas["getSchemagetPet"].required == ["petId"]
    assert get_data.req_schema == contract.schemas["getSchemagetPet"]

    assert delete_data.method is HttpMethod.DELETE
    assert json.loads(delete_data.payload) == {"petId": 1}
    assert "getSchemaDELETE_pets_petId" in contract.schemas


def test_inline_body_schema_is_registered() -> None:
    contract = _contract(
        {
            "/login": {
                "post": {
                    "operationId": "login",
                    "requestBody": _json_body(
                        {"type": "object", "properties": {"user": {"type": "string", "minLength": 6}}}
                    ),
                    "responses": {"200": {}},
                }
            }
        }
    )

    (data,) = _build(contract, "/login")

    assert json.loads(data.payload) == {"user": "useraa"}
    assert "bodySchemalogin" in contract.schemas
