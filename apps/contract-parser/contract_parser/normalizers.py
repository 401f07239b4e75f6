"""Helpers for turning OpenAPI specifications into ContractIR objects."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .models import ContractIR, PathItem, Schema

_HTTP_METHODS = ("get", "put", "post", "delete", "patch", "head")


class UnsupportedSpecError(RuntimeError):
    """Raised when the CLI cannot determine how to parse a spec."""


def normalize_spec(spec_path: Path, *, service_override: str | None = None) -> ContractIR:
    """Normalize a supported contract file into a ContractIR object."""

    suffix = spec_path.suffix.lower()
    if suffix not in {".json", ".yaml", ".yml"}:
        raise UnsupportedSpecError(f"Unsupported specification format: {suffix}")

    parsed = yaml.safe_load(spec_path.read_text(encoding="utf-8"))
    if not isinstance(parsed, dict):
        raise UnsupportedSpecError("Expected OpenAPI document to be an object")
    if "swagger" in parsed:
        raise UnsupportedSpecError("Swagger 2 documents are not supported, convert the contract to OpenAPI 3")
    if "openapi" not in parsed:
        raise UnsupportedSpecError("YAML/JSON file is not an OpenAPI document")
    return normalize_openapi(parsed, source_path=str(spec_path), service_override=service_override)


def normalize_openapi(
    data: dict[str, Any],
    *,
    source_path: str = "<memory>",
    service_override: str | None = None,
) -> ContractIR:
    """Build a ContractIR from an already parsed OpenAPI 3 document."""

    info = data.get("info") or {}
    components = data.get("components") or {}
    service = service_override or info.get("title") or Path(source_path).stem
    paths: dict[str, PathItem] = {}

    try:
        for raw_path, path_item in (data.get("paths") or {}).items():
            if not isinstance(path_item, dict):
                continue
            paths[raw_path] = PathItem.model_validate(_inline_path_item(path_item, components))
        schemas = {
            name: Schema.model_validate(raw)
            for name, raw in (components.get("schemas") or {}).items()
            if isinstance(raw, dict)
        }
    except ValidationError as exc:
        raise UnsupportedSpecError(f"Contract {source_path} is not a valid OpenAPI document: {exc}") from exc

    return ContractIR(
        service=service,
        version=str(info.get("version", "0")),
        source_path=source_path,
        metadata={"raw_version": data.get("openapi"), "servers": data.get("servers") or []},
        paths=paths,
        schemas=schemas,
    )


def _inline_path_item(path_item: dict[str, Any], components: dict[str, Any]) -> dict[str, Any]:
    """Resolve component references of every operation and merge path-level parameters."""

    shared_parameters = [
        _resolve_component(param, components, "parameters") for param in path_item.get("parameters") or []
    ]
    inlined: dict[str, Any] = {}
    for method in _HTTP_METHODS:
        entry = path_item.get(method)
        if not isinstance(entry, dict):
            continue
        operation = dict(entry)
        own = [_resolve_component(param, components, "parameters") for param in entry.get("parameters") or []]
        operation["parameters"] = _merge_parameters(shared_parameters, own)
        if "requestBody" in entry:
            operation["requestBody"] = _resolve_component(entry["requestBody"], components, "requestBodies")
        operation["responses"] = {
            code: _resolve_component(response, components, "responses")
            for code, response in (entry.get("responses") or {}).items()
        }
        inlined[method] = operation
    return inlined


def _merge_parameters(shared: list[dict[str, Any]], own: list[dict[str, Any]]) -> list[dict[str, Any]]:
    # operation-level parameters override path-level ones with the same name and location
    merged = {(param.get("name"), param.get("in")): param for param in shared}
    merged.update({(param.get("name"), param.get("in")): param for param in own})
    return list(merged.values())


def _resolve_component(node: Any, components: dict[str, Any], section: str) -> Any:
    """Follow ``#/components/<section>/<name>`` references; schema references are kept as-is."""

    seen: set[str] = set()
    while isinstance(node, dict) and isinstance(node.get("$ref"), str):
        ref = node["$ref"]
        prefix = f"#/components/{section}/"
        if not ref.startswith(prefix) or ref in seen:
            return node
        seen.add(ref)
        target = (components.get(section) or {}).get(ref[len(prefix) :])
        if target is None:
            raise UnsupportedSpecError(f"Unresolvable reference {ref}")
        node = target
    return node
