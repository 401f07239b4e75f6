"""Reading and rewriting fields of JSON payloads addressed by ``parent#child`` paths."""

from __future__ import annotations

import json
import re
from typing import Any, NamedTuple

from .strategy import FuzzingStrategy

FIELD_SEPARATOR = "#"
_JSON_NUMBER = re.compile(r"-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?")
_RAW_TOKEN = "__raw_number_{}__"
_PRIMITIVES = (str, int, float, bool, type(None))


class FieldReplacement(NamedTuple):
    payload: str
    old_value: Any


def compact(document: Any) -> str:
    return json.dumps(document, separators=(",", ":"), ensure_ascii=False)


def find_values(document: Any, field: str) -> list[Any]:
    """Every value stored under ``field``; lists on the way are crossed element by element."""

    *parents, leaf = field.split(FIELD_SEPARATOR)
    return [holder[leaf] for holder in _holders(document, parents) if leaf in holder]


def is_primitive_field(payload: str, field: str) -> bool:
    values = find_values(json.loads(payload), field)
    return bool(values) and all(isinstance(value, _PRIMITIVES) for value in values)


def replace_field(payload: str, field: str, strategy: FuzzingStrategy) -> FieldReplacement:
    """Apply ``strategy`` to ``field`` wherever it occurs in ``payload``.

    Raises ``ValueError`` when the field is absent or holds an object or array;
    check with ``is_primitive_field`` first.
    A fuzzed value that is a valid number literal replacing a numeric field
    is embedded unquoted, so boundary values keep their full precision.
    """

    document = json.loads(payload)
    *parents, leaf = field.split(FIELD_SEPARATOR)
    holders = [holder for holder in _holders(document, parents) if leaf in holder]
    if not holders or not all(isinstance(holder[leaf], _PRIMITIVES) for holder in holders):
        raise ValueError(f"Field [{field}] is not a primitive value present in the payload")

    old_value = holders[0][leaf]
    raw_numbers: dict[str, str] = {}
    for holder in holders:
        original = holder[leaf]
        fuzzed = strategy.process(original)
        if _is_number(original) and _JSON_NUMBER.fullmatch(fuzzed):
            token = _RAW_TOKEN.format(len(raw_numbers))
            raw_numbers[token] = fuzzed
            holder[leaf] = token
        else:
            holder[leaf] = fuzzed

    text = compact(document)
    for token, literal in raw_numbers.items():
        text = text.replace(json.dumps(token), literal)
    return FieldReplacement(payload=text, old_value=old_value)


def add_field(payload: str, name: str, value: Any) -> str:
    """Add a top-level property; array payloads get it on every object element."""

    document = json.loads(payload)
    targets = document if isinstance(document, list) else [document]
    for target in targets:
        if isinstance(target, dict):
            target[name] = value
    return compact(document)


def _holders(document: Any, parents: list[str]) -> list[dict[str, Any]]:
    current = _flatten([document])
    for segment in parents:
        current = _flatten([node[segment] for node in current if segment in node])
    return [node for node in current if isinstance(node, dict)]


def _flatten(nodes: list[Any]) -> list[dict[str, Any]]:
    flat: list[dict[str, Any]] = []
    for node in nodes:
        if isinstance(node, list):
            flat.extend(_flatten(node))
        elif isinstance(node, dict):
            flat.append(node)
    return flat


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
