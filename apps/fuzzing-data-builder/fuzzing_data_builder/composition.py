"""Resolution of composition markers embedded in generated sample payloads.

The payload generator represents unresolved ``allOf``/``oneOf``/``anyOf``
constructs as synthetic property keys:

* ``"ALL_OF": {...}`` holds the merged branches of an ``allOf`` and is folded
  into the enclosing object;
* ``"<property>ONE_OF<ref>"`` / ``"<property>ANY_OF<ref>"`` hold one branch of
  an alternative each, e.g. ``"petONE_OF#/components/schemas/Cat"``.

Everything that knows about this key protocol lives in this module.
"""

from __future__ import annotations

import json
from copy import deepcopy
from typing import Any, Protocol

ALL_OF = "ALL_OF"
ONE_OF = "ONE_OF"
ANY_OF = "ANY_OF"


class SampleResolver(Protocol):
    """What the composition pipeline needs from a payload generator."""

    def generate(self, schema_name: str) -> list[dict[str, str]]: ...

    @property
    def discriminators(self) -> list[str]: ...


def compact_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def squash_all_of(element: Any) -> Any:
    """Fold every ``ALL_OF`` property into its enclosing object, children first. Mutates ``element``."""

    if isinstance(element, dict):
        for key in list(element):
            value = element[key]
            squash_all_of(value)
            if key.upper() == ALL_OF:
                del element[key]
                if isinstance(value, dict):
                    element.update(value)
    elif isinstance(element, list):
        for item in element:
            squash_all_of(item)
    return element


def is_alternative_marker(key: str) -> bool:
    return ONE_OF in key or ANY_OF in key


def marker_target_name(key: str) -> str:
    """``petONE_OF#/components/schemas/Cat`` -> ``pet``."""

    return key.partition("#")[0].replace(ANY_OF, "").replace(ONE_OF, "")


def marker_subtype(key: str) -> str:
    """``petONE_OF#/components/schemas/Cat`` -> ``Cat``."""

    return key[key.rfind("/") + 1 :]


def expand_alternatives(payload: Any, discriminators: list[str]) -> list[Any]:
    """Return one variant per ``ONE_OF``/``ANY_OF`` marker found directly on the root object.

    Each variant drops every marker and re-attaches only its own branch under
    the marker's target name. Discriminator properties of that branch are set
    to the branch's subtype name. Markers nested deeper are left untouched.
    """

    if not isinstance(payload, dict):
        return [payload]
    markers = {key: value for key, value in payload.items() if is_alternative_marker(key)}
    if not markers:
        return [payload]

    base = {key: value for key, value in payload.items() if key not in markers}
    variants = []
    for key, branch in markers.items():
        name = marker_target_name(key)
        resolved = deepcopy(branch)
        if isinstance(resolved, dict):
            for property_name in resolved:
                if f"{name}#{property_name}" in discriminators:
                    resolved[property_name] = marker_subtype(key)
        variant = deepcopy(base)
        variant[name] = resolved
        variants.append(variant)
    return variants


def generate_sample(resolver: SampleResolver, schema_name: str) -> list[str]:
    """Structural sample payloads for ``schema_name`` with all composition markers resolved."""

    examples = resolver.generate(schema_name)
    payload = squash_all_of(json.loads(examples[0]["example"]))
    return [compact_json(variant) for variant in expand_alternatives(payload, resolver.discriminators)]


def duplicate_as_array(payloads: list[str]) -> list[str]:
    """Wrap every payload into a two element array so array-aware fuzzers have siblings to work with."""

    return [f"[{payload},{payload}]" for payload in payloads]
