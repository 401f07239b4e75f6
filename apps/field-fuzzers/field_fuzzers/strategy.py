"""Value-transform policies used by field fuzzers."""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

TRUNCATE_AT = 30
_PADDING = (" ", "\t")


class StrategyKind(str, Enum):
    REPLACE = "REPLACE"
    PREFIX = "PREFIX"
    TRAIL = "TRAIL"
    SKIP = "SKIP"
    NOOP = "NOOP"


@dataclass(frozen=True)
class FuzzingStrategy:
    """How a fuzzed fragment is combined with the original value of a field.

    ``REPLACE`` and ``NOOP`` return ``data``, ``PREFIX`` and ``TRAIL`` glue it
    before or after the supplied value, ``SKIP`` returns the supplied value
    unchanged. Non-string supplied values are rendered as JSON text first.
    """

    kind: StrategyKind
    data: Any = None

    @classmethod
    def replace(cls) -> "FuzzingStrategy":
        return cls(StrategyKind.REPLACE)

    @classmethod
    def prefix(cls) -> "FuzzingStrategy":
        return cls(StrategyKind.PREFIX)

    @classmethod
    def trail(cls) -> "FuzzingStrategy":
        return cls(StrategyKind.TRAIL)

    @classmethod
    def skip(cls) -> "FuzzingStrategy":
        return cls(StrategyKind.SKIP)

    @classmethod
    def noop(cls) -> "FuzzingStrategy":
        return cls(StrategyKind.NOOP)

    def with_data(self, data: Any) -> "FuzzingStrategy":
        return dataclasses.replace(self, data=data)

    @property
    def name(self) -> str:
        return self.kind.value

    def is_skip(self) -> bool:
        return self.kind is StrategyKind.SKIP

    def process(self, value: Any) -> str:
        supplied = _as_text(value)
        data = _as_text(self.data) if self.data is not None else ""
        match self.kind:
            case StrategyKind.REPLACE | StrategyKind.NOOP:
                return data
            case StrategyKind.PREFIX:
                return data + supplied
            case StrategyKind.TRAIL:
                return supplied + data
            case _:
                return supplied

    @classmethod
    def from_value(cls, marker: str | None, inner: Any) -> "FuzzingStrategy":
        """Pick a strategy from a marker value.

        A blank marker (empty or whitespace only) replaces with ``inner``; a
        marker padded on the left or right prefixes or trails ``inner``;
        anything else is sent as is.
        """

        if marker is None or not marker.strip():
            return cls.replace().with_data(inner)
        if marker.startswith(_PADDING):
            return cls.prefix().with_data(inner)
        if marker.endswith(_PADDING):
            return cls.trail().with_data(inner)
        return cls.replace().with_data(marker)

    @classmethod
    def merge_fuzzing(cls, marker: str | None, supplied: Any, inner: Any) -> str:
        return cls.from_value(marker, inner).process(supplied)

    def truncated_value(self) -> str | None:
        if self.data is None:
            return None
        text = _as_text(self.data)
        if len(text) > TRUNCATE_AT:
            return f"{text[:TRUNCATE_AT]}..."
        return text

    def truncated(self) -> str:
        """Short rendering for scenario narratives and log lines."""

        if self.data is None:
            return self.name
        return f"{self.name} with {self.truncated_value()}"

    def __str__(self) -> str:
        if self.data is None:
            return self.name
        return f"{self.name} with {_as_text(self.data)}"


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)
