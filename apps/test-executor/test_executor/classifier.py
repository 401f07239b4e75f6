"""Outcome classification: turns an HTTP response into a verdict for one test case."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

UNIMPLEMENTED_CODE = 501
ROOT_ELEMENT = "ROOT"


class ResponseCodeFamily(str, Enum):
    ONEXX = "1XX"
    TWOXX = "2XX"
    THREEXX = "3XX"
    FOURXX = "4XX"
    FIVEXX = "5XX"

    @property
    def starting_digit(self) -> str:
        return self.value[0]

    @property
    def as_string(self) -> str:
        return self.value

    @staticmethod
    def is_unimplemented(code: int) -> bool:
        return code == UNIMPLEMENTED_CODE


class Verdict(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    SKIPPED = "skipped"


class Outcome(Enum):
    """The six possible classifications, in decision order."""

    MATCHES_CONTRACT = (
        Verdict.SUCCESS,
        "Call returned as expected. Response code {actual} matches the contract. Response body matches the contract!",
    )
    BODY_MISMATCH = (
        Verdict.WARNING,
        "Call returned as expected. Response code {actual} matches the contract. "
        "Response body does NOT match the contract!",
    )
    UNDOCUMENTED_CODE = (
        Verdict.WARNING,
        "Call returned as expected, but with undocumented code: expected [{expected}], actual [{actual}]. "
        "Documented response codes: {documented}",
    )
    DOCUMENTED_BUT_UNEXPECTED = (
        Verdict.ERROR,
        "Call returned an unexpected result, but with documented code: expected [{expected}], actual [{actual}]",
    )
    NOT_IMPLEMENTED = (
        Verdict.WARNING,
        "Call returned http code 501: you forgot to implement this functionality!",
    )
    UNEXPECTED_BEHAVIOUR = (
        Verdict.ERROR,
        "Unexpected behaviour: expected {expected}, actual [{actual}]",
    )

    @property
    def verdict(self) -> Verdict:
        return self.value[0]

    def message(self, *, expected: ResponseCodeFamily, actual: str, documented: frozenset[str]) -> str:
        return self.value[1].format(expected=expected.as_string, actual=actual, documented=sorted(documented))


@dataclass(frozen=True)
class ResponseAssertions:
    matches_response_schema: bool
    response_code_expected: bool
    response_code_documented: bool
    response_code_unimplemented: bool


def classify(assertions: ResponseAssertions) -> Outcome:
    """Ordered decision table; the first matching rule wins."""

    expected = assertions.response_code_expected
    documented = assertions.response_code_documented
    if expected and documented and assertions.matches_response_schema:
        return Outcome.MATCHES_CONTRACT
    if expected and documented:
        return Outcome.BODY_MISMATCH
    if expected:
        return Outcome.UNDOCUMENTED_CODE
    if documented:
        return Outcome.DOCUMENTED_BUT_UNEXPECTED
    if assertions.response_code_unimplemented:
        return Outcome.NOT_IMPLEMENTED
    return Outcome.UNEXPECTED_BEHAVIOUR


def is_response_code_expected(code: int, expected: ResponseCodeFamily) -> bool:
    # 501 counts as expected: fuzzed GET requests often reach unimplemented endpoints
    return str(code).startswith(expected.starting_digit) or ResponseCodeFamily.is_unimplemented(code)


def is_empty_response(body: str | None) -> bool:
    text = (body or "").strip()
    return text == "" or text == "[]"


def matches_response_schema(code: int, body: str | None, responses: Mapping[str, list[str]]) -> bool:
    """Cheap structural check of a response body against the documented samples for its code.

    Every property name in the received body has to appear somewhere in one
    of the sample bodies. With no samples documented, only an empty body
    (blank or ``[]``) matches.
    """

    samples = responses.get(str(code))
    if samples is None:
        return False
    if not samples:
        return is_empty_response(body)
    try:
        element = json.loads(body or "")
    except json.JSONDecodeError:
        return False
    return any(matches_element(sample, element) for sample in samples)


def matches_element(sample: str, element: Any, name: str = ROOT_ELEMENT) -> bool:
    if isinstance(element, dict):
        return all(matches_element(sample, value, key) for key, value in element.items())
    if isinstance(element, list):
        return all(matches_element(sample, item, name) for item in element)
    return name in sample


def assess(
    *,
    code: int,
    body: str | None,
    expected: ResponseCodeFamily,
    documented_codes: frozenset[str],
    responses: Mapping[str, list[str]],
) -> ResponseAssertions:
    return ResponseAssertions(
        matches_response_schema=matches_response_schema(code, body, responses),
        response_code_expected=is_response_code_expected(code, expected),
        response_code_documented=str(code) in documented_codes,
        response_code_unimplemented=ResponseCodeFamily.is_unimplemented(code),
    )
