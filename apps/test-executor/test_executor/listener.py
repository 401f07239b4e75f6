"""Test case ledger: owns the lifecycle of the test case being executed and records its verdict."""

from __future__ import annotations

import itertools
from importlib import metadata
from typing import Any, Callable, Protocol

import structlog

from fuzzing_data_builder.models import FuzzingData

from .classifier import ResponseCodeFamily, Verdict, assess, classify
from .models import CatsRequest, CatsResponse, CatsTestCase, ExecutionStatistics

LOGGER = structlog.get_logger("test_executor")

TOOL_NAME = "contract-fuzzer"
SKIP_EXPECTATION = "Expected result: test will be skipped!"


class Exporter(Protocol):
    def write_to_file(self, record: CatsTestCase) -> Any: ...

    def write_summary(
        self, records: dict[str, CatsTestCase], total: int, success: int, warnings: int, errors: int
    ) -> Any: ...

    def write_report_files(self) -> Any: ...


class Reporter(Protocol):
    def report_test_case(self, record: CatsTestCase) -> None: ...


class TestCaseListener:
    """Records one test case at a time.

    ``create_and_execute_test`` hands a fresh test id to the test body; every
    mutator takes that id back and refuses ids that are not the active one.
    A ledger instance must not be shared by concurrent workers.
    """

    __test__ = False

    def __init__(
        self,
        statistics: ExecutionStatistics,
        exporter: Exporter,
        reporter: Reporter | None = None,
    ) -> None:
        self.statistics = statistics
        self.exporter = exporter
        self.reporter = reporter
        self.test_cases: dict[str, CatsTestCase] = {}
        self._counter = itertools.count(1)
        self._active: str | None = None

    def create_and_execute_test(self, fuzzer_name: str, body: Callable[[str], Any]) -> str:
        if self._active is not None:
            raise RuntimeError(f"{self._active} is still running, cannot start another test case")

        test_id = f"Test {next(self._counter)}"
        self.test_cases[test_id] = CatsTestCase(test_id=test_id)
        self._active = test_id
        with structlog.contextvars.bound_contextvars(test_id=test_id, fuzzer=fuzzer_name):
            LOGGER.debug("test_case_started")
            try:
                body(test_id)
            except Exception as exc:
                LOGGER.exception("test_case_crashed")
                if not self.test_cases[test_id].has_result:
                    self.report_error(test_id, f"Fuzzer failed while running the test case: {exc}")
            finally:
                self._end_test_case(test_id, fuzzer_name)
        return test_id

    def _end_test_case(self, test_id: str, fuzzer_name: str) -> None:
        record = self.test_cases[test_id]
        record.fuzzer = fuzzer_name
        try:
            if not record.skipped:
                self.exporter.write_to_file(record)
            if self.reporter is not None:
                self.reporter.report_test_case(record)
        finally:
            self._active = None
        LOGGER.debug("test_case_finished", result=record.result)

    def _record(self, test_id: str) -> CatsTestCase:
        if test_id != self._active:
            raise RuntimeError(f"{test_id} is not the active test case")
        return self.test_cases[test_id]

    def add_scenario(self, test_id: str, scenario: str) -> None:
        LOGGER.info("scenario", detail=scenario)
        self._record(test_id).scenario = scenario

    def add_expected_result(self, test_id: str, expected_result: str) -> None:
        LOGGER.info("expected_result", detail=expected_result)
        self._record(test_id).expected_result = expected_result

    def add_path(self, test_id: str, path: str) -> None:
        self._record(test_id).path = path

    def add_full_request_path(self, test_id: str, full_request_path: str) -> None:
        self._record(test_id).full_request_path = full_request_path

    def add_request(self, test_id: str, request: CatsRequest) -> None:
        record = self._record(test_id)
        if record.request is None:
            record.request = request

    def add_response(self, test_id: str, response: CatsResponse) -> None:
        record = self._record(test_id)
        if record.response is None:
            record.response = response

    def report_result(
        self,
        test_id: str,
        data: FuzzingData,
        response: CatsResponse,
        expected: ResponseCodeFamily,
    ) -> Verdict:
        assertions = assess(
            code=response.response_code,
            body=response.body,
            expected=expected,
            documented_codes=data.response_codes,
            responses=data.responses,
        )
        outcome = classify(assertions)
        message = outcome.message(
            expected=expected, actual=response.response_code_string, documented=data.response_codes
        )
        match outcome.verdict:
            case Verdict.SUCCESS:
                self.report_info(test_id, message)
            case Verdict.WARNING:
                self.report_warn(test_id, message)
            case _:
                self.report_error(test_id, message)
        return outcome.verdict

    def report_info(self, test_id: str, message: str) -> None:
        record = self._record(test_id)
        self.statistics.increase_success()
        LOGGER.info("result_success", detail=message)
        _set_result(record, Verdict.SUCCESS, message)

    def report_warn(self, test_id: str, message: str) -> None:
        record = self._record(test_id)
        self.statistics.increase_warns()
        LOGGER.warning("result_warning", detail=message)
        _set_result(record, Verdict.WARNING, message)

    def report_error(self, test_id: str, message: str) -> None:
        record = self._record(test_id)
        self.statistics.increase_errors()
        LOGGER.error("result_error", detail=message)
        self.add_request(test_id, CatsRequest.empty())
        self.add_response(test_id, CatsResponse.empty())
        _set_result(record, Verdict.ERROR, message)

    def skip_test(self, test_id: str, reason: str) -> None:
        record = self._record(test_id)
        record.expected_result = SKIP_EXPECTATION
        self.statistics.increase_skipped()
        LOGGER.info("result_skipped", reason=reason)
        _set_result(record, Verdict.SKIPPED, f"Skipped due to: {reason}")
        self.add_request(test_id, CatsRequest.empty())
        self.add_response(test_id, CatsResponse.empty())

    def start_session(self) -> None:
        LOGGER.info("session_started", tool=TOOL_NAME, version=tool_version())

    def end_session(self) -> None:
        stats = self.statistics
        self.exporter.write_summary(self.test_cases, stats.total, stats.success, stats.warnings, stats.errors)
        self.exporter.write_report_files()
        LOGGER.info(
            "session_finished",
            total=stats.total,
            success=stats.success,
            warnings=stats.warnings,
            errors=stats.errors,
            skipped=stats.skipped,
        )


def _set_result(record: CatsTestCase, verdict: Verdict, message: str) -> None:
    record.result = verdict.value
    record.result_details = message


def tool_version() -> str:
    try:
        return metadata.version(TOOL_NAME)
    except metadata.PackageNotFoundError:
        return "dev"
