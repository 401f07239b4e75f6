import pytest

from fuzzing_data_builder.models import FuzzingData, HttpMethod
from test_executor.classifier import ResponseCodeFamily, Verdict
from test_executor.listener import SKIP_EXPECTATION, TestCaseListener
from test_executor.models import CatsRequest, CatsResponse, ExecutionStatistics


class RecordingExporter:
    def __init__(self) -> None:
        self.written = []
        self.summary = None
        self.reports = 0

    def write_to_file(self, record) -> None:
        self.written.append(record)

    def write_summary(self, records, total, success, warnings, errors) -> None:
        self.summary = (dict(records), total, success, warnings, errors)

    def write_report_files(self) -> None:
        self.reports += 1


class RecordingReporter:
    def __init__(self) -> None:
        self.reported = []

    def report_test_case(self, record) -> None:
        self.reported.append(record.test_id)


@pytest.fixture
def exporter() -> RecordingExporter:
    return RecordingExporter()


@pytest.fixture
def statistics() -> ExecutionStatistics:
    return ExecutionStatistics()


@pytest.fixture
def listener(statistics: ExecutionStatistics, exporter: RecordingExporter) -> TestCaseListener:
    return TestCaseListener(statistics, exporter)


def _data() -> FuzzingData:
    return FuzzingData(
        method=HttpMethod.POST,
        path="/pets",
        response_codes=frozenset({"200"}),
        responses={"200": ['{"a":1}']},
    )


def test_test_ids_are_sequential_and_records_exported_once(
    listener: TestCaseListener, exporter: RecordingExporter
) -> None:
    seen = []

    def body(test_id: str) -> None:
        seen.append(test_id)
        listener.report_info(test_id, "ok")

    listener.create_and_execute_test("FuzzerA", body)
    listener.create_and_execute_test("FuzzerB", body)

    assert seen == ["Test 1", "Test 2"]
    assert [record.test_id for record in exporter.written] == ["Test 1", "Test 2"]
    assert [record.fuzzer for record in exporter.written] == ["FuzzerA", "FuzzerB"]


def test_skipped_tests_are_not_exported(
    listener: TestCaseListener, exporter: RecordingExporter, statistics: ExecutionStatistics
) -> None:
    listener.create_and_execute_test("Fuzzer", lambda test_id: listener.skip_test(test_id, "enum field"))

    record = listener.test_cases["Test 1"]
    assert exporter.written == []
    assert record.skipped
    assert record.expected_result == SKIP_EXPECTATION
    assert record.result_details == "Skipped due to: enum field"
    assert record.request == CatsRequest.empty()
    assert record.response == CatsResponse.empty()
    assert statistics.skipped == 1


def test_request_and_response_first_write_wins(listener: TestCaseListener) -> None:
    first = CatsRequest(method="POST", url="http://x/pets", payload="{}")
    first_response = CatsResponse(response_code=200, body="{}")

    def body(test_id: str) -> None:
        listener.add_path(test_id, "/pets")
        listener.add_full_request_path(test_id, "http://x/pets")
        listener.add_scenario(test_id, "scenario")
        listener.add_expected_result(test_id, "expected")
        listener.add_request(test_id, first)
        listener.add_request(test_id, CatsRequest(method="GET"))
        listener.add_response(test_id, first_response)
        listener.report_error(test_id, "failed")

    listener.create_and_execute_test("Fuzzer", body)

    record = listener.test_cases["Test 1"]
    assert record.request == first
    assert record.response == first_response
    assert record.path == "/pets"
    assert record.full_request_path == "http://x/pets"
    assert (record.scenario, record.expected_result) == ("scenario", "expected")
    assert record.result == "error"


def test_error_without_exchange_gets_placeholders(listener: TestCaseListener) -> None:
    listener.create_and_execute_test("Fuzzer", lambda test_id: listener.report_error(test_id, "no response"))

    record = listener.test_cases["Test 1"]
    assert record.request == CatsRequest.empty()
    assert record.response == CatsResponse.empty()


def test_report_result_counts_exactly_one_verdict(
    listener: TestCaseListener, statistics: ExecutionStatistics
) -> None:
    verdicts = []
    cases = [
        CatsResponse(response_code=200, body='{"a":1}'),
        CatsResponse(response_code=200, body='{"b":1}'),
        CatsResponse(response_code=500, body=""),
    ]
    for response in cases:
        listener.create_and_execute_test(
            "Fuzzer",
            lambda test_id, response=response: verdicts.append(
                listener.report_result(test_id, _data(), response, ResponseCodeFamily.TWOXX)
            ),
        )

    assert verdicts == [Verdict.SUCCESS, Verdict.WARNING, Verdict.ERROR]
    assert (statistics.success, statistics.warnings, statistics.errors, statistics.skipped) == (1, 1, 1, 0)
    assert statistics.total == 3
    assert listener.test_cases["Test 1"].result_details == (
        "Call returned as expected. Response code 200 matches the contract. Response body matches the contract!"
    )


def test_crashing_body_is_recorded_as_error(
    listener: TestCaseListener, exporter: RecordingExporter, statistics: ExecutionStatistics
) -> None:
    def body(test_id: str) -> None:
        raise ValueError("kaboom")

    listener.create_and_execute_test("Fuzzer", body)

    record = listener.test_cases["Test 1"]
    assert record.result == "error"
    assert "kaboom" in record.result_details
    assert exporter.written == [record]
    assert statistics.errors == 1
    assert listener.create_and_execute_test("Fuzzer", lambda test_id: listener.report_info(test_id, "ok")) == "Test 2"


def test_mutating_inactive_test_is_rejected(listener: TestCaseListener) -> None:
    listener.create_and_execute_test("Fuzzer", lambda test_id: listener.report_info(test_id, "ok"))

    with pytest.raises(RuntimeError):
        listener.add_scenario("Test 1", "late write")


def test_nested_test_cases_are_rejected(listener: TestCaseListener, statistics: ExecutionStatistics) -> None:
    def body(test_id: str) -> None:
        listener.create_and_execute_test("Inner", lambda inner_id: None)

    listener.create_and_execute_test("Outer", body)

    record = listener.test_cases["Test 1"]
    assert record.result == "error"
    assert "still running" in record.result_details
    assert len(listener.test_cases) == 1


def test_session_hands_everything_to_exporter(
    listener: TestCaseListener, exporter: RecordingExporter, statistics: ExecutionStatistics
) -> None:
    listener.start_session()
    listener.create_and_execute_test("Fuzzer", lambda test_id: listener.report_warn(test_id, "meh"))
    listener.create_and_execute_test("Fuzzer", lambda test_id: listener.skip_test(test_id, "n/a"))
    listener.end_session()

    records, total, success, warnings, errors = exporter.summary
    assert set(records) == {"Test 1", "Test 2"}
    assert (total, success, warnings, errors) == (2, 0, 1, 0)
    assert exporter.reports == 1


def test_reporter_sees_every_finished_test(statistics: ExecutionStatistics, exporter: RecordingExporter) -> None:
    reporter = RecordingReporter()
    listener = TestCaseListener(statistics, exporter, reporter=reporter)

    listener.create_and_execute_test("Fuzzer", lambda test_id: listener.skip_test(test_id, "n/a"))
    listener.create_and_execute_test("Fuzzer", lambda test_id: listener.report_info(test_id, "ok"))

    assert reporter.reported == ["Test 1", "Test 2"]
