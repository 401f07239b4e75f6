import json
import xml.etree.ElementTree as ET
from pathlib import Path

from test_executor.exporter import TestCaseExporter
from test_executor.models import CatsRequest, CatsResponse, CatsTestCase


def _record(test_id: str, result: str, details: str) -> CatsTestCase:
    return CatsTestCase(
        test_id=test_id,
        scenario="Send [values prefixed with spaces] in request fields",
        expected_result="Should return [2XX]",
        path="/pets",
        full_request_path="http://localhost/pets",
        request=CatsRequest(method="POST", url="http://localhost/pets", payload="{}"),
        response=CatsResponse(response_code=500, body="", elapsed_ms=12.5),
        fuzzer="LeadingSpacesInFieldsTrimValidateFuzzer",
        result=result,
        result_details=details,
    )


def test_test_case_file_is_named_after_test_id(tmp_path: Path) -> None:
    exporter = TestCaseExporter(tmp_path / "run-1")

    written = exporter.write_to_file(_record("Test 12", "error", "boom"))

    assert written == tmp_path / "run-1" / "Test12.json"
    payload = json.loads(written.read_text(encoding="utf-8"))
    assert payload["test_id"] == "Test 12"
    assert payload["response"]["response_code"] == 500
    assert payload["fuzzer"] == "LeadingSpacesInFieldsTrimValidateFuzzer"


def test_summary_and_junit_report(tmp_path: Path) -> None:
    exporter = TestCaseExporter(tmp_path / "run-1")
    records = {
        "Test 1": _record("Test 1", "success", "fine"),
        "Test 2": _record("Test 2", "warning", "body mismatch"),
        "Test 3": _record("Test 3", "error", "unexpected"),
        "Test 4": CatsTestCase(test_id="Test 4", result="skipped", result_details="Skipped due to: enum"),
    }

    summary = exporter.write_summary(records, total=4, success=1, warnings=1, errors=1)
    junit = exporter.write_report_files()

    saved = json.loads(exporter.summary_file.read_text(encoding="utf-8"))
    assert saved["run_id"] == "run-1"
    assert (saved["total"], saved["success"], saved["warnings"], saved["errors"], saved["skipped"]) == (4, 1, 1, 1, 1)
    assert [case["id"] for case in saved["test_cases"]] == ["Test 1", "Test 2", "Test 3"]
    assert summary.errors == 1

    suite = ET.parse(junit).getroot()
    assert suite.attrib["tests"] == "3"
    assert suite.attrib["failures"] == "1"
    cases = suite.findall("testcase")
    assert cases[2].find("failure").attrib["message"] == "unexpected"
    assert cases[1].find("system-out").text == "body mismatch"
    assert cases[0].find("failure") is None
