"""Writes test case records and run reports to the run directory."""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from pathlib import Path

import structlog

from .models import CatsTestCase, RunSummary

LOGGER = structlog.get_logger("test_executor")


class TestCaseExporter:
    """Persists one JSON file per finished test case plus the run summary and JUnit report."""

    __test__ = False

    def __init__(self, run_dir: Path, run_id: str | None = None) -> None:
        self.run_dir = run_dir
        self.run_id = run_id or run_dir.name
        self.summary_file = run_dir / "summary.json"
        self.junit_file = run_dir / "results.junit.xml"
        self._records: list[CatsTestCase] = []

    def prepare(self) -> None:
        self.run_dir.mkdir(parents=True, exist_ok=True)

    def write_to_file(self, record: CatsTestCase) -> Path:
        self.prepare()
        target = self.run_dir / f"{record.test_id.replace(' ', '')}.json"
        target.write_text(json.dumps(record.report_payload(), indent=2, ensure_ascii=False), encoding="utf-8")
        LOGGER.debug("test_case_written", file=str(target))
        return target

    def write_summary(
        self,
        records: dict[str, CatsTestCase],
        total: int,
        success: int,
        warnings: int,
        errors: int,
    ) -> RunSummary:
        self.prepare()
        self._records = [record for record in records.values() if not record.skipped]
        summary = RunSummary(
            run_id=self.run_id,
            total=total,
            success=success,
            warnings=warnings,
            errors=errors,
            skipped=len(records) - len(self._records),
            test_cases=[
                {
                    "id": record.test_id,
                    "fuzzer": record.fuzzer,
                    "path": record.path,
                    "result": record.result,
                    "result_details": record.result_details,
                }
                for record in self._records
            ],
        )
        self.summary_file.write_text(summary.model_dump_json(indent=2), encoding="utf-8")
        return summary

    def write_report_files(self) -> Path:
        """JUnit report of the records handed to ``write_summary``: errors are failures, warnings are notes."""

        self.prepare()
        failures = [record for record in self._records if record.result == "error"]
        suite = ET.Element(
            "testsuite",
            attrib={
                "name": self.run_id,
                "tests": str(len(self._records)),
                "failures": str(len(failures)),
            },
        )
        for record in self._records:
            case = ET.SubElement(
                suite,
                "testcase",
                attrib={
                    "classname": record.fuzzer or "unknown",
                    "name": f"{record.test_id} {record.path or ''}".strip(),
                    "time": str((record.response.elapsed_ms if record.response else 0.0) / 1000),
                },
            )
            if record.result == "error":
                failure = ET.SubElement(case, "failure", attrib={"message": record.result_details or "Test case failed"})
                failure.text = record.scenario or ""
            elif record.result == "warning":
                notes = ET.SubElement(case, "system-out")
                notes.text = record.result_details or ""
        tree = ET.ElementTree(suite)
        tree.write(self.junit_file, encoding="utf-8", xml_declaration=True)
        LOGGER.info("report_written", summary=str(self.summary_file), junit=str(self.junit_file))
        return self.junit_file
