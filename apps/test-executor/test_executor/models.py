"""Test case records and run statistics."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class CatsRequest(BaseModel):
    """Snapshot of the request sent for one test case."""

    method: str = ""
    url: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    payload: str = ""

    @classmethod
    def empty(cls) -> "CatsRequest":
        return cls()


class CatsResponse(BaseModel):
    """Snapshot of the response received for one test case."""

    response_code: int = 0
    body: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    elapsed_ms: float = 0.0

    @classmethod
    def empty(cls) -> "CatsResponse":
        return cls()

    @property
    def response_code_string(self) -> str:
        return str(self.response_code)


class CatsTestCase(BaseModel):
    """Everything recorded about one executed (or skipped) test case."""

    test_id: str
    scenario: Optional[str] = None
    expected_result: Optional[str] = None
    path: Optional[str] = None
    full_request_path: Optional[str] = None
    request: Optional[CatsRequest] = None
    response: Optional[CatsResponse] = None
    fuzzer: Optional[str] = None
    result: Optional[str] = None
    result_details: Optional[str] = None

    @property
    def skipped(self) -> bool:
        return self.result == "skipped"

    @property
    def has_result(self) -> bool:
        return self.result is not None

    def report_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class ExecutionStatistics(BaseModel):
    """Run-wide verdict counters."""

    success: int = 0
    warnings: int = 0
    errors: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.success + self.warnings + self.errors + self.skipped

    def increase_success(self) -> None:
        self.success += 1

    def increase_warns(self) -> None:
        self.warnings += 1

    def increase_errors(self) -> None:
        self.errors += 1

    def increase_skipped(self) -> None:
        self.skipped += 1


class RunSummary(BaseModel):
    """Aggregated outcome of one fuzzing run, written as ``summary.json``."""

    run_id: str
    total: int
    success: int
    warnings: int
    errors: int
    skipped: int = 0
    test_cases: list[dict[str, Any]] = Field(default_factory=list)
