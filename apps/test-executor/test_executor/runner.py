"""Fuzzing run engine: contract -> scenarios -> fuzzers -> verdicts -> reports."""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path

import structlog

from contract_parser.models import ContractIR
from contract_parser.normalizers import normalize_spec
from field_fuzzers.fuzzers import Fuzzer, select_fuzzers
from fuzzing_data_builder.factory import FuzzingDataFactory
from fuzzing_data_builder.models import FuzzingData
from fuzzing_data_builder.payload_generator import SchemaNotFoundError

from .config import FuzzerSettings
from .console_reporter import ConsoleReporter
from .exporter import TestCaseExporter
from .http_executor import ServiceCaller
from .listener import TestCaseListener
from .models import ExecutionStatistics
from .output_config import OutputFormat

LOGGER = structlog.get_logger("test_executor")


@dataclass
class RunArtifacts:
    run_dir: Path
    summary_file: Path
    junit_file: Path
    statistics: ExecutionStatistics


def synthesize(contract: ContractIR, settings: FuzzerSettings, factory: FuzzingDataFactory | None = None) -> list[FuzzingData]:
    """Request scenarios for every selected contract path; paths with dangling schemas are skipped."""

    factory = factory or FuzzingDataFactory()
    scenarios: list[FuzzingData] = []
    for path, item in contract.paths.items():
        if not settings.includes_path(path):
            continue
        try:
            path_scenarios = factory.from_path_item(path, item, contract.schemas)
        except SchemaNotFoundError as exc:
            LOGGER.warning("path_skipped_schema_not_found", path=path, error=str(exc))
            continue
        LOGGER.debug("path_synthesized", path=path, scenarios=len(path_scenarios))
        scenarios.extend(path_scenarios)
    return scenarios


class FuzzingRunner:
    """Runs the selected fuzzers over every scenario of a contract and records artifacts."""

    def __init__(
        self,
        *,
        contract: Path,
        settings: FuzzerSettings,
        run_id: str,
        output_format: OutputFormat = OutputFormat.AUTO,
    ) -> None:
        if not contract.exists():
            raise FileNotFoundError(f"Contract file not found: {contract}")
        self.contract_file = contract
        self.settings = settings
        self.run_id = run_id
        self.fuzzers: list[Fuzzer] = select_fuzzers(settings.fuzzers)
        self._reporter = ConsoleReporter(output_format=output_format)

    def load(self) -> tuple[ContractIR, list[FuzzingData]]:
        contract = normalize_spec(self.contract_file)
        scenarios = synthesize(contract, self.settings)
        LOGGER.info(
            "contract_loaded",
            service=contract.service,
            operations=contract.operation_count(),
            scenarios=len(scenarios),
        )
        return contract, scenarios

    def run(self) -> RunArtifacts:
        contract, scenarios = self.load()
        exporter = TestCaseExporter(self.settings.output_dir / self.run_id, run_id=self.run_id)
        exporter.prepare()
        statistics = ExecutionStatistics()
        listener = TestCaseListener(statistics, exporter, reporter=self._reporter)
        caller = ServiceCaller(
            listener,
            base_url=self.settings.base_url,
            timeout=self.settings.timeout,
            extra_headers=self.settings.headers,
        )

        started = time.perf_counter()
        listener.start_session()
        self._reporter.start_run(total_scenarios=len(scenarios), contract_name=contract.service)
        for data in scenarios:
            for fuzzer in self.fuzzers:
                fuzzer.fuzz(data, listener, caller)
            self._reporter.advance()
        listener.end_session()
        duration_ms = (time.perf_counter() - started) * 1000
        self._reporter.finish_run(statistics, duration_ms)

        return RunArtifacts(
            run_dir=exporter.run_dir,
            summary_file=exporter.summary_file,
            junit_file=exporter.junit_file,
            statistics=statistics,
        )
