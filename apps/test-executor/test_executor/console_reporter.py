"""Console reporter with environment detection for fuzzing run output."""

import os
import sys
from typing import Optional

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
)
from rich.table import Table
from rich.text import Text

from .models import CatsTestCase, ExecutionStatistics
from .output_config import OutputFormat

RESULT_STYLES = {
    "success": ("✓ SUCCESS", "green"),
    "warning": ("! WARN", "yellow"),
    "error": ("✗ ERROR", "red"),
    "skipped": ("- SKIP", "dim"),
}


class ConsoleReporter:
    """
    Console reporter that adapts to the environment.

    - Interactive terminals get a rich progress bar and a results table
    - CI/CD environments and pipes get plain text lines
    - JSON output mode prints nothing, structured logs are the only output
    """

    def __init__(self, output_format: OutputFormat = OutputFormat.AUTO):
        self.output_format = output_format
        self.silent = output_format == OutputFormat.JSON
        self._detect_environment()
        self.console: Optional[Console] = Console() if self.use_rich else None
        self.progress: Optional[Progress] = None
        self.progress_task: Optional[TaskID] = None
        self.live: Optional[Live] = None
        self.results_table: Optional[Table] = None

    def _detect_environment(self) -> None:
        """Decide between rich and plain output."""
        if self.output_format == OutputFormat.RICH:
            self.use_rich = True
        elif self.output_format in (OutputFormat.PLAIN, OutputFormat.JSON):
            self.use_rich = False
        else:  # AUTO
            is_terminal = sys.stdout.isatty()
            is_ci = any(
                name in os.environ for name in ("CI", "GITHUB_ACTIONS", "JENKINS_HOME", "GITLAB_CI", "TRAVIS")
            )
            self.use_rich = is_terminal and not is_ci

    def start_run(self, total_scenarios: int, contract_name: str) -> None:
        """Initialize the run display."""
        if self.silent:
            return
        if self.use_rich:
            self.results_table = Table(show_header=True, header_style="bold cyan")
            self.results_table.add_column("Test", style="dim", width=10)
            self.results_table.add_column("Fuzzer", width=44)
            self.results_table.add_column("Endpoint", width=32)
            self.results_table.add_column("Result", width=12)
            self.results_table.add_column("Code", justify="right", width=6)

            self.progress = Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
                TimeRemainingColumn(),
                console=self.console,
            )
            self.progress_task = self.progress.add_task(f"[cyan]Fuzzing {contract_name}", total=total_scenarios)
            self.live = Live(Group(self.progress, self.results_table), console=self.console, refresh_per_second=4)
            self.live.start()
        else:
            print(f"Fuzzing contract: {contract_name}")
            print(f"Scenarios: {total_scenarios}")
            print("-" * 80)

    def report_test_case(self, record: CatsTestCase) -> None:
        """Report one finished test case."""
        if self.silent:
            return
        label, color = RESULT_STYLES.get(record.result or "", ("? UNKNOWN", "white"))
        code = str(record.response.response_code) if record.response and record.response.response_code else "-"
        if self.use_rich and self.results_table is not None:
            self.results_table.add_row(
                record.test_id,
                record.fuzzer or "",
                record.path or "",
                Text(label, style=color),
                code,
            )
        else:
            print(f"[{record.test_id}] {record.fuzzer} {record.path or ''} ... {label} ({code})")
            if record.result == "error" and record.result_details:
                print(f"  {record.result_details}")

    def advance(self) -> None:
        """Mark one scenario as fully fuzzed."""
        if self.use_rich and self.progress is not None and self.progress_task is not None:
            self.progress.update(self.progress_task, advance=1)

    def finish_run(self, statistics: ExecutionStatistics, duration_ms: float) -> None:
        """Display the final summary."""
        if self.silent:
            return
        failed = statistics.errors > 0
        if self.use_rich:
            if self.live:
                self.live.stop()
            summary_text = Text()
            summary_text.append(f"Total: {statistics.total}  ", style="bold")
            summary_text.append(f"Success: {statistics.success}  ", style="bold green")
            summary_text.append(f"Warnings: {statistics.warnings}  ", style="bold yellow")
            summary_text.append(f"Errors: {statistics.errors}  ", style="bold red" if failed else "bold green")
            summary_text.append(f"Skipped: {statistics.skipped}  ", style="dim")
            summary_text.append(f"Duration: {duration_ms:.0f}ms", style="bold cyan")

            status = "✗ ERRORS FOUND" if failed else "✓ NO ERRORS FOUND"
            self.console.print()
            self.console.print(
                Panel(
                    summary_text,
                    title=Text(status, style="bold red" if failed else "bold green"),
                    border_style="red" if failed else "green",
                )
            )
        else:
            print("-" * 80)
            print(
                f"Total: {statistics.total} | Success: {statistics.success} | Warnings: {statistics.warnings} | "
                f"Errors: {statistics.errors} | Skipped: {statistics.skipped} | Duration: {duration_ms:.0f}ms"
            )
            print("✗ ERRORS FOUND" if failed else "✓ NO ERRORS FOUND")

    def print_error(self, message: str) -> None:
        """Print an error message."""
        if self.use_rich:
            self.console.print(f"[bold red]Error:[/] {message}")
        else:
            print(f"Error: {message}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print an info message."""
        if self.silent:
            return
        if self.use_rich:
            self.console.print(f"[cyan]{message}[/]")
        else:
            print(message)
