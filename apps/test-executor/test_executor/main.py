"""CLI entrypoint for the contract fuzzer."""

from __future__ import annotations

import sys
import uuid
from pathlib import Path
from typing import Optional

import typer

if __package__ in {None, ""}:
    current_file = Path(__file__).resolve()
    package_root = current_file.parents[1]
    apps_dir = current_file.parents[2]
    extra_paths = [
        package_root,
        apps_dir / "contract-parser",
        apps_dir / "fuzzing-data-builder",
        apps_dir / "field-fuzzers",
    ]
    for candidate in extra_paths:
        candidate_str = str(candidate)
        if candidate_str not in sys.path and candidate.exists():
            sys.path.insert(0, candidate_str)
    __package__ = "test_executor"

from contract_parser.normalizers import UnsupportedSpecError
from field_fuzzers.fuzzers import UnknownFuzzerError
from fuzzing_data_builder.payload_generator import SchemaNotFoundError

from .config import ConfigError, load_settings
from .logging_utils import configure_logging
from .output_config import OutputFormat, get_log_format, get_output_format
from .runner import FuzzingRunner

app = typer.Typer(help="Fuzz a running service with requests derived from its OpenAPI contract.")


@app.command()
def fuzz(
    contract: Path = typer.Option(
        ...,
        exists=True,
        readable=True,
        help="OpenAPI 3 contract (YAML or JSON) describing the service.",
    ),
    server: Optional[str] = typer.Option(
        None,
        help="Base URL of the service under test (overrides FUZZ_RUNTIME_BASE_URL).",
    ),
    config: Optional[Path] = typer.Option(
        None,
        help="Optional YAML/JSON file with base_url, timeout, headers, paths and fuzzers.",
    ),
    output_dir: Optional[Path] = typer.Option(
        None,
        help="Directory where run artifacts are written.",
    ),
    run_id: Optional[str] = typer.Option(
        None,
        help="Identifier for the run directory (defaults to a random UUID).",
    ),
    path: list[str] = typer.Option(
        [],
        "--path",
        help="Only fuzz the given contract path. Repeatable.",
    ),
    fuzzer: list[str] = typer.Option(
        [],
        "--fuzzer",
        help="Only run the named fuzzer. Repeatable.",
    ),
    output_format: Optional[str] = typer.Option(
        None,
        "--output-format",
        help="Console output format: auto, rich, plain or json (overrides CONSOLE_OUTPUT_FORMAT).",
    ),
    log_level: str = typer.Option("WARNING", help="Log level for structured logs."),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="List the synthesized scenarios without calling the service.",
    ),
) -> None:
    """Run the fuzzers against the service and write the run report."""

    resolved_format = get_output_format(output_format)
    configure_logging(log_level, get_log_format(resolved_format))

    try:
        settings = load_settings(
            config,
            base_url=server,
            output_dir=output_dir,
            paths=path,
            fuzzers=fuzzer,
        )
        runner = FuzzingRunner(
            contract=contract,
            settings=settings,
            run_id=run_id or uuid.uuid4().hex,
            output_format=resolved_format,
        )
        if dry_run:
            _, scenarios = runner.load()
        else:
            artifacts = runner.run()
    except (UnsupportedSpecError, SchemaNotFoundError, ConfigError, UnknownFuzzerError) as exc:
        raise typer.BadParameter(str(exc)) from exc

    if dry_run:
        for data in scenarios:
            typer.echo(f"{data.describe()} {data.payload}")
        typer.secho(
            f"{len(scenarios)} scenario(s), {len(runner.fuzzers)} fuzzer(s) selected",
            fg=typer.colors.GREEN,
        )
        return

    if resolved_format is not OutputFormat.JSON:
        typer.secho(f"Run artifacts -> {artifacts.run_dir}", fg=typer.colors.GREEN)
    if artifacts.statistics.errors:
        raise typer.Exit(code=1)


def run() -> None:
    """Console_scripts hook."""

    app()


if __name__ == "__main__":  # pragma: no cover
    run()
