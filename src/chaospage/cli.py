# src/chaospage/cli.py
"""CLI for running chaospage scenarios.

Usage:
    # Reproduce the bug-cache-sum scenario (succeeds after 5 retries)
    chaospage run --preset=bug_cache_sum

    # Same schedule with too few retries; exits non-zero
    chaospage run --preset=bug_cache_sum --max-attempts=4

    # Fetch a single page from a fresh source
    chaospage fetch 3 --preset=bug_cache_sum

    # Inspect configuration
    chaospage presets
    chaospage show-config --preset=strict_retry --format=json
"""

from __future__ import annotations

import json
import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Any

import typer
import yaml
from pydantic import ValidationError

from chaospage.config import ChaosPageConfig, list_presets, load_config
from chaospage.errors import ChaosPageError, ListingCancelled
from chaospage.logging import configure_logging
from chaospage.scenario import run_scenario
from chaospage.sinks import CountingSink
from chaospage.source import PageSource

EXIT_CONFIG_ERROR = 1
EXIT_LISTING_FAILED = 2
EXIT_CANCELLED = 130

app = typer.Typer(
    name="chaospage",
    help="chaospage: Deterministic fault-injecting paginated source for retry testing.",
    no_args_is_help=True,
)

PresetOption = Annotated[
    str | None,
    typer.Option(
        "--preset",
        "-p",
        help="Preset configuration to use. Use 'chaospage presets' to list available presets.",
    ),
]
ConfigFileOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to YAML configuration file.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
]


def _version_callback(value: bool) -> None:
    if value:
        from chaospage import __version__

        typer.echo(f"chaospage {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """chaospage: Deterministic fault-injecting paginated source for retry testing."""


@contextmanager
def _shutdown_on_signal() -> Iterator[threading.Event]:
    """Yield an Event that SIGINT/SIGTERM set instead of interrupting.

    After the first signal SIGINT reverts to the default handler, so a
    second Ctrl-C interrupts immediately. Off the main thread no handlers
    are installed and the Event is only settable programmatically.
    """
    shutdown_event = threading.Event()

    if threading.current_thread() is not threading.main_thread():
        yield shutdown_event
        return

    original_sigint = signal.getsignal(signal.SIGINT)
    original_sigterm = signal.getsignal(signal.SIGTERM)

    def _handler(signum: int, frame: Any) -> None:
        shutdown_event.set()
        signal.signal(signal.SIGINT, signal.default_int_handler)

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)
    try:
        yield shutdown_event
    finally:
        signal.signal(signal.SIGINT, original_sigint)
        signal.signal(signal.SIGTERM, original_sigterm)


def _load_or_exit(
    preset: str | None,
    config_file: Path | None,
    cli_overrides: dict[str, Any] | None = None,
) -> ChaosPageConfig:
    try:
        return load_config(preset=preset, config_file=config_file, cli_overrides=cli_overrides)
    except FileNotFoundError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(EXIT_CONFIG_ERROR) from e
    except (ValidationError, ValueError, yaml.YAMLError) as e:
        typer.secho(f"Configuration error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(EXIT_CONFIG_ERROR) from e


def _scenario_overrides(
    *,
    max_pages: int | None,
    page_size: int | None,
    error_after_page: int | None,
    failure_count: int | None,
) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if max_pages is not None:
        overrides["max_pages"] = max_pages
    if page_size is not None:
        overrides["page_size"] = page_size
    if error_after_page is not None:
        overrides["error_after_page"] = error_after_page
    if failure_count is not None:
        overrides["failure_count"] = failure_count
    return overrides


@app.command()
def run(
    preset: PresetOption = None,
    config_file: ConfigFileOption = None,
    max_attempts: Annotated[
        int | None,
        typer.Option("--max-attempts", "-a", help="Total fetch attempts per page, including the first.", min=1),
    ] = None,
    max_pages: Annotated[int | None, typer.Option("--max-pages", help="Number of valid pages.", min=0)] = None,
    page_size: Annotated[int | None, typer.Option("--page-size", help="Records per page.", min=0)] = None,
    error_after_page: Annotated[
        int | None,
        typer.Option("--error-after-page", help="Index of the page that fails transiently.", min=0),
    ] = None,
    failure_count: Annotated[
        int | None,
        typer.Option("--failure-count", help="Transient failures before the failing page succeeds.", min=0),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", "-l", help="Log level: DEBUG, INFO, WARNING, ERROR."),
    ] = None,
    json_logs: Annotated[
        bool | None,
        typer.Option("--json-logs/--console-logs", help="Emit logs as JSON lines."),
    ] = None,
) -> None:
    """Run a scenario end to end and print a summary.

    Exit codes: 0 on a complete listing, 1 on configuration errors,
    2 when the listing stops on an error, 130 when cancelled.
    """
    cli_overrides: dict[str, Any] = {}
    scenario_overrides = _scenario_overrides(
        max_pages=max_pages,
        page_size=page_size,
        error_after_page=error_after_page,
        failure_count=failure_count,
    )
    if scenario_overrides:
        cli_overrides["scenario"] = scenario_overrides
    if max_attempts is not None:
        cli_overrides["retry"] = {"max_attempts": max_attempts}
    logging_overrides: dict[str, Any] = {}
    if log_level is not None:
        logging_overrides["level"] = log_level
    if json_logs is not None:
        logging_overrides["json_output"] = json_logs
    if logging_overrides:
        cli_overrides["logging"] = logging_overrides

    config = _load_or_exit(preset, config_file, cli_overrides)
    configure_logging(json_output=config.logging.json_output, level=config.logging.level)

    sink = CountingSink()
    with _shutdown_on_signal() as shutdown_event:
        result = run_scenario(config, sink, shutdown_event=shutdown_event)

    stats = result.stats
    typer.echo(f"Scenario: {config.scenario.name}")
    typer.echo(f"  Records: {stats.records_emitted}")
    typer.echo(f"  Amount sum: {sink.amount_sum:.2f}")
    typer.echo(f"  Pages: {stats.pages_fetched}")
    attempts = ", ".join(f"{page}:{n}" for page, n in sorted(stats.attempts_by_page.items()))
    typer.echo(f"  Attempts by page: {attempts or '-'}")

    if isinstance(result.error, ListingCancelled):
        typer.secho(f"Cancelled: {result.error}", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(EXIT_CANCELLED)
    if result.error is not None:
        typer.secho(
            f"Listing failed: {type(result.error).__name__}: {result.error}",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(EXIT_LISTING_FAILED)
    typer.secho("Listing complete.", fg=typer.colors.GREEN)


@app.command()
def fetch(
    page: Annotated[int, typer.Argument(help="Page index to fetch.")],
    preset: PresetOption = None,
    config_file: ConfigFileOption = None,
    repeat: Annotated[
        int,
        typer.Option("--repeat", "-r", help="Fetch the page this many times on the same source.", min=1),
    ] = 1,
) -> None:
    """Fetch one page from a fresh source, with no retries."""
    config = _load_or_exit(preset, config_file)
    configure_logging(json_output=config.logging.json_output, level=config.logging.level)
    source = PageSource(config.scenario)

    failed = False
    for attempt in range(1, repeat + 1):
        try:
            result = source.fetch_page(page)
        except ChaosPageError as e:
            failed = True
            typer.echo(f"attempt {attempt}: {type(e).__name__}: {e}")
            continue
        failed = False
        typer.echo(f"attempt {attempt}: {len(result)} records, next page {result.next_page}")

    if failed:
        raise typer.Exit(EXIT_LISTING_FAILED)


@app.command()
def presets() -> None:
    """List available preset configurations."""
    available = list_presets()

    if not available:
        typer.echo("No presets found.")
        return

    typer.secho("Available presets:", fg=typer.colors.GREEN)
    for name in available:
        typer.echo(f"  - {name}")

    typer.echo()
    typer.echo("Use with: chaospage run --preset=<name>")


@app.command()
def show_config(
    preset: PresetOption = None,
    config_file: ConfigFileOption = None,
    output_format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format: json or yaml."),
    ] = "yaml",
) -> None:
    """Show the effective configuration after merging preset and file."""
    if output_format not in ("json", "yaml"):
        typer.secho(f"Unknown format '{output_format}'. Use json or yaml.", fg=typer.colors.RED, err=True)
        raise typer.Exit(EXIT_CONFIG_ERROR)

    config = _load_or_exit(preset, config_file)
    config_dict = config.model_dump(mode="json")

    if output_format == "json":
        typer.echo(json.dumps(config_dict, indent=2))
    else:
        typer.echo(yaml.safe_dump(config_dict, default_flow_style=False, sort_keys=False))


def main() -> None:
    """Entry point for chaospage CLI."""
    app()


if __name__ == "__main__":
    main()
