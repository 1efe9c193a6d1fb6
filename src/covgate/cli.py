"""covgate CLI - coverage, diff coverage, waiver and change policy gates."""

import logging
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from covgate import __version__
from covgate.config import GateConfig, ensure_default_config, load_config
from covgate.errors import EXIT_FAILED, EXIT_OK, CovgateError, MissingArtifactError
from covgate.gates.aggregate import run_threshold_gate
from covgate.gates.change_policy import run_change_policy_gate
from covgate.gates.diff_coverage import run_diff_gate
from covgate.gates.types import GATE_DIFF_COVERAGE, GateResult
from covgate.gates.waivers import run_waiver_gate
from covgate.reporting import render_summary, write_gate_report

cli = typer.Typer(
    name="covgate",
    help="covgate - deterministic coverage gates for CI",
    no_args_is_help=True,
)
console = Console(soft_wrap=True, highlight=False)
err_console = Console(stderr=True, soft_wrap=True, highlight=False)

logger = logging.getLogger("covgate")


def _configure_logging(verbose: bool) -> None:
    """Route covgate loggers to stderr through rich."""
    level = logging.DEBUG if verbose else logging.WARNING
    logger.handlers.clear()
    handler = RichHandler(console=err_console, show_time=False, show_path=verbose)
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False


def _version_option_callback(value: bool) -> None:
    """Print the version and stop before any command runs."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@cli.callback()
def _cli_callback(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show covgate version and exit.",
        is_eager=True,
        callback=_version_option_callback,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log base-ref resolution, git commands and skipped records to stderr.",
    ),
) -> None:
    """Deterministic merge gates: aggregate coverage, diff coverage, waivers, change policy."""
    _configure_logging(verbose)


def _load(repo_root: Path, config: Path | None) -> GateConfig:
    try:
        return load_config(repo_root, config_path=config)
    except CovgateError as exc:
        _fail(exc)


def _fail(exc: CovgateError) -> NoReturn:
    err_console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
    raise typer.Exit(exc.exit_code) from exc


def _finish(result: GateResult, out: Path | None) -> None:
    """Print a gate result, optionally write report artifacts, and exit."""
    exit_code = EXIT_OK if result.passed else EXIT_FAILED

    for note in result.notes:
        console.print(note, markup=False)

    if result.summary is not None:
        typer.echo(render_summary(result.summary))

    if result.passed:
        console.print(result.message, markup=False)
        for line in result.audit:
            console.print(line, markup=False)
    else:
        for violation in result.violations:
            err_console.print(violation, markup=False)
        if result.locations:
            err_console.print(_locations_heading(result), markup=False)
            for location in result.locations:
                err_console.print(f"- {location}", markup=False)
        for step in result.remediation:
            err_console.print(step, markup=False)

    if out is not None:
        json_path, md_path = write_gate_report(result, out, exit_code)
        console.print(f"[cyan]Report JSON:[/cyan] {escape(str(json_path))}")
        console.print(f"[cyan]Report MD:[/cyan] {escape(str(md_path))}")

    raise typer.Exit(exit_code)


def _locations_heading(result: GateResult) -> str:
    if result.gate == GATE_DIFF_COVERAGE:
        return "uncovered changed lines:"
    return "offending files:"


REPO_ROOT_OPTION = typer.Option(Path("."), "--repo-root", help="Repository root (default: current directory)")
CONFIG_OPTION = typer.Option(None, "--config", help="Config file (default: .covgate/config.yaml when present)")
OUT_OPTION = typer.Option(None, "--out", help="Write <GATE>_REPORT.json and <GATE>_REPORT.md into this directory")


@cli.command(name="init")
def init_cmd(
    repo_root: Path = REPO_ROOT_OPTION,
    force: bool = typer.Option(False, "--force", help="Overwrite an existing config file"),
) -> None:
    """Write the default .covgate/config.yaml."""
    try:
        path = ensure_default_config(repo_root, force=force)
    except FileExistsError as exc:
        err_console.print(f"[yellow]{escape(str(exc))}[/yellow]")
        err_console.print("Use --force to overwrite.")
        raise typer.Exit(1) from exc
    console.print(f"[green]✓ Config written:[/green] {escape(str(path))}")


@cli.command(name="thresholds")
def thresholds_cmd(
    repo_root: Path = REPO_ROOT_OPTION,
    config: Path | None = CONFIG_OPTION,
    out: Path | None = OUT_OPTION,
) -> None:
    """Enforce the aggregate line-coverage minimum of every subsystem."""
    cfg = _load(repo_root, config)
    try:
        result = run_threshold_gate(cfg)
    except CovgateError as exc:
        _fail(exc)
    _finish(result, out)


@cli.command(name="diff")
def diff_cmd(
    repo_root: Path = REPO_ROOT_OPTION,
    config: Path | None = CONFIG_OPTION,
    base_ref: str | None = typer.Option(None, "--base-ref", help="Explicit base ref (overrides every other source)"),
    diff_file: Path | None = typer.Option(None, "--diff-file", help="Read unified diff text from a file instead of git"),
    out: Path | None = OUT_OPTION,
) -> None:
    """Enforce the minimum coverage of lines touched by the change."""
    cfg = _load(repo_root, config)
    try:
        diff_text = None
        if diff_file is not None:
            if not diff_file.exists():
                raise MissingArtifactError(f"missing diff file: {diff_file}")
            diff_text = diff_file.read_text(encoding="utf-8")
        result = run_diff_gate(cfg, base_ref_override=base_ref, diff_text=diff_text)
    except CovgateError as exc:
        _fail(exc)
    _finish(result, out)


@cli.command(name="waivers")
def waivers_cmd(
    repo_root: Path = REPO_ROOT_OPTION,
    config: Path | None = CONFIG_OPTION,
    ledger: Path | None = typer.Option(None, "--ledger", help="Waiver ledger (default from config)"),
    out: Path | None = OUT_OPTION,
) -> None:
    """Validate the waiver ledger and the required-gate activation policy."""
    cfg = _load(repo_root, config)
    try:
        result = run_waiver_gate(cfg, ledger_path=ledger)
    except CovgateError as exc:
        _fail(exc)
    _finish(result, out)


@cli.command(name="policy")
def policy_cmd(
    repo_root: Path = REPO_ROOT_OPTION,
    config: Path | None = CONFIG_OPTION,
    base_ref: str | None = typer.Option(None, "--base-ref", help="Explicit base ref (overrides every other source)"),
    out: Path | None = OUT_OPTION,
) -> None:
    """Require test and documentation updates alongside production changes."""
    cfg = _load(repo_root, config)
    try:
        result = run_change_policy_gate(cfg, base_ref_override=base_ref)
    except CovgateError as exc:
        _fail(exc)
    _finish(result, out)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
