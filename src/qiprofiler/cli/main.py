"""
qiprofiler CLI - quantifier instantiation profiler for Z3 traces.

Usage:
    qiprofiler profile --file z3.log
    qiprofiler profile --file z3.log --gui
    qiprofiler profile --file z3.log --json > report.json
    qiprofiler quantifiers --file z3.log --top 20

Produce a trace with:
    z3 trace=true proof=true trace_file_name=z3.log input.smt2
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from qiprofiler import __version__
from qiprofiler.analysis import Profiler
from qiprofiler.config import Config, get_config
from qiprofiler.exceptions import QIProfilerError, TraceError
from qiprofiler.output.renderers import OutputFormat, render
from qiprofiler.trace.config import TraceConfig

app = typer.Typer(
    name="qiprofiler",
    help="Quantifier instantiation profiler for Z3 trace logs",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)

TraceFileOption = Annotated[
    Path,
    typer.Option(
        "--file",
        "-f",
        help="Path to the Z3 trace log",
        resolve_path=True,
    ),
]
StrictOption = Annotated[
    bool,
    typer.Option(
        "--strict",
        help="Fail on unknown lines, versions and inconsistent instance blocks",
    ),
]
ProgressOption = Annotated[
    Optional[bool],
    typer.Option(
        "--progress/--no-progress",
        help="Show a progress bar while reading the trace (default from config)",
    ),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"qiprofiler version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """qiprofiler - quantifier instantiation profiler."""
    pass


def configure_logging(level: str) -> None:
    """Send log records to stderr through rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=error_console, show_path=False)],
        force=True,
    )


def _trace_config(config: Config, strict: bool, progress: bool | None) -> TraceConfig:
    trace_config = config.trace_config()
    update: dict[str, bool] = {}
    if strict:
        update.update(
            skip_version_check=False,
            ignore_invalid_lines=False,
            skip_consistency_checks=False,
        )
    if progress is not None:
        update["show_progress"] = progress
    return trace_config.model_copy(update=update)


def _load_profiler(path: Path, strict: bool, progress: bool | None) -> Profiler:
    config = get_config()
    configure_logging(config.log_level)
    return Profiler.parse(
        path,
        config=_trace_config(config, strict, progress),
        report_blame_conflicts=config.report_blame_conflicts,
    )


def _report_error(e: QIProfilerError) -> None:
    error_console.print(f"[red]Error:[/red] {e.message}")
    if isinstance(e, TraceError) and e.detail:
        error_console.print(f"\n{e.detail}", style="dim", markup=False)


@app.command()
def profile(
    trace_file: TraceFileOption,
    gui: Annotated[
        bool,
        typer.Option("--gui", "-g", help="Open the interactive graph viewer"),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option("--json", "-j", help="Output the report as JSON"),
    ] = False,
    strict: StrictOption = False,
    progress: ProgressOption = None,
) -> None:
    """
    Build the instantiation graph of a trace and rank its quantifiers.

    The textual report (graph dump and cost ranking) is always printed;
    --gui additionally opens the graph viewer.

    Examples:

        $ z3 trace=true trace_file_name=z3.log input.smt2
        $ qiprofiler profile --file z3.log
    """
    try:
        profiler = _load_profiler(trace_file, strict, progress)

        if json_output:
            console.print_json(render(profiler, format=OutputFormat.JSON))
        else:
            console.print(
                render(profiler, format=OutputFormat.TEXT),
                markup=False,
                highlight=False,
                soft_wrap=True,
            )

        if gui:
            from qiprofiler.output.viz import show_graph

            show_graph(profiler.instantiation_graph)

    except QIProfilerError as e:
        _report_error(e)
        raise typer.Exit(code=1)


@app.command()
def quantifiers(
    trace_file: TraceFileOption,
    top: Annotated[
        int,
        typer.Option("--top", "-n", min=1, help="Number of quantifiers to show"),
    ] = 20,
    strict: StrictOption = False,
    progress: ProgressOption = None,
) -> None:
    """Show the most expensive quantifiers of a trace as a table."""
    try:
        profiler = _load_profiler(trace_file, strict, progress)
        lines = profiler.cost_report()
    except QIProfilerError as e:
        _report_error(e)
        raise typer.Exit(code=1)

    if not lines:
        console.print("[yellow]No quantifier instantiations in this trace.[/yellow]")
        return

    table = Table()
    table.add_column("Quantifier", style="cyan")
    table.add_column("Instantiations", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Share", justify="right")

    for line in lines[:top]:
        if line.percentage >= 50:
            share_style = "red bold"
        elif line.percentage >= 10:
            share_style = "yellow"
        else:
            share_style = "blue"

        table.add_row(
            escape(line.quantifier),
            str(line.instantiations),
            str(line.cost),
            str(line.score),
            f"[{share_style}]{line.percentage}%[/{share_style}]",
        )

    console.print(table)
    console.print(
        f"\n[dim]{profiler.total_instantiations()} instantiations of "
        f"{len(lines)} quantifier(s), "
        f"{len(profiler.instantiation_graph.nodes)} in the causality graph[/dim]"
    )


if __name__ == "__main__":
    app()
