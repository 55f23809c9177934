"""SymbolRanges CLI - symbol declaration and reference facts for Java sources."""
from contextlib import nullcontext
from pathlib import Path
from typing import List, Optional

import typer
from rich.markup import escape
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from symbolranges.analyzer.driver import UnitDriver, UnitReport, check_settings, iter_java_files
from symbolranges.config import __version__, get_config
from symbolranges.emitter.facts import FACT_KINDS, FactEmitter
from symbolranges.emitter.jsonl import JsonlFactWriter
from symbolranges.emitter.store import SqliteFactStore
from symbolranges.utils.safe_console import SafeConsole

app = typer.Typer(
    name="symbolranges",
    help="Emit symbol declaration and reference facts for Java sources",
    add_completion=False
)
console = SafeConsole()

OUTPUT_FORMATS = ("jsonl", "sqlite")


def _load_config():
    try:
        return get_config()
    except ValueError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)


def _resolve_settings(config, offset: Optional[int], fail_policy: Optional[str]):
    """Options over config, validated before anything is opened for writing."""
    offset = offset if offset is not None else config.added_index_offset
    fail_policy = fail_policy if fail_policy is not None else config.fail_policy
    try:
        check_settings(offset, fail_policy)
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)
    return offset, fail_policy


def _open_sink(output_format: str, output: Path, keep_in_memory: bool) -> FactEmitter:
    if output_format == "sqlite":
        return SqliteFactStore(output, keep_in_memory=keep_in_memory)
    return JsonlFactWriter(output, keep_in_memory=keep_in_memory)


def _print_summary(reports: List[UnitReport], counts):
    """Summary table of walks, facts and diagnostics."""
    table = Table(title="Scan Summary", show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right", style="green")

    table.add_row("Files scanned", str(len(reports)))
    table.add_row("Types", str(sum(r.types_seen for r in reports)))
    table.add_row("Bodies walked", str(sum(r.methods_walked for r in reports)))
    for kind in FACT_KINDS:
        if counts.get(kind):
            table.add_row(kind, str(counts[kind]))
    table.add_row("Warnings", str(counts.get("diagnostic:warning", 0)))
    table.add_row("Unresolved references", str(sum(len(r.failures) for r in reports)))
    table.add_row("Files with syntax errors", str(sum(1 for r in reports if r.parse_errors)))
    table.add_row("Unreadable files", str(sum(1 for r in reports if r.unreadable)))
    table.add_row("Files nested too deeply", str(sum(1 for r in reports if r.too_deep)))

    console.print(table)


def _print_failures(reports: List[UnitReport]):
    table = Table(title="Unresolved References", show_header=True, header_style="bold red")
    table.add_column("File", style="cyan", no_wrap=False)
    table.add_column("Line", style="green", justify="right")
    table.add_column("Symbol", style="yellow")
    table.add_column("Method", style="magenta")

    for report in reports:
        for failure in report.failures:
            table.add_row(escape(report.path), str(failure.range.line), escape(failure.identifier),
                          escape(f"{failure.class_name} {failure.method_name}"))
        if report.unreadable:
            table.add_row(escape(report.path), "-", "-", "[red]unreadable[/red]")
        if report.too_deep:
            table.add_row(escape(report.path), "-", "-", "[red]nested too deeply[/red]")

    console.print(table)


@app.command()
def scan(
    paths: List[str] = typer.Argument(..., help="Java files or directories to scan"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Output file (default: SYMBOLRANGES_OUTPUT)"),
    output_format: str = typer.Option("jsonl", "--format", "-f", help="Output format: 'jsonl' or 'sqlite'"),
    fail_policy: Optional[str] = typer.Option(None, "--fail-policy", help="What an unresolved symbol aborts: 'method' or 'unit'"),
    offset: Optional[int] = typer.Option(None, "--offset", help="First index for variables declared in marked regions"),
    show_diagnostics: bool = typer.Option(False, "--show-diagnostics", help="Print warnings and failures after the scan"),
    progress: bool = typer.Option(True, "--progress/--no-progress", help="Show a progress bar"),
):
    """Walk every Java file under PATHS and write symbol facts."""
    config = _load_config()
    offset, fail_policy = _resolve_settings(config, offset, fail_policy)

    if output_format not in OUTPUT_FORMATS:
        console.print(f"[bold red]Error:[/bold red] Unknown format {escape(output_format)!r} "
                      f"(expected one of {', '.join(OUTPUT_FORMATS)})")
        raise typer.Exit(1)

    try:
        files = list(iter_java_files(paths, config.excluded_dirs))
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)

    if not files:
        console.print("[yellow]No Java files found.[/yellow]")
        return

    output_path = Path(output or config.output_path)
    if output is None and output_format == "sqlite":
        output_path = output_path.with_suffix(".db")

    sink = _open_sink(output_format, output_path, keep_in_memory=show_diagnostics)
    driver = UnitDriver(sink, config, added_index_offset=offset, fail_policy=fail_policy)
    reports: List[UnitReport] = []

    if progress:
        progress_ctx = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            console=console,
            transient=True
        )
    else:
        progress_ctx = nullcontext()

    with sink, progress_ctx as bar:
        if progress:
            task = bar.add_task("[cyan]Walking sources...", total=len(files))
        for file_path in files:
            reports.append(driver.process_file(file_path))
            if progress:
                bar.advance(task)

    _print_summary(reports, sink.counts())

    if show_diagnostics:
        console.print()
        console.print_diagnostics(sink.diagnostics, min_severity="warning")

    failed = [r for r in reports if not r.ok]
    if failed:
        console.print()
        _print_failures(failed)
        console.print(f"\n[bold red]✗ {len(failed)} file(s) failed[/bold red]")
        console.print(f"Facts written to {escape(str(output_path))}")
        raise typer.Exit(1)

    console.print(f"\n[green]✓ Facts written to {escape(str(output_path))}[/green]")


@app.command()
def show(
    file: str = typer.Argument(..., help="Java source file"),
    method: Optional[str] = typer.Option(None, "--method", "-m", help="Only facts inside this method ('<init>' for constructors)"),
    kind: Optional[str] = typer.Option(None, "--kind", "-k", help="Only facts of this kind"),
    offset: Optional[int] = typer.Option(None, "--offset", help="First index for variables declared in marked regions"),
    show_diagnostics: bool = typer.Option(False, "--show-diagnostics", help="Also print diagnostics"),
):
    """Print the facts for one file."""
    config = _load_config()
    file_path = Path(file)

    if not file_path.is_file():
        console.print(f"[bold red]Error:[/bold red] File does not exist: {escape(str(file_path))}")
        raise typer.Exit(1)
    if kind is not None and kind not in FACT_KINDS:
        console.print(f"[bold red]Error:[/bold red] Unknown fact kind {escape(kind)!r}")
        console.print(f"Known kinds: {', '.join(FACT_KINDS)}")
        raise typer.Exit(1)

    offset, fail_policy = _resolve_settings(config, offset, "method")
    emitter = FactEmitter()
    driver = UnitDriver(emitter, config, added_index_offset=offset, fail_policy=fail_policy)
    report = driver.process_file(file_path)

    facts = emitter.facts
    if kind is not None:
        facts = [f for f in facts if f.kind == kind]
    if method is not None:
        facts = [f for f in facts if f.attributes.get("method_name") == method]

    table = Table(title=f"Facts: {escape(str(file_path))}", show_header=True, header_style="bold magenta")
    table.add_column("Line", style="green", justify="right")
    table.add_column("Kind", style="yellow")
    table.add_column("Text", style="cyan")
    table.add_column("Detail", style="white", no_wrap=False)

    for fact in facts:
        attributes = fact.attributes
        if "index" in attributes:
            detail = f"{attributes['method_name']} #{attributes['index']} ({attributes['variable_type']})"
        else:
            detail = attributes.get("qualified_name") or attributes.get("class_name") or ""
        table.add_row(str(fact.line), fact.kind, escape(fact.text), escape(str(detail)))

    console.print(table)
    console.print(f"[dim]{len(facts)} fact(s)[/dim]")

    if show_diagnostics:
        console.print_diagnostics(emitter.diagnostics, show_path=False)

    if not report.ok:
        raise typer.Exit(1)


@app.command()
def stats(
    db: str = typer.Argument(..., help="SQLite database written by 'scan --format sqlite'"),
):
    """Display fact counts from a SQLite store."""
    db_path = Path(db)

    if not db_path.is_file():
        console.print(f"[bold red]Error:[/bold red] Database does not exist: {escape(str(db_path))}")
        raise typer.Exit(1)

    store = SqliteFactStore(db_path)
    counts = store.stats()
    store.close()

    table = Table(title=f"Fact Statistics: {escape(str(db_path))}", show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right", style="green")

    table.add_row("Files", str(counts["files"]))
    table.add_row("Total facts", str(counts["total_facts"]))
    for kind in FACT_KINDS:
        table.add_row(kind, str(counts.get(kind, 0)))
    table.add_row("Warnings", str(counts["warnings"]))
    table.add_row("Failures", str(counts["failures"]))

    console.print(table)


def _version_callback(value: bool):
    if value:
        console.print(f"symbolranges {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(False, "--version", callback=_version_callback, is_eager=True,
                                 help="Show the version and exit"),
):
    """SymbolRanges - symbol facts for Java, with modified-region indexing."""
    pass


if __name__ == "__main__":
    app()
