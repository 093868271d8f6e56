"""Main CLI entry point for textsweep."""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .collaborators import ConsoleNotifier
from .config import Config
from .filesystem import FileSystemDocumentStore
from .replace.models import ReplaceCorpus, ReplaceDocument, ReplaceSelected
from .search.errors import TextSweepError
from .search.file_search import DocumentFilter
from .search.models import MatchRegistry, SearchOptions
from .search.search_manager import SearchManager

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

console = Console()
app = typer.Typer(
    name="textsweep",
    help="textsweep - find and replace across many text documents",
    no_args_is_help=True
)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", "-v", help="Show version and exit")
) -> None:
    """
    textsweep: search a directory of text documents and rewrite the matches.
    """
    if version:
        from . import __version__
        console.print(f"textsweep version {__version__}")
        raise typer.Exit()

    config = Config()
    logging.basicConfig(level=config.get_log_level(), format=LOG_FORMAT)


def _build_options(config: Config, regex: bool, case_sensitive: bool, whole_word: bool, multiline: bool) -> SearchOptions:
    defaults = config.get_search_options()
    return SearchOptions(
        match_case=case_sensitive or defaults.match_case,
        whole_word=whole_word or defaults.whole_word,
        use_regex=regex or defaults.use_regex,
        multiline=multiline or defaults.multiline
    )


def _build_filter(config: Config, ext, folder, exclude_folder, include, exclude) -> DocumentFilter:
    document_filter = DocumentFilter.from_options(
        extensions=ext,
        include_folders=folder,
        exclude_folders=exclude_folder,
        include_patterns=include,
        exclude_patterns=exclude
    )
    return document_filter.merged_with(config.get_default_filter())


def _parse_indices(value: Optional[str]) -> List[int]:
    if not value:
        return []
    try:
        return [int(part.strip()) for part in value.split(",") if part.strip()]
    except ValueError:
        raise typer.BadParameter("--select expects comma-separated match numbers")


def _print_registry(registry: MatchRegistry, threshold: int) -> None:
    if not registry:
        console.print("[yellow]No matches found[/yellow]")
    else:
        table = Table(show_header=True, header_style="bold blue")
        table.add_column("#", justify="right")
        table.add_column("Document")
        table.add_column("Line", justify="right")
        table.add_column("Col", justify="right")
        table.add_column("Match")

        for index, record in registry.indexed():
            table.add_row(
                str(index),
                escape(record.document),
                str(record.line + 1),
                str(record.col + 1),
                escape(record.match_text.replace("\n", "\\n"))
            )
        console.print(table)

        documents = len(registry.documents())
        console.print(f"[green]Found {len(registry)} matches in {documents} documents[/green]")
        if registry.truncated:
            console.print("[yellow]Results were truncated; raise max_results to see more[/yellow]")

    if registry.failures:
        console.print(f"[red]{escape(registry.failure_summary(threshold))}[/red]")


@app.command()
def search(
    query: str = typer.Argument(..., help="Text or regular expression to search for"),
    root: Path = typer.Argument(Path("."), help="Directory to search"),
    regex: bool = typer.Option(False, "--regex", "-r", help="Treat the query as a regular expression"),
    case_sensitive: bool = typer.Option(False, "--case-sensitive", "-c", help="Match case"),
    whole_word: bool = typer.Option(False, "--whole-word", "-w", help="Match whole words only"),
    multiline: bool = typer.Option(False, "--multiline", "-m", help="Let regular expressions span lines"),
    ext: Optional[str] = typer.Option(None, "--ext", help="Comma-separated file extensions"),
    folder: Optional[str] = typer.Option(None, "--folder", help="Only search these folders"),
    exclude_folder: Optional[str] = typer.Option(None, "--exclude-folder", help="Skip these folders"),
    include: Optional[str] = typer.Option(None, "--include", help="Glob patterns to include"),
    exclude: Optional[str] = typer.Option(None, "--exclude", help="Glob patterns to exclude"),
    max_results: Optional[int] = typer.Option(None, "--max", help="Maximum number of matches to show")
) -> None:
    """Search documents below ROOT."""
    config = Config()
    if max_results is not None:
        config.override("max_results", max_results)

    options = _build_options(config, regex, case_sensitive, whole_word, multiline)
    document_filter = _build_filter(config, ext, folder, exclude_folder, include, exclude)
    manager = SearchManager(FileSystemDocumentStore(root), config)

    try:
        with console.status("[bold green]Searching..."):
            registry = asyncio.run(manager.scan(query, options, document_filter=document_filter))
    except TextSweepError as e:
        console.print(f"[red]Error: {escape(e.message)}[/red]")
        raise typer.Exit(1)

    _print_registry(registry, manager.failure_summary_threshold)


@app.command()
def replace(
    query: str = typer.Argument(..., help="Text or regular expression to search for"),
    replacement: str = typer.Argument(..., help="Replacement text; $1, $& etc. expand with --regex"),
    root: Path = typer.Argument(Path("."), help="Directory to rewrite"),
    regex: bool = typer.Option(False, "--regex", "-r", help="Treat the query as a regular expression"),
    case_sensitive: bool = typer.Option(False, "--case-sensitive", "-c", help="Match case"),
    whole_word: bool = typer.Option(False, "--whole-word", "-w", help="Match whole words only"),
    multiline: bool = typer.Option(False, "--multiline", "-m", help="Let regular expressions span lines"),
    ext: Optional[str] = typer.Option(None, "--ext", help="Comma-separated file extensions"),
    folder: Optional[str] = typer.Option(None, "--folder", help="Only search these folders"),
    exclude_folder: Optional[str] = typer.Option(None, "--exclude-folder", help="Skip these folders"),
    include: Optional[str] = typer.Option(None, "--include", help="Glob patterns to include"),
    exclude: Optional[str] = typer.Option(None, "--exclude", help="Glob patterns to exclude"),
    select: Optional[str] = typer.Option(None, "--select", help="Comma-separated match numbers to replace"),
    document: Optional[str] = typer.Option(None, "--document", help="Replace every match in this document only"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation")
) -> None:
    """Replace matches of QUERY with REPLACEMENT in documents below ROOT."""
    config = Config()
    options = _build_options(config, regex, case_sensitive, whole_word, multiline)
    document_filter = _build_filter(config, ext, folder, exclude_folder, include, exclude)
    indices = _parse_indices(select)

    if indices and document:
        console.print("[red]Error: --select and --document cannot be combined[/red]")
        raise typer.Exit(1)

    manager = SearchManager(FileSystemDocumentStore(root), config, notifier=ConsoleNotifier(console))

    # --select numbers refer to the capped listing `search` shows; the other
    # modes must see every match
    max_results = None if indices else 0

    try:
        registry = asyncio.run(manager.scan(
            query, options, document_filter=document_filter, max_results=max_results
        ))
    except TextSweepError as e:
        console.print(f"[red]Error: {escape(e.message)}[/red]")
        raise typer.Exit(1)

    if not registry:
        console.print("[yellow]No matches found[/yellow]")
        return

    if indices:
        mode = ReplaceSelected(indices)
        target = f"{len(indices)} selected matches"
    elif document:
        mode = ReplaceDocument(document)
        target = f"all matches in {document}"
    else:
        mode = ReplaceCorpus()
        target = f"all {len(registry)} matches in {len(registry.documents())} documents"

    if config.confirm_destructive_actions() and not yes:
        if not typer.confirm(f"Replace {target}?"):
            console.print("[yellow]Replacement cancelled[/yellow]")
            return

    try:
        outcome = asyncio.run(manager.dispatch(mode, registry, replacement, options))
    except TextSweepError as e:
        console.print(f"[red]Error: {escape(e.message)}[/red]")
        raise typer.Exit(1)

    for warning in outcome.warnings:
        console.print(f"[yellow]Warning: {escape(warning)}[/yellow]")

    console.print(
        f"Replaced {outcome.total_replacements} matches in "
        f"{outcome.documents_modified} documents ({outcome.duration_ms} ms)"
    )
    if outcome.skipped:
        console.print(f"[yellow]{outcome.skipped} matches skipped because the content changed[/yellow]")
    for error in outcome.errors:
        console.print(f"[red]{escape(error)}[/red]")
    if not outcome.succeeded:
        raise typer.Exit(1)


@app.command()
def validate(
    query: str = typer.Argument(..., help="Text or regular expression to check"),
    regex: bool = typer.Option(False, "--regex", "-r", help="Treat the query as a regular expression"),
    case_sensitive: bool = typer.Option(False, "--case-sensitive", "-c", help="Match case"),
    whole_word: bool = typer.Option(False, "--whole-word", "-w", help="Match whole words only"),
    multiline: bool = typer.Option(False, "--multiline", "-m", help="Let regular expressions span lines")
) -> None:
    """Check whether QUERY is a usable search pattern."""
    config = Config()
    options = _build_options(config, regex, case_sensitive, whole_word, multiline)
    manager = SearchManager(FileSystemDocumentStore(), config)

    if manager.validate(query, options):
        console.print("[green]✓ Pattern is valid[/green]")
    else:
        console.print("[red]✗ Pattern is not valid[/red]")
        raise typer.Exit(1)


@app.command()
def init() -> None:
    """Write a default ~/.textsweeprc."""
    config = Config()
    try:
        path = config.create_default_config()
    except OSError as e:
        console.print(f"[red]Error writing configuration: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✅ Default configuration written to {escape(str(path))}[/green]")


if __name__ == "__main__":
    app()
