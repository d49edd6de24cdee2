import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import get_config_path, load_config, update_config
from .decorators import handle_cli_errors
from .fields import FIELDS
from .filters import FILTER_CONFIGS, FILTER_MODES, apply_filter_mode, deserialize_filters, process_filters
from .models import Book, Library
from .operators import OPERATORS
from .rules import RuleEvaluator
from .service import MagicShelfService
from .serialization import dumps_rule_group
from .utils import load_books, load_libraries, load_rule_group

# Initialize Rich Console
console = Console()

# Configure logging to use Rich's RichHandler
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True)]
)
logger = logging.getLogger(__name__)

app = typer.Typer(help="Evaluate magic shelf rules and sidebar filters over book collections")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose mode"),
):
    """
    magicshelf - rule-based smart shelves and faceted filters for book collections.

    Books are read from JSON documents shaped like the Booklore API
    (camelCase keys, nested metadata).
    """
    cli_config = load_config().cli
    if not cli_config.color:
        console.no_color = True
    if verbose or cli_config.verbose:
        logging.getLogger("magicshelf").setLevel(logging.DEBUG)
        if verbose:
            console.print("[bold green]Verbose mode enabled.[/bold green]")


def _service() -> MagicShelfService:
    return MagicShelfService(config=load_config().engine)


def _check_mode(mode: Optional[str]) -> None:
    if mode is not None and mode not in FILTER_MODES:
        raise ValueError(f"Unknown filter mode '{mode}'. Use one of: {', '.join(FILTER_MODES)}")


def _parse_filters(filter_param: Optional[str], mode: str) -> Dict[str, List]:
    filters = process_filters(deserialize_filters(filter_param))
    kept = apply_filter_mode(mode, filters)
    if filters and not kept:
        console.print(f"[yellow]'{mode}' mode allows a single selected value; filters cleared[/yellow]")
    return kept


def _books_table(books: List[Book], title: str, limit: int) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="cyan")
    table.add_column("Title", style="green")
    table.add_column("Authors", style="blue")
    table.add_column("Series", style="magenta")
    table.add_column("Status", style="yellow")

    for book in books[:limit]:
        meta = book.metadata
        authors = ", ".join((meta.authors or [])[:2]) if meta else ""
        if meta and len(meta.authors or []) > 2:
            authors += f" +{len(meta.authors) - 2} more"
        series = ""
        if meta and meta.series_name:
            series = meta.series_name
            if meta.series_number is not None:
                series += f" #{meta.series_number:g}"
        title_text = (meta.title if meta and meta.title else "?")[:50]
        table.add_row(str(book.id), title_text, authors, series, book.status)

    return table


@app.command()
@handle_cli_errors
def evaluate(
    rules_path: Path = typer.Argument(..., help="Rule group file (JSON or YAML)"),
    books_path: Path = typer.Argument(..., help="Books JSON file"),
    select: Optional[str] = typer.Option(None, "--select", "-s", help="JMESPath expression selecting the books list"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Maximum number of books to show"),
    as_json: bool = typer.Option(False, "--json", help="Print matching book ids as JSON"),
):
    """
    Evaluate a magic shelf rule group against a collection of books.

    Examples:
        magicshelf evaluate unread-scifi.yaml books.json
        magicshelf evaluate shelf.json export.json --select "content" --limit 20
    """
    group = load_rule_group(rules_path)
    books = load_books(books_path, select=select)

    matches = RuleEvaluator().filter(books, group)
    logger.debug(f"{len(matches)} of {len(books)} books matched {rules_path}")

    if as_json:
        typer.echo(json.dumps([book.id for book in matches]))
        return

    if not matches:
        console.print("[yellow]No books matched the rules[/yellow]")
        return

    limit = limit or load_config().cli.page_size
    console.print(_books_table(matches, f"Matches: {rules_path.name}", limit))
    console.print(f"\n[dim]{len(matches)} of {len(books)} books matched[/dim]")


@app.command(name="filter")
@handle_cli_errors
def filter_books(
    books_path: Path = typer.Argument(..., help="Books JSON file"),
    filter_param: Optional[str] = typer.Option(None, "--filter", "-f", help='Active filters, e.g. "author:A|B,tag:x"'),
    mode: Optional[str] = typer.Option(None, "--mode", "-m", help="Filter mode: and, or, single"),
    select: Optional[str] = typer.Option(None, "--select", "-s", help="JMESPath expression selecting the books list"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Maximum number of books to show"),
):
    """
    Apply sidebar filters to a collection of books.

    Examples:
        magicshelf filter books.json --filter "author:Frank Herbert"
        magicshelf filter books.json --filter "tag:sci-fi|space,fileSize:<1mb" --mode or
    """
    _check_mode(mode)
    service = _service()
    mode = mode or service.config.default_filter_mode

    books = load_books(books_path, select=select)
    active = _parse_filters(filter_param, mode)
    visible = service.visible_books(books, active_filters=active, mode=mode)

    if not visible:
        console.print("[yellow]No books matched the filters[/yellow]")
        return

    limit = limit or load_config().cli.page_size
    console.print(_books_table(visible, f"Filtered ({mode})", limit))
    console.print(f"\n[dim]{len(visible)} of {len(books)} books shown[/dim]")


@app.command()
@handle_cli_errors
def facets(
    books_path: Path = typer.Argument(..., help="Books JSON file"),
    filter_param: Optional[str] = typer.Option(None, "--filter", "-f", help='Active filters, e.g. "author:A|B,tag:x"'),
    mode: Optional[str] = typer.Option(None, "--mode", "-m", help="Filter mode: and, or, single"),
    dimension: Optional[List[str]] = typer.Option(None, "--dimension", "-d", help="Dimension to show (repeatable)"),
    libraries_path: Optional[Path] = typer.Option(None, "--libraries", help="JSON file of {id, name} libraries"),
    select: Optional[str] = typer.Option(None, "--select", "-s", help="JMESPath expression selecting the books list"),
):
    """
    Show cascading facet counts for the sidebar dimensions.

    Each dimension is counted over the books matching every other active
    filter.

    Examples:
        magicshelf facets books.json --dimension author --dimension fileSize
        magicshelf facets books.json --filter "readStatus:READ" --libraries libraries.json
    """
    _check_mode(mode)
    unknown = [d for d in (dimension or []) if d not in FILTER_CONFIGS]
    if unknown:
        raise ValueError(f"Unknown dimension(s): {', '.join(unknown)}")

    service = _service()
    mode = mode or service.config.default_filter_mode

    books = load_books(books_path, select=select)
    libraries: List[Library] = load_libraries(libraries_path) if libraries_path else []
    active = _parse_filters(filter_param, mode)

    panel = service.facet_panel(books, active, mode, libraries=libraries, dimensions=dimension or None)
    for name, items in panel.items():
        if not items:
            continue
        table = Table(title=FILTER_CONFIGS[name].label)
        table.add_column("Value", style="green")
        table.add_column("ID", style="dim")
        table.add_column("Books", style="cyan", justify="right")
        selected = {str(v) for v in active.get(name, [])}
        for facet in items:
            label = facet.value.name
            if str(facet.value.id) in selected:
                label = f"[bold]{label}[/bold] *"
            table.add_row(label, str(facet.value.id), str(facet.book_count))
        console.print(table)


@app.command()
def fields():
    """
    List the rule field vocabulary and the supported operators.
    """
    table = Table(title="Rule Fields")
    table.add_column("Field", style="cyan")
    table.add_column("Type", style="green")

    for name, spec in FIELDS.items():
        table.add_row(name, spec.type.value)

    console.print(table)
    console.print("\n[bold]Operators:[/bold]")
    console.print("  " + ", ".join(OPERATORS))


@app.command()
@handle_cli_errors
def export(
    rules_path: Path = typer.Argument(..., help="Rule group or magic shelf file (JSON or YAML)"),
    name: Optional[str] = typer.Option(None, "--name", help="Magic shelf name (defaults to the file name)"),
    icon: Optional[str] = typer.Option(None, "--icon", help="Magic shelf icon"),
    output_format: str = typer.Option("yaml", "--format", help="Output format: yaml, json, filter-json"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to file instead of stdout"),
):
    """
    Convert a rule group into a magic shelf definition.

    Examples:
        magicshelf export shelf.json --name "Unread Sci-Fi" --format yaml
        magicshelf export shelf.yaml --format json -o shelf.json
    """
    if output_format not in ("yaml", "json", "filter-json"):
        raise ValueError(f"Unknown format '{output_format}'. Use yaml, json or filter-json")

    group = load_rule_group(rules_path)
    if output_format == "filter-json":
        content = dumps_rule_group(group, indent=2)
    else:
        service = _service()
        shelf_name = name or rules_path.stem
        service.create(shelf_name, group, icon=icon)
        content = service.export_yaml(shelf_name) if output_format == "yaml" else service.export_json(shelf_name)

    if output:
        output.write_text(content)
        console.print(f"[green]Wrote {output_format} to {output}[/green]")
    else:
        typer.echo(content)


@app.command()
@handle_cli_errors
def config(
    show: bool = typer.Option(False, "--show", help="Show current configuration"),
    set_max_facet_items: Optional[int] = typer.Option(None, "--max-facet-items", help="Maximum values listed per facet"),
    set_filter_mode: Optional[str] = typer.Option(None, "--filter-mode", help="Default filter mode (and, or, single)"),
    set_verbose: Optional[bool] = typer.Option(None, "--cli-verbose/--no-cli-verbose", help="Enable verbose output by default"),
    set_color: Optional[bool] = typer.Option(None, "--cli-color/--no-cli-color", help="Enable colored output by default"),
    set_page_size: Optional[int] = typer.Option(None, "--cli-page-size", help="Rows shown by default"),
):
    """
    View or edit magicshelf configuration.

    Configuration is stored at ~/.config/magicshelf/config.json (or ~/.magicshelf/config.json).

    Examples:
        # Show current configuration
        magicshelf config --show

        # Make OR the default filter mode
        magicshelf config --filter-mode or

        # Set multiple values
        magicshelf config --max-facet-items 50 --cli-page-size 25
    """
    has_settings = any([
        set_max_facet_items is not None, set_filter_mode is not None,
        set_verbose is not None, set_color is not None, set_page_size is not None,
    ])

    if show or not has_settings:
        cfg = load_config()
        console.print("\n[bold]magicshelf Configuration[/bold]")
        console.print(f"[dim]Location: {get_config_path()}[/dim]\n")

        console.print("[bold cyan]Engine Settings:[/bold cyan]")
        console.print(f"  Max Facet Items: {cfg.engine.max_facet_items}")
        console.print(f"  Filter Mode:     {cfg.engine.default_filter_mode}")

        console.print("\n[bold cyan]CLI Settings:[/bold cyan]")
        console.print(f"  Verbose:     {cfg.cli.verbose}")
        console.print(f"  Color:       {cfg.cli.color}")
        console.print(f"  Page Size:   {cfg.cli.page_size}\n")
        return

    changes = []
    if set_max_facet_items is not None:
        changes.append(f"Max facet items: {set_max_facet_items}")
    if set_filter_mode is not None:
        changes.append(f"Filter mode: {set_filter_mode}")
    if set_verbose is not None:
        changes.append(f"CLI verbose: {set_verbose}")
    if set_color is not None:
        changes.append(f"CLI color: {set_color}")
    if set_page_size is not None:
        changes.append(f"CLI page size: {set_page_size}")

    update_config(
        max_facet_items=set_max_facet_items,
        default_filter_mode=set_filter_mode,
        cli_verbose=set_verbose,
        cli_color=set_color,
        cli_page_size=set_page_size,
    )

    console.print("[green]Configuration updated:[/green]")
    for change in changes:
        console.print(f"  • {change}")


if __name__ == "__main__":
    app()
