"""
CLI for inspecting notebook snapshots with Rich output.

A snapshot is the JSON dump of a ``Notebook`` model
(``notebook.model_dump_json()``).
"""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from notebook_doc.graph import cell_dependency_graph
from notebook_doc.notebook import Notebook
from notebook_doc.utils import format_rich_output, get_cell_kind_icon, truncate_text


console = Console()
logger = logging.getLogger(__name__)


def load_snapshot(path: str) -> Notebook:
    """Read a notebook snapshot from a JSON file."""
    logger.debug("Loading notebook snapshot from %s", path)
    return Notebook.model_validate_json(Path(path).read_text())


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(verbose: bool):
    """notebook-doc: inspect notebook structure, dependencies and outputs."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("path", type=click.Path(exists=True))
@click.option("--evaluable-only", "-e", is_flag=True, help="Skip cells the evaluator does not run")
def graph(path: str, evaluable_only: bool):
    """Show the predecessor of every cell."""
    nb = load_snapshot(path)
    deps = cell_dependency_graph(nb, cell_filter=(lambda c: c.evaluable) if evaluable_only else None)

    table = Table(title=nb.name)
    table.add_column("Section", style="dim")
    table.add_column("Kind")
    table.add_column("Cell", style="bold")
    table.add_column("Depends on", style="cyan")

    table.add_row("", get_cell_kind_icon(nb.setup_cell.kind), nb.setup_cell.id, "-")
    for cell, section in nb.cells_with_section():
        if cell.id not in deps:
            continue
        label = section.name if section.parent_id is None else f"{section.name} (branch)"
        table.add_row(label, get_cell_kind_icon(cell.kind), cell.id, deps[cell.id])

    console.print(table)


@main.command()
@click.argument("path", type=click.Path(exists=True))
@click.argument("cell_id")
def outputs(path: str, cell_id: str):
    """Show the outputs of a cell, oldest first."""
    nb = load_snapshot(path)
    cell = nb.fetch_cell(cell_id)
    if cell is None:
        console.print(f"[red]Cell not found:[/red] {cell_id}")
        sys.exit(1)

    if cell.source:
        console.print(f"[dim]Source:[/dim] {truncate_text(cell.source.splitlines()[0], 60)}")

    if not cell.outputs:
        console.print("[yellow]No outputs[/yellow]")
        return

    for counter, value in reversed(cell.outputs):
        console.print(Panel(
            format_rich_output(value),
            title=f"[dim]#{counter} {value.type}[/dim]",
            title_align="left",
            border_style="blue",
        ))


@main.command()
@click.argument("path", type=click.Path(exists=True))
@click.argument("hash")
def asset(path: str, hash: str):
    """Find the asset bundle with the given hash."""
    nb = load_snapshot(path)
    info = nb.find_asset_info(hash)
    if info is None:
        console.print(f"[yellow]No asset with hash {hash}[/yellow]")
        sys.exit(1)

    console.print(f"[green]Hash:[/green] {info.hash}")
    console.print(f"[dim]Archive:[/dim] {info.archive_path}")
    console.print(f"[dim]JS path:[/dim] {info.js_path}")


if __name__ == "__main__":
    main()
