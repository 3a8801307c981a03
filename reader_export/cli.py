"""
Command-line interface for reader-export.

Uses Typer to provide commands for running an export, serving the HTTP API
and listing the external tools found on this host. Supports loading .env
files for configuration overrides.
"""

from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table
import typer
import uvicorn
import yaml

from .config import AppConfig, load_config
from .core.types import ExportFormat, ExportOptions, ProjectSnapshot
from .pipeline import ExportService
from .server.api import create_app
from .utils.logging import setup_logging

app = typer.Typer(add_completion=False)
console = Console()


def _load(config: Path | None, log_level: str | None) -> AppConfig:
    load_dotenv()
    cfg = load_config(str(config) if config else None)
    if log_level:
        cfg.logging.level = log_level
    setup_logging(cfg.logging, cfg.storage.exports_path)
    return cfg


def load_project(path: Path) -> ProjectSnapshot:
    """Read a project snapshot from YAML or JSON."""
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise typer.BadParameter(f"{path} does not contain a project mapping")
    raw.setdefault("id", path.stem)
    try:
        return ProjectSnapshot.from_dict(raw)
    except ValueError as exc:
        raise typer.BadParameter(f"{path}: {exc}") from exc


@app.command()
def export(
    project: Path = typer.Option(..., "--project", "-p", exists=True, readable=True),
    fmt: str = typer.Option(ExportFormat.PDF, "--format", "-f", help="pdf, epub or markdown."),
    toc: bool = typer.Option(True, "--toc/--no-toc", help="Include a table of contents."),
    page_numbers: bool = typer.Option(True, "--page-numbers/--no-page-numbers"),
    config: Path | None = typer.Option(None, "--config", "-c", exists=True),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
    progress: bool = typer.Option(True, "--progress/--no-progress"),
):
    """Export a project file to PDF, EPUB or Markdown.

    Args:
        project: Path to the project snapshot (YAML or JSON)
        fmt: Output format
        toc: Whether to include a table of contents
        page_numbers: Whether PDF pages are numbered
        config: Optional path to YAML config file
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        progress: Whether to show a progress bar
    """
    if fmt not in ExportFormat.ALL:
        raise typer.BadParameter(f"format must be one of {', '.join(ExportFormat.ALL)}")
    cfg = _load(config, log_level)
    snapshot = load_project(project)
    service = ExportService(cfg)
    job_id = service.start_export(snapshot, fmt, ExportOptions(include_toc=toc, show_page_numbers=page_numbers))

    final: dict | None = None
    with Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        disable=not progress,
    ) as bar:
        task = bar.add_task("Starting export...", total=None)
        for state in service.subscribe(job_id):
            bar.update(task, description=state["message"], completed=state["step"], total=state["total"])
            final = state

    if final is None or final.get("error"):
        console.print(f"[red]Export failed:[/red] {final.get('error') if final else 'job lost'}")
        raise typer.Exit(code=1)

    _print_failed(final.get("failed_items") or [])
    console.print(f"Export written: {final['output_path']}")


def _print_failed(failed: list[dict]) -> None:
    if not failed:
        return
    table = Table(title="Items not (fully) included")
    table.add_column("Title")
    table.add_column("Kind")
    table.add_column("Reason", overflow="fold")
    for entry in failed:
        table.add_row(entry.get("title") or entry.get("item_id", ""), entry.get("kind", ""), entry.get("reason", ""))
    console.print(table)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port"),
    config: Path | None = typer.Option(None, "--config", "-c", exists=True),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
):
    """Serve the export HTTP API."""
    cfg = _load(config, log_level)
    uvicorn.run(create_app(ExportService(cfg)), host=host, port=port)


@app.command()
def tools(config: Path | None = typer.Option(None, "--config", "-c", exists=True)):
    """List the external tools discovered on this host."""
    cfg = load_config(str(config) if config else None)
    service = ExportService(cfg)
    table = Table(title="Discovered tools")
    table.add_column("Category")
    table.add_column("Adapters (priority order)")
    for category, names in service.toolbox.describe().items():
        table.add_row(category, ", ".join(names) or "[red]none[/red]")
    console.print(table)


if __name__ == "__main__":
    app()
