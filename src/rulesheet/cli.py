import typer
import os
from pathlib import Path
from typing import List, Optional
import logging
from rich.console import Console
from rich.markdown import Markdown
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .duplicates import DuplicateDetector, LinkCheck, PendingUploads
from .errors import InputValidationError, RulesheetError
from .models import UploadedPDF
from .processing_service import PDF_CONTENT_TYPE, SummaryService
from .renderer import render_markdown
from .search import SearchSession
from .utils import time_ago

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize Typer app
app = typer.Typer(
    name="rulesheet",
    help="Turn board game rulebook PDFs into rules summaries",
    add_completion=False
)

# Initialize console for rich output
console = Console()


@app.command()
def summarize(
    pdf_paths: List[str] = typer.Argument(..., help="Rulebook PDF file(s), merged into one summary"),
    bgg_link: Optional[str] = typer.Option(None, "--bgg-link", help="BoardGameGeek link for the game"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging")
):
    """Create a summary from one or more rulebook PDFs"""

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    files = []
    for pdf_path in pdf_paths:
        if not os.path.exists(pdf_path):
            console.print(f"[red]Error: PDF file not found: {pdf_path}[/red]")
            raise typer.Exit(1)
        files.append(UploadedPDF(
            filename=Path(pdf_path).name,
            content=Path(pdf_path).read_bytes(),
            content_type=PDF_CONTENT_TYPE if pdf_path.lower().endswith(".pdf") else None,
        ))

    service = SummaryService()
    detector = DuplicateDetector(service.store)
    pending = PendingUploads(detector)
    for upload in files:
        pending.add(upload.filename)
    for warning in pending.warnings():
        for existing in warning.summaries:
            console.print(f"[yellow]A summary already exists for {warning.filename}: {existing.game_title} ({existing.id})[/yellow]")
    for existing in LinkCheck(detector).check(bgg_link or ""):
        console.print(f"[yellow]A summary with this BGG link already exists: {existing.game_title} ({existing.id})[/yellow]")

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console
        ) as progress:
            progress.add_task("Generating summary...", total=None)
            summary_id = service.create_summary(files, bgg_link=bgg_link)
    except InputValidationError as e:
        console.print(f"[red]Error: {str(e)}[/red]")
        raise typer.Exit(1)
    except RulesheetError as e:
        logger.error(f"Summary failed: {str(e)}", exc_info=True)
        console.print("[red]Something went wrong while generating the summary. Please try again.[/red]")
        raise typer.Exit(1)

    record = service.get_summary(summary_id)
    console.print(f"[green]✓ Created summary {summary_id}: {record.game_title}[/green]")


@app.command(name="list")
def list_summaries(
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Filter by game title")
):
    """List stored summaries, newest first"""
    records = SummaryService().list_summaries(search=search)
    if not records:
        console.print("[dim]No summaries found.[/dim]")
        return

    table = Table(title="Summaries")
    table.add_column("ID", style="cyan")
    table.add_column("Game", style="bold")
    table.add_column("Files")
    table.add_column("Created", style="magenta")
    for record in records:
        table.add_row(
            record.id,
            record.game_title,
            record.original_filename,
            time_ago(record.created_at) if record.created_at else "",
        )
    console.print(table)


@app.command()
def show(
    summary_id: str = typer.Argument(..., help="Summary id"),
    raw: bool = typer.Option(False, "--raw", help="Print the markdown source")
):
    """Print a summary"""
    try:
        record = SummaryService().get_summary(summary_id)
    except RulesheetError as e:
        console.print(f"[red]Error: {str(e)}[/red]")
        raise typer.Exit(1)

    if raw:
        console.print(record.markdown, markup=False, highlight=False)
    else:
        console.print(Markdown(record.markdown))
        console.print(f"[dim]Generated from {record.original_filename}[/dim]")


@app.command()
def search(
    summary_id: str = typer.Argument(..., help="Summary id"),
    term: str = typer.Argument(..., help="Text to look for")
):
    """Count matches of a term in a rendered summary"""
    try:
        record = SummaryService().get_summary(summary_id)
    except RulesheetError as e:
        console.print(f"[red]Error: {str(e)}[/red]")
        raise typer.Exit(1)

    session = SearchSession(render_markdown(record.markdown))
    result = session.update(term)
    console.print(f"[bold]{result.match_count}[/bold] match(es) for '{term}' in {record.game_title}")


@app.command()
def duplicates(
    filename: Optional[List[str]] = typer.Option(None, "--filename", help="Rulebook filename, repeat for several files"),
    bgg_link: Optional[str] = typer.Option(None, "--bgg-link", help="BoardGameGeek link")
):
    """Look for existing summaries of files or a BGG link"""
    detector = DuplicateDetector(SummaryService().store)
    found = False
    if filename:
        pending = PendingUploads(detector)
        for name in filename:
            pending.add(name)
        for warning in pending.warnings():
            found = True
            for record in warning.summaries:
                console.print(f"[yellow]{record.id}[/yellow]  {record.game_title}  [dim]{record.original_filename}[/dim]")
    if bgg_link:
        for record in LinkCheck(detector).check(bgg_link):
            found = True
            console.print(f"[yellow]{record.id}[/yellow]  {record.game_title}  [dim]{record.bgg_link}[/dim]")

    if not found:
        console.print("[green]No existing summaries found.[/green]")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", help="Host to bind the server to"),
    port: int = typer.Option(8000, "--port", help="Port to bind the server to")
):
    """Start the FastAPI server"""

    console.print(f"[green]Starting server on {host}:{port}[/green]")

    import uvicorn
    uvicorn.run("src.rulesheet.api:app", host=host, port=port, reload=True)


if __name__ == "__main__":
    app()
