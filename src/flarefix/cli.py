"""Flare Fixer CLI."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from flarefix.errors import DocumentLoadError, PageAccessError, WriteError
from flarefix.logging_config import setup_logging
from flarefix.models import (
    EventKind,
    PageOutcome,
    PipelineEvent,
    ReconstructionStrategy,
    RepairMode,
)
from flarefix.pipeline import (
    EventBus,
    PageReconstructor,
    PageRepairPipeline,
    PDFRenderer,
    TextQualityClassifier,
)

app = typer.Typer(
    name="flarefix",
    help="Repair PDF pages whose text layer is missing or garbled",
    add_completion=False,
)
console = Console()

OUTCOME_STYLES = {
    PageOutcome.ACCEPTED: "green",
    PageOutcome.RECOVERED: "cyan",
    PageOutcome.UNRECOVERED: "red",
    PageOutcome.SKIPPED: "red",
}


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, help="Log level (default from settings)"),
) -> None:
    """Configure logging for every command."""
    setup_logging(log_level)


def _build_pipeline(strategy: Optional[ReconstructionStrategy] = None) -> PageRepairPipeline:
    events = EventBus()
    events.subscribe(_print_progress)
    return PageRepairPipeline(
        reconstructor=PageReconstructor(strategy=strategy),
        events=events,
    )


def _print_progress(event: PipelineEvent) -> None:
    if event.kind != EventKind.PAGE_COMPLETED:
        return
    outcome = PageOutcome(event.data["outcome"])
    style = OUTCOME_STYLES[outcome]
    console.print(
        f"[dim]Page {event.page_index + 1}/{event.page_count}:[/dim] "
        f"[{style}]{outcome.value}[/{style}]"
    )


def _fail(exc: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {exc}")
    raise typer.Exit(code=1)


@app.command()
def repair(
    pdf_path: Path = typer.Argument(..., help="Path to PDF file to repair"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Output PDF (default: <input>_fixed.pdf)"
    ),
    strategy: Optional[ReconstructionStrategy] = typer.Option(
        None, help="How recovered pages are rebuilt"
    ),
    only_repaired: bool = typer.Option(False, help="Write only the rebuilt pages"),
    split_pages: bool = typer.Option(False, help="Also write each rebuilt page to its own PDF"),
) -> None:
    """Replace missing or garbled page text with OCR text and write a new PDF."""
    output = output or pdf_path.with_name(f"{pdf_path.stem}_fixed.pdf")
    console.print(f"[bold blue]Repairing:[/bold blue] {pdf_path}")

    pipeline = _build_pipeline(strategy)
    try:
        result = pipeline.repair_to_file(pdf_path, output, only_repaired=only_repaired)
        artifact = result.artifact
        if split_pages and not artifact.is_empty:
            for position, source_index in zip(artifact.repaired_positions, artifact.repaired_indices):
                page_path = pdf_path.with_name(f"{pdf_path.stem}_page_{source_index + 1:04d}.pdf")
                pipeline.renderer.write_page(artifact.pdf_bytes, position, page_path)
    except (DocumentLoadError, WriteError) as exc:
        _fail(exc)

    if result.unrecovered_pages:
        pages = ", ".join(str(i + 1) for i in result.unrecovered_pages)
        console.print(f"[yellow]No text recovered on page(s): {pages}[/yellow]")
    if artifact.is_empty:
        console.print("[yellow]Nothing to write[/yellow]")
    else:
        console.print(
            f"[green]Wrote {output}[/green] "
            f"[dim]({len(result.repaired_pages)} page(s) rebuilt)[/dim]"
        )


@app.command()
def extract(
    pdf_path: Path = typer.Argument(..., help="Path to PDF file"),
) -> None:
    """Extract order number, date and recipient from a PDF."""
    pipeline = _build_pipeline()
    try:
        result = pipeline.extract_fields(pdf_path)
    except DocumentLoadError as exc:
        _fail(exc)

    fields = result.fields
    table = Table(title=f"Fields in {pdf_path.name}")
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Order number", fields.order_number or "[dim]-[/dim]")
    table.add_row("Order date", fields.order_date or "[dim]-[/dim]")
    table.add_row("Recipient", fields.recipient_name or "[dim]-[/dim]")
    table.add_row("Address", fields.recipient_address or "[dim]-[/dim]")
    console.print(table)


@app.command()
def text(
    pdf_path: Path = typer.Argument(..., help="Path to PDF file"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write text here"),
) -> None:
    """Print or save the repaired text of every page."""
    pipeline = _build_pipeline()
    try:
        result = pipeline.run(pdf_path, mode=RepairMode.TEXT_ONLY)
        if output is not None:
            pipeline.renderer.write_text(result.artifact.text, output)
    except (DocumentLoadError, WriteError) as exc:
        _fail(exc)

    if output is None:
        console.print(result.artifact.text, markup=False, highlight=False)
    else:
        console.print(f"[green]Wrote {output}[/green]")


@app.command()
def check(
    pdf_path: Path = typer.Argument(..., help="Path to PDF file"),
) -> None:
    """Show which pages would be sent to OCR, without running it."""
    classifier = TextQualityClassifier()
    try:
        opened = PDFRenderer().open(pdf_path)
    except DocumentLoadError as exc:
        _fail(exc)

    table = Table(title=f"Text quality: {pdf_path.name}")
    table.add_column("Page", justify="right")
    table.add_column("Verdict")
    table.add_column("Readability", justify="right")
    table.add_column("Words", justify="right")

    with opened:
        for index in range(opened.page_count):
            try:
                page = opened.page(index)
            except PageAccessError:
                table.add_row(str(index + 1), "[red]unreadable[/red]", "-", "-")
                continue
            if not page.has_text:
                table.add_row(str(page.page_number), "[yellow]no text[/yellow]", "-", "0")
                continue
            result = classifier.classify(page.text)
            style = "red" if result.is_garbled else "green"
            table.add_row(
                str(page.page_number),
                f"[{style}]{result.verdict.value}[/{style}]",
                f"{result.readability_ratio:.2f}",
                str(result.word_count),
            )

    console.print(table)


if __name__ == "__main__":
    app()
