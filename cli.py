#!/usr/bin/env python3
"""
pdfsqueeze - CLI Interface

Compress PDFs with a preset, custom settings, or a target size.

Usage:
    pdfsqueeze compress input.pdf --preset high
    pdfsqueeze compress input.pdf --quality 40 --dpi 150 --grayscale
    pdfsqueeze compress input.pdf --target 800KB --output small.pdf
    pdfsqueeze batch *.pdf --preset medium --output-dir out/
"""

import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import (
    Progress,
    SpinnerColumn,
    TextColumn,
    BarColumn,
    TaskProgressColumn,
    TimeRemainingColumn,
)
from rich.table import Table

from pdfsqueeze import (
    CompressionEngine,
    CompressionError,
    CompressionRequest,
    inspect_document,
)
from pdfsqueeze.config import (
    DEFAULT_CUSTOM_DPI,
    DEFAULT_CUSTOM_QUALITY,
    DEFAULT_PRESET,
    DEFAULT_STRIP_METADATA,
    DPI_OPTIONS,
    PRESETS,
)
from pdfsqueeze.utils import format_size, get_output_path, parse_size

console = Console()
log_console = Console(stderr=True)


def configure_logging(verbose: bool):
    """Route library logging through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=log_console, show_path=False)],
        force=True,
    )


def create_progress_bar():
    """Create a rich progress bar."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeRemainingColumn(),
        console=console,
    )


def build_request(
    preset: Optional[str],
    quality: Optional[int],
    dpi: Optional[int],
    target: Optional[str],
    strip_metadata: Optional[bool],
    grayscale: bool,
) -> CompressionRequest:
    """
    Turn CLI options into a CompressionRequest.

    --target wins over --quality/--dpi, which win over --preset.
    """
    try:
        if target:
            return CompressionRequest.target_size(
                parse_size(target),
                dpi=dpi or DEFAULT_CUSTOM_DPI,
                strip_metadata=DEFAULT_STRIP_METADATA if strip_metadata is None else strip_metadata,
            )

        if quality is not None or dpi is not None:
            return CompressionRequest.custom(
                quality=DEFAULT_CUSTOM_QUALITY if quality is None else quality,
                dpi=dpi or DEFAULT_CUSTOM_DPI,
                strip_metadata=DEFAULT_STRIP_METADATA if strip_metadata is None else strip_metadata,
                grayscale=grayscale,
            )

        request = CompressionRequest.from_preset(preset or DEFAULT_PRESET, grayscale=grayscale)
        if strip_metadata is not None:
            request = dataclasses.replace(request, strip_metadata=strip_metadata)
        return request
    except ValueError as e:
        raise click.UsageError(str(e))


def settings_options(func):
    """Compression settings shared by compress and batch."""
    options = [
        click.option(
            "--preset", "-p",
            type=click.Choice(list(PRESETS)),
            help=f"Compression preset (default: {DEFAULT_PRESET})",
        ),
        click.option(
            "--quality", "-q",
            type=click.IntRange(1, 100),
            help="Custom JPEG quality 1-100",
        ),
        click.option(
            "--dpi",
            type=click.IntRange(min=1),
            help=f"Custom rasterization DPI (common: {', '.join(map(str, DPI_OPTIONS))})",
        ),
        click.option(
            "--target", "-t",
            help="Target file size (e.g., 5MB, 800KB, 1.5GB)",
        ),
        click.option(
            "--strip-metadata/--keep-metadata",
            default=None,
            help="Clear title, author and other document info",
        ),
        click.option(
            "--grayscale", "-g",
            is_flag=True,
            help="Convert rasterized pages to grayscale",
        ),
        click.option(
            "--json-output", "-j",
            is_flag=True,
            help="Output results as JSON",
        ),
        click.option(
            "--verbose", "-v",
            is_flag=True,
            help="Enable verbose output",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group(invoke_without_command=True)
@click.pass_context
def cli(ctx):
    """pdfsqueeze - Compress PDFs locally."""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--output", "-o",
    type=click.Path(),
    help="Output file path (default: input_compressed.pdf)",
)
@settings_options
def compress(
    input_file: str,
    output: Optional[str],
    preset: Optional[str],
    quality: Optional[int],
    dpi: Optional[int],
    target: Optional[str],
    strip_metadata: Optional[bool],
    grayscale: bool,
    json_output: bool,
    verbose: bool,
):
    """Compress a PDF file."""
    configure_logging(verbose)
    request = build_request(preset, quality, dpi, target, strip_metadata, grayscale)

    input_path = Path(input_file)
    output_path = get_output_path(input_path, output)
    data = input_path.read_bytes()

    if not json_output:
        console.print(Panel(
            f"[bold blue]pdfsqueeze[/bold blue]\n"
            f"Input: {input_path.name} ({format_size(len(data))})\n"
            f"Mode: {request.mode.value}"
            + (f" ({format_size(request.target_bytes)})" if request.target_bytes else ""),
            title="Compression Job",
        ))

    engine = CompressionEngine()
    engine.warm_up()

    try:
        if json_output:
            result = engine.compress(data, request)
        else:
            with create_progress_bar() as progress:
                task = progress.add_task("Initializing...", total=100)

                def progress_callback(completed: int, total: int, label: str):
                    progress.update(task, completed=completed, total=total, description=label)

                result = engine.compress(data, request, progress_callback)
                progress.update(task, completed=100, total=100, description="Complete")
    except CompressionError as e:
        if json_output:
            click.echo(json.dumps({"success": False, "error": str(e)}, indent=2))
        else:
            console.print(f"\n[bold red]Error: {e}[/bold red]")
        sys.exit(1)

    output_path.write_bytes(result.data)

    if json_output:
        click.echo(json.dumps({
            "success": True,
            "output_path": str(output_path),
            "compression": result.to_dict(),
        }, indent=2))
        return

    table = Table(title="Compression Results")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Original Size", format_size(result.original_size))
    table.add_row("Compressed Size", format_size(result.compressed_size))
    table.add_row("Reduction", f"{result.compression_ratio * 100:.1f}%")
    table.add_row("Strategy", result.strategy_used.value)
    table.add_row("Quality", str(result.quality) if result.quality is not None else "-")
    table.add_row("Pages", str(result.page_count))
    if result.target_bytes is not None:
        table.add_row("Target Size", format_size(result.target_bytes))
        table.add_row("Target Achieved", "Yes" if result.target_achieved else "No")
        table.add_row("Attempts", str(result.iterations))

    console.print(table)

    if not result.target_achieved:
        console.print(
            f"\n[bold yellow]Target not reached: smallest achievable size is "
            f"{format_size(result.compressed_size)}[/bold yellow]"
        )
    console.print(f"\n[bold green]Saved to: {output_path}[/bold green]")


@cli.command()
@click.argument("input_files", nargs=-1, type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--output-dir", "-d",
    type=click.Path(file_okay=False),
    help="Output directory (default: same as input)",
)
@settings_options
def batch(
    input_files: tuple,
    output_dir: Optional[str],
    preset: Optional[str],
    quality: Optional[int],
    dpi: Optional[int],
    target: Optional[str],
    strip_metadata: Optional[bool],
    grayscale: bool,
    json_output: bool,
    verbose: bool,
):
    """Batch compress multiple PDF files, one at a time."""
    configure_logging(verbose)

    if not input_files:
        console.print("[red]No input files specified[/red]")
        sys.exit(1)

    request = build_request(preset, quality, dpi, target, strip_metadata, grayscale)
    output_directory = Path(output_dir) if output_dir else None

    if output_directory:
        output_directory.mkdir(parents=True, exist_ok=True)

    input_paths = [Path(f) for f in input_files]
    documents = [(path.name, path.read_bytes()) for path in input_paths]

    engine = CompressionEngine()
    engine.warm_up()

    if json_output:
        items = engine.compress_batch(documents, request)
    else:
        with create_progress_bar() as progress:
            overall_task = progress.add_task(
                f"Processing {len(documents)} files...",
                total=100,
            )

            def progress_callback(completed: int, total: int, label: str):
                progress.update(overall_task, completed=completed, total=total, description=label)

            items = engine.compress_batch(documents, request, progress_callback)

    results = []
    for input_path, item in zip(input_paths, items):
        entry = item.to_dict()
        if item.success:
            if output_directory:
                output_path = output_directory / f"{input_path.stem}_compressed.pdf"
            else:
                output_path = get_output_path(input_path, None)
            output_path.write_bytes(item.result.data)
            entry["output_path"] = str(output_path)
        results.append(entry)

    success_count = sum(1 for item in items if item.success)
    fail_count = len(items) - success_count

    if json_output:
        click.echo(json.dumps({
            "total": len(items),
            "success": success_count,
            "failed": fail_count,
            "results": results,
        }, indent=2))
    else:
        for item in items:
            if item.success:
                marker = "" if item.result.target_achieved else " [yellow](target not reached)[/yellow]"
                console.print(
                    f"[green]{item.name}[/green]: "
                    f"{format_size(item.result.original_size)} -> "
                    f"{format_size(item.result.compressed_size)}{marker}"
                )
            else:
                console.print(f"[red]{item.name}: {item.error}[/red]")

        console.print(f"\n[bold]Batch Complete[/bold]")
        console.print(f"[green]Success: {success_count}[/green]")
        if fail_count > 0:
            console.print(f"[red]Failed: {fail_count}[/red]")

    if success_count == 0:
        sys.exit(1)


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--json-output", "-j",
    is_flag=True,
    help="Output as JSON",
)
def analyze(input_file: str, json_output: bool):
    """Show page count and estimated sizes for each preset."""
    input_path = Path(input_file)

    try:
        info = inspect_document(input_path.read_bytes())
    except CompressionError as e:
        if json_output:
            click.echo(json.dumps({"error": str(e)}, indent=2))
        else:
            console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if json_output:
        click.echo(json.dumps(info.to_dict(), indent=2))
        return

    table = Table(title=f"PDF Analysis: {input_path.name}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Current Size", format_size(info.size_bytes))
    table.add_row("Pages", str(info.page_count))
    table.add_row("Encrypted", "Yes" if info.is_encrypted else "No")
    for level, size in info.estimates().items():
        table.add_row(f"Est. {PRESETS[level]['label']}", f"~{format_size(size)}")

    console.print(table)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
