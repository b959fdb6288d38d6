"""
Blobtext CLI using Typer.

Command-line interface for extracting text from local files.
"""

import asyncio
import mimetypes
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .config import BlobtextSettings
from .errors import ExtractionError
from .log import configure_logging
from .models import ExtractionOptions
from .pipeline import ExtractorFactory

app = typer.Typer(
    name="blobtext",
    help="Blobtext: extract text and structure from documents, data files and source code",
    add_completion=False,
)

console = Console()

# Types the mimetypes table commonly lacks
mimetypes.add_type("text/markdown", ".md")
mimetypes.add_type("text/markdown", ".markdown")
mimetypes.add_type("application/vnd.openxmlformats-officedocument.wordprocessingml.document", ".docx")


def version_callback(value: bool):
    """Show version and exit."""
    if value:
        console.print(f"Blobtext version {__version__}")
        raise typer.Exit()


def _load_config(ctx: typer.Context, config_file: Optional[Path]) -> BlobtextSettings:
    """Load settings and configure logging; --log-level overrides the config level."""
    if config_file:
        config = BlobtextSettings.load_from_yaml(config_file)
    else:
        config = BlobtextSettings.load()

    configure_logging((ctx.obj or {}).get("log_level") or config.log_level, config.log_file)
    return config


@app.callback()
def main(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (DEBUG, INFO, WARNING, ERROR); default from config",
    ),
):
    """Blobtext: text extraction for stored blobs"""
    ctx.obj = {"log_level": log_level}


@app.command()
def extract(
    ctx: typer.Context,
    path: Path = typer.Argument(
        ...,
        help="File to extract text from",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        resolve_path=True,
    ),
    mime_type: Optional[str] = typer.Option(
        None,
        "--mime-type",
        "-m",
        help="MIME type (default: guessed from the file name)",
    ),
    max_length: Optional[int] = typer.Option(
        None,
        "--max-length",
        min=1,
        help="Truncate content to this many characters",
    ),
    preserve_formatting: bool = typer.Option(
        False,
        "--preserve-formatting",
        help="Keep original layout instead of normalizing whitespace",
    ),
    structure: bool = typer.Option(
        False,
        "--structure",
        "-s",
        help="Extract headings and sections",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the full result as JSON",
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Config file path",
    ),
):
    """
    Extract text from a file.
    """
    try:
        config = _load_config(ctx, config_file)

        factory = ExtractorFactory(settings=config)
        defaults = config.extraction.to_options()
        options = ExtractionOptions(
            preserve_formatting=preserve_formatting or defaults.preserve_formatting,
            max_length=max_length or defaults.max_length,
            extract_structure=structure or defaults.extract_structure,
            encoding=defaults.encoding,
        )

        if mime_type is None:
            mime_type, _ = mimetypes.guess_type(path.name)

        result = asyncio.run(
            factory.extract_text_from_file(path.read_bytes(), path.name, mime_type, options)
        )
    except ExtractionError as e:
        console.print(f"[bold red]Extraction failed:[/] {e}")
        sys.exit(1)
    except Exception as e:
        console.print(f"[bold red]Error:[/] {e}")
        sys.exit(1)

    if as_json:
        typer.echo(result.model_dump_json(indent=2))
        return

    info = result.extraction_info
    status = "[green]complete[/]" if info.is_complete else "[yellow]partial[/]"
    console.print(Panel(
        f"[cyan]Type:[/] {result.metadata.file_type}    "
        f"[cyan]Method:[/] {info.method}    "
        f"[cyan]Status:[/] {status}    "
        f"[cyan]Time:[/] {info.processing_time:.1f} ms",
        title=path.name,
    ))
    for message in info.errors or []:
        console.print(f"[red]error:[/] {message}")
    for message in info.warnings or []:
        console.print(f"[yellow]warning:[/] {message}")

    if result.metadata.structure and result.metadata.structure.headings:
        console.print("[bold cyan]Headings:[/]")
        for heading in result.metadata.structure.headings:
            console.print(f"  {heading}", markup=False)
        console.print()

    console.print(result.content, markup=False, highlight=False)


@app.command()
def formats(
    ctx: typer.Context,
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Config file path",
    ),
):
    """
    List registered extractors and the formats they handle.
    """
    try:
        factory = ExtractorFactory(settings=_load_config(ctx, config_file))
        stats = factory.get_stats()
    except Exception as e:
        console.print(f"[bold red]Error:[/] {e}")
        sys.exit(1)

    table = Table(title="Registered Extractors", show_header=True, header_style="bold cyan")
    table.add_column("Extractor", style="cyan")
    table.add_column("MIME Types", style="green")
    table.add_column("Extensions", style="magenta")

    for info in stats["extractors"]:
        table.add_row(
            info.name,
            "\n".join(info.supported_mime_types),
            " ".join(info.supported_extensions),
        )

    console.print()
    console.print(table)
    console.print(
        f"\n{stats['total_extractors']} extractors, "
        f"{len(stats['supported_mime_types'])} MIME types, "
        f"{len(stats['supported_extensions'])} extensions"
    )


@app.command()
def init_config(
    output: Path = typer.Option(
        Path.cwd() / "blobtext.yaml",
        "--output",
        "-o",
        help="Output config file path",
    ),
    user: bool = typer.Option(
        False,
        "--user",
        help="Create user config at ~/.config/blobtext/config.yaml",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite an existing file without asking",
    ),
):
    """
    Initialize a configuration file with defaults.
    """
    if user:
        output = Path.home() / ".config/blobtext/config.yaml"

    if output.exists() and not force:
        if not typer.confirm(f"Config file exists at {output}. Overwrite?"):
            console.print("[yellow]Cancelled[/]")
            raise typer.Exit()

    try:
        BlobtextSettings().save_to_yaml(output)
    except Exception as e:
        console.print(f"[bold red]Error:[/] {e}")
        sys.exit(1)

    console.print(f"[bold green]✓ Config file created:[/] {output}")


if __name__ == "__main__":
    app()
