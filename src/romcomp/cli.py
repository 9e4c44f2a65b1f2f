"""Command-line interface for romcomp."""

import logging
import shutil
import signal
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.filesize import decimal
from rich.logging import RichHandler
from rich.table import Table

from .config import RomcompConfig, create_sample_config, load_config
from .conversion.scheduler import CancellationSignal, ConversionScheduler, ConversionSummary
from .error_handling import (
    ConfigurationError,
    UnrecognizedRomError,
    check_dependencies,
    handle_error,
)
from .formats.capability import PLATFORM_NAMES, RomCapability
from .formats.classifier import classify
from .formats.tools import required_tools
from .search import discover

console = Console()
logger = logging.getLogger(__name__)


def setup_logging(
    *,
    verbose: bool = False,
    config: RomcompConfig | None = None,
) -> None:
    """Set up logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO

    # Clean up existing handlers first to prevent resource leaks
    cleanup_logging()

    show_path = level == logging.DEBUG
    handlers: list[logging.Handler] = [
        RichHandler(console=console, rich_tracebacks=True, show_path=show_path),
    ]

    if config and config.log_dir:
        config.log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config.log_dir / "romcomp.log")
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            ),
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )


def cleanup_logging() -> None:
    """Clean up logging handlers to prevent ResourceWarnings."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        if isinstance(handler, logging.FileHandler):
            handler.close()
            root_logger.removeHandler(handler)


def _format_size(size: int) -> str:
    if size < 0:
        return f"-{decimal(-size)}"
    return decimal(size)


def print_summary(summary: ConversionSummary) -> None:
    """Print the totals of a finished run."""
    table = Table(title="Compression finished")
    table.add_column("")
    table.add_column("Value", justify="right")

    table.add_row("Processed files", str(summary.processed))
    table.add_row("Skipped files", str(summary.skipped))
    table.add_row("Total", str(summary.total))
    table.add_row("Input file size", _format_size(summary.input_bytes))
    table.add_row("Output file size", _format_size(summary.output_bytes))
    table.add_row(
        "Saved",
        f"{_format_size(summary.bytes_saved)} ({summary.percent_saved:.2f}%)",
    )

    console.print(table)


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Configuration file path",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable additional debug messages")
@click.pass_context
def cli(ctx: click.Context, config: Path | None, verbose: bool) -> None:
    """romcomp - compress ROMs with the best tool for each format."""
    try:
        ctx.ensure_object(dict)
        loaded_config = load_config(config)
        ctx.obj["config"] = loaded_config
        ctx.obj["verbose"] = verbose

        setup_logging(verbose=verbose, config=loaded_config)
    except (OSError, ValueError) as e:
        config_error = ConfigurationError(
            f"Failed to load configuration: {e}",
            config_path=config,
        )
        console.print(f"[red]Configuration Error:[/red] {config_error}")
        sys.exit(1)


@cli.command()
@click.argument("location", type=click.Path(path_type=Path))
@click.argument(
    "rom_format",
    metavar="FORMAT",
    type=click.Choice(list(PLATFORM_NAMES), case_sensitive=False),
)
@click.option(
    "--threads",
    "-t",
    type=click.IntRange(min=1),
    help="How many conversions run in parallel (default: CPU count)",
)
@click.option(
    "--remove",
    "-R",
    is_flag=True,
    help="Delete input files after compression",
)
@click.option(
    "--flatten",
    "-f",
    is_flag=True,
    help="Move outputs up through directories they would be alone in (requires --remove)",
)
@click.pass_context
def compress(
    ctx: click.Context,
    location: Path,
    rom_format: str,
    threads: int | None,
    remove: bool,
    flatten: bool,
) -> None:
    """Compress the ROM at LOCATION, or every ROM below it, for the FORMAT platform."""
    config: RomcompConfig = ctx.obj["config"]
    target = PLATFORM_NAMES[rom_format.lower()]

    updates: dict[str, object] = {
        "remove_after_compression": remove or config.remove_after_compression,
        "flatten": flatten or config.flatten,
    }
    if threads:
        updates["threads"] = threads
    config = config.model_copy(update=updates)

    if not location.exists():
        console.print(f"[red]The path {location} doesn't exist.[/red]")
        sys.exit(1)
    location = location.resolve()

    if config.flatten and not config.remove_after_compression:
        console.print("[red]--flatten can only be used in conjunction with --remove.[/red]")
        sys.exit(1)

    if config.flatten and not location.is_dir():
        console.print("[red]--flatten can only be used if the input location is a directory[/red]")
        sys.exit(1)

    missing = check_dependencies(target)
    if missing:
        for error in missing:
            error.display_to_user()
        sys.exit(2)

    if location.is_file():
        capability = classify(location, verify_tracks=config.verify_cue_tracks)
        if capability is None or target not in capability:
            UnrecognizedRomError(location, rom_format.upper()).display_to_user()
            sys.exit(1)

    cancel = CancellationSignal()

    def signal_handler(signum: int, frame: object) -> None:
        logger.info("Received signal %s, stopping after running conversions", signum)
        cancel.fire()

    previous_handlers = {
        sig: signal.signal(sig, signal_handler) for sig in (signal.SIGINT, signal.SIGTERM)
    }

    try:
        console.print(
            f"Start ROM compression with {config.threads} simultaneous processes",
        )
        with ConversionScheduler(
            config,
            root=location if location.is_dir() else None,
            cancel=cancel,
        ) as scheduler:
            for path, capability in discover(
                location,
                target,
                verify_tracks=config.verify_cue_tracks,
            ):
                if cancel.is_set():
                    break
                scheduler.submit(path, capability)
        summary = scheduler.summary()
    finally:
        for sig, handler in previous_handlers.items():
            signal.signal(sig, handler)

    print_summary(summary)
    if cancel.is_set():
        console.print("[yellow]Compression was interrupted[/yellow]")


@cli.command()
@click.argument(
    "rom_format",
    metavar="[FORMAT]",
    required=False,
    type=click.Choice(list(PLATFORM_NAMES), case_sensitive=False),
)
def check(rom_format: str | None) -> None:
    """Show which external compression tools are available."""
    if rom_format:
        platforms = PLATFORM_NAMES[rom_format.lower()]
    else:
        platforms = RomCapability.PLATFORMS

    table = Table()
    table.add_column("Tool", no_wrap=True)
    table.add_column("Used for")
    table.add_column("Status")

    for tool in required_tools(platforms):
        location = shutil.which(tool.binary)
        status = f"[green]✓[/green] {location}" if location else "[red]✗ Not found[/red]"
        table.add_row(tool.binary, tool.description, status)

    console.print(table)

    if check_dependencies(platforms):
        sys.exit(2)


@cli.command()
@click.option(
    "--path",
    "-p",
    type=click.Path(path_type=Path),
    default=Path.home() / ".config" / "romcomp" / "config.toml",
    help="Path for the configuration file",
)
def init_config(path: Path) -> None:
    """Create a sample configuration file."""
    try:
        create_sample_config(path)
        console.print(f"[green]Created sample configuration at {path}[/green]")
    except OSError as e:
        handle_error(e)
        sys.exit(1)


if __name__ == "__main__":
    cli()
