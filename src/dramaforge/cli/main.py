"""Main CLI entry point."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console

from dramaforge import __version__
from dramaforge.cli.commands.config import config_app
from dramaforge.cli.commands.drama import drama_app
from dramaforge.cli.commands.generate import generate_app
from dramaforge.cli.commands.task import task_app
from dramaforge.cli.handler import format_json
from dramaforge.config import (
    DramaForgeSettings,
    configure_logging,
    get_logger,
    get_settings,
    set_settings,
)
from dramaforge.exceptions import DramaForgeError

logger = get_logger(__name__)
console = Console()

app = typer.Typer(
    name="dramaforge",
    help="Generate short dramas: content graph, storyboards, images and videos",
    pretty_exceptions_enable=False,
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)

app.add_typer(drama_app, name="drama")
app.add_typer(config_app, name="config")
app.add_typer(generate_app, name="generate")
app.add_typer(task_app, name="task")


@app.command()
def version(
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Show DramaForge version."""
    if json_output:
        print(format_json({"name": "DramaForge", "version": __version__}))
    else:
        console.print(f"DramaForge v{__version__}")


@app.callback()
def main_callback(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file (YAML, TOML or JSON)",
            envvar="DRAMAFORGE_CONFIG",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose logging (INFO level)"),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Enable debug logging", envvar="DRAMAFORGE_DEBUG"),
    ] = False,
) -> None:
    """Configure global options."""
    overrides: dict[str, Any] = {}
    if debug:
        overrides = {"log_level": "DEBUG", "debug": True}
    elif verbose:
        overrides = {"log_level": "INFO"}

    if config is None and not overrides:
        return

    try:
        if config is not None:
            settings = DramaForgeSettings.from_sources(config_file=config, overrides=overrides)
        else:
            settings = get_settings().model_copy(update=overrides)
    except (DramaForgeError, FileNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from e

    set_settings(settings)
    configure_logging(settings)
    logger.debug("Settings loaded", config_file=str(config) if config else None)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
