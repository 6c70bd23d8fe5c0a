"""Shared CLI plumbing: backend lifecycle, error display and JSON output."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import typer
from pydantic_core import to_jsonable_python
from rich.console import Console

from dramaforge.config import get_logger, get_settings
from dramaforge.exceptions import DramaForgeError, ValidationError
from dramaforge.services import DramaBackend, create_backend

logger = get_logger(__name__)

T = TypeVar("T")


def format_json(data: Any) -> str:
    return json.dumps(to_jsonable_python(data), indent=2, ensure_ascii=False)


class CLIHandler:
    """Runs backend operations for a command and reports the outcome."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def run(self, operation: Callable[[DramaBackend], Awaitable[T]]) -> T:
        """Run ``operation`` against a fresh backend on a new event loop.

        The backend is closed afterwards even when the operation fails.
        """

        async def _run() -> T:
            backend = create_backend(get_settings())
            try:
                return await operation(backend)
            finally:
                await backend.aclose()

        return asyncio.run(_run())

    def handle_error(
        self, error: Exception, json_output: bool = False, exit_code: int = 1
    ) -> None:
        """Print an error and exit.

        Raises:
            typer.Exit: Always.
        """
        logger.error("Command failed", error=str(error), error_type=type(error).__name__)
        if json_output:
            payload: dict[str, Any] = {"success": False, "error": str(error)}
            if isinstance(error, DramaForgeError):
                payload["error"] = error.message
                payload["hint"] = error.hint
            print(format_json(payload))
        elif isinstance(error, ValidationError):
            self.console.print(f"[red]Validation Error: {error.message}[/red]")
        elif isinstance(error, DramaForgeError):
            self.console.print(f"[red]Error: {error.message}[/red]")
            if error.hint:
                self.console.print(f"[yellow]Hint: {error.hint}[/yellow]")
        else:
            self.console.print(f"[red]Error: {error}[/red]")
        raise typer.Exit(exit_code)

    def handle_success(self, message: str, data: Any = None, json_output: bool = False) -> None:
        if json_output:
            # Plain print keeps ANSI codes out of machine-readable output
            print(format_json({"success": True, "message": message, "data": data}))
        else:
            self.console.print(f"[green]{message}[/green]")
