"""Text generation task commands."""

from __future__ import annotations

import json
from typing import Annotated

import typer
from rich.console import Console

from dramaforge.cli.handler import CLIHandler, format_json

console = Console()

task_app = typer.Typer(
    name="task",
    help="Inspect text generation tasks",
    no_args_is_help=True,
)


@task_app.command("show")
def show_task(
    task_id: Annotated[str, typer.Argument(help="Task ID")],
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Show the status, progress and result of a task."""
    handler = CLIHandler(console)
    try:
        task = handler.run(lambda backend: backend.get_task_status(task_id))
    except Exception as e:
        handler.handle_error(e, json_output)
        return

    if json_output:
        print(format_json(task))
        return
    console.print(f"[bold cyan]Task {task.id}[/bold cyan] ({task.type.value})")
    console.print(f"Status: {task.status.value}  Progress: {task.progress}%")
    if task.message:
        console.print(task.message)
    if task.error:
        console.print(f"[red]{task.error}[/red]")
    if task.result:
        result = json.loads(task.result)
        if isinstance(result, dict) and "total" in result:
            console.print(f"Result: {result['total']} item(s)")
