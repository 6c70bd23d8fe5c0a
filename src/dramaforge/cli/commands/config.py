"""AI service configuration commands."""

from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from dramaforge.cli.handler import CLIHandler, format_json
from dramaforge.models.ai_config import AIConfigCreate, ServiceType

console = Console()

config_app = typer.Typer(
    name="config",
    help="Manage AI service configurations",
    no_args_is_help=True,
)


def _mask(api_key: str) -> str:
    if len(api_key) <= 8:
        return "*" * len(api_key)
    return f"{api_key[:4]}...{api_key[-4:]}"


@config_app.command("add")
def add_config(
    name: Annotated[str, typer.Argument(help="Configuration name")],
    service_type: Annotated[
        ServiceType, typer.Option("--type", "-t", help="Capability served")
    ],
    provider: Annotated[str, typer.Option("--provider", "-p", help="Provider identifier")],
    base_url: Annotated[str, typer.Option("--base-url", help="Provider API root")],
    api_key: Annotated[
        str, typer.Option("--api-key", envvar="DRAMAFORGE_API_KEY", help="API key")
    ] = "",
    model: Annotated[
        list[str] | None, typer.Option("--model", "-m", help="Model name (repeatable)")
    ] = None,
    endpoint: Annotated[str, typer.Option("--endpoint", help="Submission path")] = "",
    query_endpoint: Annotated[
        str, typer.Option("--query-endpoint", help="Status path, may contain {taskId}")
    ] = "",
    priority: Annotated[int, typer.Option("--priority")] = 0,
    inactive: Annotated[bool, typer.Option("--inactive", help="Store but do not use")] = False,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Add a provider configuration; empty endpoints get provider defaults."""
    handler = CLIHandler(console)
    models = model or []
    request = AIConfigCreate(
        name=name,
        service_type=service_type,
        provider=provider,
        base_url=base_url,
        api_key=api_key,
        model=models if len(models) > 1 else (models[0] if models else ""),
        endpoint=endpoint,
        query_endpoint=query_endpoint,
        priority=priority,
        is_active=not inactive,
    )
    try:
        config = handler.run(lambda backend: backend.create_config(request))
    except Exception as e:
        handler.handle_error(e, json_output)
        return
    handler.handle_success(
        f"Added {config.service_type.value} configuration {config.id} ({config.provider})",
        config.model_dump(mode="json", exclude={"api_key"}),
        json_output,
    )


@config_app.command("list")
def list_configs(
    service_type: Annotated[
        ServiceType | None, typer.Option("--type", "-t", help="Filter by capability")
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """List provider configurations."""
    handler = CLIHandler(console)
    try:
        configs = handler.run(
            lambda backend: backend.list_configs(service_type.value if service_type else None)
        )
    except Exception as e:
        handler.handle_error(e, json_output)
        return

    if json_output:
        print(format_json([c.model_dump(mode="json", exclude={"api_key"}) for c in configs]))
        return
    if not configs:
        console.print("[yellow]No AI configurations found.[/yellow]")
        return
    table = Table(title="AI Configurations")
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Type")
    table.add_column("Provider")
    table.add_column("Models")
    table.add_column("Priority", justify="right")
    table.add_column("Active")
    table.add_column("Key")
    for config in configs:
        table.add_row(
            str(config.id),
            config.name,
            config.service_type.value,
            config.provider,
            ", ".join(config.models),
            str(config.priority),
            "yes" if config.is_active else "no",
            _mask(config.api_key),
        )
    console.print(table)
