"""CLI command groups."""

from dramaforge.cli.commands.config import config_app
from dramaforge.cli.commands.drama import drama_app
from dramaforge.cli.commands.generate import generate_app
from dramaforge.cli.commands.task import task_app

__all__ = ["config_app", "drama_app", "generate_app", "task_app"]
