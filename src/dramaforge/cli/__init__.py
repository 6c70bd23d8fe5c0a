"""DramaForge CLI package."""

from dramaforge.cli.main import app, main

__all__ = ["app", "main"]
