"""Main entry point for the dramaforge CLI when run as a module."""

from dramaforge.cli.main import main

if __name__ == "__main__":  # pragma: no cover
    main()
