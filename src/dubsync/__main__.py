"""Entry point for running dubsync as a module."""

from .cli import app


def main() -> None:
    """Main entry point for the dubsync CLI application."""
    app()


if __name__ == "__main__":
    main()
