"""Saturn CLI entry point."""

from saturn.cli.app import app

if __name__ == "__main__":
    app()
