"""Command line interface for n8n team workflows."""

import os
from typing import Optional

import typer
from rich.console import Console

from core.config import Settings
from core.logging import configure_logging

__version__ = "0.3.0"

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}

# CLI App
app = typer.Typer(
    name="n8n-workflows",
    help="Validate, scaffold, import/export and submit n8n team workflows.",
    no_args_is_help=True,
    context_settings=CONTEXT_SETTINGS,
)

# Console for rich output; findings are never wrapped mid-line
console = Console(soft_wrap=True)


def get_settings() -> Settings:
    """Load settings from the environment, exiting with a message when they are invalid."""
    try:
        return Settings.load_from_env()
    except RuntimeError as e:
        console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(1)


def logging_settings() -> Settings:
    """Settings for the logging sinks only; configuration errors surface in the commands that need it."""
    try:
        return Settings.load_from_env()
    except RuntimeError:
        return Settings(log_level=os.getenv("LOG_LEVEL", "warning"), audit_log_path=os.getenv("AUDIT_LOG_PATH"))


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Diagnostic log level (defaults to LOG_LEVEL or 'warning')",
    ),
) -> None:
    settings = logging_settings()
    configure_logging(log_level or settings.log_level, settings.audit_log_path)


# Import commands to register them
from cli.commands import scaffold, submit, transfer, validate  # noqa: E402, F401


@app.command()
def version() -> None:
    """Show the tool version."""
    console.print(f"n8n-workflows v{__version__}")


if __name__ == "__main__":
    app()
