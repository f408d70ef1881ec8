"""Validate command."""

from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape

from cli import CONTEXT_SETTINGS, app, console, logging_settings
from core.logging import configure_logging
from core.report import render_report
from core.validator import PackageNotFoundError, validate_package


@app.command()
def validate(
    ctx: typer.Context,
    path: Optional[Path] = typer.Argument(
        None,
        help="Workflow package directory",
        show_default=False,
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Print the report as JSON instead of the formatted listing",
    ),
) -> None:
    """Validate n8n workflow structure and content for team standards.

    Exits 0 when the package has no errors, 1 otherwise.
    """
    if path is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(1)

    try:
        report = validate_package(path)
    except PackageNotFoundError as e:
        console.print(f"[red]Error:[/] {escape(str(e))}")
        raise typer.Exit(1)

    if json_output:
        typer.echo(report.model_dump_json(indent=2))
    else:
        render_report(report, console)
        if report.valid:
            console.print()
            console.print(f"Ready for submission. Run: [cyan]n8n-workflows submit {escape(path.name)}[/]")
        else:
            console.print()
            console.print("Fix the errors above and run validation again.")

    raise typer.Exit(0 if report.valid else 1)


# Standalone entry point: `validate-workflow <directory>`
standalone = typer.Typer(add_completion=False, context_settings=CONTEXT_SETTINGS)
standalone.command()(validate)


def main() -> None:
    settings = logging_settings()
    configure_logging(settings.log_level, settings.audit_log_path)
    standalone()
