"""Submit command."""

from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape

from cli import app, console, get_settings
from core.report import render_report
from core.submit import SubmissionError, Submitter


@app.command()
def submit(
    name: str = typer.Argument(..., help="Package directory name under the workflows directory"),
    draft: bool = typer.Option(False, "--draft", help="Open the pull request as a draft"),
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Continue without asking when there are uncommitted changes"
    ),
    project_root: Optional[Path] = typer.Option(
        None, "--project-root", help="Repository root (defaults to the current directory)"
    ),
) -> None:
    """Validate a workflow and open a pull request for team review."""
    settings = get_settings()
    submitter = Submitter(project_root or Path.cwd(), workflows_dir=settings.workflows_dir)

    try:
        changes = submitter.check_prerequisites()
        if changes and not yes:
            console.print("[yellow]You have uncommitted changes:[/]")
            for line in changes:
                console.print(f"  {escape(line)}")
            if not typer.confirm("Continue anyway?", default=False):
                console.print("Submission cancelled")
                raise typer.Exit(0)
        result = submitter.submit(name, draft=draft)
    except SubmissionError as e:
        if e.report is not None:
            render_report(e.report, console)
        console.print(f"[red]Error:[/] {escape(str(e))}")
        raise typer.Exit(1)

    console.print(f"[green]✓[/] Pull request created: [cyan]{escape(result.pr_url)}[/]")
    console.print(f"  [dim]Branch:[/] {escape(result.branch)}")
    console.print()
    console.print("  [dim]If changes are needed:[/]")
    console.print(f"  1. Export the updated workflow: n8n-workflows export <workflow-id> --name {escape(name)}")
    console.print("  2. Commit and push to the same branch")
