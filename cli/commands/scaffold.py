"""Scaffold command."""

from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape

from cli import app, console, get_settings
from core.scaffold import Category, PackageExistsError, Starter, create_package


@app.command()
def scaffold(
    name: str = typer.Argument(..., help="Workflow name, e.g. 'Slack Alerts'"),
    description: str = typer.Option("", "--description", "-d", help="Brief description"),
    author: Optional[str] = typer.Option(
        None, "--author", "-a", help="Author name (defaults to git config user.name)"
    ),
    category: Category = typer.Option(Category.CUSTOM, "--category", "-c", help="Workflow category"),
    starter: Optional[Starter] = typer.Option(
        None, "--starter", "-s", help="Starter graph (defaults to one matching the category)"
    ),
    workflows_dir: Optional[Path] = typer.Option(
        None, "--workflows-dir", help="Directory holding workflow packages (defaults to WORKFLOWS_DIR)"
    ),
) -> None:
    """Create a new workflow package with documentation and auth templates."""
    target = workflows_dir or Path(get_settings().workflows_dir)

    try:
        package_dir = create_package(
            target,
            name,
            description=description,
            author=author,
            category=category,
            starter=starter,
        )
    except (ValueError, PackageExistsError) as e:
        console.print(f"[red]Error:[/] {escape(str(e))}")
        raise typer.Exit(1)

    console.print(f"[green]✓[/] Workflow package created: [cyan]{escape(str(package_dir))}[/]")
    console.print()
    console.print("  [dim]Next steps:[/]")
    console.print("  1. Fill in README.md and auth-config.yml")
    console.print(f"  2. Import into n8n: n8n-workflows import {escape(str(package_dir))}")
    console.print(f"  3. Export after editing: n8n-workflows export <workflow-id> --name {escape(package_dir.name)}")
    console.print(f"  4. Validate: n8n-workflows validate {escape(str(package_dir))}")
    console.print(f"  5. Submit: n8n-workflows submit {escape(package_dir.name)}")
