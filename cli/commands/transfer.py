"""Import and export commands talking to a running n8n instance."""

import asyncio
from pathlib import Path
from typing import Optional

import httpx
import typer
from rich.markup import escape

from cli import app, console, get_settings
from client.n8n_client import N8nClient
from core.transfer import (
    PackageImportError,
    WorkflowNotFoundError,
    export_workflow,
    import_package,
)


def _report_http_error(e: httpx.HTTPError, base_url: str) -> None:
    if isinstance(e, httpx.HTTPStatusError):
        console.print(
            f"[red]Error:[/] n8n answered {e.response.status_code} for {escape(str(e.request.url))}"
        )
    else:
        console.print(f"[red]Error:[/] n8n is not reachable at {escape(base_url)}: {escape(str(e))}")
        console.print("Start it with: docker compose up")


@app.command("export")
def export_cmd(
    workflow: str = typer.Argument(..., help="Workflow id (or exact name) in n8n"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Package directory name"),
    workflows_dir: Optional[Path] = typer.Option(
        None, "--workflows-dir", help="Directory holding workflow packages (defaults to WORKFLOWS_DIR)"
    ),
) -> None:
    """Export a workflow from n8n into the repository."""
    settings = get_settings()
    target = workflows_dir or Path(settings.workflows_dir)

    async def _export() -> Path:
        async with N8nClient(settings) as client:
            return await export_workflow(client, workflow, target, name=name)

    try:
        package_dir = asyncio.run(_export())
    except WorkflowNotFoundError as e:
        console.print(f"[red]Error:[/] {escape(str(e))}")
        raise typer.Exit(1)
    except httpx.HTTPError as e:
        _report_http_error(e, settings.n8n_api_url)
        raise typer.Exit(1)

    console.print(f"[green]✓[/] Workflow exported to: [cyan]{escape(str(package_dir))}[/]")
    console.print()
    console.print("  [dim]Next steps:[/]")
    console.print("  1. Update README.md with proper documentation")
    console.print("  2. Configure auth-config.yml with required credentials")
    console.print("  3. Add test data if needed")
    console.print(f"  4. Submit for review: n8n-workflows submit {escape(package_dir.name)}")


@app.command("import")
def import_cmd(
    path: Path = typer.Argument(..., help="Workflow package directory or workflow.json file"),
    force: bool = typer.Option(False, "--force", help="Overwrite the workflow if it already exists"),
) -> None:
    """Import a workflow package into n8n."""
    settings = get_settings()

    async def _import():
        async with N8nClient(settings) as client:
            return await import_package(client, path, force=force)

    try:
        result = asyncio.run(_import())
    except PackageImportError as e:
        console.print(f"[red]Error:[/] {escape(str(e))}")
        raise typer.Exit(1)
    except httpx.HTTPError as e:
        _report_http_error(e, settings.n8n_api_url)
        raise typer.Exit(1)

    action = "imported" if result.created else "updated"
    console.print(f"[green]✓[/] Workflow {action} successfully")
    console.print(f"  [dim]Workflow ID:[/] {escape(result.workflow_id)}")
    console.print(f"  [dim]Open:[/] {escape(result.url)}")
    if result.credentials:
        console.print()
        console.print("  [yellow]Configure these credentials in n8n:[/]")
        for credential in result.credentials:
            console.print(f"    - {escape(credential)}")
