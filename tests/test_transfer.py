from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Sequence

import httpx
import pytest
import yaml

from client.n8n_client import N8nClient
from core.config import Settings
from core.transfer import (
    PackageImportError,
    WorkflowNotFoundError,
    credential_requirements,
    export_workflow,
    import_package,
)
from core.validator import validate_package

NOW = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)

REMOTE_WORKFLOW: Dict[str, Any] = {
    "id": "abc123",
    "name": "Lead Router",
    "active": False,
    "nodes": [
        {
            "id": "n1",
            "name": "Webhook",
            "type": "n8n-nodes-base.webhook",
            "parameters": {"path": "leads"},
        },
        {
            "id": "n2",
            "name": "Notify",
            "type": "n8n-nodes-base.slack",
            "parameters": {},
            "credentials": {"slackApi": {"id": "1", "name": "Slack bot"}},
        },
    ],
    "connections": {"Webhook": {"main": [[{"node": "Notify", "type": "main", "index": 0}]]}},
    "settings": {"executionOrder": "v1"},
    "tags": [{"id": "t1", "name": "sales"}],
}


class FakeN8n:
    """In-memory n8n public API served through httpx.MockTransport."""

    def __init__(self, workflows: Sequence[Dict[str, Any]] = ()) -> None:
        self.workflows = {str(wf["id"]): dict(wf) for wf in workflows}
        self.requests: List[httpx.Request] = []
        self.next_id = "new-1"

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/api/v1/workflows" and request.method == "GET":
            return httpx.Response(200, json={"data": list(self.workflows.values())})
        if path == "/api/v1/workflows" and request.method == "POST":
            body = json.loads(request.content)
            created = dict(body, id=self.next_id)
            self.workflows[self.next_id] = created
            return httpx.Response(200, json=created)
        if path.startswith("/api/v1/workflows/"):
            workflow_id = path.rsplit("/", 1)[-1]
            if workflow_id not in self.workflows:
                return httpx.Response(404, json={"message": "Not Found"})
            if request.method == "PUT":
                body = json.loads(request.content)
                self.workflows[workflow_id] = dict(body, id=workflow_id)
            return httpx.Response(200, json=self.workflows[workflow_id])
        return httpx.Response(500)

    def client(self) -> N8nClient:
        settings = Settings(n8n_api_url="http://n8n.test", n8n_api_key="test-key")
        return N8nClient(settings, transport=httpx.MockTransport(self.handler))


@pytest.mark.asyncio
async def test_export_by_id_writes_full_package(tmp_path: Path) -> None:
    server = FakeN8n([REMOTE_WORKFLOW])

    async with server.client() as client:
        package = await export_workflow(client, "abc123", tmp_path, author="Dana", now=NOW)

    assert package == tmp_path / "lead-router"
    assert json.loads((package / "workflow.json").read_text()) == REMOTE_WORKFLOW
    metadata = yaml.safe_load((package / "metadata.yml").read_text())
    assert metadata["id"] == "abc123"
    assert metadata["name"] == "Lead Router"
    assert metadata["author"] == "Dana"
    assert metadata["description"] == "Exported workflow from n8n"
    assert metadata["tags"] == ["sales"]
    assert metadata["requirements"] == {
        "credentials": ["slackApi"],
        "nodes": ["n8n-nodes-base.slack", "n8n-nodes-base.webhook"],
    }
    assert "updated_at" not in metadata
    assert server.requests[0].headers["X-N8N-API-KEY"] == "test-key"

    report = validate_package(package)
    assert report.errors == []


@pytest.mark.asyncio
async def test_export_by_name_falls_back_to_listing(tmp_path: Path) -> None:
    server = FakeN8n([REMOTE_WORKFLOW])

    async with server.client() as client:
        package = await export_workflow(client, "Lead Router", tmp_path, name="leads", author="Dana", now=NOW)

    assert package == tmp_path / "leads"
    methods_paths = [(r.method, r.url.path) for r in server.requests]
    assert methods_paths == [
        ("GET", "/api/v1/workflows/Lead Router"),
        ("GET", "/api/v1/workflows"),
        ("GET", "/api/v1/workflows/abc123"),
    ]


@pytest.mark.asyncio
async def test_export_unknown_workflow(tmp_path: Path) -> None:
    server = FakeN8n([REMOTE_WORKFLOW])

    async with server.client() as client:
        with pytest.raises(WorkflowNotFoundError, match="Workflow not found: nope"):
            await export_workflow(client, "nope", tmp_path, author="Dana")


@pytest.mark.asyncio
async def test_re_export_keeps_curated_files(tmp_path: Path) -> None:
    server = FakeN8n([REMOTE_WORKFLOW])
    package = tmp_path / "lead-router"
    package.mkdir()
    (package / "README.md").write_text("# Hand written\n")
    (package / "metadata.yml").write_text(
        "name: Lead Router\nid: abc123\ndescription: Routes leads\nauthor: Original\n"
        "created_at: '2024-01-01T00:00:00Z'\nversion: 1.2.0\n"
    )

    async with server.client() as client:
        await export_workflow(client, "abc123", tmp_path, author="Dana", now=NOW)

    metadata = yaml.safe_load((package / "metadata.yml").read_text())
    assert metadata["description"] == "Routes leads"
    assert metadata["author"] == "Original"
    assert metadata["created_at"] == "2024-01-01T00:00:00Z"
    assert metadata["version"] == "1.2.0"
    assert str(metadata["updated_at"]) in ("2024-06-01T09:00:00Z", "2024-06-01 09:00:00+00:00")
    assert (package / "README.md").read_text() == "# Hand written\n"


@pytest.mark.asyncio
async def test_import_creates_and_records_new_id(make_package) -> None:
    server = FakeN8n()
    package = make_package(
        auth_config="required_credentials:\n  - name: Slack bot\n    type: slackApi\n",
    )

    async with server.client() as client:
        result = await import_package(client, package)

    assert result.created is True
    assert result.workflow_id == "new-1"
    assert result.url == "http://n8n.test/workflow/new-1"
    assert result.credentials == ["Slack bot (slackApi)"]

    post = [r for r in server.requests if r.method == "POST"][0]
    body = json.loads(post.content)
    assert set(body) == {"name", "nodes", "connections", "settings"}
    assert body["settings"] == {}
    assert yaml.safe_load((package / "metadata.yml").read_text())["id"] == "new-1"


@pytest.mark.asyncio
async def test_import_refuses_existing_without_force(make_package, workflow_doc) -> None:
    server = FakeN8n([dict(workflow_doc)])
    package = make_package(workflow=workflow_doc)

    async with server.client() as client:
        with pytest.raises(PackageImportError, match="already exists in n8n. Use --force"):
            await import_package(client, package)

    assert not any(r.method in ("POST", "PUT") for r in server.requests)


@pytest.mark.asyncio
async def test_import_force_updates_in_place(make_package, workflow_doc) -> None:
    server = FakeN8n([dict(workflow_doc)])
    package = make_package(workflow=workflow_doc)
    metadata_before = (package / "metadata.yml").read_text()

    async with server.client() as client:
        result = await import_package(client, package / "workflow.json", force=True)

    assert result.created is False
    assert result.workflow_id == "wf-1"
    assert [r.method for r in server.requests] == ["GET", "PUT"]
    assert (package / "metadata.yml").read_text() == metadata_before


@pytest.mark.asyncio
async def test_import_rejects_bad_input(make_package, tmp_path: Path) -> None:
    server = FakeN8n()
    broken = make_package("broken", workflow="[1, 2]")
    not_json = tmp_path / "notes.txt"
    not_json.write_text("hi")

    async with server.client() as client:
        with pytest.raises(PackageImportError, match="document root must be an object"):
            await import_package(client, broken)
        with pytest.raises(PackageImportError, match="Invalid workflow path"):
            await import_package(client, not_json)
        with pytest.raises(PackageImportError, match="workflow.json not found"):
            await import_package(client, make_package("empty", workflow=None))

    assert server.requests == []


def test_credential_requirements(make_package) -> None:
    package = make_package(
        auth_config=(
            "required_credentials:\n"
            "  - name: OpenAI\n"
            "    type: openAiApi\n"
            "  - type: slackApi\n"
        )
    )

    assert credential_requirements(package) == ["OpenAI (openAiApi)", "unnamed (slackApi)"]
    assert credential_requirements(make_package("bare", auth_config=None)) == []
