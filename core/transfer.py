"""Move workflow packages between the repository and a running n8n instance."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import yaml
from loguru import logger

from client.n8n_client import N8nClient
from core.logging import audit_log
from core.scaffold import (
    AUTH_CONFIG_TEMPLATE,
    git_user_name,
    render_documentation,
    slugify,
    utc_timestamp,
    write_json,
    write_yaml,
)
from core.specs import AuthConfigDocument
from core.validator import (
    AUTH_CONFIG_FILE,
    DEFINITION_FILE,
    DOCUMENTATION_FILE,
    METADATA_FILE,
    load_json,
    load_yaml,
)

# Fields the n8n public API accepts when creating or replacing a workflow
IMPORTABLE_FIELDS = ("name", "nodes", "connections", "settings", "staticData")

# Values carried over from an existing metadata.yml on re-export
PRESERVED_METADATA_FIELDS = ("description", "author", "created_at", "version", "category", "tags")


class PackageImportError(Exception):
    pass


class WorkflowNotFoundError(LookupError):
    pass


@dataclass(frozen=True)
class ImportResult:
    workflow_id: str
    created: bool
    url: str
    credentials: List[str]


def workflow_id_or_raise(
    workflow: Dict[str, Any],
    raise_fn: Callable[[str], Exception] = ValueError,
) -> Union[str, int]:
    """Extract workflow ID from workflow dict with configurable error handling.

    Args:
        workflow: Workflow dict from n8n API
        raise_fn: Function to create exception with error message

    Returns:
        Workflow ID as string or int

    Raises:
        Exception created by raise_fn if ID is missing or invalid
    """
    identifier = workflow.get("id")
    if isinstance(identifier, (str, int)) and not isinstance(identifier, bool) and identifier != "":
        return identifier
    raise raise_fn("workflow response missing id")


def _unwrap(payload: Dict[str, Any]) -> Dict[str, Any]:
    inner = payload.get("data")
    if isinstance(inner, dict):
        return inner
    return payload


async def get_workflow_by_identifier(client: N8nClient, identifier: str) -> Dict[str, Any]:
    """Find workflow by ID, falling back to an exact name match.

    Raises:
        WorkflowNotFoundError: If neither lookup finds the workflow
    """
    workflow = await client.find_workflow(identifier)
    if workflow is not None:
        return workflow

    workflows = await client.list_workflows()
    match = next(
        (
            wf
            for wf in workflows
            if str(wf.get("id")) == identifier or wf.get("name") == identifier
        ),
        None,
    )
    if not match:
        raise WorkflowNotFoundError(f"Workflow not found: {identifier}")
    return await client.get_workflow(workflow_id_or_raise(match))


def _tag_names(workflow: Dict[str, Any]) -> List[str]:
    names = []
    for tag in workflow.get("tags") or []:
        if isinstance(tag, dict) and tag.get("name"):
            names.append(str(tag["name"]))
        elif isinstance(tag, str):
            names.append(tag)
    return names


def _node_requirements(workflow: Dict[str, Any]) -> Dict[str, List[str]]:
    node_types = set()
    credential_types = set()
    for node in workflow.get("nodes") or []:
        if not isinstance(node, dict):
            continue
        if isinstance(node.get("type"), str):
            node_types.add(node["type"])
        credentials = node.get("credentials")
        if isinstance(credentials, dict):
            credential_types.update(str(key) for key in credentials)
    return {"credentials": sorted(credential_types), "nodes": sorted(node_types)}


def _existing_metadata(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        raw = load_yaml(path)
    except (OSError, ValueError, RecursionError, yaml.YAMLError) as exc:
        logger.warning(f"Ignoring unreadable {path.name}: {exc}")
        return {}
    return raw if isinstance(raw, dict) else {}


async def export_workflow(
    client: N8nClient,
    identifier: str,
    workflows_dir: Union[str, Path],
    name: Optional[str] = None,
    author: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Path:
    """
    Export a workflow from n8n into a package directory.

    workflow.json and metadata.yml are rewritten on every export; README.md
    and auth-config.yml are only created when missing.

    Args:
        client: n8n API client
        identifier: Workflow id, or its exact name
        workflows_dir: Directory that holds all workflow packages
        name: Package directory name, defaults to the slug of the workflow name
        author: Author recorded in metadata.yml, defaults to ``git config user.name``
        now: Export time, defaults to the current UTC time

    Returns:
        Path of the package directory
    """
    logger.info(f"Exporting workflow {identifier} from n8n...")
    workflow = await get_workflow_by_identifier(client, identifier)
    workflow_id = str(workflow_id_or_raise(workflow))
    workflow_name = str(workflow.get("name") or "")

    dir_name = name or slugify(workflow_name) or f"workflow-{workflow_id}"
    package_dir = Path(workflows_dir) / dir_name
    package_dir.mkdir(parents=True, exist_ok=True)

    write_json(package_dir / DEFINITION_FILE, workflow)

    timestamp = utc_timestamp(now)
    metadata: Dict[str, Any] = {
        "name": workflow_name,
        "id": workflow_id,
        "description": "Exported workflow from n8n",
        "author": author or git_user_name(),
        "created_at": timestamp,
        "exported_at": timestamp,
        "n8n_version": "latest",
        "tags": _tag_names(workflow),
        "categories": [],
        "requirements": _node_requirements(workflow),
    }
    previous = _existing_metadata(package_dir / METADATA_FILE)
    for field in PRESERVED_METADATA_FIELDS:
        if previous.get(field):
            metadata[field] = previous[field]
    if previous:
        metadata["updated_at"] = timestamp
    write_yaml(package_dir / METADATA_FILE, metadata)

    readme = package_dir / DOCUMENTATION_FILE
    if not readme.exists():
        readme.write_text(
            render_documentation({"WORKFLOW_NAME": workflow_name, "WORKFLOW_ID": workflow_id}),
            encoding="utf-8",
        )
    auth_config = package_dir / AUTH_CONFIG_FILE
    if not auth_config.exists():
        auth_config.write_text(AUTH_CONFIG_TEMPLATE, encoding="utf-8")

    audit_log(
        "export_workflow",
        actor="cli",
        details={"workflow_id": workflow_id, "name": workflow_name, "path": str(package_dir)},
    )
    logger.info(f"Workflow exported to: {package_dir}")
    return package_dir


def credential_requirements(package_dir: Path) -> List[str]:
    """Describe the credentials auth-config.yml asks for, as ``name (type)`` strings."""
    auth_path = package_dir / AUTH_CONFIG_FILE
    if not auth_path.exists():
        logger.warning(f"No {AUTH_CONFIG_FILE} found - workflow may need manual credential setup")
        return []
    try:
        raw = load_yaml(auth_path)
    except (OSError, ValueError, RecursionError, yaml.YAMLError) as exc:
        logger.warning(f"Could not read {AUTH_CONFIG_FILE}: {exc}")
        return []

    described = []
    for credential in AuthConfigDocument.from_raw(raw).credentials():
        label = str(credential.name or "unnamed")
        if credential.type:
            label = f"{label} ({credential.type})"
        described.append(label)
    if described:
        logger.warning("Ensure these credentials are configured in n8n before importing")
    return described


def _resolve_import_path(path: Path) -> Path:
    if path.is_dir():
        return path / DEFINITION_FILE
    if path.is_file() and path.suffix == ".json":
        return path
    raise PackageImportError(
        f"Invalid workflow path: {path}. Provide either a workflow directory or a workflow.json file"
    )


def _update_metadata_id(metadata_path: Path, workflow_id: str) -> None:
    if not metadata_path.exists():
        return
    metadata = _existing_metadata(metadata_path)
    if not metadata:
        return
    metadata["id"] = workflow_id
    write_yaml(metadata_path, metadata)
    logger.info(f"Updated {METADATA_FILE} with new workflow ID")


async def import_package(
    client: N8nClient,
    path: Union[str, Path],
    force: bool = False,
) -> ImportResult:
    """
    Import a package's workflow.json into n8n.

    Args:
        client: n8n API client
        path: Package directory or a workflow JSON file
        force: Overwrite the workflow when its id already exists in n8n

    Returns:
        Where the workflow ended up

    Raises:
        PackageImportError: For unusable input or an existing workflow without ``force``
    """
    workflow_file = _resolve_import_path(Path(path))
    package_dir = workflow_file.parent
    if not workflow_file.exists():
        raise PackageImportError(f"{DEFINITION_FILE} not found in {package_dir}")

    try:
        workflow = load_json(workflow_file)
    except (OSError, ValueError, RecursionError) as exc:
        raise PackageImportError(f"Invalid JSON in {workflow_file.name}: {exc}") from exc
    if not isinstance(workflow, dict):
        raise PackageImportError(f"Invalid JSON in {workflow_file.name}: document root must be an object")

    credentials = credential_requirements(package_dir)

    payload = {field: workflow[field] for field in IMPORTABLE_FIELDS if field in workflow}
    payload.setdefault("name", "Unknown")
    payload.setdefault("nodes", [])
    payload.setdefault("connections", {})
    payload.setdefault("settings", {})

    existing_id = workflow.get("id")
    logger.info(f"Importing workflow: {payload['name']}")
    if existing_id and await client.find_workflow(existing_id) is not None:
        if not force:
            raise PackageImportError(
                f"Workflow {existing_id} already exists in n8n. Use --force to overwrite"
            )
        logger.warning("Force import enabled - existing workflow will be overwritten")
        response = await client.update_workflow(existing_id, payload)
        created = False
    else:
        response = await client.create_workflow(payload)
        created = True

    new_id = str(workflow_id_or_raise(_unwrap(response), PackageImportError))
    if new_id != str(existing_id or ""):
        _update_metadata_id(package_dir / METADATA_FILE, new_id)

    result = ImportResult(
        workflow_id=new_id,
        created=created,
        url=f"{client.root_url}/workflow/{new_id}",
        credentials=credentials,
    )
    audit_log(
        "import_workflow",
        actor="cli",
        details={"workflow_id": new_id, "created": created, "path": str(package_dir)},
    )
    return result
