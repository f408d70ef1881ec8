"""Create new workflow packages from starter templates."""
from __future__ import annotations

import json
import re
import subprocess
import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from loguru import logger

from core.builder import WorkflowBuilder
from core.specs import ConnectionSpec, NodeSpec, WorkflowSpec
from core.validator import (
    AUTH_CONFIG_FILE,
    DEFINITION_FILE,
    DOCUMENTATION_FILE,
    METADATA_FILE,
    TEST_DATA_README,
)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class PackageExistsError(Exception):
    pass


class Category(str, Enum):
    AI_CHAT = "ai-chat"
    DOCUMENT_PROCESSING = "document-processing"
    COMMUNICATION = "communication"
    DATA_PROCESSING = "data-processing"
    INTEGRATION = "integration"
    CUSTOM = "custom"


class Starter(str, Enum):
    BLANK = "blank"
    WEBHOOK = "webhook"
    SCHEDULE = "schedule"
    AI_CHAT = "ai-chat"


DOCUMENTATION_TEMPLATE = """# {{WORKFLOW_NAME}}

> Workflow ID: `{{WORKFLOW_ID}}` | Category: {{CATEGORY}} | Maintainer: {{AUTHOR}}

## Description

{{DESCRIPTION}}

Describe the business problem this workflow solves, who relies on it and
what a successful run produces.

## Setup

1. Import the workflow into your local n8n instance:
   `n8n-workflows import <path-to-this-directory>`
2. Create the credentials listed in `auth-config.yml` inside n8n.
3. Review every node for environment specific values before activating.

## Usage

Explain how the workflow is triggered, which inputs it expects and which
outputs it returns. Sample inputs live in `test-data/`.

## Authentication

All credentials are referenced by name from n8n's credential store and are
listed in `auth-config.yml`. Never paste keys or tokens into node parameters.

## Troubleshooting

Record known failure modes and how to recover from them here.
"""

AUTH_CONFIG_TEMPLATE = """# Credentials this workflow expects to find in n8n.
# Each entry needs at least a name and a type, for example:
#
# required_credentials:
#   - name: "OpenAI account"
#     type: "openAiApi"
#     description: "Used by the chat model node"
required_credentials: []
"""

TEST_DATA_TEMPLATE = """# Test Data

Add test data files here for workflow validation.
"""


def slugify(name: str) -> str:
    """Turn a workflow name into a directory name."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower())
    return slug.strip("-")


def utc_timestamp(now: Optional[datetime] = None) -> str:
    return (now or datetime.now(timezone.utc)).strftime(TIMESTAMP_FORMAT)


def git_user_name(default: str = "Unknown") -> str:
    try:
        result = subprocess.run(
            ["git", "config", "user.name"], capture_output=True, text=True, check=False
        )
    except OSError:
        return default
    return result.stdout.strip() or default


def render_documentation(values: Dict[str, str], template: str = DOCUMENTATION_TEMPLATE) -> str:
    """Replace ``{{KEY}}`` placeholders for the given keys; others are left as-is."""
    content = template
    for key, value in values.items():
        content = content.replace("{{" + key + "}}", value)
    return content


def default_starter(category: Category) -> Starter:
    if category is Category.AI_CHAT:
        return Starter.AI_CHAT
    return Starter.BLANK


def starter_spec(starter: Starter, name: str, slug: str, description: Optional[str] = None) -> WorkflowSpec:
    if starter is Starter.WEBHOOK:
        nodes = [
            NodeSpec(
                name="Webhook",
                type="n8n-nodes-base.webhook",
                typeVersion=2,
                parameters={"path": slug, "httpMethod": "POST", "responseMode": "responseNode"},
            ),
            NodeSpec(
                name="Respond to Webhook",
                type="n8n-nodes-base.respondToWebhook",
                typeVersion=1.1,
                parameters={"respondWith": "json", "responseBody": "={{ $json }}"},
            ),
        ]
        connections = [ConnectionSpec(fromNode="Webhook", toNode="Respond to Webhook")]
    elif starter is Starter.SCHEDULE:
        nodes = [
            NodeSpec(
                name="Schedule Trigger",
                type="n8n-nodes-base.scheduleTrigger",
                typeVersion=1.2,
                parameters={"rule": {"interval": [{"field": "hours"}]}},
            ),
            NodeSpec(
                name="Edit Fields",
                type="n8n-nodes-base.set",
                typeVersion=3.4,
                parameters={},
            ),
        ]
        connections = [ConnectionSpec(fromNode="Schedule Trigger", toNode="Edit Fields")]
    elif starter is Starter.AI_CHAT:
        nodes = [
            NodeSpec(
                name="When chat message received",
                type="@n8n/n8n-nodes-langchain.chatTrigger",
                typeVersion=1.1,
                parameters={},
            ),
            NodeSpec(
                name="AI Agent",
                type="@n8n/n8n-nodes-langchain.agent",
                typeVersion=1.7,
                parameters={},
            ),
            NodeSpec(
                name="OpenAI Chat Model",
                type="@n8n/n8n-nodes-langchain.lmChatOpenAi",
                typeVersion=1,
                parameters={},
            ),
        ]
        connections = [
            ConnectionSpec(fromNode="When chat message received", toNode="AI Agent"),
            ConnectionSpec(fromNode="OpenAI Chat Model", toNode="AI Agent", output="ai_languageModel"),
        ]
    else:
        nodes = [
            NodeSpec(
                name="When clicking 'Test workflow'",
                type="n8n-nodes-base.manualTrigger",
                parameters={},
            )
        ]
        connections = []

    return WorkflowSpec(id=str(uuid.uuid4()), name=name, description=description, nodes=nodes, connections=connections)


def build_metadata(
    name: str,
    workflow_id: str,
    description: str,
    author: str,
    category: Category,
    timestamp: str,
) -> Dict[str, Any]:
    return {
        "name": name,
        "id": workflow_id,
        "description": description,
        "author": author,
        "category": category.value,
        "created_at": timestamp,
        "updated_at": timestamp,
        "version": "1.0.0",
        "n8n_version": "latest",
        "tags": [category.value, "team-workflow"],
        "status": "development",
        "requirements": {"credentials": [], "nodes": [], "environment_variables": []},
        "testing": {"test_data_provided": False, "validation_rules": []},
        "deployment": {"auto_activate": False, "schedule": None},
    }


def write_json(path: Path, document: Any) -> None:
    path.write_text(json.dumps(document, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


def write_yaml(path: Path, document: Any) -> None:
    path.write_text(
        yaml.safe_dump(document, sort_keys=False, allow_unicode=True, default_flow_style=False),
        encoding="utf-8",
    )


def create_package(
    workflows_dir: Union[str, Path],
    name: str,
    description: str = "",
    author: Optional[str] = None,
    category: Category = Category.CUSTOM,
    starter: Optional[Starter] = None,
    now: Optional[datetime] = None,
) -> Path:
    """
    Create a workflow package directory with every file the validator expects.

    Args:
        workflows_dir: Directory that holds all workflow packages
        name: Human readable workflow name; the directory name is derived from it
        description: Short description stored in metadata.yml and README.md
        author: Author name, defaults to ``git config user.name``
        category: Workflow category
        starter: Starter graph, defaults to one matching the category
        now: Creation time, defaults to the current UTC time

    Returns:
        Path of the new package directory

    Raises:
        ValueError: If the name is empty or has no usable characters
        PackageExistsError: If the package directory already exists
    """
    slug = slugify(name)
    if not name.strip() or not slug:
        raise ValueError("Workflow name is required")

    package_dir = Path(workflows_dir) / slug
    if package_dir.exists():
        raise PackageExistsError(f"Workflow directory already exists: {package_dir}")

    author = author or git_user_name()
    summary = description or "Describe this workflow."
    starter = starter or default_starter(category)
    spec = starter_spec(starter, name, slug, description or None)
    workflow = WorkflowBuilder().build(spec)
    workflow_id = workflow["id"]

    package_dir.mkdir(parents=True)
    write_json(package_dir / DEFINITION_FILE, workflow)
    write_yaml(
        package_dir / METADATA_FILE,
        build_metadata(name, workflow_id, summary, author, category, utc_timestamp(now)),
    )
    (package_dir / DOCUMENTATION_FILE).write_text(
        render_documentation(
            {
                "WORKFLOW_NAME": name,
                "WORKFLOW_ID": workflow_id,
                "DESCRIPTION": summary,
                "AUTHOR": author,
                "CATEGORY": category.value,
            }
        ),
        encoding="utf-8",
    )
    (package_dir / AUTH_CONFIG_FILE).write_text(AUTH_CONFIG_TEMPLATE, encoding="utf-8")
    test_readme = package_dir / TEST_DATA_README
    test_readme.parent.mkdir(parents=True, exist_ok=True)
    test_readme.write_text(TEST_DATA_TEMPLATE, encoding="utf-8")

    logger.info(f"Created workflow package {package_dir} from the {starter.value} starter")
    return package_dir
