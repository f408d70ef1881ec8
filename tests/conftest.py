"""Shared fixtures: workflow packages written to temporary directories."""
from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Callable, Dict, Iterator

import pytest
from loguru import logger

VALID_WORKFLOW: Dict[str, Any] = {
    "id": "wf-1",
    "name": "Test Workflow",
    "nodes": [
        {
            "id": "n1",
            "name": "Manual Trigger",
            "type": "n8n-nodes-base.manualTrigger",
            "parameters": {},
        },
        {
            "id": "n2",
            "name": "Edit Fields",
            "type": "n8n-nodes-base.set",
            "parameters": {"values": {"string": [{"name": "greeting", "value": "hello"}]}},
        },
    ],
    "connections": {},
}

VALID_METADATA = """\
name: Test Workflow
id: wf-1
description: A workflow used in tests
author: Test Author
created_at: "2024-01-01T00:00:00Z"
updated_at: "2024-02-01T10:30:00+00:00"
version: 1.0.0
"""

VALID_AUTH_CONFIG = "required_credentials: []\n"


def readme_text(length: int = 800) -> str:
    """A README with every required section, padded to exactly ``length`` characters."""
    body = (
        "# Test Workflow\n\n"
        "## Description\n\nSends a greeting.\n\n"
        "## Setup\n\nImport it.\n\n"
        "## Usage\n\nRun it manually.\n\n"
        "## Authentication\n\nNone required.\n\n"
    )
    assert len(body) <= length
    return body + "x" * (length - len(body))


Writer = Callable[..., Path]


def write_package(
    root: Path,
    workflow: Any = ...,
    metadata: Any = ...,
    readme: Any = ...,
    auth_config: Any = ...,
    test_data: bool = True,
) -> Path:
    """Write a package; ``...`` picks the valid default and ``None`` omits the file."""
    root.mkdir(parents=True, exist_ok=True)

    if workflow is ...:
        workflow = copy.deepcopy(VALID_WORKFLOW)
    if workflow is not None:
        text = workflow if isinstance(workflow, str) else json.dumps(workflow, indent=2)
        (root / "workflow.json").write_text(text, encoding="utf-8")

    if metadata is ...:
        metadata = VALID_METADATA
    if metadata is not None:
        (root / "metadata.yml").write_text(metadata, encoding="utf-8")

    if readme is ...:
        readme = readme_text()
    if readme is not None:
        (root / "README.md").write_text(readme, encoding="utf-8")

    if auth_config is ...:
        auth_config = VALID_AUTH_CONFIG
    if auth_config is not None:
        (root / "auth-config.yml").write_text(auth_config, encoding="utf-8")

    if test_data:
        (root / "test-data").mkdir(exist_ok=True)
        (root / "test-data" / "README.md").write_text("# Test Data\n", encoding="utf-8")

    return root


@pytest.fixture(autouse=True)
def quiet_logger() -> Iterator[None]:
    """Start every test without loguru sinks; CLI invocations add their own."""
    logger.remove()
    yield
    logger.remove()


@pytest.fixture
def make_package(tmp_path: Path) -> Writer:
    def _make(name: str = "package", **kwargs: Any) -> Path:
        return write_package(tmp_path / name, **kwargs)

    return _make


@pytest.fixture
def workflow_doc() -> Dict[str, Any]:
    return copy.deepcopy(VALID_WORKFLOW)


@pytest.fixture
def readme() -> Callable[[int], str]:
    return readme_text
