from __future__ import annotations

import json
import re
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

import yaml
from loguru import logger

from core.report import ValidationReport
from core.security import find_secret_values, nesting_depth, scan_serialized
from core.specs import (
    AuthConfigDocument,
    MetadataDocument,
    NodeDocument,
    WorkflowDocument,
    is_missing,
)

DEFINITION_FILE = "workflow.json"
METADATA_FILE = "metadata.yml"
DOCUMENTATION_FILE = "README.md"
AUTH_CONFIG_FILE = "auth-config.yml"
TEST_DATA_README = "test-data/README.md"

REQUIRED_FILES = (DEFINITION_FILE, METADATA_FILE, DOCUMENTATION_FILE, AUTH_CONFIG_FILE)
OPTIONAL_FILES = (TEST_DATA_README,)

REQUIRED_WORKFLOW_FIELDS = ("id", "name", "nodes")
REQUIRED_METADATA_FIELDS = ("name", "id", "description", "author", "created_at")
REQUIRED_SECTIONS = ("Description", "Setup", "Usage", "Authentication")
MIN_DOCUMENTATION_LENGTH = 500
MAX_NESTING_DEPTH = 256

CHAT_TRIGGER_TYPES = {
    "@n8n/n8n-nodes-langchain.chatTrigger",
    "@n8n/n8n-nodes-langchain.manualChatTrigger",
}
HTTP_REQUEST_TYPES = {
    "n8n-nodes-base.httpRequest",
    "@n8n/n8n-nodes-langchain.toolHttpRequest",
}

SEMVER_PATTERN = re.compile(r"^\d+\.\d+\.\d+(-[a-zA-Z0-9.-]+)?(\+[a-zA-Z0-9.-]+)?$")
PLACEHOLDER_PATTERN = re.compile(r"\{\{[^}]+\}\}")


class PackageNotFoundError(Exception):
    pass


def validate_package(package_dir: Union[str, Path]) -> ValidationReport:
    """
    Validate a workflow package directory.

    Every check runs regardless of the others; only the node and security
    checks depend on a parsed workflow.json.

    Args:
        package_dir: Directory holding workflow.json, metadata.yml, README.md
            and auth-config.yml

    Returns:
        The collected findings

    Raises:
        PackageNotFoundError: If the path does not exist or is not a directory
    """
    path = Path(package_dir)
    if not path.exists():
        raise PackageNotFoundError(f"Workflow directory does not exist: {path}")
    if not path.is_dir():
        raise PackageNotFoundError(f"Path is not a directory: {path}")

    logger.info(f"Validating workflow directory: {path}")
    report = ValidationReport()

    check_structure(path, report)
    check_definition(path, report)
    check_metadata(path, report)
    check_documentation(path, report)
    check_auth_config(path, report)

    logger.debug(
        f"Validation finished: {len(report.errors)} error(s), "
        f"{len(report.warnings)} warning(s), {len(report.info)} note(s)"
    )
    return report


def check_structure(path: Path, report: ValidationReport) -> None:
    for name in REQUIRED_FILES:
        if not (path / name).exists():
            report.error(f"Missing required file: {name}")
    for name in OPTIONAL_FILES:
        if not (path / name).exists():
            report.warn(f"Missing optional file: {name}")


def _reject_constant(constant: str) -> Any:
    raise ValueError(f"Invalid JSON constant: {constant}")


def load_json(file: Path) -> Any:
    text = file.read_text(encoding="utf-8-sig")
    return json.loads(text, parse_constant=_reject_constant)


def load_yaml(file: Path) -> Any:
    text = file.read_text(encoding="utf-8-sig")
    return yaml.safe_load(text)


def check_definition(path: Path, report: ValidationReport) -> Optional[WorkflowDocument]:
    """Parse workflow.json and run the structural, node and security checks on it."""
    file = path / DEFINITION_FILE
    if not file.exists():
        return None

    try:
        raw = load_json(file)
    except (OSError, ValueError, RecursionError) as exc:
        report.error(f"Invalid JSON in {DEFINITION_FILE}: {exc}")
        return None
    if not isinstance(raw, dict):
        report.error(f"Invalid JSON in {DEFINITION_FILE}: document root must be an object")
        return None
    if nesting_depth(raw) > MAX_NESTING_DEPTH:
        report.error(
            f"Invalid JSON in {DEFINITION_FILE}: nested deeper than {MAX_NESTING_DEPTH} levels"
        )
        return None

    workflow = WorkflowDocument.from_raw(raw)
    for field in REQUIRED_WORKFLOW_FIELDS:
        if is_missing(workflow.lookup(field)):
            report.error(f"{DEFINITION_FILE} missing required field: {field}")

    if isinstance(workflow.nodes, list):
        if not workflow.nodes:
            report.warn("Workflow has no nodes")
        else:
            check_nodes(workflow.node_documents(), report)

    check_security(raw, report)
    return workflow


def _identity(value: Any) -> Any:
    try:
        hash(value)
    except TypeError:
        return json.dumps(value, sort_keys=True, default=str)
    return value


def check_nodes(nodes: List[NodeDocument], report: ValidationReport) -> None:
    node_types: Dict[Any, int] = {}
    seen_ids: Set[Any] = set()
    reported_ids: Set[Any] = set()

    for index, node in enumerate(nodes):
        if is_missing(node.id):
            report.error(f"Node {index} missing required field: id")
        else:
            key = _identity(node.id)
            if key not in seen_ids:
                seen_ids.add(key)
            elif key not in reported_ids:
                reported_ids.add(key)
                report.error(f"Duplicate node ID: {node.id}")

        label = node.label(index)
        if is_missing(node.type):
            report.error(f"Node {label} missing required field: type")
        else:
            type_key = _identity(node.type)
            node_types[type_key] = node_types.get(type_key, 0) + 1

        if is_missing(node.name):
            report.warn(f"Node {label} missing name field")

        if node.parameters is not None:
            owner = label if is_missing(node.name) else str(node.name)
            for value_path in find_secret_values(node.parameters, "parameters"):
                report.error(f"Potential secret detected in node {owner} at {value_path}")

    report.note(f"Workflow uses {len(node_types)} different node types")

    if any(node_type in CHAT_TRIGGER_TYPES for node_type in node_types):
        report.note("Workflow includes AI chat functionality")
    if any(node_type in HTTP_REQUEST_TYPES for node_type in node_types):
        report.warn("Workflow makes HTTP requests - ensure proper error handling")


def check_security(document: Dict[str, Any], report: ValidationReport) -> None:
    for message in scan_serialized(document):
        report.error(f"Security issue: {message}")


def is_iso_timestamp(value: Any) -> bool:
    """True for ISO 8601 timestamps that carry a time component."""
    # YAML loaders turn unquoted timestamps into datetime/date objects
    if isinstance(value, datetime):
        return True
    if isinstance(value, date) or not isinstance(value, str):
        return False
    if "T" not in value:
        return False
    candidate = value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value
    try:
        datetime.fromisoformat(candidate)
    except ValueError:
        return False
    return True


def is_semver(value: Any) -> bool:
    return bool(SEMVER_PATTERN.match(str(value)))


def check_metadata(path: Path, report: ValidationReport) -> Optional[MetadataDocument]:
    file = path / METADATA_FILE
    if not file.exists():
        return None

    try:
        raw = load_yaml(file)
    except (OSError, ValueError, RecursionError, yaml.YAMLError) as exc:
        report.error(f"Invalid YAML in {METADATA_FILE}: {exc}")
        return None
    if not isinstance(raw, dict):
        report.error(f"Invalid YAML in {METADATA_FILE}: document root must be a mapping")
        return None

    metadata = MetadataDocument.from_raw(raw)
    for field in REQUIRED_METADATA_FIELDS:
        if is_missing(metadata.lookup(field)):
            report.error(f"{METADATA_FILE} missing required field: {field}")

    if not is_missing(metadata.created_at) and not is_iso_timestamp(metadata.created_at):
        report.error(f"Invalid created_at date format in {METADATA_FILE}")
    if not is_missing(metadata.updated_at) and not is_iso_timestamp(metadata.updated_at):
        report.error(f"Invalid updated_at date format in {METADATA_FILE}")

    if not is_missing(metadata.version) and not is_semver(metadata.version):
        report.warn("Version should follow semantic versioning (e.g., 1.0.0)")

    return metadata


def _section_pattern(section: str) -> re.Pattern[str]:
    return re.compile(rf"^[ \t]{{0,3}}#{{1,6}}[ \t]*{re.escape(section)}\b", re.IGNORECASE | re.MULTILINE)


def check_documentation(path: Path, report: ValidationReport) -> None:
    file = path / DOCUMENTATION_FILE
    if not file.exists():
        return

    try:
        content = file.read_bytes().decode("utf-8-sig", errors="replace")
    except OSError as exc:
        report.error(f"Unable to read {DOCUMENTATION_FILE}: {exc}")
        return

    placeholders = list(dict.fromkeys(PLACEHOLDER_PATTERN.findall(content)))
    if placeholders:
        report.warn(
            f"{DOCUMENTATION_FILE} contains template placeholders: {', '.join(placeholders)}"
        )

    for section in REQUIRED_SECTIONS:
        if not _section_pattern(section).search(content):
            report.warn(f"{DOCUMENTATION_FILE} missing section: {section}")

    if len(content) < MIN_DOCUMENTATION_LENGTH:
        report.warn(
            f"{DOCUMENTATION_FILE} seems too short - consider adding more detailed documentation"
        )


def check_auth_config(path: Path, report: ValidationReport) -> Optional[AuthConfigDocument]:
    file = path / AUTH_CONFIG_FILE
    if not file.exists():
        return None

    try:
        raw = load_yaml(file)
    except (OSError, ValueError, RecursionError, yaml.YAMLError) as exc:
        report.error(f"Invalid YAML in {AUTH_CONFIG_FILE}: {exc}")
        return None
    if not isinstance(raw, dict):
        report.error(f"Invalid YAML in {AUTH_CONFIG_FILE}: document root must be a mapping")
        return None

    auth_config = AuthConfigDocument.from_raw(raw)
    credentials = auth_config.credentials()
    if credentials:
        report.note(f"Workflow requires {len(credentials)} credential(s)")
        for index, credential in enumerate(credentials):
            if not credential.complete:
                report.warn(f"Credential configuration incomplete (entry {index})")

    return auth_config
