from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.specs import (
    AuthConfigDocument,
    ConnectionSpec,
    MetadataDocument,
    NodeDocument,
    NodeSpec,
    WorkflowDocument,
    is_missing,
)


@pytest.mark.parametrize("value", [None, False, "", 0, 0.0])
def test_blank_values_are_missing(value) -> None:
    assert is_missing(value)


@pytest.mark.parametrize("value", [[], {}, "x", 1, True, -1])
def test_present_values(value) -> None:
    assert not is_missing(value)


def test_documents_tolerate_any_shape() -> None:
    assert WorkflowDocument.from_raw(["not", "a", "mapping"]).nodes is None
    assert MetadataDocument.from_raw(None).author is None

    workflow = WorkflowDocument.from_raw({"id": 7, "nodes": "oops", 1: "numeric key"})
    assert workflow.id == 7
    assert workflow.node_documents() == []
    assert workflow.lookup("1") == "numeric key"
    assert workflow.lookup("absent") is None


def test_node_label_prefers_id() -> None:
    assert NodeDocument.from_raw({"id": "abc"}).label(3) == "abc"
    assert NodeDocument.from_raw({"id": ""}).label(3) == "3"
    assert NodeDocument.from_raw({"id": 12}).label(0) == "12"


def test_credential_entries() -> None:
    auth = AuthConfigDocument.from_raw(
        {"required_credentials": [{"name": "OpenAI", "type": "openAiApi"}, {"type": "slackApi"}, 5]}
    )

    assert [credential.complete for credential in auth.credentials()] == [True, False, False]
    assert AuthConfigDocument.from_raw({"required_credentials": "none"}).credentials() == []


def test_node_spec_rejects_unknown_fields() -> None:
    with pytest.raises(ValidationError):
        NodeSpec(name="A", type="t", colour="red")


def test_connection_spec_rejects_negative_branch() -> None:
    with pytest.raises(ValidationError, match="branch and index must be >= 0"):
        ConnectionSpec(fromNode="A", toNode="B", branch=-1)
