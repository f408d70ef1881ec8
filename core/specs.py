from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Builder specs: strict graphs rendered into n8n JSON by core.builder


class NodeSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: Optional[str] = None
    name: str
    type: str
    typeVersion: float = 1
    parameters: Dict[str, Any] = Field(default_factory=dict)
    credentials: Optional[Dict[str, Any]] = None
    position: Optional[List[int]] = None


class ConnectionSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    fromNode: str
    toNode: str
    output: str = "main"
    branch: int = 0
    index: int = 0

    @field_validator("branch", "index")
    @classmethod
    def validate_index(cls, value: int) -> int:
        if value < 0:
            raise ValueError("branch and index must be >= 0")
        return value


class WorkflowSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: Optional[str] = None
    name: str
    description: Optional[str] = None
    nodes: List[NodeSpec]
    connections: List[ConnectionSpec]
    settings: Optional[Dict[str, Any]] = None
    tags: Optional[List[str]] = None


# Package documents: lenient views over parsed JSON/YAML. Every field may be
# absent or of the wrong type, so nothing here ever fails validation.


def is_missing(value: Any) -> bool:
    """Return True for absent or blank scalar values.

    Empty lists and mappings count as present.
    """
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0
    return False


class _Document(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    @classmethod
    def from_raw(cls, raw: Any):
        if not isinstance(raw, dict):
            return cls()
        return cls.model_validate({str(key): value for key, value in raw.items()})

    def lookup(self, field: str) -> Any:
        """Fallible field access: declared field, extra field, or None."""
        if field in type(self).model_fields:
            return getattr(self, field)
        return (self.model_extra or {}).get(field)


class NodeDocument(_Document):
    id: Any = None
    name: Any = None
    type: Any = None
    parameters: Any = None

    def label(self, index: int) -> str:
        if not is_missing(self.id):
            return str(self.id)
        return str(index)


class WorkflowDocument(_Document):
    id: Any = None
    name: Any = None
    nodes: Any = None

    def node_documents(self) -> List[NodeDocument]:
        if not isinstance(self.nodes, list):
            return []
        return [NodeDocument.from_raw(raw) for raw in self.nodes]


class MetadataDocument(_Document):
    name: Any = None
    id: Any = None
    description: Any = None
    author: Any = None
    created_at: Any = None
    updated_at: Any = None
    version: Any = None
    category: Any = None


class CredentialRequirement(_Document):
    name: Any = None
    type: Any = None

    @property
    def complete(self) -> bool:
        return not is_missing(self.name) and not is_missing(self.type)


class AuthConfigDocument(_Document):
    required_credentials: Any = None

    def credentials(self) -> List[CredentialRequirement]:
        if not isinstance(self.required_credentials, list):
            return []
        return [CredentialRequirement.from_raw(raw) for raw in self.required_credentials]
