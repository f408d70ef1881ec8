from __future__ import annotations

import uuid
from typing import Any, Dict, List

from core.specs import NodeSpec, WorkflowSpec


class WorkflowBuilder:
    """Render a WorkflowSpec into the JSON document n8n imports and exports."""

    def build(self, spec: WorkflowSpec) -> Dict[str, Any]:
        names = [node.name for node in spec.nodes]
        if len(set(names)) != len(names):
            raise ValueError("node names must be unique within a workflow")

        nodes = [self._node_to_json(node, idx) for idx, node in enumerate(spec.nodes)]
        known = set(names)

        # Connections structure: {fromNode: {outputType: [[connections for branch 0], [connections for branch 1], ...]}}
        connections: Dict[str, Dict[str, List[List[Dict[str, Any]]]]] = {}

        for conn in spec.connections:
            if conn.fromNode not in known or conn.toNode not in known:
                raise ValueError(f"Connection refers to unknown node: {conn}")

            connection_entry = {
                "node": conn.toNode,
                "type": conn.output,
                "index": conn.index,
            }

            output_list = connections.setdefault(conn.fromNode, {}).setdefault(conn.output, [])

            # Ensure we have enough branches
            while len(output_list) <= conn.branch:
                output_list.append([])

            output_list[conn.branch].append(connection_entry)

        workflow: Dict[str, Any] = {
            "id": spec.id or str(uuid.uuid4()),
            "name": spec.name,
            "nodes": nodes,
            "connections": connections,
            "settings": spec.settings or {"executionOrder": "v1"},
            "active": False,
            "tags": spec.tags or [],
        }
        if spec.description:
            workflow["meta"] = {"description": spec.description}
        return workflow

    def _node_to_json(self, node: NodeSpec, idx: int) -> Dict[str, Any]:
        node_json: Dict[str, Any] = {
            "parameters": node.parameters,
            "id": node.id or str(uuid.uuid4()),
            "name": node.name,
            "type": node.type,
            "typeVersion": node.typeVersion,
            "position": node.position or [250 + idx * 220, 300],
        }
        if node.credentials:
            node_json["credentials"] = node.credentials
        return node_json
