from __future__ import annotations

import httpx
from typing import Any, Dict, List, Optional, Union, cast

from core.config import Settings


class N8nClient:
    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._root_url = settings.n8n_api_url
        self._base_url = f"{settings.n8n_api_url}/api/v1"
        self._headers = {"Accept": "application/json"}
        if settings.n8n_api_key:
            self._headers["X-N8N-API-KEY"] = settings.n8n_api_key
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers,
            timeout=float(settings.http_timeout),
            transport=transport,
        )

    @property
    def root_url(self) -> str:
        return self._root_url

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "N8nClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # Health
    async def health(self) -> Dict[str, Any]:
        resp = await self._client.get(f"{self._root_url}/healthz")
        resp.raise_for_status()
        return cast(Dict[str, Any], resp.json())

    # Workflows
    async def list_workflows(self) -> List[Dict[str, Any]]:
        resp = await self._client.get("/workflows")
        resp.raise_for_status()
        data = cast(Dict[str, Any], resp.json())
        raw = data.get("data", [])
        return [cast(Dict[str, Any], item) for item in raw]

    async def get_workflow(self, workflow_id: Union[str, int]) -> Dict[str, Any]:
        resp = await self._client.get(f"/workflows/{workflow_id}")
        resp.raise_for_status()
        payload = cast(Dict[str, Any], resp.json())
        inner = payload.get("data")
        if isinstance(inner, dict):
            return inner
        return payload

    async def find_workflow(self, workflow_id: Union[str, int]) -> Optional[Dict[str, Any]]:
        """Like get_workflow, but None when the server answers 404."""
        try:
            return await self.get_workflow(workflow_id)
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 404:
                return None
            raise

    async def create_workflow(self, workflow_json: Dict[str, Any]) -> Dict[str, Any]:
        resp = await self._client.post("/workflows", json=workflow_json)
        resp.raise_for_status()
        return cast(Dict[str, Any], resp.json())

    async def update_workflow(
        self, workflow_id: Union[str, int], workflow_json: Dict[str, Any]
    ) -> Dict[str, Any]:
        resp = await self._client.put(f"/workflows/{workflow_id}", json=workflow_json)
        resp.raise_for_status()
        return cast(Dict[str, Any], resp.json())
