"""HTTP implementation of the remote entity service using httpx."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from chronicle.config import ServiceConfig
from chronicle.errors import RemoteServiceError
from chronicle.models import EntityKind
from chronicle.service.base import collection_path, entity_path

logger = logging.getLogger(__name__)


def extract_message(response: httpx.Response) -> str | None:
    """Read the ``message`` field of a structured error body, if any.

    Validation failures carry a list of messages; those are joined.
    """
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    message = body.get("message")
    if isinstance(message, list):
        message = "; ".join(str(m) for m in message if m)
    if isinstance(message, str) and message.strip():
        return message.strip()
    return None


class HttpEntityService:
    """Talks to the REST backend. One AsyncClient per instance."""

    def __init__(
        self,
        config: ServiceConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            headers=headers,
            timeout=config.timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> HttpEntityService:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _request(self, method: str, path: str, payload: dict | None = None) -> Any:
        try:
            response = await self._client.request(method, path, json=payload)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise RemoteServiceError() from e

        if response.is_error:
            message = extract_message(response)
            logger.warning("%s %s -> %d %s", method, path, response.status_code, message or "")
            raise RemoteServiceError(message, response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RemoteServiceError(None, response.status_code) from e

    # ── Bulk load ────────────────────────────────────────────

    async def fetch_user_data(self) -> dict:
        return await self._request("GET", "/me/data")

    # ── Projects ─────────────────────────────────────────────

    async def create_project(self, name: str) -> dict:
        return await self._request("POST", "/projects", {"name": name})

    async def update_project(self, project_id: str, name: str) -> dict:
        return await self._request("PUT", f"/projects/{project_id}", {"name": name})

    async def delete_project(self, project_id: str) -> None:
        await self._request("DELETE", f"/projects/{project_id}")

    # ── Entities ─────────────────────────────────────────────

    async def create(
        self, project_id: str, kind: EntityKind, payload: dict, *, parent_id: str | None = None
    ) -> dict:
        return await self._request("POST", collection_path(project_id, kind, parent_id), payload)

    async def update(
        self, project_id: str, kind: EntityKind, entity_id: str, payload: dict
    ) -> dict:
        return await self._request("PUT", entity_path(project_id, kind, entity_id), payload)

    async def delete(self, project_id: str, kind: EntityKind, entity_id: str) -> None:
        await self._request("DELETE", entity_path(project_id, kind, entity_id))

    # ── Reorder ──────────────────────────────────────────────

    async def reorder_eras(self, project_id: str, ordered_ids: list[str]) -> list[dict]:
        return await self._request(
            "POST", f"/projects/{project_id}/eras/reorder", {"orderedIds": list(ordered_ids)}
        )

    async def reorder_events(
        self, project_id: str, era_id: str, ordered_ids: list[str]
    ) -> list[dict]:
        return await self._request(
            "POST",
            f"/projects/{project_id}/eras/{era_id}/events/reorder",
            {"orderedIds": list(ordered_ids)},
        )
