"""Remote entity service protocol and route table."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from chronicle.models import EntityKind

# URL segment per kind for update/delete (and create, except events)
SEGMENTS: dict[EntityKind, str] = {
    EntityKind.CHARACTER: "characters",
    EntityKind.WORLD: "worlds",
    EntityKind.WRITING: "writings",
    EntityKind.EVENT: "timeline",
    EntityKind.ERA: "eras",
    EntityKind.CATALOGUE: "catalogue",
}


def collection_path(project_id: str, kind: EntityKind, parent_id: str | None = None) -> str:
    """Create endpoint. Events are created under their era."""
    if kind is EntityKind.EVENT:
        if not parent_id:
            raise ValueError("Creating an event requires its eraId")
        return f"/projects/{project_id}/eras/{parent_id}/events"
    return f"/projects/{project_id}/{SEGMENTS[kind]}"


def entity_path(project_id: str, kind: EntityKind, entity_id: str) -> str:
    return f"/projects/{project_id}/{SEGMENTS[kind]}/{entity_id}"


@runtime_checkable
class EntityService(Protocol):
    """Authoritative per-entity CRUD, scoped by project.

    Every mutating call returns the canonical JSON shape of what it changed;
    deletes return nothing. Failures raise ``RemoteServiceError``.
    """

    async def fetch_user_data(self) -> dict:
        """Return the authenticated user's whole graph (``GET /me/data``)."""
        ...

    async def create_project(self, name: str) -> dict: ...

    async def update_project(self, project_id: str, name: str) -> dict: ...

    async def delete_project(self, project_id: str) -> None: ...

    async def create(
        self, project_id: str, kind: EntityKind, payload: dict, *, parent_id: str | None = None
    ) -> dict: ...

    async def update(
        self, project_id: str, kind: EntityKind, entity_id: str, payload: dict
    ) -> dict: ...

    async def delete(self, project_id: str, kind: EntityKind, entity_id: str) -> None: ...

    async def reorder_eras(self, project_id: str, ordered_ids: list[str]) -> list[dict]:
        """Return every era of the project, renumbered."""
        ...

    async def reorder_events(
        self, project_id: str, era_id: str, ordered_ids: list[str]
    ) -> list[dict]:
        """Return the project's full timeline after renumbering one era."""
        ...
