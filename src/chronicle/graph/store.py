"""Entity graph store: the single in-memory copy of a user's projects.

The store performs no I/O and never assigns ids. Its one write path is
``apply(patch)``; each patch rebuilds only the project and collection it
touches, so every other object keeps its identity across the write and
readers can memoize on ``is``.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable

from chronicle.errors import EntityNotFoundError, NoUserDataError, ProjectNotFoundError
from chronicle.graph import ordering
from chronicle.graph.patches import (
    Clear,
    InsertEntity,
    Patch,
    PutProject,
    RemoveEntity,
    RemoveProject,
    ReplaceCollection,
    ReplaceEntity,
    ReplaceUserData,
)
from chronicle.models import Entity, Era, EntityKind, Project, TimelineEvent, UserData

logger = logging.getLogger(__name__)

Listener = Callable[[UserData | None], None]


class EntityGraphStore:
    """Holds ``UserData`` and applies patches to it."""

    def __init__(self, data: UserData | None = None) -> None:
        self._data = data
        self._listeners: list[Listener] = []

    # ── Reads ────────────────────────────────────────────────

    @property
    def data(self) -> UserData | None:
        return self._data

    @property
    def username(self) -> str | None:
        return self._data.username if self._data else None

    def project(self, project_id: str) -> Project:
        data = self._require_data()
        project = data.projects.get(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    def entities(self, project_id: str, kind: EntityKind) -> tuple:
        return self.project(project_id).collection(kind)

    def find(self, project_id: str, kind: EntityKind, entity_id: str) -> Entity | None:
        for entity in self.entities(project_id, kind):
            if entity.id == entity_id:
                return entity
        return None

    def get(self, project_id: str, kind: EntityKind, entity_id: str) -> Entity:
        entity = self.find(project_id, kind, entity_id)
        if entity is None:
            raise EntityNotFoundError(kind.noun, entity_id)
        return entity

    def eras(self, project_id: str) -> list[Era]:
        return ordering.sort_by_order(self.project(project_id).eras)

    def events_in_era(self, project_id: str, era_id: str) -> list[TimelineEvent]:
        return ordering.sort_by_order(
            e for e in self.project(project_id).timeline if e.era_id == era_id
        )

    # ── Subscriptions ────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call listener with the new data after every applied patch."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._data)
            except Exception:
                logger.exception("Store listener %r failed", listener)

    # ── Writes ───────────────────────────────────────────────

    def apply(self, patch: Patch) -> UserData | None:
        """Apply one patch and notify subscribers. Returns the new data."""
        self._data = self._reduce(patch)
        logger.debug("Applied %s", type(patch).__name__)
        self._notify()
        return self._data

    def _require_data(self) -> UserData:
        if self._data is None:
            raise NoUserDataError()
        return self._data

    def _reduce(self, patch: Patch) -> UserData | None:
        if isinstance(patch, ReplaceUserData):
            return patch.data
        if isinstance(patch, Clear):
            return None

        data = self._require_data()

        if isinstance(patch, PutProject):
            return self._with_project(data, patch.project)
        if isinstance(patch, RemoveProject):
            if patch.project_id not in data.projects:
                raise ProjectNotFoundError(patch.project_id)
            projects = {pid: p for pid, p in data.projects.items() if pid != patch.project_id}
            return replace(data, projects=projects)

        project = self.project(patch.project_id)

        if isinstance(patch, InsertEntity):
            items = project.collection(patch.kind)
            items = (patch.entity, *items) if patch.at_start else (*items, patch.entity)
            return self._with_project(data, replace(project, **{patch.kind.value: items}))

        if isinstance(patch, ReplaceEntity):
            items = project.collection(patch.kind)
            if not any(item.id == patch.entity.id for item in items):
                raise EntityNotFoundError(patch.kind.noun, patch.entity.id)
            items = tuple(patch.entity if item.id == patch.entity.id else item for item in items)
            return self._with_project(data, replace(project, **{patch.kind.value: items}))

        if isinstance(patch, RemoveEntity):
            return self._with_project(data, self._remove(project, patch))

        if isinstance(patch, ReplaceCollection):
            return self._with_project(
                data, replace(project, **{patch.kind.value: tuple(patch.items)})
            )

        raise TypeError(f"Unsupported patch: {patch!r}")

    def _remove(self, project: Project, patch: RemoveEntity) -> Project:
        if patch.kind is EntityKind.ERA and patch.cascade:
            eras, timeline = ordering.delete_era(project.eras, project.timeline, patch.entity_id)
            return replace(project, eras=eras, timeline=timeline)
        if patch.kind is EntityKind.ERA:
            if not any(era.id == patch.entity_id for era in project.eras):
                raise EntityNotFoundError("era", patch.entity_id)
            remaining = {e.id: e for e in ordering.close_gaps(
                era for era in project.eras if era.id != patch.entity_id
            )}
            return replace(project, eras=tuple(
                remaining[era.id] for era in project.eras if era.id in remaining
            ))
        if patch.kind is EntityKind.EVENT:
            return replace(project, timeline=ordering.delete_event(project.timeline, patch.entity_id))

        items = project.collection(patch.kind)
        kept = tuple(item for item in items if item.id != patch.entity_id)
        if len(kept) == len(items):
            raise EntityNotFoundError(patch.kind.noun, patch.entity_id)
        return replace(project, **{patch.kind.value: kept})

    @staticmethod
    def _with_project(data: UserData, project: Project) -> UserData:
        projects = dict(data.projects)
        projects[project.project_id] = project
        return replace(data, projects=projects)
