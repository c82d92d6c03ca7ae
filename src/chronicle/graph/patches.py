"""Patch instructions accepted by ``EntityGraphStore.apply``."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from chronicle.models import Entity, EntityKind, Project, UserData


@dataclass(frozen=True)
class ReplaceUserData:
    """Swap the whole graph (bulk load, snapshot restore)."""

    data: UserData


@dataclass(frozen=True)
class Clear:
    """Drop all user data (logout)."""


@dataclass(frozen=True)
class PutProject:
    """Insert or replace a project wholesale."""

    project: Project


@dataclass(frozen=True)
class RemoveProject:
    project_id: str


@dataclass(frozen=True)
class InsertEntity:
    project_id: str
    kind: EntityKind
    entity: Entity
    at_start: bool = False


@dataclass(frozen=True)
class ReplaceEntity:
    project_id: str
    kind: EntityKind
    entity: Entity


@dataclass(frozen=True)
class RemoveEntity:
    """Remove one entity.

    With ``cascade`` an era takes its events with it. Removing an era or an
    event renumbers the remaining siblings densely.
    """

    project_id: str
    kind: EntityKind
    entity_id: str
    cascade: bool = True


@dataclass(frozen=True)
class ReplaceCollection:
    """Replace one ordered sub-collection with the server's canonical one."""

    project_id: str
    kind: EntityKind
    items: tuple


Patch = Union[
    ReplaceUserData,
    Clear,
    PutProject,
    RemoveProject,
    InsertEntity,
    ReplaceEntity,
    RemoveEntity,
    ReplaceCollection,
]
