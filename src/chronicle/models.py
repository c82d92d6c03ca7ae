"""Entity types for a user's projects.

Entities are frozen dataclasses whose list-valued fields are tuples, so a
patch can share every untouched object between the old and the new graph.
``from_dict`` / ``to_dict`` translate the service's camelCase JSON shape.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


def _ids(data: dict, key: str) -> tuple[str, ...]:
    return tuple(data.get(key) or ())


@dataclass(frozen=True)
class Era:
    """Orderable chronological grouping of timeline events."""

    id: str
    name: str
    order: int
    description: str | None = None

    @property
    def display_name(self) -> str:
        return self.name

    @classmethod
    def from_dict(cls, data: dict) -> Era:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            order=int(data.get("order", 0)),
            description=data.get("description"),
        )

    def to_dict(self) -> dict:
        out: dict[str, Any] = {"id": self.id, "name": self.name, "order": self.order}
        if self.description is not None:
            out["description"] = self.description
        return out


@dataclass(frozen=True)
class TimelineEvent:
    """An event placed inside exactly one era.

    ``order`` is unique within the era only; ``display_date`` is a narrative
    label, never parsed.
    """

    id: str
    era_id: str
    order: int
    title: str
    display_date: str = ""
    description: str = ""
    tags: tuple[str, ...] = ()
    linked_character_ids: tuple[str, ...] = ()
    linked_writing_ids: tuple[str, ...] = ()

    @property
    def display_name(self) -> str:
        return self.title

    @classmethod
    def from_dict(cls, data: dict) -> TimelineEvent:
        return cls(
            id=data["id"],
            era_id=data["eraId"],
            order=int(data.get("order", 0)),
            title=data.get("title", ""),
            display_date=data.get("displayDate", ""),
            description=data.get("description", ""),
            tags=_ids(data, "tags"),
            linked_character_ids=_ids(data, "linkedCharacterIds"),
            linked_writing_ids=_ids(data, "linkedWritingIds"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "eraId": self.era_id,
            "displayDate": self.display_date,
            "order": self.order,
            "title": self.title,
            "description": self.description,
            "tags": list(self.tags),
            "linkedCharacterIds": list(self.linked_character_ids),
            "linkedWritingIds": list(self.linked_writing_ids),
        }


@dataclass(frozen=True)
class Trait:
    """A labelled character attribute. Position in the list is its order."""

    id: str
    label: str
    value: str = ""
    is_custom: bool = False
    is_textarea: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> Trait:
        return cls(
            id=data["id"],
            label=data.get("label", ""),
            value=data.get("value", ""),
            is_custom=bool(data.get("isCustom", False)),
            is_textarea=bool(data.get("isTextarea", False)),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "value": self.value,
            "isCustom": self.is_custom,
            "isTextarea": self.is_textarea,
        }


@dataclass(frozen=True)
class Character:
    id: str
    name: str
    species: str = ""
    linked_world_id: str | None = None
    linked_event_ids: tuple[str, ...] = ()
    linked_writing_ids: tuple[str, ...] = ()
    traits: tuple[Trait, ...] = ()

    @property
    def display_name(self) -> str:
        return self.name

    @classmethod
    def from_dict(cls, data: dict) -> Character:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            species=data.get("species", ""),
            linked_world_id=data.get("linkedWorldId"),
            linked_event_ids=_ids(data, "linkedEventIds"),
            linked_writing_ids=_ids(data, "linkedWritingIds"),
            traits=tuple(Trait.from_dict(t) for t in data.get("traits") or ()),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "species": self.species,
            "linkedWorldId": self.linked_world_id,
            "linkedEventIds": list(self.linked_event_ids),
            "linkedWritingIds": list(self.linked_writing_ids),
            "traits": [t.to_dict() for t in self.traits],
        }


@dataclass(frozen=True)
class World:
    id: str
    name: str
    theme: str = ""
    setting: str = ""
    description: str = ""
    linked_character_ids: tuple[str, ...] = ()
    linked_writing_ids: tuple[str, ...] = ()
    linked_event_ids: tuple[str, ...] = ()

    @property
    def display_name(self) -> str:
        return self.name

    @classmethod
    def from_dict(cls, data: dict) -> World:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            theme=data.get("theme", ""),
            setting=data.get("setting", ""),
            description=data.get("description", ""),
            linked_character_ids=_ids(data, "linkedCharacterIds"),
            linked_writing_ids=_ids(data, "linkedWritingIds"),
            linked_event_ids=_ids(data, "linkedEventIds"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "theme": self.theme,
            "setting": self.setting,
            "description": self.description,
            "linkedCharacterIds": list(self.linked_character_ids),
            "linkedWritingIds": list(self.linked_writing_ids),
            "linkedEventIds": list(self.linked_event_ids),
        }


@dataclass(frozen=True)
class WritingEntry:
    """A prose entry. Timestamps are epoch milliseconds set by the service."""

    id: str
    title: str
    content: str = ""
    tags: tuple[str, ...] = ()
    linked_character_ids: tuple[str, ...] = ()
    linked_world_id: str | None = None
    linked_event_ids: tuple[str, ...] = ()
    created_at: int = 0
    updated_at: int = 0

    @property
    def display_name(self) -> str:
        return self.title

    @classmethod
    def from_dict(cls, data: dict) -> WritingEntry:
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            content=data.get("content", ""),
            tags=_ids(data, "tags"),
            linked_character_ids=_ids(data, "linkedCharacterIds"),
            linked_world_id=data.get("linkedWorldId"),
            linked_event_ids=_ids(data, "linkedEventIds"),
            created_at=int(data.get("createdAt", 0)),
            updated_at=int(data.get("updatedAt", 0)),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "tags": list(self.tags),
            "linkedCharacterIds": list(self.linked_character_ids),
            "linkedWorldId": self.linked_world_id,
            "linkedEventIds": list(self.linked_event_ids),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass(frozen=True)
class CatalogueItem:
    id: str
    name: str
    category: str = ""
    description: str = ""
    linked_character_ids: tuple[str, ...] = ()
    linked_world_id: str | None = None
    linked_event_ids: tuple[str, ...] = ()
    linked_writing_ids: tuple[str, ...] = ()

    @property
    def display_name(self) -> str:
        return self.name

    @classmethod
    def from_dict(cls, data: dict) -> CatalogueItem:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            category=data.get("category", ""),
            description=data.get("description", ""),
            linked_character_ids=_ids(data, "linkedCharacterIds"),
            linked_world_id=data.get("linkedWorldId"),
            linked_event_ids=_ids(data, "linkedEventIds"),
            linked_writing_ids=_ids(data, "linkedWritingIds"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "linkedCharacterIds": list(self.linked_character_ids),
            "linkedWorldId": self.linked_world_id,
            "linkedEventIds": list(self.linked_event_ids),
            "linkedWritingIds": list(self.linked_writing_ids),
        }


Entity = Union[Character, World, WritingEntry, TimelineEvent, Era, CatalogueItem]


class EntityKind(str, Enum):
    """The six entity collections of a project. Value is the attribute name."""

    CHARACTER = "characters"
    WORLD = "worlds"
    WRITING = "writings"
    EVENT = "timeline"
    ERA = "eras"
    CATALOGUE = "catalogue"

    @property
    def model(self) -> type:
        return _MODELS[self]

    @property
    def noun(self) -> str:
        return _NOUNS[self]

    @property
    def ordered(self) -> bool:
        return self in (EntityKind.ERA, EntityKind.EVENT)


_MODELS: dict[EntityKind, type] = {
    EntityKind.CHARACTER: Character,
    EntityKind.WORLD: World,
    EntityKind.WRITING: WritingEntry,
    EntityKind.EVENT: TimelineEvent,
    EntityKind.ERA: Era,
    EntityKind.CATALOGUE: CatalogueItem,
}

_NOUNS: dict[EntityKind, str] = {
    EntityKind.CHARACTER: "character",
    EntityKind.WORLD: "world",
    EntityKind.WRITING: "manuscript",
    EntityKind.EVENT: "event",
    EntityKind.ERA: "era",
    EntityKind.CATALOGUE: "catalogue item",
}


@dataclass(frozen=True)
class Project:
    """One isolated entity graph. Collections are tuples in stored order."""

    project_id: str
    name: str
    characters: tuple[Character, ...] = ()
    worlds: tuple[World, ...] = ()
    writings: tuple[WritingEntry, ...] = ()
    timeline: tuple[TimelineEvent, ...] = ()
    eras: tuple[Era, ...] = ()
    catalogue: tuple[CatalogueItem, ...] = ()

    def collection(self, kind: EntityKind) -> tuple:
        return getattr(self, kind.value)

    @classmethod
    def from_dict(cls, data: dict) -> Project:
        collections = {
            kind.value: tuple(kind.model.from_dict(item) for item in data.get(kind.value) or ())
            for kind in EntityKind
        }
        return cls(project_id=data["projectId"], name=data.get("name", ""), **collections)

    def to_dict(self) -> dict:
        out: dict[str, Any] = {"projectId": self.project_id, "name": self.name}
        for kind in EntityKind:
            out[kind.value] = [item.to_dict() for item in self.collection(kind)]
        return out


@dataclass(frozen=True)
class UserData:
    """A user's complete graph: ``projects`` maps project id to project.

    The mapping is never mutated in place; patches build a new dict.
    """

    username: str
    projects: dict[str, Project] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> UserData:
        projects = {
            pid: Project.from_dict({"projectId": pid, **payload})
            for pid, payload in (data.get("projects") or {}).items()
        }
        return cls(username=data["username"], projects=projects)

    def to_dict(self) -> dict:
        return {
            "username": self.username,
            "projects": {pid: p.to_dict() for pid, p in self.projects.items()},
        }
