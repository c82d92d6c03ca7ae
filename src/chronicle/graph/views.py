"""Derived read-only views over a project.

Deleting an entity does not retract its id from other entities' link lists
(the service keeps them as written). ``resolve_links`` tolerates those
dangling ids at read time and ``dangling_links`` reports them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from chronicle.graph import ordering
from chronicle.models import Entity, EntityKind, Era, Project, TimelineEvent

# link field -> kind it points at
LINK_FIELDS: dict[str, EntityKind] = {
    "linked_character_ids": EntityKind.CHARACTER,
    "linked_writing_ids": EntityKind.WRITING,
    "linked_event_ids": EntityKind.EVENT,
    "linked_world_id": EntityKind.WORLD,
}


@dataclass(frozen=True)
class DanglingLink:
    kind: EntityKind
    entity_id: str
    field: str
    target_id: str


def unique_tags(events: Iterable[TimelineEvent]) -> list[str]:
    """Sorted set of every tag used by the given events."""
    tags: set[str] = set()
    for event in events:
        tags.update(event.tags)
    return sorted(tags)


def timeline_by_era(project: Project) -> list[tuple[Era, list[TimelineEvent]]]:
    """Eras in display order, each with its events in display order."""
    grouped = ordering.events_by_era(project.timeline)
    return [(era, grouped.get(era.id, [])) for era in ordering.sort_by_order(project.eras)]


def _targets(entity: Entity, field: str) -> tuple[str, ...]:
    value = getattr(entity, field, None)
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(value)


def resolve_links(project: Project, entity: Entity) -> dict[str, list[Entity]]:
    """Linked entities per link field, silently skipping missing targets."""
    index = {kind: {e.id: e for e in project.collection(kind)} for kind in set(LINK_FIELDS.values())}
    resolved: dict[str, list[Entity]] = {}
    for field, kind in LINK_FIELDS.items():
        if not hasattr(entity, field):
            continue
        resolved[field] = [index[kind][t] for t in _targets(entity, field) if t in index[kind]]
    return resolved


def dangling_links(project: Project) -> list[DanglingLink]:
    """Every link id in the project that names no existing entity."""
    known = {kind: {e.id for e in project.collection(kind)} for kind in set(LINK_FIELDS.values())}
    found: list[DanglingLink] = []
    for kind in EntityKind:
        for entity in project.collection(kind):
            for field, target_kind in LINK_FIELDS.items():
                for target in _targets(entity, field):
                    if target not in known[target_kind]:
                        found.append(DanglingLink(kind, entity.id, field, target))
    # events must always point at an era of the same project
    era_ids = {era.id for era in project.eras}
    for event in project.timeline:
        if event.era_id not in era_ids:
            found.append(DanglingLink(EntityKind.EVENT, event.id, "era_id", event.era_id))
    return found
