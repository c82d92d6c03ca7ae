"""Ordering engine for eras and per-era events.

Every function recomputes the complete dense ``1..n`` assignment for a scope
instead of patching individual order values, so repeated partial reorders
cannot drift. Items whose order is already correct are returned as the same
object.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import replace
from typing import Iterable, Sequence, TypeVar

from chronicle.errors import ContractViolationError, EntityNotFoundError
from chronicle.models import Era, TimelineEvent

logger = logging.getLogger(__name__)

T = TypeVar("T", Era, TimelineEvent)


def sort_by_order(items: Iterable[T]) -> list[T]:
    """Stable sort on ``order``; ties keep their stored sequence."""
    return sorted(items, key=lambda item: item.order)


def _with_order(item: T, order: int) -> T:
    return item if item.order == order else replace(item, order=order)


def check_permutation(current_ids: Sequence[str], ordered_ids: Sequence[str], scope: str) -> None:
    """Raise ContractViolationError unless ordered_ids permutes current_ids."""
    current = set(current_ids)
    counts = Counter(ordered_ids)
    duplicates = sorted(i for i, n in counts.items() if n > 1)
    missing = sorted(current - counts.keys())
    foreign = sorted(counts.keys() - current)
    if duplicates or missing or foreign:
        raise ContractViolationError(scope, missing=missing, foreign=foreign, duplicates=duplicates)


def renumber(items: Sequence[T], ordered_ids: Sequence[str], scope: str = "collection") -> list[T]:
    """Return items in ordered_ids sequence with ``order = index + 1``."""
    check_permutation([item.id for item in items], ordered_ids, scope)
    by_id = {item.id: item for item in items}
    return [_with_order(by_id[item_id], index + 1) for index, item_id in enumerate(ordered_ids)]


def close_gaps(items: Iterable[T]) -> list[T]:
    """Densely renumber items keeping their current relative order."""
    return [_with_order(item, index + 1) for index, item in enumerate(sort_by_order(items))]


def is_dense(items: Iterable[Era | TimelineEvent]) -> bool:
    orders = sorted(item.order for item in items)
    return orders == list(range(1, len(orders) + 1))


def events_by_era(timeline: Iterable[TimelineEvent]) -> dict[str, list[TimelineEvent]]:
    grouped: dict[str, list[TimelineEvent]] = {}
    for event in timeline:
        grouped.setdefault(event.era_id, []).append(event)
    return {era_id: sort_by_order(events) for era_id, events in grouped.items()}


def timeline_is_dense(timeline: Iterable[TimelineEvent]) -> bool:
    return all(is_dense(events) for events in events_by_era(timeline).values())


def delete_era(
    eras: Sequence[Era], timeline: Sequence[TimelineEvent], era_id: str
) -> tuple[tuple[Era, ...], tuple[TimelineEvent, ...]]:
    """Remove an era, close the gap in era orders, and drop its events."""
    if not any(era.id == era_id for era in eras):
        raise EntityNotFoundError("era", era_id)
    remaining = close_gaps(era for era in eras if era.id != era_id)
    # keep stored sequence; only order values change
    renumbered = {era.id: era for era in remaining}
    new_eras = tuple(renumbered[era.id] for era in eras if era.id != era_id)
    new_timeline = tuple(event for event in timeline if event.era_id != era_id)
    dropped = len(timeline) - len(new_timeline)
    if dropped:
        logger.debug("Era %s removed with %d events", era_id, dropped)
    return new_eras, new_timeline


def delete_event(timeline: Sequence[TimelineEvent], event_id: str) -> tuple[TimelineEvent, ...]:
    """Remove an event and close the gap among its era's siblings."""
    target = next((event for event in timeline if event.id == event_id), None)
    if target is None:
        raise EntityNotFoundError("event", event_id)
    siblings = close_gaps(
        event for event in timeline if event.era_id == target.era_id and event.id != event_id
    )
    renumbered = {event.id: event for event in siblings}
    return tuple(
        renumbered.get(event.id, event) for event in timeline if event.id != event_id
    )


def plan_move(
    timeline: Sequence[TimelineEvent],
    event_id: str,
    to_era_id: str,
    position: int | None = None,
) -> tuple[list[str], list[str]]:
    """Ordered id lists for the origin and destination eras of a move.

    ``position`` is a 0-based index into the destination era's current
    sequence; ``None`` appends.
    """
    target = next((event for event in timeline if event.id == event_id), None)
    if target is None:
        raise EntityNotFoundError("event", event_id)
    grouped = events_by_era(timeline)
    origin = [e.id for e in grouped.get(target.era_id, []) if e.id != event_id]
    destination = [e.id for e in grouped.get(to_era_id, []) if e.id != event_id]
    if position is None or position > len(destination):
        position = len(destination)
    destination.insert(max(position, 0), event_id)
    return origin, destination
