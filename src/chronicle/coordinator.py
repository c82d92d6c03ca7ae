"""Mutation coordinator: the only caller of the remote service and the only
writer of the entity graph store.

Responsibilities:
1. Run every create / update / delete / reorder against the service
2. Patch the store from the canonical response only (never from a guess)
3. Leave the store untouched when a call fails, record a readable message,
   re-raise
4. Track in-flight mutations (``busy``) and per-target issue order
5. Publish committed / failed outcomes to subscribers (notifications)
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Hashable, TypeVar

from chronicle.errors import ChronicleError, RemoteServiceError
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
from chronicle.graph.store import EntityGraphStore
from chronicle.models import EntityKind, Era, Project, TimelineEvent, UserData

if TYPE_CHECKING:
    from chronicle.graph.snapshot import SnapshotStore
    from chronicle.service.base import EntityService

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MutationState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    COMMITTED = "committed"
    FAILED = "failed"


@dataclass
class Mutation:
    """One invocation's lifecycle: pending → committed | failed."""

    label: str
    target: Hashable
    seq: int
    state: MutationState = MutationState.PENDING
    message: str | None = None
    applied: bool = False


@dataclass(frozen=True)
class MutationOutcome:
    """What subscribers hear after a mutation settles."""

    label: str
    state: MutationState
    message: str
    project_id: str | None = None
    kind: EntityKind | None = None


OutcomeListener = Callable[[MutationOutcome], None]


def user_message(error: BaseException, fallback: str) -> str:
    """The service's own message when it sent one, else the fallback."""
    if isinstance(error, RemoteServiceError) and error.message:
        return error.message
    return fallback


class MutationCoordinator:
    """Confirmed-write protocol between the presentation layer and the service."""

    def __init__(
        self,
        service: EntityService,
        store: EntityGraphStore | None = None,
        snapshots: SnapshotStore | None = None,
    ) -> None:
        self.service = service
        self.store = store or EntityGraphStore()
        self.snapshots = snapshots
        if snapshots is not None:
            self.store.subscribe(snapshots.writer())
        self.current_project_id: str | None = None
        self.error: str | None = None
        self.last_mutation: Mutation | None = None
        self._listeners: list[OutcomeListener] = []
        self._pending = 0
        self._in_flight: Counter[tuple[str | None, EntityKind | None]] = Counter()
        self._seq = 0
        self._committed_seq: dict[Hashable, int] = {}
        self._targets: Counter[Hashable] = Counter()

    # ── Busy flag ────────────────────────────────────────────

    @property
    def busy(self) -> bool:
        """True while any mutation is waiting on the service."""
        return self._pending > 0

    @property
    def state(self) -> MutationState:
        return MutationState.PENDING if self.busy else MutationState.IDLE

    def is_pending(self, project_id: str | None = None, kind: EntityKind | None = None) -> bool:
        """Scoped busy check; ``None`` matches anything."""
        return any(
            count > 0
            and (project_id is None or pid == project_id)
            and (kind is None or k == kind)
            for (pid, k), count in self._in_flight.items()
        )

    # ── Notifications ────────────────────────────────────────

    def subscribe(self, listener: OutcomeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, outcome: MutationOutcome) -> None:
        for listener in list(self._listeners):
            try:
                listener(outcome)
            except Exception:
                logger.exception("Outcome listener %r failed", listener)

    # ── Core protocol ────────────────────────────────────────

    async def _run(
        self,
        *,
        label: str,
        fallback: str,
        target: Hashable,
        call: Callable[[], Awaitable[T]],
        commit: Callable[[T], Patch | None],
        success: Callable[[T], str],
        project_id: str | None = None,
        kind: EntityKind | None = None,
    ) -> T:
        self._seq += 1
        mutation = Mutation(label=label, target=target, seq=self._seq)
        self.last_mutation = mutation
        self.error = None
        scope = (project_id, kind)
        self._pending += 1
        self._in_flight[scope] += 1
        self._targets[target] += 1
        try:
            result = await call()
        except Exception as e:
            message = user_message(e, fallback)
            mutation.state = MutationState.FAILED
            mutation.message = message
            self.error = message
            logger.warning("%s failed: %s", label, e)
            self._publish(MutationOutcome(label, MutationState.FAILED, message, project_id, kind))
            self._release(target)
            raise
        finally:
            self._pending -= 1
            self._in_flight[scope] -= 1
            if self._in_flight[scope] <= 0:
                del self._in_flight[scope]

        mutation.state = MutationState.COMMITTED
        try:
            mutation.applied = self._commit(mutation, commit(result))
        finally:
            self._release(target)
        mutation.message = success(result)
        logger.info("%s committed", label)
        self._publish(
            MutationOutcome(label, MutationState.COMMITTED, mutation.message, project_id, kind)
        )
        return result

    def _commit(self, mutation: Mutation, patch: Patch | None) -> bool:
        """Apply patch unless a later-issued mutation on the same target won."""
        if patch is None:
            return False
        newest = self._committed_seq.get(mutation.target, 0)
        if newest > mutation.seq:
            logger.debug(
                "Discarding stale response for %s (seq %d < %d)", mutation.label, mutation.seq, newest
            )
            return False
        try:
            self.store.apply(patch)
        except ChronicleError as e:
            # the service committed; the entity is already gone locally
            logger.warning("Response for %s not applied: %s", mutation.label, e)
            return False
        self._committed_seq[mutation.target] = mutation.seq
        return True

    def _release(self, target: Hashable) -> None:
        """Forget a target's sequence once nothing is in flight against it."""
        self._targets[target] -= 1
        if self._targets[target] <= 0:
            del self._targets[target]
            self._committed_seq.pop(target, None)

    def _project_id(self, project_id: str | None) -> str:
        pid = project_id or self.current_project_id
        if not pid:
            raise ChronicleError("No active project selected.")
        return pid

    # ── Session ──────────────────────────────────────────────

    async def load_user_data(self) -> UserData:
        """Bulk-load the whole graph; replaces whatever the store held."""

        async def call() -> UserData:
            return UserData.from_dict(await self.service.fetch_user_data())

        data = await self._run(
            label="load user data",
            fallback="Failed to load your data.",
            target=("user",),
            call=call,
            commit=ReplaceUserData,
            success=lambda d: f"Loaded {len(d.projects)} chronicles for {d.username}.",
        )
        if self.current_project_id not in data.projects:
            self.current_project_id = None
        return data

    def restore_snapshot(self, username: str) -> UserData | None:
        """Seed the store from the local snapshot (offline start)."""
        if self.snapshots is None:
            return None
        data = self.snapshots.load(username)
        if data is not None:
            self.store.apply(ReplaceUserData(data))
        return data

    def logout(self) -> None:
        self.current_project_id = None
        self.error = None
        self.store.apply(Clear())

    def set_current_project(self, project_id: str) -> Project:
        project = self.store.project(project_id)
        self.current_project_id = project_id
        return project

    # ── Projects ─────────────────────────────────────────────

    async def create_project(self, name: str) -> Project:
        async def call() -> Project:
            return Project.from_dict(await self.service.create_project(name))

        return await self._run(
            label="create project",
            fallback="Failed to create project.",
            target=("project", None, self._seq + 1),
            call=call,
            commit=PutProject,
            success=lambda p: f'Chronicle "{p.name}" created.',
        )

    async def rename_project(self, project_id: str, name: str) -> Project:
        async def call() -> Project:
            return Project.from_dict(await self.service.update_project(project_id, name))

        return await self._run(
            label="rename project",
            fallback="Failed to rename project.",
            target=("project", project_id),
            call=call,
            commit=PutProject,
            success=lambda p: f'Chronicle renamed to "{p.name}".',
            project_id=project_id,
        )

    async def delete_project(self, project_id: str) -> None:
        name = self.store.data.projects[project_id].name if self._has_project(project_id) else None

        def commit(_: None) -> Patch:
            if self.current_project_id == project_id:
                self.current_project_id = None
            return RemoveProject(project_id)

        await self._run(
            label="delete project",
            fallback="Failed to delete project.",
            target=("project", project_id),
            call=lambda: self.service.delete_project(project_id),
            commit=commit,
            success=lambda _: f'Chronicle "{name or project_id}" deleted.',
            project_id=project_id,
        )

    def _has_project(self, project_id: str) -> bool:
        data = self.store.data
        return data is not None and project_id in data.projects

    # ── Entities ─────────────────────────────────────────────

    async def create(
        self, kind: EntityKind, payload: dict, *, project_id: str | None = None
    ) -> Any:
        """Create an entity; the response carries its id (and order)."""
        pid = self._project_id(project_id)
        parent_id = payload.get("eraId") if kind is EntityKind.EVENT else None

        async def call():
            data = await self.service.create(pid, kind, payload, parent_id=parent_id)
            return kind.model.from_dict(data)

        return await self._run(
            label=f"create {kind.noun}",
            fallback=f"Failed to create {kind.noun}.",
            # fresh target: nothing else can be issued against an id not yet known
            target=(pid, kind, "new", self._seq + 1),
            call=call,
            # new manuscripts go first
            commit=lambda entity: InsertEntity(
                pid, kind, entity, at_start=kind is EntityKind.WRITING
            ),
            success=lambda e: f'Created {kind.noun} "{e.display_name}".',
            project_id=pid,
            kind=kind,
        )

    async def update(
        self,
        kind: EntityKind,
        entity_id: str,
        changes: dict,
        *,
        project_id: str | None = None,
    ) -> Any:
        """Update an entity and replace it with the canonical response."""
        pid = self._project_id(project_id)

        async def call():
            payload = dict(changes)
            if kind is EntityKind.WORLD:
                # worlds are replaced wholesale server-side: send the merged object
                original = self.store.get(pid, kind, entity_id)
                payload = {**original.to_dict(), **changes}
                payload.pop("id", None)
            data = await self.service.update(pid, kind, entity_id, payload)
            return kind.model.from_dict(data)

        return await self._run(
            label=f"update {kind.noun}",
            fallback=f"Failed to update {kind.noun}.",
            target=(pid, kind, entity_id),
            call=call,
            commit=lambda entity: ReplaceEntity(pid, kind, entity),
            success=lambda e: f'Updated {kind.noun} "{e.display_name}".',
            project_id=pid,
            kind=kind,
        )

    async def delete(
        self, kind: EntityKind, entity_id: str, *, project_id: str | None = None
    ) -> None:
        """Delete an entity. Deleting an era also removes its events."""
        pid = self._project_id(project_id)
        existing = self.store.find(pid, kind, entity_id) if self._has_project(pid) else None
        name = existing.display_name if existing is not None else entity_id
        suffix = " and all its events" if kind is EntityKind.ERA else ""

        await self._run(
            label=f"delete {kind.noun}",
            fallback=f"Failed to delete {kind.noun}.",
            target=(pid, kind, entity_id),
            call=lambda: self.service.delete(pid, kind, entity_id),
            commit=lambda _: RemoveEntity(pid, kind, entity_id, cascade=True),
            success=lambda _: f'Deleted {kind.noun} "{name}"{suffix}.',
            project_id=pid,
            kind=kind,
        )

    # ── Ordering ─────────────────────────────────────────────

    async def reorder_eras(
        self, ordered_ids: list[str], *, project_id: str | None = None
    ) -> list[Era]:
        """Reorder all eras; the store takes the server's renumbered list."""
        pid = self._project_id(project_id)

        async def call() -> list[Era]:
            current = self.store.project(pid).eras
            expected = ordering.renumber(current, ordered_ids, scope=f"eras of {pid}")
            eras = [Era.from_dict(e) for e in await self.service.reorder_eras(pid, ordered_ids)]
            self._check_divergence("eras", expected, eras)
            return eras

        return await self._run(
            label="reorder eras",
            fallback="Failed to reorder eras.",
            target=(pid, EntityKind.ERA, "order"),
            call=call,
            commit=lambda eras: ReplaceCollection(pid, EntityKind.ERA, tuple(eras)),
            success=lambda _: "Eras have been reordered.",
            project_id=pid,
            kind=EntityKind.ERA,
        )

    async def reorder_events(
        self, era_id: str, ordered_ids: list[str], *, project_id: str | None = None
    ) -> list[TimelineEvent]:
        """Reorder one era's events; the store takes the server's full timeline."""
        pid = self._project_id(project_id)

        async def call() -> list[TimelineEvent]:
            current = self.store.events_in_era(pid, era_id)
            expected = ordering.renumber(current, ordered_ids, scope=f"events of era {era_id}")
            raw = await self.service.reorder_events(pid, era_id, ordered_ids)
            timeline = [TimelineEvent.from_dict(e) for e in raw]
            self._check_divergence(
                f"events of era {era_id}",
                expected,
                [e for e in timeline if e.era_id == era_id],
            )
            return timeline

        return await self._run(
            label="reorder events",
            fallback="Failed to reorder events.",
            # one target for the whole timeline: each response replaces every era's events
            target=(pid, EntityKind.EVENT, "order"),
            call=call,
            commit=lambda timeline: ReplaceCollection(pid, EntityKind.EVENT, tuple(timeline)),
            success=lambda _: "Events have been reordered.",
            project_id=pid,
            kind=EntityKind.EVENT,
        )

    async def move_event(
        self,
        event_id: str,
        to_era_id: str,
        position: int | None = None,
        *,
        project_id: str | None = None,
    ) -> TimelineEvent:
        """Move an event into another era at position (default: last).

        An ``eraId`` update followed by a reorder of the origin era (when it
        still has events) and of the destination era.
        """
        pid = self._project_id(project_id)
        event = self.store.get(pid, EntityKind.EVENT, event_id)
        origin_ids, destination_ids = ordering.plan_move(
            self.store.project(pid).timeline, event_id, to_era_id, position
        )
        if event.era_id == to_era_id:
            await self.reorder_events(to_era_id, destination_ids, project_id=pid)
            return self.store.get(pid, EntityKind.EVENT, event_id)

        await self.update(EntityKind.EVENT, event_id, {"eraId": to_era_id}, project_id=pid)
        if origin_ids:
            await self.reorder_events(event.era_id, origin_ids, project_id=pid)
        await self.reorder_events(to_era_id, destination_ids, project_id=pid)
        return self.store.get(pid, EntityKind.EVENT, event_id)

    def _check_divergence(self, scope: str, expected: list, actual: list) -> None:
        want = {item.id: item.order for item in expected}
        got = {item.id: item.order for item in actual}
        if want != got:
            logger.warning("Server order for %s differs from local computation: %s != %s",
                           scope, got, want)
