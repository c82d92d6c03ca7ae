"""Entry point: python -m chronicle [sync|show|export]

- "sync":                      Load /me/data from the service and refresh the local snapshot
- "show [project_id]":         Print projects, or one project's eras and events, from the snapshot
- "export <project_id> <dir>": Write a project's manuscripts as Markdown files
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

from chronicle.config import ChronicleConfig, load_config


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _snapshot_user(config: ChronicleConfig):
    """Load the configured (or only known) user's snapshot."""
    from chronicle.graph.snapshot import SnapshotStore

    snapshots = SnapshotStore(config.snapshot_dir)
    username = config.username
    if not username:
        known = snapshots.usernames()
        if not known:
            print("No snapshot yet. Run: python -m chronicle sync", file=sys.stderr)
            sys.exit(1)
        username = known[0]
    data = snapshots.load(username)
    if data is None:
        print(f"No snapshot for {username}.", file=sys.stderr)
        sys.exit(1)
    return data


def _run_sync(config: ChronicleConfig) -> None:
    from chronicle.coordinator import MutationCoordinator
    from chronicle.errors import ChronicleError
    from chronicle.graph.snapshot import SnapshotStore
    from chronicle.service.http import HttpEntityService

    async def sync() -> None:
        async with HttpEntityService(config.service) as service:
            coordinator = MutationCoordinator(service, snapshots=SnapshotStore(config.snapshot_dir))
            try:
                data = await coordinator.load_user_data()
            except ChronicleError:
                print(f"Sync failed: {coordinator.error}", file=sys.stderr)
                sys.exit(1)
            print(f"Synced {len(data.projects)} projects for {data.username}.")

    asyncio.run(sync())


def _run_show(config: ChronicleConfig, project_id: str | None) -> None:
    from chronicle.graph import views

    data = _snapshot_user(config)
    if project_id is None:
        print(f"{data.username}:")
        for pid, project in data.projects.items():
            print(f"  {pid}  {project.name}")
        return

    project = data.projects.get(project_id)
    if project is None:
        print(f"Unknown project: {project_id}", file=sys.stderr)
        sys.exit(1)
    print(f"# {project.name}")
    for era, events in views.timeline_by_era(project):
        print(f"\n{era.order}. {era.name}")
        for event in events:
            print(f"   {event.order}. {event.title}  ({event.display_date})")
    dangling = views.dangling_links(project)
    if dangling:
        print(f"\n{len(dangling)} links point at deleted entities.")


def _run_export(config: ChronicleConfig, project_id: str, dest: Path) -> None:
    from chronicle.graph.export import export_writings

    data = _snapshot_user(config)
    project = data.projects.get(project_id)
    if project is None:
        print(f"Unknown project: {project_id}", file=sys.stderr)
        sys.exit(1)
    paths = export_writings(project, dest)
    print(f"Exported {len(paths)} manuscripts to {dest}")


def _usage() -> None:
    print("Usage: python -m chronicle [sync|show|export]")
    print("  sync                       Load all data from the service, refresh the snapshot")
    print("  show [project_id]          List projects, or one project's timeline")
    print("  export <project_id> <dir>  Export manuscripts as Markdown")
    sys.exit(1)


def main() -> None:
    args = sys.argv[1:]
    cmd = args[0] if args else ""

    config = load_config()
    _setup_logging(config.log_level)

    if cmd == "sync":
        _run_sync(config)
    elif cmd == "show":
        _run_show(config, args[1] if len(args) > 1 else None)
    elif cmd == "export" and len(args) == 3:
        _run_export(config, args[1], Path(args[2]))
    else:
        _usage()


if __name__ == "__main__":
    main()
