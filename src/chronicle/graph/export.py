"""Export a project's manuscripts as Markdown files with YAML front matter."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path

import frontmatter

from chronicle.models import Project, WritingEntry

logger = logging.getLogger(__name__)


def slugify(title: str) -> str:
    """Minimal slug: strip illegal chars, spaces to hyphens, keep CJK."""
    slug = re.sub(r'[<>:"/\\|?*\n\r\t]', "", title)
    slug = slug.strip().replace(" ", "-")
    return slug or "untitled"


def _iso(ms: int) -> str | None:
    if not ms:
        return None
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).isoformat(timespec="seconds")


def render_writing(entry: WritingEntry, project: Project | None = None) -> str:
    """Render one entry as front matter + Markdown body."""
    metadata: dict = {
        "id": entry.id,
        "title": entry.title,
        "tags": list(entry.tags),
        "linkedCharacterIds": list(entry.linked_character_ids),
        "linkedWorldId": entry.linked_world_id,
        "linkedEventIds": list(entry.linked_event_ids),
    }
    if project is not None:
        metadata["project"] = project.name
    created, updated = _iso(entry.created_at), _iso(entry.updated_at)
    if created:
        metadata["created"] = created
    if updated:
        metadata["updated"] = updated
    post = frontmatter.Post(entry.content, **metadata)
    return frontmatter.dumps(post) + "\n"


def export_writings(project: Project, dest: Path) -> list[Path]:
    """Write every manuscript of project into dest. Returns the written paths."""
    dest.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    used: set[str] = set()
    for entry in project.writings:
        slug = slugify(entry.title)
        name = f"{slug}.md"
        counter = 2
        while name in used:
            name = f"{slug}-{counter}.md"
            counter += 1
        used.add(name)
        path = dest / name
        path.write_text(render_writing(entry, project), encoding="utf-8")
        written.append(path)
    logger.info("Exported %d manuscripts from %s to %s", len(written), project.name, dest)
    return written


def read_exported(path: Path) -> tuple[dict, str]:
    """Parse an exported file back into (metadata, body)."""
    post = frontmatter.load(str(path))
    return dict(post.metadata), post.content
