"""Client-local snapshot of a user's graph, keyed by username.

Snapshots are an offline cache only. The next successful bulk load from the
service always overwrites them.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Callable
from urllib.parse import quote

from chronicle.models import UserData

logger = logging.getLogger(__name__)

_USERS_FILE = "users.json"


class SnapshotStore:
    """Reads and writes ``user__<name>.json`` files under ``root``."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def path_for(self, username: str) -> Path:
        # percent-encoding keeps distinct usernames in distinct files
        safe = quote(username, safe="")
        return self.root / f"user__{safe}.json"

    # ── Known users ──────────────────────────────────────────

    def usernames(self) -> list[str]:
        path = self.root / _USERS_FILE
        if not path.exists():
            return []
        try:
            return list(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError) as e:
            logger.warning("Unreadable user list %s: %s", path, e)
            return []

    def _remember_user(self, username: str) -> None:
        users = self.usernames()
        if username not in users:
            users.append(username)
            self._write_atomic(self.root / _USERS_FILE, json.dumps(users, ensure_ascii=False))

    # ── Load / save ──────────────────────────────────────────

    def load(self, username: str) -> UserData | None:
        path = self.path_for(username)
        if not path.exists():
            return None
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
            data = UserData.from_dict(payload)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Ignoring unreadable snapshot %s: %s", path, e)
            return None
        if data.username != username:
            logger.warning(
                "Snapshot %s belongs to %r, not %r; ignoring", path, data.username, username
            )
            return None
        logger.info("Loaded snapshot for %s (%d projects)", username, len(data.projects))
        return data

    def save(self, data: UserData) -> bool:
        """Write data atomically. Returns False (and logs) on I/O failure."""
        path = self.path_for(data.username)
        try:
            self._write_atomic(path, json.dumps(data.to_dict(), ensure_ascii=False, indent=2))
            self._remember_user(data.username)
        except OSError as e:
            logger.error("Failed to write snapshot %s: %s", path, e)
            return False
        logger.debug("Saved snapshot %s", path)
        return True

    def delete(self, username: str) -> None:
        path = self.path_for(username)
        if path.exists():
            path.unlink()

    def _write_atomic(self, path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = path.with_suffix(".tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            temp_path.replace(path)
        finally:
            if temp_path.exists():
                temp_path.unlink()

    # ── Store binding ────────────────────────────────────────

    def writer(self) -> Callable[[UserData | None], None]:
        """Store listener that persists every non-empty state."""

        def on_change(data: UserData | None) -> None:
            if data is not None:
                self.save(data)

        return on_change
