"""Exceptions raised by the entity graph, ordering engine and service layer."""

from __future__ import annotations


class ChronicleError(Exception):
    """Base exception for chronicle operations."""
    pass


class RemoteServiceError(ChronicleError):
    """Raised when the remote entity service rejects a call or is unreachable.

    ``message`` is the service's own text when its error body carried one,
    otherwise ``None`` and callers fall back to a generic message.
    """

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        detail = message or "remote service unavailable"
        if status_code is not None:
            detail = f"{detail} (HTTP {status_code})"
        super().__init__(detail)


class ContractViolationError(ChronicleError):
    """Raised when a reorder sequence is not a permutation of its scope."""

    def __init__(
        self,
        scope: str,
        missing: list[str] | None = None,
        foreign: list[str] | None = None,
        duplicates: list[str] | None = None,
    ):
        self.scope = scope
        self.missing = missing or []
        self.foreign = foreign or []
        self.duplicates = duplicates or []
        parts = []
        if self.missing:
            parts.append(f"missing {self.missing}")
        if self.foreign:
            parts.append(f"foreign {self.foreign}")
        if self.duplicates:
            parts.append(f"duplicated {self.duplicates}")
        super().__init__(f"Invalid ordering for {scope}: {', '.join(parts)}")


class ProjectNotFoundError(ChronicleError):
    """Raised when a project is not present in the loaded user data."""

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project '{project_id}' not found")


class EntityNotFoundError(ChronicleError):
    """Raised when an entity is not present in its project collection."""

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} '{entity_id}' not found")


class NoUserDataError(ChronicleError):
    """Raised when the store is patched before any user data is loaded."""

    def __init__(self) -> None:
        super().__init__("No user data loaded")
