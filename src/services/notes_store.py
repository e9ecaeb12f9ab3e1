"""Per-user notes index: a flat ``field name → value`` map for each user.

The notes tools only talk to the ``NotesStore`` protocol, so a persistent
backend can be swapped in with ``set_notes_store``.  The default is
``InMemoryNotesStore``; its data is lost on process restart.
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol

logger = logging.getLogger(__name__)

DEFAULT_USER_ID = "default"


class NotesStore(Protocol):
    """What the notes tools need from a storage backend."""

    async def get_fields(self, user_id: str) -> dict[str, str] | None:
        """All fields of *user_id*'s index, or ``None`` if it has none yet."""
        ...

    async def set_field(self, user_id: str, name: str, value: str) -> None:
        """Add or overwrite one field, creating the index if needed."""
        ...


class InMemoryNotesStore:
    """Dict-backed ``NotesStore``.  Field insertion order is preserved."""

    def __init__(self) -> None:
        self._indexes: dict[str, dict[str, str]] = {}
        self._lock = threading.Lock()

    async def get_fields(self, user_id: str) -> dict[str, str] | None:
        with self._lock:
            fields = self._indexes.get(user_id)
            return dict(fields) if fields is not None else None

    async def set_field(self, user_id: str, name: str, value: str) -> None:
        with self._lock:
            self._indexes.setdefault(user_id, {})[name] = value
        logger.debug("Notes index %s: set %s", user_id, name)


# ── Module-level singleton (thread-safe) ────────────────────────────
_store: NotesStore | None = None
_store_lock = threading.Lock()


def get_notes_store() -> NotesStore:
    """Return the active store, creating an in-memory one on first use."""
    global _store
    if _store is None:
        with _store_lock:
            if _store is None:
                _store = InMemoryNotesStore()
    return _store


def set_notes_store(store: NotesStore | None) -> None:
    """Install *store* for the notes tools; ``None`` resets to the default."""
    global _store
    with _store_lock:
        _store = store
