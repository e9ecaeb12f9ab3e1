"""LangChain tools over the per-user notes index.

Lookups that find nothing are not errors: they return ``success: False``
with a message the model can relay.  Storage failures are raised and
become error payloads in the dispatcher.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from langchain_core.tools import tool

from src.services.notes_store import DEFAULT_USER_ID, get_notes_store

logger = logging.getLogger(__name__)


def _user(user_id: str | None) -> str:
    user_id = (user_id or "").strip()
    return user_id or DEFAULT_USER_ID


def _note_field_name(existing: dict[str, str]) -> str:
    """``note_<epoch ms>``, suffixed when two notes land in the same millisecond."""
    base = f"note_{int(time.time() * 1000)}"
    name, n = base, 1
    while name in existing:
        name = f"{base}_{n}"
        n += 1
    return name


@tool
async def add_notes_index_field(
    field_name: str, field_value: str, user_id: str | None = None,
) -> dict[str, Any]:
    """Add or update a field in the user's notes index (e.g. a category or a note title).

    Args:
        field_name: Name of the field, e.g. "category".
        field_value: Value to store under that name.
        user_id: Whose index to modify. Uses the default user if omitted.
    """
    field_name = field_name.strip()
    if not field_name:
        raise ValueError("field_name is required")
    await get_notes_store().set_field(_user(user_id), field_name, field_value)
    return {
        "success": True,
        "message": f"Field '{field_name}' added to notes index successfully",
        "field_name": field_name,
        "field_value": field_value,
    }


@tool
async def get_notes_index_fields(
    field_name: str | None = None, user_id: str | None = None,
) -> dict[str, Any]:
    """Get every field of the user's notes index, or one field when field_name is given.

    Args:
        field_name: Optional name of a single field to return.
        user_id: Whose index to read. Uses the default user if omitted.
    """
    fields = await get_notes_store().get_fields(_user(user_id))
    if fields is None:
        return {"success": False, "message": "No notes index found for this user", "fields": {}}

    if field_name:
        if field_name not in fields:
            return {
                "success": False,
                "message": f"Field '{field_name}' not found in notes index",
                "field": None,
            }
        return {
            "success": True,
            "message": f"Field '{field_name}' retrieved successfully",
            "field": {"name": field_name, "value": fields[field_name]},
        }

    return {
        "success": True,
        "message": "Notes index fields retrieved successfully",
        "fields": fields,
    }


@tool
async def add_note_to_index(note_title: str, user_id: str | None = None) -> dict[str, Any]:
    """Add a note title to the user's notes index.

    Args:
        note_title: Title of the note.
        user_id: Whose index to modify. Uses the default user if omitted.
    """
    store = get_notes_store()
    user = _user(user_id)
    existing = await store.get_fields(user) or {}
    await store.set_field(user, _note_field_name(existing), note_title)
    logger.debug("Indexed note %r for %s", note_title, user)
    return {
        "success": True,
        "message": f"Note '{note_title}' added to index successfully",
        "note_title": note_title,
    }


@tool
async def get_all_notes(user_id: str | None = None) -> dict[str, Any]:
    """List every note title in the user's notes index.

    Args:
        user_id: Whose notes to list. Uses the default user if omitted.
    """
    fields = await get_notes_store().get_fields(_user(user_id))
    if fields is None:
        return {"success": False, "message": "No notes found for this user", "notes": []}
    notes = list(fields.values())
    return {"success": True, "message": f"Found {len(notes)} notes", "notes": notes}
