"""Note tools: save, list, search and view a user's notes."""

import json
from typing import Any

from notebot.agent.tools.base import Tool
from notebot.notes.store import NoteStore


class _NoteTool(Tool):
    """Base for tools bound to one user's notes."""

    def __init__(self, store: NoteStore, user_id: str):
        self._store = store
        self._user_id = user_id


class SaveNoteTool(_NoteTool):
    @property
    def name(self) -> str:
        return "saveNote"

    @property
    def description(self) -> str:
        return (
            "Save a new note with content strictly from user input (NEVER modify or "
            "fabricate the user's content). Title and tags can be generated from the "
            "content. Returns the cid of the saved note."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "title": {"type": "string", "description": "Short title for the note"},
                "content": {"type": "string", "description": "The user's content, verbatim"},
                "tags": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Comma-separated tags",
                },
            },
            "required": ["title", "content", "tags"],
        }

    async def execute(self, **kwargs: Any) -> str:
        result = await self._store.add_note(
            self._user_id,
            title=kwargs["title"],
            content=kwargs["content"],
            tags=kwargs.get("tags") or [],
        )
        if result.degraded:
            return (
                f"{result.cid} (saved, but not yet searchable: indexing failed; "
                "it can still be found with listNotes and viewNote)"
            )
        return result.cid


class ListNotesTool(_NoteTool):
    @property
    def name(self) -> str:
        return "listNotes"

    @property
    def description(self) -> str:
        return (
            "List saved notes with their cids, titles and tags. Always try to provide a "
            "tag to filter notes; listing every note without a tag should be avoided."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "tag": {"type": "string", "description": "Only list notes with this tag"},
            },
            "required": [],
        }

    async def execute(self, **kwargs: Any) -> str:
        tag = (kwargs.get("tag") or "").strip()
        if tag:
            metas = self._store.list_notes_by_tag(self._user_id, tag)
        else:
            metas = self._store.list_notes(self._user_id)
        return json.dumps([meta.to_dict() for meta in metas], ensure_ascii=False)


class SearchNotesTool(_NoteTool):
    def __init__(self, store: NoteStore, user_id: str, limit: int = 5):
        super().__init__(store, user_id)
        self._limit = limit

    @property
    def name(self) -> str:
        return "searchNotes"

    @property
    def description(self) -> str:
        return (
            "Search for notes by semantic similarity to the query text. "
            "Returns notes ranked by relevance."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "What to look for"},
            },
            "required": ["query"],
        }

    async def execute(self, **kwargs: Any) -> str:
        hits = await self._store.search_similar(self._user_id, kwargs["query"], limit=self._limit)
        return json.dumps([hit.to_dict() for hit in hits], ensure_ascii=False)


class ViewNoteTool(_NoteTool):
    @property
    def name(self) -> str:
        return "viewNote"

    @property
    def description(self) -> str:
        return "View the complete content of a specific note by its cid"

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "noteId": {"type": "string", "description": "The note's cid"},
            },
            "required": ["noteId"],
        }

    async def execute(self, **kwargs: Any) -> str:
        note = await self._store.get_note(self._user_id, kwargs["noteId"].strip())
        if note is None:
            return "Note not found"
        return json.dumps(note.to_dict(), ensure_ascii=False)
