"""Note storage: persistent index, per-user cache and retrieval."""

from notebot.notes.cache import NoteCache
from notebot.notes.index import NoteIndex
from notebot.notes.store import NoteStore
from notebot.notes.types import Note, NoteHit, NoteMeta, SaveResult

__all__ = ["Note", "NoteCache", "NoteHit", "NoteIndex", "NoteMeta", "NoteStore", "SaveResult"]
