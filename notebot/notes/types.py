"""Note data types."""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class Note:
    """A note as stored in the content store. Immutable once written."""

    title: str
    content: str
    tags: tuple[str, ...] = ()
    created_at: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "tags": list(self.tags),
            "content": self.content,
            "createdAt": self.created_at,
        }

    def to_bytes(self) -> bytes:
        return json.dumps(self.to_dict(), ensure_ascii=False).encode("utf-8")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Note":
        return cls(
            title=str(data.get("title", "")),
            content=str(data.get("content", "")),
            tags=tuple(str(t) for t in data.get("tags") or ()),
            created_at=str(data.get("createdAt") or data.get("created_at") or ""),
        )


@dataclass(frozen=True)
class NoteMeta:
    """Index entry for a stored note; the content lives only in the content store."""

    cid: str
    title: str
    tags: tuple[str, ...]
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "cid": self.cid,
            "title": self.title,
            "tags": list(self.tags),
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NoteMeta":
        return cls(
            cid=str(data["cid"]),
            title=str(data.get("title", "")),
            tags=tuple(str(t) for t in data.get("tags") or ()),
            created_at=str(data.get("createdAt") or data.get("created_at") or ""),
        )


@dataclass(frozen=True)
class NoteHit:
    """A semantic search result: the note and its distance (smaller = closer)."""

    cid: str
    note: Note
    score: float

    def to_dict(self) -> dict[str, Any]:
        return {"cid": self.cid, "score": self.score, **self.note.to_dict()}


@dataclass(frozen=True)
class SaveResult:
    """Outcome of saving a note.

    ``indexed`` is False when the note was stored durably but its embedding
    could not be written to the vector index (searchable later only after
    re-indexing).
    """

    cid: str
    indexed: bool = True
    index_error: str | None = None

    @property
    def degraded(self) -> bool:
        return not self.indexed


@dataclass(frozen=True)
class CacheStats:
    """Per-user cache statistics."""

    size: int
    last_updated_at: float
