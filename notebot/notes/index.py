"""Persistent per-user note index (a single JSON document)."""

from pathlib import Path

from loguru import logger

from notebot.notes.types import NoteMeta
from notebot.utils.atomic import atomic_write_json, read_json


class NoteIndex:
    """
    Maps user IDs to the ordered list of their notes' metadata.

    Loaded once at construction and flushed atomically after every mutation.
    Append-only: entries are never removed.

    Layout on disk::

        {"store": {"<user_id>": [{"cid": ..., "title": ..., "tags": [...], "createdAt": ...}]}}
    """

    def __init__(self, path: Path):
        self.path = path
        self._store: dict[str, list[NoteMeta]] = {}
        self._load()

    def _load(self) -> None:
        data = read_json(self.path, default={})
        raw_store = data.get("store", {}) if isinstance(data, dict) else {}

        loaded = 0
        for user_id, entries in raw_store.items():
            metas = []
            for entry in entries or []:
                if isinstance(entry, str):
                    # Older documents stored bare CID lists
                    metas.append(NoteMeta(cid=entry, title="", tags=(), created_at=""))
                    continue
                try:
                    metas.append(NoteMeta.from_dict(entry))
                except (KeyError, TypeError, AttributeError) as e:
                    logger.warning(f"Skipping malformed index entry for user {user_id}: {e}")
            self._store[str(user_id)] = metas
            loaded += len(metas)

        logger.debug(f"Loaded note index from {self.path}: {loaded} notes, {len(self._store)} users")

    def flush(self) -> None:
        atomic_write_json(
            self.path,
            {
                "store": {
                    user_id: [meta.to_dict() for meta in metas]
                    for user_id, metas in self._store.items()
                }
            },
        )

    def append(self, user_id: str, meta: NoteMeta) -> None:
        """Record a new note and persist the index."""
        self._store.setdefault(user_id, []).append(meta)
        self.flush()

    def entries(self, user_id: str) -> list[NoteMeta]:
        return list(self._store.get(user_id, []))

    def get(self, user_id: str, cid: str) -> NoteMeta | None:
        for meta in self._store.get(user_id, []):
            if meta.cid == cid:
                return meta
        return None

    def has(self, user_id: str, cid: str) -> bool:
        return self.get(user_id, cid) is not None

    @property
    def users(self) -> list[str]:
        return list(self._store)
