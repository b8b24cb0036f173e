"""Bounded per-user note cache with TTL staleness."""

import time
from collections.abc import Callable
from dataclasses import dataclass, field

from loguru import logger

from notebot.notes.types import CacheStats, Note

DEFAULT_CAPACITY = 100
DEFAULT_MAX_AGE_SECONDS = 60 * 60


@dataclass
class CacheEntry:
    note: Note
    last_accessed_at: float


@dataclass
class UserCache:
    entries: dict[str, CacheEntry] = field(default_factory=dict)
    last_updated_at: float = 0.0


class NoteCache:
    """
    In-memory cache of note contents, keyed by user and CID.

    Each user's cache holds at most ``capacity`` entries; inserting a new CID
    into a full cache evicts the entry with the oldest ``last_accessed_at``.
    Entries not accessed for ``max_age`` seconds are stale: ``get`` treats
    them as a miss so the caller refetches and re-inserts them.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        max_age: float = DEFAULT_MAX_AGE_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self.max_age = max_age
        self._clock = clock
        self._users: dict[str, UserCache] = {}

    def _user(self, user_id: str) -> UserCache:
        cache = self._users.get(user_id)
        if cache is None:
            cache = UserCache(last_updated_at=self._clock())
            self._users[user_id] = cache
        return cache

    def get(self, user_id: str, cid: str) -> Note | None:
        """Return a fresh cached note and bump its access time, or None on miss/stale."""
        cache = self._users.get(user_id)
        entry = cache.entries.get(cid) if cache else None
        if entry is None:
            return None

        now = self._clock()
        if now - entry.last_accessed_at >= self.max_age:
            logger.debug(f"Cache entry {cid} for user {user_id} is stale")
            return None

        entry.last_accessed_at = now
        return entry.note

    def put(self, user_id: str, cid: str, note: Note) -> None:
        """Insert or refresh an entry, evicting the least recently accessed one at capacity."""
        cache = self._user(user_id)
        now = self._clock()

        if cid not in cache.entries and len(cache.entries) >= self.capacity:
            oldest = min(cache.entries, key=lambda key: cache.entries[key].last_accessed_at)
            del cache.entries[oldest]
            logger.debug(f"Evicted {oldest} from cache of user {user_id}")

        cache.entries[cid] = CacheEntry(note=note, last_accessed_at=now)
        cache.last_updated_at = now

    def contains(self, user_id: str, cid: str) -> bool:
        """Whether ``cid`` is present for ``user_id``, fresh or not."""
        cache = self._users.get(user_id)
        return bool(cache and cid in cache.entries)

    def clear(self, user_id: str | None = None) -> None:
        if user_id is None:
            self._users.clear()
        else:
            self._users.pop(user_id, None)

    def stats(self, user_id: str) -> CacheStats | None:
        cache = self._users.get(user_id)
        if cache is None:
            return None
        return CacheStats(size=len(cache.entries), last_updated_at=cache.last_updated_at)
