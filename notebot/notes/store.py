"""Per-user note store: index, cache, content store and vector index together."""

import json
import time
from collections.abc import Sequence

from loguru import logger

from notebot.agent.errors import ErrorCategory, ErrorLogger
from notebot.errors import NotebotError, StorageError, StorageTimeoutError
from notebot.llm.embeddings import EmbeddingService
from notebot.notes.cache import NoteCache
from notebot.notes.index import NoteIndex
from notebot.notes.types import CacheStats, Note, NoteHit, NoteMeta, SaveResult
from notebot.providers.retry import with_timeout
from notebot.storage.content import ContentStore
from notebot.storage.vectors import VectorIndex
from notebot.utils.concurrency import ConcurrencyLimiter


class NoteStore:
    """
    Saves and retrieves a user's notes.

    Note contents live in the content store, addressed by CID. The local
    ``NoteIndex`` records which CIDs belong to which user; ``NoteCache``
    keeps recently read contents in memory; the vector index holds one
    embedding per note in the user's namespace for similarity search.

    Upload failures propagate as ``StorageError``. Once a note is stored,
    failures to embed or index it are logged and reported on the returned
    ``SaveResult`` instead of failing the save. Read paths never raise for
    a single missing or unreachable note; they return ``None`` or skip it.
    """

    def __init__(
        self,
        content: ContentStore,
        embedder: EmbeddingService,
        vectors: VectorIndex,
        index: NoteIndex,
        cache: NoteCache | None = None,
        max_concurrency: int = 5,
        timeout: float | None = 60.0,
        error_logger: ErrorLogger | None = None,
        namespace_prefix: str = "user_",
    ):
        self.content = content
        self.embedder = embedder
        self.vectors = vectors
        self.index = index
        self.cache = cache or NoteCache()
        self.limiter = ConcurrencyLimiter(max_concurrency)
        self.timeout = timeout
        self.error_logger = error_logger
        self.namespace_prefix = namespace_prefix

    def namespace(self, user_id: str) -> str:
        return f"{self.namespace_prefix}{user_id}"

    def _report(
        self,
        error: BaseException,
        category: ErrorCategory,
        user_id: str,
        context: dict | None = None,
    ) -> None:
        if self.error_logger:
            self.error_logger.log_exception(
                error,
                category=category,
                user_id=user_id,
                context=context,
                severity="warning",
                recovered=True,
            )
        else:
            logger.warning(f"[{category.value}] user={user_id} {error}")

    async def add_note(
        self,
        user_id: str,
        title: str,
        content: str,
        tags: Sequence[str] = (),
    ) -> SaveResult:
        """Store a note, record it in the user's index and index its embedding.

        Raises:
            StorageError: if the content store upload fails; nothing is recorded.
        """
        note = Note(title=title, content=content, tags=tuple(tags))
        path = f"{user_id}/{int(time.time() * 1000)}.json"

        cid = await with_timeout(
            self.content.upload(note.to_bytes(), path),
            self.timeout,
            StorageTimeoutError,
            f"Upload of {path}",
        )

        self.index.append(
            user_id,
            NoteMeta(cid=cid, title=note.title, tags=note.tags, created_at=note.created_at),
        )
        self.cache.put(user_id, cid, note)
        logger.info(f"Saved note {cid} for user {user_id}: {title!r}")

        try:
            vector = await self.embedder.embed_single(content)
            await with_timeout(
                self.vectors.upsert(
                    self.namespace(user_id),
                    cid,
                    vector,
                    {"title": note.title, "created_at": note.created_at},
                ),
                self.timeout,
                StorageTimeoutError,
                f"Vector upsert of {cid}",
            )
        except NotebotError as e:
            self._report(e, ErrorCategory.INDEXING, user_id, {"cid": cid})
            return SaveResult(cid=cid, indexed=False, index_error=str(e))

        return SaveResult(cid=cid)

    async def get_note(self, user_id: str, cid: str) -> Note | None:
        """Return the note for ``cid`` if it belongs to ``user_id`` and can be read."""
        if not self.index.has(user_id, cid):
            logger.debug(f"Note {cid} is not in the index of user {user_id}")
            return None

        cached = self.cache.get(user_id, cid)
        if cached is not None:
            return cached

        try:
            data = await with_timeout(
                self.content.download(cid),
                self.timeout,
                StorageTimeoutError,
                f"Download of {cid}",
            )
        except StorageError as e:
            category = (
                ErrorCategory.STORAGE_TIMEOUT
                if isinstance(e, StorageTimeoutError)
                else ErrorCategory.STORAGE
            )
            self._report(e, category, user_id, {"cid": cid})
            return None

        if data is None:
            logger.warning(f"Note {cid} of user {user_id} not found in content store")
            return None

        try:
            note = Note.from_dict(json.loads(data.decode("utf-8")))
        except (UnicodeDecodeError, json.JSONDecodeError, AttributeError) as e:
            logger.warning(f"Note {cid} of user {user_id} is not valid JSON: {e}")
            return None

        self.cache.put(user_id, cid, note)
        return note

    def list_notes(self, user_id: str) -> list[NoteMeta]:
        return self.index.entries(user_id)

    def list_notes_by_tag(self, user_id: str, tag: str) -> list[NoteMeta]:
        return [meta for meta in self.index.entries(user_id) if tag in meta.tags]

    async def search_similar(self, user_id: str, query: str, limit: int = 5) -> list[NoteHit]:
        """Return up to ``limit`` notes closest to ``query``, most similar first.

        Raises:
            ProviderError: if the query cannot be embedded.
            StorageError: if the vector index cannot be queried.
        """
        vector = await self.embedder.embed_single(query)
        matches = await with_timeout(
            self.vectors.query(self.namespace(user_id), vector, limit),
            self.timeout,
            StorageTimeoutError,
            f"Vector query for user {user_id}",
        )
        if not matches:
            return []

        notes = await self.limiter.run(matches, lambda match: self.get_note(user_id, match.id))
        return [
            NoteHit(cid=match.id, note=note, score=match.score)
            for match, note in zip(matches, notes)
            if note is not None
        ]

    async def load_notes(self, user_id: str) -> list[Note]:
        """Fetch every note of ``user_id``, skipping any that cannot be read."""
        metas = self.index.entries(user_id)
        notes = await self.limiter.run(metas, lambda meta: self.get_note(user_id, meta.cid))
        return [note for note in notes if note is not None]

    def clear_cache(self, user_id: str | None = None) -> None:
        self.cache.clear(user_id)

    def cache_stats(self, user_id: str) -> CacheStats | None:
        return self.cache.stats(user_id)
