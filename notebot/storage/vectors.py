"""Per-user vector similarity index backed by Chroma."""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from loguru import logger

from notebot.errors import StorageError


@dataclass(frozen=True)
class VectorMatch:
    """A nearest-neighbour hit; smaller ``score`` means more similar."""

    id: str
    score: float


class VectorIndex(ABC):
    """Nearest-neighbour search partitioned by namespace."""

    @abstractmethod
    async def upsert(
        self,
        namespace: str,
        id: str,
        vector: list[float],
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Insert or replace the vector stored under ``id``."""

    @abstractmethod
    async def query(self, namespace: str, vector: list[float], k: int) -> list[VectorMatch]:
        """Return up to ``k`` nearest ids, most similar first. Empty namespace -> []."""

    @abstractmethod
    async def delete(self, namespace: str, id: str) -> None:
        """Remove ``id`` from ``namespace`` if present."""


class ChromaVectorIndex(VectorIndex):
    """
    Chroma-backed index with one collection per namespace.

    The chromadb client is synchronous, so calls run in a worker thread.
    Collections are created lazily and cached.
    """

    def __init__(self, client: Any, collection_prefix: str = ""):
        self._client = client
        self._prefix = collection_prefix
        self._collections: dict[str, Any] = {}

    @classmethod
    def connect(cls, host: str = "", port: int = 8000, path: str = "", collection_prefix: str = ""):
        """Build an index from connection settings (HTTP server if ``host`` is set)."""
        import chromadb

        if host:
            client = chromadb.HttpClient(host=host, port=port)
            logger.info(f"Using Chroma server at {host}:{port}")
        else:
            client = chromadb.PersistentClient(path=path)
            logger.info(f"Using embedded Chroma at {path}")
        return cls(client, collection_prefix=collection_prefix)

    def _collection(self, namespace: str) -> Any:
        collection = self._collections.get(namespace)
        if collection is None:
            collection = self._client.get_or_create_collection(
                name=f"{self._prefix}{namespace}",
                metadata={"namespace": namespace},
            )
            self._collections[namespace] = collection
        return collection

    async def upsert(
        self,
        namespace: str,
        id: str,
        vector: list[float],
        metadata: dict[str, Any] | None = None,
    ) -> None:
        def _upsert() -> None:
            kwargs: dict[str, Any] = {"ids": [id], "embeddings": [vector]}
            if metadata:
                kwargs["metadatas"] = [metadata]
            self._collection(namespace).upsert(**kwargs)

        try:
            await asyncio.to_thread(_upsert)
        except Exception as e:
            raise StorageError(f"Vector upsert into {namespace} failed: {e}") from e

    async def query(self, namespace: str, vector: list[float], k: int) -> list[VectorMatch]:
        def _query() -> list[VectorMatch]:
            collection = self._collection(namespace)
            count = collection.count()
            if count == 0 or k < 1:
                return []
            results = collection.query(query_embeddings=[vector], n_results=min(k, count))
            ids = (results.get("ids") or [[]])[0]
            distances = (results.get("distances") or [[]])[0] or []
            return [
                VectorMatch(id=cid, score=float(distances[i]) if i < len(distances) else 0.0)
                for i, cid in enumerate(ids)
            ]

        try:
            return await asyncio.to_thread(_query)
        except Exception as e:
            raise StorageError(f"Vector query in {namespace} failed: {e}") from e

    async def delete(self, namespace: str, id: str) -> None:
        try:
            await asyncio.to_thread(lambda: self._collection(namespace).delete(ids=[id]))
        except Exception as e:
            raise StorageError(f"Vector delete from {namespace} failed: {e}") from e
