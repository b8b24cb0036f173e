"""Shared fakes and fixtures."""

import math
from typing import Any

import pytest

from notebot.agent.errors import ErrorLogger
from notebot.errors import ProviderError, StorageError
from notebot.notes import NoteCache, NoteIndex, NoteStore
from notebot.providers.base import LLMProvider, LLMResponse
from notebot.storage.content import ContentStore
from notebot.storage.vectors import VectorIndex, VectorMatch


class FakeContentStore(ContentStore):
    """In-memory content store with sequential CIDs."""

    def __init__(self, cids: list[str] | None = None):
        self.blobs: dict[str, bytes] = {}
        self.paths: list[str] = []
        self.download_calls: list[str] = []
        self.fail_upload = False
        self.fail_download = False
        self.next_cids = list(cids or [])
        self._counter = 0

    async def upload(self, data: bytes, path: str) -> str:
        if self.fail_upload:
            raise StorageError("upload failed")
        self._counter += 1
        cid = self.next_cids.pop(0) if self.next_cids else f"cid-{self._counter}"
        self.blobs[cid] = data
        self.paths.append(path)
        return cid

    async def download(self, cid: str) -> bytes | None:
        self.download_calls.append(cid)
        if self.fail_download:
            raise StorageError("download failed")
        return self.blobs.get(cid)


class FakeEmbedder:
    """Deterministic bag-of-letters embedding."""

    def __init__(self):
        self.fail = False
        self.calls: list[str] = []

    async def embed_single(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail:
            raise ProviderError("embedding failed")
        vector = [0.0] * 26
        for ch in text.lower():
            if "a" <= ch <= "z":
                vector[ord(ch) - ord("a")] += 1.0
        norm = math.sqrt(sum(v * v for v in vector)) or 1.0
        return [v / norm for v in vector]

    async def embed(self, texts: list[str]) -> list[list[float]]:
        return [await self.embed_single(t) for t in texts]


class FakeVectorIndex(VectorIndex):
    """Brute-force Euclidean index."""

    def __init__(self):
        self.namespaces: dict[str, dict[str, list[float]]] = {}
        self.metadata: dict[str, dict[str, Any]] = {}
        self.fail_upsert = False

    async def upsert(self, namespace, id, vector, metadata=None):
        if self.fail_upsert:
            raise StorageError("upsert failed")
        self.namespaces.setdefault(namespace, {})[id] = vector
        self.metadata[id] = metadata or {}

    async def query(self, namespace, vector, k):
        entries = self.namespaces.get(namespace, {})
        scored = [
            VectorMatch(id=cid, score=math.dist(vector, stored)) for cid, stored in entries.items()
        ]
        scored.sort(key=lambda m: m.score)
        return scored[:k]

    async def delete(self, namespace, id):
        self.namespaces.get(namespace, {}).pop(id, None)


class ScriptedProvider(LLMProvider):
    """Returns canned completions in order and records what it was sent."""

    def __init__(self, responses: list[str | Exception]):
        super().__init__()
        self.responses = list(responses)
        self.calls: list[list[dict[str, Any]]] = []

    async def chat(self, messages, model=None, max_tokens=None, temperature=None):
        self.calls.append([dict(m) for m in messages])
        if not self.responses:
            raise AssertionError("ScriptedProvider ran out of responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return LLMResponse(content=response)

    def get_default_model(self) -> str:
        return "scripted"


@pytest.fixture
def content_store() -> FakeContentStore:
    return FakeContentStore()


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def vector_index() -> FakeVectorIndex:
    return FakeVectorIndex()


@pytest.fixture
def error_logger(tmp_path) -> ErrorLogger:
    return ErrorLogger(tmp_path / "logs")


@pytest.fixture
def note_store(tmp_path, content_store, embedder, vector_index, error_logger) -> NoteStore:
    return NoteStore(
        content=content_store,
        embedder=embedder,
        vectors=vector_index,
        index=NoteIndex(tmp_path / "db.json"),
        cache=NoteCache(capacity=100, max_age=3600),
        max_concurrency=3,
        timeout=5.0,
        error_logger=error_logger,
    )



@pytest.fixture
def scripted_provider() -> type[ScriptedProvider]:
    return ScriptedProvider
