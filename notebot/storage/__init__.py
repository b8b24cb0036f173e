"""External storage adapters: content store and vector index."""

from notebot.storage.content import AutoDriveContentStore, ContentStore, LocalContentStore
from notebot.storage.vectors import ChromaVectorIndex, VectorIndex, VectorMatch

__all__ = [
    "AutoDriveContentStore",
    "ChromaVectorIndex",
    "ContentStore",
    "LocalContentStore",
    "VectorIndex",
    "VectorMatch",
]
