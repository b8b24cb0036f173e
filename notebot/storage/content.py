"""Content-addressable blob stores."""

import asyncio
import hashlib
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath

import httpx
from loguru import logger

from notebot.errors import StorageError, StorageTimeoutError
from notebot.utils.helpers import ensure_dir


class ContentStore(ABC):
    """Upload/download opaque bytes addressed by a content identifier (CID)."""

    @abstractmethod
    async def upload(self, data: bytes, path: str) -> str:
        """Store ``data`` under a virtual ``path`` and return its CID.

        Raises:
            StorageError: if the upload fails.
        """

    @abstractmethod
    async def download(self, cid: str) -> bytes | None:
        """Return the bytes for ``cid``, or None if the store has no such CID.

        Raises:
            StorageError: on any failure other than not-found.
        """

    async def close(self) -> None:
        """Release network resources, if any."""


class LocalContentStore(ContentStore):
    """
    Filesystem store addressed by the sha256 of the content.

    Useful offline and in development; identical bytes always map to the
    same CID, so re-uploading is idempotent.
    """

    def __init__(self, root: Path):
        self.root = ensure_dir(Path(root).expanduser())

    @staticmethod
    def compute_cid(data: bytes) -> str:
        return f"sha256-{hashlib.sha256(data).hexdigest()}"

    def _blob_path(self, cid: str) -> Path:
        name = PurePosixPath(cid).name
        if name != cid or not cid:
            raise StorageError(f"Invalid CID: {cid!r}")
        return self.root / cid

    async def upload(self, data: bytes, path: str) -> str:
        cid = self.compute_cid(data)
        blob = self._blob_path(cid)
        try:
            if not blob.exists():
                await asyncio.to_thread(blob.write_bytes, data)
        except OSError as e:
            raise StorageError(f"Failed to write blob for {path}: {e}") from e
        logger.debug(f"Stored {len(data)} bytes for {path} as {cid}")
        return cid

    async def download(self, cid: str) -> bytes | None:
        try:
            blob = self._blob_path(cid)
        except StorageError:
            return None
        if not blob.exists():
            return None
        try:
            return await asyncio.to_thread(blob.read_bytes)
        except OSError as e:
            raise StorageError(f"Failed to read blob {cid}: {e}") from e


class AutoDriveContentStore(ContentStore):
    """
    Auto Drive (Autonomys Network) store over its REST API.

    Uploads go through the three-step file upload flow (create, chunks,
    complete); downloads fetch the object by CID. Content is uploaded
    uncompressed so downloads return the original bytes.
    """

    def __init__(
        self,
        api_key: str,
        api_base: str = "https://mainnet.auto-drive.autonomys.xyz/api",
        chunk_size: int = 1024 * 1024,
        timeout: float | None = 60.0,
        client: httpx.AsyncClient | None = None,
    ):
        if not api_key:
            raise ValueError("Auto Drive API key is required")
        self.api_base = api_base.rstrip("/")
        self.chunk_size = chunk_size
        self._client = client or httpx.AsyncClient(
            base_url=self.api_base,
            timeout=httpx.Timeout(timeout),
        )
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "X-Auth-Provider": "apikey",
        }

    async def upload(self, data: bytes, path: str) -> str:
        filename = PurePosixPath(path).name or "note.json"
        try:
            created = await self._client.post(
                "/uploads/file",
                json={"filename": filename, "mimeType": "application/json", "uploadOptions": {}},
                headers=self._headers,
            )
            created.raise_for_status()
            upload_id = created.json()["id"]

            for index, start in enumerate(range(0, max(len(data), 1), self.chunk_size)):
                chunk = data[start : start + self.chunk_size]
                response = await self._client.post(
                    f"/uploads/file/{upload_id}/chunk",
                    files={"file": (filename, chunk, "application/octet-stream")},
                    data={"index": str(index)},
                    headers=self._headers,
                )
                response.raise_for_status()

            completed = await self._client.post(
                f"/uploads/{upload_id}/complete", headers=self._headers
            )
            completed.raise_for_status()
            cid = completed.json()["cid"]
        except httpx.TimeoutException as e:
            raise StorageTimeoutError(f"Auto Drive upload of {path} timed out") from e
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.error(f"Auto Drive upload of {path} failed: {e}")
            raise StorageError(f"Failed to upload {path} to Auto Drive: {e}") from e

        logger.debug(f"Uploaded {len(data)} bytes for {path} to Auto Drive as {cid}")
        return cid

    async def download(self, cid: str) -> bytes | None:
        try:
            response = await self._client.get(f"/objects/{cid}/download", headers=self._headers)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.content
        except httpx.TimeoutException as e:
            raise StorageTimeoutError(f"Auto Drive download of {cid} timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"Auto Drive download of {cid} failed: {e}")
            raise StorageError(f"Failed to download {cid} from Auto Drive: {e}") from e

    async def close(self) -> None:
        await self._client.aclose()
