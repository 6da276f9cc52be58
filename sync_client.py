"""Participant-side scene synchronization.

``SceneSyncClient`` pushes durable snapshots of a locally edited scene through
the scene store. Every save fetches the stored snapshot first and reconciles
against it, so two participants saving one after the other end up with the
merge of both edits rather than the last writer's raw input. A per-connection
version cache skips pushes when nothing changed since the last confirmed save.
"""

import asyncio
import base64
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import httpx

from constants import DEFAULT_MIME_TYPE
from elements import Element, decode_file_payload, reconcile_elements, restore_elements, scene_version, to_data_url
from errors import StorageError
from logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_FILE_CONCURRENCY = 6


@dataclass
class SyncContext:
    """The room, live connection and scene a client is currently syncing."""

    room_id: Optional[str] = None
    connection_id: Optional[str] = None
    scene_id: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.room_id and not self.connection_id

    @property
    def is_complete(self) -> bool:
        return bool(self.room_id and self.connection_id and self.scene_id)


class VersionCache:
    """Scene version last confirmed persisted, per (connection, scene).

    Only used to skip redundant pushes, never as a source of truth.
    """

    def __init__(self):
        self._versions: Dict[Tuple[str, str], int] = {}

    def get(self, connection_id: str, scene_id: str) -> Optional[int]:
        return self._versions.get((connection_id, scene_id))

    def set(self, connection_id: str, scene_id: str, version: int):
        self._versions[(connection_id, scene_id)] = version

    def forget(self, connection_id: str):
        for key in [key for key in self._versions if key[0] == connection_id]:
            del self._versions[key]

    def __len__(self):
        return len(self._versions)


@dataclass
class FileSaveResult:
    saved_files: List[str] = field(default_factory=list)
    errored_files: List[str] = field(default_factory=list)
    # file id -> id generated by the blob store
    blob_ids: Dict[str, str] = field(default_factory=dict)


@dataclass
class LoadedFile:
    id: str
    mime_type: str
    data_url: str
    created: int
    last_retrieved: int


@dataclass
class FileLoadResult:
    loaded_files: List[LoadedFile] = field(default_factory=list)
    errored_files: List[str] = field(default_factory=list)


def _now_ms() -> int:
    return int(time.time() * 1000)


class SceneSyncClient:
    """Save, load and file transfer against the scene store HTTP API.

    The element capabilities are injectable: ``reconcile(local, remote, app_state)``,
    ``restore(elements, delete_invisible=False)``, ``version(elements)`` and
    ``decode(buffer, decryption_key) -> (bytes, metadata)``.
    """

    def __init__(
        self,
        base_url: str = "",
        context: Optional[SyncContext] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        reconcile: Callable[..., List[Element]] = reconcile_elements,
        restore: Callable[..., List[Element]] = restore_elements,
        version: Callable[[Iterable[Element]], int] = scene_version,
        decode: Callable[[bytes, Optional[str]], Tuple[bytes, Dict[str, Any]]] = decode_file_payload,
        version_cache: Optional[VersionCache] = None,
        max_concurrency: int = DEFAULT_FILE_CONCURRENCY,
    ):
        self.context = context or SyncContext()
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(base_url=base_url)
        self.reconcile = reconcile
        self.restore = restore
        self.version = version
        self.decode = decode
        self.version_cache = version_cache or VersionCache()
        self.max_concurrency = max_concurrency
        self._save_locks: Dict[str, asyncio.Lock] = {}

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        if self._owns_http:
            await self._http.aclose()

    def forget_connection(self, connection_id: str):
        """Drop cached versions of a connection that went away."""
        self.version_cache.forget(connection_id)

    def is_up_to_date(self, elements: Sequence[Element]) -> bool:
        context = self.context
        if context.is_empty:
            # nothing to reconcile against outside a room
            return True
        if not context.is_complete:
            return False
        cached = self.version_cache.get(context.connection_id, context.scene_id)
        if cached is None:
            return False
        return cached == self.version(elements)

    async def save(self, elements: Sequence[Element], app_state: Optional[Mapping[str, Any]] = None) -> Optional[List[Element]]:
        """Reconcile ``elements`` with the stored scene and push the result.

        Returns ``None`` when there was nothing to do, otherwise the stored
        elements, which the caller should adopt as its working copy since the
        merge may have brought in remote changes. Raises ``StorageError`` when
        the store cannot be read or written.
        """
        context = self.context
        if not context.is_complete:
            return None
        room_id, connection_id, scene_id = context.room_id, context.connection_id, context.scene_id

        async with self._lock_for(scene_id):
            if self.is_up_to_date(elements):
                logger.debug(f"Scene {scene_id} already saved from connection {connection_id}")
                return None

            remote = await self._fetch_scene(scene_id)
            if remote is None:
                reconciled = list(elements)
            else:
                remote_elements = self.restore(remote.get("elements"))
                reconciled = list(self.reconcile(elements, remote_elements, app_state or {}))

            stored = {"sceneVersion": self.version(reconciled), "elements": reconciled}
            await self._put_scene(scene_id, stored)

            stored_elements = self.restore(stored["elements"])
            self.version_cache.set(connection_id, scene_id, self.version(stored_elements))
            logger.info(f"Saved scene {scene_id} for room {room_id} ({len(stored_elements)} elements)")
            return stored_elements

    async def load(self, scene_id: str) -> Optional[List[Element]]:
        """Fetch and restore a stored scene, or ``None`` if it does not exist."""
        remote = await self._fetch_scene(scene_id)
        if remote is None:
            return None
        elements = self.restore(remote.get("elements"), delete_invisible=True)
        if self.context.connection_id:
            self.version_cache.set(self.context.connection_id, scene_id, self.version(elements))
        logger.info(f"Loaded scene {scene_id} ({len(elements)} elements)")
        return elements

    async def save_files(self, prefix: str, files: Iterable[Tuple[str, bytes]]) -> FileSaveResult:
        """Upload each file independently. Failures are reported per file, never raised."""
        result = FileSaveResult()
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def upload(file_id: str, buffer: bytes):
            async with semaphore:
                try:
                    response = await self._http.post("/files", json={
                        # always encoded, even when the bytes themselves look like a data URL
                        "data": f"data:{DEFAULT_MIME_TYPE};base64,{base64.b64encode(bytes(buffer)).decode('ascii')}",
                        "mimeType": DEFAULT_MIME_TYPE,
                        "prefix": prefix.lstrip("/"),
                        "fileId": file_id,
                    })
                    if response.is_success:
                        result.blob_ids[file_id] = response.json()["id"]
                        result.saved_files.append(file_id)
                        return
                    logger.warning(f"Upload of file {file_id} failed with status {response.status_code}")
                except Exception as e:
                    logger.warning(f"Upload of file {file_id} failed: {e}")
                result.errored_files.append(file_id)

        await asyncio.gather(*(upload(file_id, buffer) for file_id, buffer in files))
        return result

    async def load_files(self, prefix: str, file_ids: Iterable[str], decryption_key: Optional[str] = None) -> FileLoadResult:
        """Download and decode each distinct file id independently."""
        result = FileLoadResult()
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def download(file_id: str):
            async with semaphore:
                try:
                    response = await self._http.get(f"/files/{file_id}")
                    if response.status_code >= 400:
                        logger.warning(f"Download of file {file_id} (prefix {prefix}) failed with status {response.status_code}")
                        result.errored_files.append(file_id)
                        return
                    data, metadata = self.decode(response.content, decryption_key)
                    mime_type = (
                        metadata.get("mimeType")
                        or response.headers.get("content-type", "").split(";", 1)[0].strip()
                        or DEFAULT_MIME_TYPE
                    )
                    created = metadata.get("created") or _now_ms()
                    result.loaded_files.append(LoadedFile(
                        id=file_id,
                        mime_type=mime_type,
                        data_url=to_data_url(data, mime_type),
                        created=created,
                        last_retrieved=created,
                    ))
                except Exception as e:
                    logger.warning(f"Download of file {file_id} failed: {e}")
                    result.errored_files.append(file_id)

        await asyncio.gather(*(download(file_id) for file_id in dict.fromkeys(file_ids)))
        return result

    def _lock_for(self, scene_id: str) -> asyncio.Lock:
        lock = self._save_locks.get(scene_id)
        if lock is None:
            lock = self._save_locks[scene_id] = asyncio.Lock()
        return lock

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {url} failed: {e}")
            raise StorageError(f"{method} {url} failed: {e}") from e

    async def _fetch_scene(self, scene_id: str) -> Optional[Dict[str, Any]]:
        response = await self._request("GET", f"/scenes/{scene_id}")
        if response.status_code == 404:
            return None
        if not response.is_success:
            logger.error(f"Fetching scene {scene_id} failed with status {response.status_code}")
            raise StorageError(f"Failed to fetch scene {scene_id}: {response.status_code}", response.status_code)
        try:
            scene = response.json()
        except ValueError:
            scene = None
        if not isinstance(scene, dict):
            logger.error(f"Fetching scene {scene_id} returned a malformed body")
            raise StorageError(f"Malformed scene {scene_id} returned by the store", response.status_code)
        return scene

    async def _put_scene(self, scene_id: str, stored: Dict[str, Any]):
        response = await self._request("PUT", f"/scenes/{scene_id}", json={"data": stored})
        try:
            accepted = response.is_success and bool(response.json().get("success"))
        except (ValueError, AttributeError):
            accepted = False
        if not accepted:
            logger.error(f"Saving scene {scene_id} failed with status {response.status_code}")
            raise StorageError(f"Failed to save scene {scene_id}: {response.status_code}", response.status_code)
