import base64
import json
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import redis

from constants import REDIS_HOST, REDIS_PORT, REDIS_PASSWORD, STORAGE_BACKEND, DEFAULT_MIME_TYPE
from elements import scene_version
from errors import InvalidInput
from redis_keys import REDIS_SCENE_KEY, REDIS_SCENES_INDEX_KEY, REDIS_BLOB_KEY, REDIS_BLOBS_INDEX_KEY
from logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class StoredScene:
    id: str
    data: Dict[str, Any]
    created_at: datetime
    updated_at: datetime

    @property
    def version(self) -> int:
        return scene_version(self.data.get("elements") or [])

    @property
    def data_size(self) -> int:
        return len(_dumps(self.data))


@dataclass
class StoredBlob:
    id: str
    data: bytes
    mime_type: str
    created_at: datetime


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _dumps(data) -> str:
    return json.dumps(data, separators=(",", ":"))


def validate_scene_data(data) -> Dict[str, Any]:
    if not data:
        raise InvalidInput("Scene data is required")
    if not isinstance(data, dict) or not isinstance(data.get("elements"), list):
        raise InvalidInput("Scene data must contain an elements list")
    return data


class SceneBackend:
    """Last-write-wins keyed storage for scene snapshots and uploaded blobs.

    The store never reconciles: ``put`` overwrites whatever is stored. Lookups of
    unknown ids return ``None`` (or ``False`` for ``delete``).
    """

    def get(self, scene_id: str) -> Optional[StoredScene]:
        raise NotImplementedError

    def put(self, scene_id: str, data: Dict[str, Any]) -> StoredScene:
        raise NotImplementedError

    def create(self, data: Dict[str, Any]) -> StoredScene:
        return self.put(str(uuid.uuid4()), data)

    def delete(self, scene_id: str) -> bool:
        raise NotImplementedError

    def list(self) -> List[StoredScene]:
        raise NotImplementedError

    def put_blob(self, data: bytes, mime_type: Optional[str] = None) -> str:
        raise NotImplementedError

    def get_blob(self, blob_id: str) -> Optional[StoredBlob]:
        raise NotImplementedError

    def stats(self) -> Dict[str, int]:
        raise NotImplementedError


class MemoryBackend(SceneBackend):
    def __init__(self):
        self.scenes: Dict[str, StoredScene] = {}
        self.blobs: Dict[str, StoredBlob] = {}
        logger.info("Initializing in-memory scene backend")

    def get(self, scene_id: str) -> Optional[StoredScene]:
        scene = self.scenes.get(scene_id)
        if scene is None:
            logger.debug(f"Scene {scene_id} not found")
        return scene

    def put(self, scene_id: str, data: Dict[str, Any]) -> StoredScene:
        data = validate_scene_data(data)
        now = _now()
        existing = self.scenes.get(scene_id)
        scene = StoredScene(
            id=scene_id,
            data=data,
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        self.scenes[scene_id] = scene
        logger.debug(f"Scene {scene_id} stored (version {scene.version})")
        return scene

    def delete(self, scene_id: str) -> bool:
        return self.scenes.pop(scene_id, None) is not None

    def list(self) -> List[StoredScene]:
        return list(self.scenes.values())

    def put_blob(self, data: bytes, mime_type: Optional[str] = None) -> str:
        blob_id = str(uuid.uuid4())
        self.blobs[blob_id] = StoredBlob(
            id=blob_id,
            data=bytes(data),
            mime_type=mime_type or DEFAULT_MIME_TYPE,
            created_at=_now(),
        )
        logger.debug(f"Blob {blob_id} stored ({len(data)} bytes)")
        return blob_id

    def get_blob(self, blob_id: str) -> Optional[StoredBlob]:
        return self.blobs.get(blob_id)

    def stats(self) -> Dict[str, int]:
        return {"scenes": len(self.scenes), "files": len(self.blobs)}

    def clear(self):
        self.scenes.clear()
        self.blobs.clear()


class RedisBackend(SceneBackend):
    def __init__(self, redis_client: Optional[redis.Redis] = None):
        if redis_client is None:
            try:
                redis_client = redis.Redis(host=REDIS_HOST, port=REDIS_PORT, password=REDIS_PASSWORD, decode_responses=True)
                # Test connection
                redis_client.ping()
                logger.info(f"Redis client connected successfully to {REDIS_HOST}:{REDIS_PORT}")
            except Exception as e:
                logger.error(f"Failed to connect to Redis at {REDIS_HOST}:{REDIS_PORT}: {e}", exc_info=True)
                raise
        self.redis_client = redis_client
        logger.info("Initializing Redis scene backend")

    def get(self, scene_id: str) -> Optional[StoredScene]:
        key = REDIS_SCENE_KEY.format(scene_id=scene_id)
        raw = self.redis_client.hgetall(key)
        if not raw:
            logger.debug(f"Scene {scene_id} not found in Redis")
            return None
        return StoredScene(
            id=scene_id,
            data=json.loads(raw["data"]),
            created_at=datetime.fromisoformat(raw["created_at"]),
            updated_at=datetime.fromisoformat(raw["updated_at"]),
        )

    def put(self, scene_id: str, data: Dict[str, Any]) -> StoredScene:
        data = validate_scene_data(data)
        key = REDIS_SCENE_KEY.format(scene_id=scene_id)
        now = _now()
        created_at = self.redis_client.hget(key, "created_at")
        scene = StoredScene(
            id=scene_id,
            data=data,
            created_at=datetime.fromisoformat(created_at) if created_at else now,
            updated_at=now,
        )
        pipe = self.redis_client.pipeline()
        pipe.hset(key, mapping={
            "data": _dumps(data),
            "created_at": scene.created_at.isoformat(),
            "updated_at": scene.updated_at.isoformat(),
        })
        pipe.sadd(REDIS_SCENES_INDEX_KEY, scene_id)
        pipe.execute()
        logger.debug(f"Scene {scene_id} stored in Redis with key: {key}")
        return scene

    def delete(self, scene_id: str) -> bool:
        key = REDIS_SCENE_KEY.format(scene_id=scene_id)
        deleted = self.redis_client.delete(key)
        self.redis_client.srem(REDIS_SCENES_INDEX_KEY, scene_id)
        logger.debug(f"Scene {scene_id} delete: key={deleted}")
        return bool(deleted)

    def list(self) -> List[StoredScene]:
        scenes = []
        for scene_id in sorted(self.redis_client.smembers(REDIS_SCENES_INDEX_KEY)):
            scene = self.get(scene_id)
            if scene is None:
                # index entry outlived its hash
                self.redis_client.srem(REDIS_SCENES_INDEX_KEY, scene_id)
                continue
            scenes.append(scene)
        return scenes

    def put_blob(self, data: bytes, mime_type: Optional[str] = None) -> str:
        blob_id = str(uuid.uuid4())
        key = REDIS_BLOB_KEY.format(blob_id=blob_id)
        pipe = self.redis_client.pipeline()
        pipe.hset(key, mapping={
            "data": base64.b64encode(bytes(data)).decode("ascii"),
            "mime_type": mime_type or DEFAULT_MIME_TYPE,
            "created_at": _now().isoformat(),
        })
        pipe.sadd(REDIS_BLOBS_INDEX_KEY, blob_id)
        pipe.execute()
        logger.debug(f"Blob {blob_id} stored in Redis ({len(data)} bytes)")
        return blob_id

    def get_blob(self, blob_id: str) -> Optional[StoredBlob]:
        raw = self.redis_client.hgetall(REDIS_BLOB_KEY.format(blob_id=blob_id))
        if not raw:
            return None
        return StoredBlob(
            id=blob_id,
            data=base64.b64decode(raw["data"]),
            mime_type=raw.get("mime_type") or DEFAULT_MIME_TYPE,
            created_at=datetime.fromisoformat(raw["created_at"]),
        )

    def stats(self) -> Dict[str, int]:
        return {
            "scenes": self.redis_client.scard(REDIS_SCENES_INDEX_KEY),
            "files": self.redis_client.scard(REDIS_BLOBS_INDEX_KEY),
        }


def create_backend(kind: str = STORAGE_BACKEND) -> SceneBackend:
    if kind == "memory":
        return MemoryBackend()
    if kind == "redis":
        return RedisBackend()
    raise ValueError(f"Unknown storage backend: {kind!r}")


scene_backend = create_backend()
