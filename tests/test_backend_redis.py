import fakeredis
import pytest

from backend import RedisBackend, create_backend
from errors import InvalidInput
from redis_keys import REDIS_SCENES_INDEX_KEY


@pytest.fixture
def redis_backend():
    return RedisBackend(fakeredis.FakeRedis(decode_responses=True))


def test_scene_round_trip_and_overwrite(redis_backend: RedisBackend) -> None:
    assert redis_backend.get("abc") is None

    first = redis_backend.put("abc", {"sceneVersion": 1, "elements": [{"id": "e1", "version": 1}]})
    assert first.version == 1
    stored = redis_backend.get("abc")
    assert stored.data == {"sceneVersion": 1, "elements": [{"id": "e1", "version": 1}]}

    second = redis_backend.put("abc", {"elements": [{"id": "e1", "version": 3}, {"id": "e2", "version": 2}]})
    assert second.version == 5
    assert second.created_at == first.created_at
    assert redis_backend.get("abc").updated_at >= first.updated_at


def test_invalid_payload_is_rejected_before_writing(redis_backend: RedisBackend) -> None:
    with pytest.raises(InvalidInput):
        redis_backend.put("abc", None)
    with pytest.raises(InvalidInput):
        redis_backend.put("abc", {"elements": "nope"})
    assert redis_backend.get("abc") is None
    assert redis_backend.stats()["scenes"] == 0


def test_list_delete_and_stats(redis_backend: RedisBackend) -> None:
    redis_backend.put("b", {"elements": []})
    created = redis_backend.create({"elements": [{"id": "e1", "version": 1}]})
    assert sorted(scene.id for scene in redis_backend.list()) == sorted(["b", created.id])
    assert redis_backend.stats() == {"scenes": 2, "files": 0}

    assert redis_backend.delete("b") is True
    assert redis_backend.delete("b") is False
    assert [scene.id for scene in redis_backend.list()] == [created.id]


def test_list_drops_stale_index_entries(redis_backend: RedisBackend) -> None:
    redis_backend.redis_client.sadd(REDIS_SCENES_INDEX_KEY, "ghost")
    assert redis_backend.list() == []
    assert redis_backend.stats()["scenes"] == 0


def test_blobs_keep_binary_payload_and_media_type(redis_backend: RedisBackend) -> None:
    blob_id = redis_backend.put_blob(b"\x00\xffbinary", "image/png")
    blob = redis_backend.get_blob(blob_id)
    assert blob.data == b"\x00\xffbinary"
    assert blob.mime_type == "image/png"

    other_id = redis_backend.put_blob(b"\x00\xffbinary")
    assert other_id != blob_id
    assert redis_backend.get_blob(other_id).mime_type == "application/octet-stream"
    assert redis_backend.get_blob("missing") is None
    assert redis_backend.stats()["files"] == 2


def test_unknown_backend_kind() -> None:
    with pytest.raises(ValueError):
        create_backend("sqlite")
