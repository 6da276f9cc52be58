from fastapi.testclient import TestClient


def test_put_then_get_returns_stored_elements(api_client: TestClient) -> None:
    put = api_client.put("/scenes/abc", json={"data": {"sceneVersion": 1, "elements": [{"id": "e1", "version": 1}]}})
    assert put.status_code == 200
    body = put.json()
    assert body["id"] == "abc"
    assert body["success"] is True
    assert body["updatedAt"]

    get = api_client.get("/scenes/abc")
    assert get.status_code == 200
    assert get.json() == {"sceneVersion": 1, "elements": [{"id": "e1", "version": 1}]}


def test_missing_scene_is_404(api_client: TestClient) -> None:
    assert api_client.get("/scenes/missing").status_code == 404
    assert api_client.delete("/scenes/missing").status_code == 404


def test_put_without_payload_is_rejected(api_client: TestClient) -> None:
    assert api_client.put("/scenes/abc", json={}).status_code == 400
    assert api_client.put("/scenes/abc", json={"data": {"sceneVersion": 3}}).status_code == 400
    assert api_client.get("/scenes/abc").status_code == 404


def test_overwrite_keeps_created_at(api_client: TestClient) -> None:
    api_client.put("/scenes/abc", json={"data": {"elements": [{"id": "e1", "version": 1}]}})
    first = api_client.get("/scenes").json()["scenes"][0]

    second_put = api_client.put("/scenes/abc", json={"data": {"elements": [{"id": "e2", "version": 4}]}})
    assert second_put.status_code == 200
    listing = api_client.get("/scenes").json()
    assert listing["total"] == 1
    summary = listing["scenes"][0]
    assert summary["createdAt"] == first["createdAt"]
    assert summary["updatedAt"] >= first["updatedAt"]
    assert api_client.get("/scenes/abc").json()["elements"] == [{"id": "e2", "version": 4}]


def test_create_list_delete(api_client: TestClient) -> None:
    data = {"sceneVersion": 0, "elements": []}
    created = api_client.post("/scenes", json={"data": data})
    assert created.status_code == 200
    scene_id = created.json()["id"]
    assert created.json()["success"] is True
    assert created.json()["createdAt"]

    listing = api_client.get("/scenes").json()
    assert listing["total"] == 1
    assert listing["scenes"][0]["id"] == scene_id
    assert listing["scenes"][0]["dataSize"] == len('{"sceneVersion":0,"elements":[]}')

    deleted = api_client.delete(f"/scenes/{scene_id}")
    assert deleted.status_code == 200
    assert deleted.json()["success"] is True
    assert api_client.get(f"/scenes/{scene_id}").status_code == 404


def test_create_without_data_is_rejected(api_client: TestClient) -> None:
    assert api_client.post("/scenes", json={}).status_code == 400


def test_health_counts_scenes_and_files(api_client: TestClient) -> None:
    api_client.put("/scenes/a", json={"data": {"elements": []}})
    api_client.post("/files", json={"data": "hello", "mimeType": "text/plain"})
    health = api_client.get("/health")
    assert health.status_code == 200
    payload = health.json()
    assert payload["status"] == "healthy"
    assert payload["scenes"] == 1
    assert payload["files"] == 1
    assert payload["timestamp"]


def test_get_reports_content_derived_version(api_client: TestClient) -> None:
    api_client.put("/scenes/abc", json={"data": {"sceneVersion": 999, "elements": [{"id": "e1", "version": 1}]}})
    assert api_client.get("/scenes/abc").json()["sceneVersion"] == 1

    api_client.put("/scenes/abc", json={"data": {"elements": [{"id": "e1", "version": 2}, {"id": "e2", "version": 3}]}})
    assert api_client.get("/scenes/abc").json() == {
        "sceneVersion": 5,
        "elements": [{"id": "e1", "version": 2}, {"id": "e2", "version": 3}],
    }
