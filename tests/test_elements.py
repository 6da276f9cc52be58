import base64

from elements import parse_data_url, reconcile_elements, restore_elements, scene_version, to_data_url


def _el(element_id: str, version: int, nonce: int = 0, **extra) -> dict:
    return {"id": element_id, "type": "rectangle", "version": version, "versionNonce": nonce, "width": 10, "height": 10, **extra}


def test_scene_version_is_sum_of_element_versions() -> None:
    assert scene_version([]) == 0
    assert scene_version([_el("a", 2), _el("b", 5), {"id": "c"}]) == 7


def test_higher_version_wins_either_side() -> None:
    local = [_el("a", 3), _el("b", 1)]
    remote = [_el("a", 2), _el("b", 4)]
    merged = reconcile_elements(local, remote)
    assert [(element["id"], element["version"]) for element in merged] == [("a", 3), ("b", 4)]


def test_version_tie_is_broken_by_lower_nonce() -> None:
    merged = reconcile_elements([_el("a", 2, nonce=9)], [_el("a", 2, nonce=3)])
    assert merged[0]["versionNonce"] == 3
    # symmetric: the same element wins regardless of argument order
    merged = reconcile_elements([_el("a", 2, nonce=3)], [_el("a", 2, nonce=9)])
    assert merged[0]["versionNonce"] == 3


def test_element_being_edited_locally_is_kept() -> None:
    merged = reconcile_elements([_el("a", 1)], [_el("a", 5)], {"editingElementId": "a"})
    assert merged[0]["version"] == 1


def test_remote_only_elements_are_appended() -> None:
    merged = reconcile_elements([_el("a", 1)], [_el("z", 1), _el("a", 1)])
    assert [element["id"] for element in merged] == ["a", "z"]


def test_restore_drops_malformed_and_optionally_invisible_elements() -> None:
    raw = [
        _el("a", 1),
        {"type": "rectangle"},
        "junk",
        _el("dot", 1, width=0, height=0),
        {"id": "line", "type": "line", "version": 1, "points": [[0, 0]]},
        _el("gone", 2, width=0, height=0, isDeleted=True),
    ]
    assert [element["id"] for element in restore_elements(raw)] == ["a", "dot", "line", "gone"]
    assert [element["id"] for element in restore_elements(raw, delete_invisible=True)] == ["a", "gone"]
    assert restore_elements(None) == []


def test_data_url_helpers() -> None:
    encoded = "data:image/png;base64," + base64.b64encode(b"\x01\x02").decode("ascii")
    assert parse_data_url(encoded) == (b"\x01\x02", "image/png")
    assert parse_data_url("plain") == (b"plain", None)
    assert to_data_url(b"\x01\x02", "image/png") == encoded
    assert to_data_url(encoded.encode("ascii"), "ignored/type") == encoded
