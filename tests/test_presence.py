from presence import PresenceRegistry


def test_join_returns_members_in_join_order() -> None:
    registry = PresenceRegistry()
    assert registry.join("r1", "c1") == ["c1"]
    assert registry.join("r1", "c2") == ["c1", "c2"]
    assert registry.members_of("r1") == ["c1", "c2"]
    assert registry.room_of("c2") == "r1"


def test_joining_another_room_leaves_the_previous_one() -> None:
    registry = PresenceRegistry()
    registry.join("r1", "c1")
    registry.join("r1", "c2")
    registry.join("r2", "c1")
    assert registry.members_of("r1") == ["c2"]
    assert registry.members_of("r2") == ["c1"]
    assert registry.room_of("c1") == "r2"


def test_last_leave_deletes_room() -> None:
    registry = PresenceRegistry()
    registry.join("r1", "c1")
    assert registry.leave("r1", "c1") == []
    assert registry.members_of("r1") == []
    assert "r1" not in registry.rooms()
    assert registry.room_of("c1") is None


def test_leave_is_idempotent_and_ignores_unknown_rooms() -> None:
    registry = PresenceRegistry()
    registry.join("r1", "c1")
    registry.join("r1", "c2")
    assert registry.leave("r1", "c2") == ["c1"]
    assert registry.leave("r1", "c2") == ["c1"]
    assert registry.leave("missing", "c1") == []
    assert registry.rooms() == {"r1": ["c1"]}


def test_connection_is_in_at_most_one_room() -> None:
    registry = PresenceRegistry()
    for room_id, connection_id in [("a", "c1"), ("b", "c2"), ("b", "c1"), ("c", "c2"), ("a", "c3"), ("c", "c1")]:
        registry.join(room_id, connection_id)
    seen = [member for members in registry.rooms().values() for member in members]
    assert sorted(seen) == ["c1", "c2", "c3"]
    assert registry.rooms() == {"a": ["c3"], "c": ["c2", "c1"]}
