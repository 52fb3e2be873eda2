from realtime.registry import ConnectionRegistry
from realtime.rooms import RoomMembership


def test_join_replaces_previous_room():
    rooms = RoomMembership()
    assert rooms.join("a", "T1") is None
    assert rooms.join("a", "T2") == "T1"

    assert rooms.members("T1") == frozenset()
    assert rooms.members("T2") == {"a"}
    assert rooms.room_of("a") == "T2"


def test_rejoining_same_room_is_a_noop():
    rooms = RoomMembership()
    rooms.join("a", "T1")
    assert rooms.join("a", "T1") is None
    assert rooms.count("T1") == 1


def test_empty_rooms_are_dropped():
    rooms = RoomMembership()
    rooms.join("a", "T1")
    rooms.join("b", "T1")
    rooms.leave("a", "T1")
    assert rooms.rooms() == ["T1"]
    rooms.leave("b", "T1")
    assert rooms.rooms() == []


def test_leave_other_room_does_nothing():
    rooms = RoomMembership()
    rooms.join("a", "T1")
    assert rooms.leave("a", "T2") is False
    assert rooms.members("T1") == {"a"}


def test_unknown_room_has_no_members():
    assert RoomMembership().members("nope") == frozenset()


def test_unregister_removes_connection_from_its_room():
    registry = ConnectionRegistry()
    registry.register("a", object())
    registry.join("a", "T1")

    connection = registry.unregister("a")

    assert connection.connected is False
    assert "a" not in registry
    assert registry.members("T1") == []
    assert registry.rooms.room_of("a") is None


def test_unregister_unknown_is_noop():
    registry = ConnectionRegistry()
    assert registry.unregister("ghost") is None


def test_join_requires_registration():
    registry = ConnectionRegistry()
    assert registry.join("ghost", "T1") is False
    assert registry.rooms.count("T1") == 0


def test_join_tracks_trip_on_connection():
    registry = ConnectionRegistry()
    registry.register("a", object())
    registry.join("a", "T1")
    assert registry.get("a").trip_id == "T1"

    registry.leave("a", "T1")
    assert registry.get("a").trip_id is None
