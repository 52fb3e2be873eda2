from schemas.alerts import Alert, AlertType, Severity


def storm():
    return Alert(type=AlertType.WEATHER, severity=Severity.HIGH, message="Storm")


async def test_send_to_trip_reaches_only_room_members(hub, connect):
    a = connect("a", "T1")
    b = connect("b")
    c = connect("c", "T2")

    delivered = await hub.dispatcher.send_to_trip("T1", storm())

    assert delivered == 1
    assert a.events() == ["weather-update"]
    assert a.last("weather-update")["message"] == "Storm"
    assert a.last("weather-update")["tripId"] == "T1"
    assert b.sent == []
    assert c.sent == []


async def test_moving_rooms_switches_broadcasts(hub, connect):
    a = connect("a", "T1")
    hub.registry.join("a", "T2")

    await hub.dispatcher.send_to_trip("T1", storm())
    assert a.sent == []

    await hub.dispatcher.send_to_trip("T2", storm())
    assert a.events() == ["weather-update"]


async def test_late_joiner_does_not_get_earlier_alert(hub, connect):
    await hub.dispatcher.send_to_trip("T1", storm())
    late = connect("late", "T1")
    assert late.sent == []


async def test_send_global_reaches_connections_without_room(hub, connect):
    a = connect("a", "T1")
    b = connect("b")

    delivered = await hub.dispatcher.send_global(
        Alert(type=AlertType.GENERAL, severity=Severity.MEDIUM, message="Maintenance"),
        event="travel-alert",
    )

    assert delivered == 2
    assert a.events() == ["travel-alert"]
    assert b.events() == ["travel-alert"]


async def test_critical_trip_alert_is_broadcast_to_everyone(hub, connect):
    a = connect("a", "T1")
    b = connect("b", "T2")

    await hub.dispatcher.send_to_trip(
        "T1", Alert(type=AlertType.EMERGENCY, severity=Severity.CRITICAL, message="Evacuate")
    )

    assert a.events() == ["emergency-alert"]
    assert b.events() == ["emergency-alert"]
    assert b.last("emergency-alert")["tripId"] == "T1"


async def test_timestamp_is_stamped_at_send_time(hub, connect):
    a = connect("a", "T1")
    alert = Alert(message="Old news", timestamp="2000-01-01T00:00:00")

    await hub.dispatcher.send_to_trip("T1", alert)

    assert a.last("travel-alert")["timestamp"] != "2000-01-01T00:00:00"
    assert alert.timestamp == "2000-01-01T00:00:00"


async def test_unknown_trip_is_a_noop(hub, connect):
    connect("a")
    assert await hub.dispatcher.send_to_trip("missing", storm()) == 0


async def test_failed_socket_does_not_block_others(hub, connect):
    dead = connect("dead", "T1", fail=True)
    alive = connect("alive", "T1")

    delivered = await hub.dispatcher.send_to_trip("T1", storm())

    assert delivered == 1
    assert alive.events() == ["weather-update"]
    assert hub.registry.get("dead").connected is False

    await hub.dispatcher.send_to_trip("T1", storm())
    assert dead.sent == []
    assert len(alive.sent) == 2


async def test_emit_to_trip_can_skip_sender(hub, connect):
    sender = connect("sender", "T1")
    other = connect("other", "T1")

    await hub.dispatcher.emit_to_trip("T1", "journey-started", {"message": "go"}, exclude="sender")

    assert sender.sent == []
    assert other.last("journey-started")["tripId"] == "T1"


async def test_send_to_unknown_connection(hub):
    assert await hub.dispatcher.send_to_connection("ghost", "trip-joined", {}) is False
