import asyncio
from datetime import datetime
from typing import Optional
from realtime.registry import Connection, ConnectionRegistry
from schemas.alerts import Alert, AlertType
from logging_config import get_logger

logger = get_logger(__name__)

# Outbound event name per alert type when the caller does not pick one
EVENT_FOR_TYPE = {
    AlertType.WEATHER: "weather-update",
    AlertType.SECURITY: "security-update",
    AlertType.TRAFFIC: "travel-alert",
    AlertType.EMERGENCY: "emergency-alert",
    AlertType.GENERAL: "travel-alert",
}

EMERGENCY_EVENT = "emergency-alert"


def now_iso() -> str:
    return datetime.now().isoformat()


def event_for(alert: Alert) -> str:
    if alert.is_critical:
        return EMERGENCY_EVENT
    return EVENT_FOR_TYPE.get(alert.type, "travel-alert")


class AlertDispatcher:
    """Fire-and-forget fan-out of events to the connections of this process.

    Delivery goes to whoever is registered (or in the room) at call time. Nothing
    is acknowledged, retried or queued for clients that connect later. A socket
    that fails to accept a frame is marked disconnected; its receive loop
    unregisters it.
    """

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry
        # Set by the hub when cross-instance fan-out is enabled
        self.bridge = None

    async def send_to_trip(self, trip_id: str, alert: Alert, event: Optional[str] = None, exclude: Optional[str] = None) -> int:
        """Send an alert to every member of the trip's room. Critical alerts go to everyone."""
        if alert.is_critical:
            logger.info(f"Critical alert for trip {trip_id} escalated to global broadcast")
            return await self.send_global(alert.model_copy(update={"trip_id": alert.trip_id or trip_id}))

        stamped = alert.model_copy(update={"timestamp": now_iso(), "trip_id": alert.trip_id or trip_id})
        envelope = {"event": event or event_for(stamped), "data": stamped.to_payload()}
        targets = self._room_targets(trip_id, exclude)
        logger.info(f"Dispatching {envelope['event']} ({stamped.type.value}/{stamped.severity.value}) to trip {trip_id}: {len(targets)} connections")
        self._publish("trip", envelope, trip_id=trip_id)
        return await self._deliver(targets, envelope)

    async def send_global(self, alert: Alert, event: str = EMERGENCY_EVENT) -> int:
        """Send an alert to every registered connection, in a room or not."""
        stamped = alert.model_copy(update={"timestamp": now_iso()})
        envelope = {"event": event, "data": stamped.to_payload()}
        targets = [c for c in self.registry.connections() if c.connected]
        logger.info(f"Dispatching global {event} ({stamped.severity.value}) to {len(targets)} connections")
        self._publish("global", envelope)
        return await self._deliver(targets, envelope)

    async def emit_to_trip(self, trip_id: str, event: str, payload: dict, exclude: Optional[str] = None) -> int:
        """Room event that is not an alert (journey and location updates)."""
        data = dict(payload)
        data["timestamp"] = now_iso()
        data.setdefault("tripId", trip_id)
        envelope = {"event": event, "data": data}
        targets = self._room_targets(trip_id, exclude)
        logger.debug(f"Emitting {event} to trip {trip_id}: {len(targets)} connections")
        self._publish("trip", envelope, trip_id=trip_id)
        return await self._deliver(targets, envelope)

    async def send_to_connection(self, connection_id: str, event: str, payload: dict) -> bool:
        connection = self.registry.get(connection_id)
        if connection is None:
            logger.debug(f"Dropping {event} for unknown connection {connection_id}")
            return False
        data = dict(payload)
        data.setdefault("timestamp", now_iso())
        return await self._deliver([connection], {"event": event, "data": data}) == 1

    async def deliver_remote(self, scope: str, envelope: dict, trip_id: Optional[str] = None) -> int:
        """Deliver an envelope published by another instance to local connections."""
        if scope == "global":
            targets = [c for c in self.registry.connections() if c.connected]
        elif trip_id:
            targets = self._room_targets(trip_id, None)
        else:
            logger.warning(f"Remote envelope {envelope.get('event')} has trip scope but no trip id")
            return 0
        return await self._deliver(targets, envelope)

    def _room_targets(self, trip_id: str, exclude: Optional[str]) -> list[Connection]:
        return [c for c in self.registry.members(trip_id) if c.connected and c.connection_id != exclude]

    def _publish(self, scope: str, envelope: dict, trip_id: Optional[str] = None):
        if self.bridge is None:
            return
        try:
            self.bridge.publish(scope, envelope, trip_id=trip_id)
        except Exception as e:
            logger.error(f"Error publishing {envelope.get('event')} to the alert bridge: {e}", exc_info=True)

    async def _deliver(self, targets: list[Connection], envelope: dict) -> int:
        if not targets:
            return 0
        # Send to all connections concurrently
        results = await asyncio.gather(
            *(conn.socket.send_json(envelope) for conn in targets),
            return_exceptions=True,
        )
        delivered = 0
        for conn, result in zip(targets, results):
            if isinstance(result, BaseException):
                logger.warning(f"Error sending {envelope['event']} to connection {conn.connection_id}: {result}")
                conn.connected = False
            else:
                delivered += 1
        return delivered
