import json
from typing import Any
from pydantic import ValidationError
from checks.location import nearby_alerts
from schemas.alerts import (
    Alert,
    AlertType,
    EmergencyAlertRequest,
    LocationUpdate,
    Severity,
    TravelAlertRequest,
    TripRef,
)
from logging_config import get_logger

logger = get_logger(__name__)


class MalformedEvent(ValueError):
    pass


class EventRouter:
    """Routes inbound `{"event": ..., "data": ...}` frames to their handlers."""

    def __init__(self, hub):
        self.hub = hub
        self.handlers = {
            "join-trip": self.join_trip,
            "leave-trip": self.leave_trip,
            "start-journey": self.start_journey,
            "stop-journey": self.stop_journey,
            "location-update": self.location_update,
            "start-monitoring": self.start_monitoring,
            "stop-monitoring": self.stop_monitoring,
            "send-travel-alert": self.send_travel_alert,
            "emergency-alert": self.emergency_alert,
        }

    @property
    def dispatcher(self):
        return self.hub.dispatcher

    async def handle(self, connection_id: str, raw: str) -> bool:
        """Handle one frame. Bad frames are logged and answered with an `error` event."""
        event = None
        try:
            event, data = self.parse(raw)
            handler = self.handlers.get(event)
            if handler is None:
                raise MalformedEvent(f"Unknown event '{event}'")
            logger.debug(f"Handling {event} from connection {connection_id}")
            await handler(connection_id, data)
            return True
        except (MalformedEvent, ValidationError) as e:
            logger.warning(f"Rejected {event or 'frame'} from connection {connection_id}: {e}")
            await self.dispatcher.send_to_connection(connection_id, "error", {
                "event": event,
                "message": str(e),
            })
            return False
        except Exception as e:
            logger.error(f"Error handling {event} from connection {connection_id}: {e}", exc_info=True)
            await self.dispatcher.send_to_connection(connection_id, "error", {
                "event": event,
                "message": "Internal error while handling event",
            })
            return False

    @staticmethod
    def parse(raw: str) -> tuple[str, Any]:
        try:
            frame = json.loads(raw)
        except json.JSONDecodeError:
            raise MalformedEvent("Frame is not valid JSON")
        if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
            raise MalformedEvent("Frame must be an object with an 'event' name")
        return frame["event"], frame.get("data")

    async def join_trip(self, connection_id: str, data: Any):
        # The web client sends the bare trip id
        if isinstance(data, str) and data:
            trip_id = data
        else:
            trip_id = TripRef.model_validate(data).trip_id
        previous = self.hub.registry.rooms.room_of(connection_id)
        self.hub.registry.join(connection_id, trip_id)
        if previous and previous != trip_id:
            await self.hub.release_trip(previous)
        await self.dispatcher.send_to_connection(connection_id, "trip-joined", {
            "tripId": trip_id,
            "message": "Successfully joined trip room",
        })

    async def leave_trip(self, connection_id: str, data: Any):
        ref = TripRef.model_validate(data)
        left = self.hub.registry.leave(connection_id, ref.trip_id)
        if left:
            await self.hub.release_trip(ref.trip_id)
        await self.dispatcher.send_to_connection(connection_id, "trip-left", {
            "tripId": ref.trip_id,
            "left": left,
        })

    async def start_journey(self, connection_id: str, data: Any):
        ref = TripRef.model_validate(data)
        logger.info(f"Journey started for trip {ref.trip_id} by connection {connection_id}")
        self.hub.monitor.start(ref.trip_id, owner=connection_id)
        await self.dispatcher.emit_to_trip(ref.trip_id, "journey-started", {
            "message": "Journey monitoring has started",
        }, exclude=connection_id)

    async def stop_journey(self, connection_id: str, data: Any):
        ref = TripRef.model_validate(data)
        logger.info(f"Journey stopped for trip {ref.trip_id} by connection {connection_id}")
        await self.hub.monitor.stop(ref.trip_id)
        await self.dispatcher.emit_to_trip(ref.trip_id, "journey-stopped", {
            "message": "Journey monitoring has stopped",
        }, exclude=connection_id)

    async def location_update(self, connection_id: str, data: Any):
        update = LocationUpdate.model_validate(data)
        location = update.location.model_dump(exclude_none=True)
        await self.dispatcher.emit_to_trip(update.trip_id, "location-update", {
            "location": location,
        }, exclude=connection_id)

        if not update.location.has_coordinates:
            return
        context = await self.hub.load_context(update.trip_id)
        alerts = nearby_alerts(context.hazards, update.location.lat, update.location.lng)
        if alerts:
            logger.info(f"{len(alerts)} hazards near connection {connection_id} on trip {update.trip_id}")
            await self.dispatcher.send_to_connection(connection_id, "location-alert", {
                "alerts": alerts,
                "location": location,
                "tripId": update.trip_id,
            })

    async def start_monitoring(self, connection_id: str, data: Any):
        ref = TripRef.model_validate(data)
        started = self.hub.monitor.start(ref.trip_id, owner=connection_id)
        await self.dispatcher.send_to_connection(connection_id, "monitoring-started", {
            "tripId": ref.trip_id,
            "message": "Real-time monitoring started" if started else "Real-time monitoring already running",
            "alreadyRunning": not started,
        })

    async def stop_monitoring(self, connection_id: str, data: Any):
        ref = TripRef.model_validate(data)
        stopped = await self.hub.monitor.stop(ref.trip_id)
        await self.dispatcher.send_to_connection(connection_id, "monitoring-stopped", {
            "tripId": ref.trip_id,
            "message": "Real-time monitoring stopped",
            "wasRunning": stopped,
        })

    async def send_travel_alert(self, connection_id: str, data: Any):
        request = TravelAlertRequest.model_validate(data)
        logger.info(f"Travel alert for trip {request.trip_id} from connection {connection_id}: {request.message}")
        alert = Alert(
            type=request.alert_type,
            severity=request.severity,
            message=request.message,
            trip_id=request.trip_id,
        )
        await self.dispatcher.send_to_trip(request.trip_id, alert, event="travel-alert")

    async def emergency_alert(self, connection_id: str, data: Any):
        request = EmergencyAlertRequest.model_validate(data)
        logger.warning(f"EMERGENCY alert for trip {request.trip_id} from connection {connection_id}: {request.message}")
        alert = Alert(
            type=AlertType.EMERGENCY,
            severity=Severity.CRITICAL,
            message=request.message,
            trip_id=request.trip_id,
            location=request.location,
        )
        await self.dispatcher.send_global(alert)
