from fastapi import APIRouter, HTTPException, Request
from schemas.trips import (
    DispatchAlertRequest,
    DispatchResponse,
    MonitorResponse,
    TripContext,
    TripContextRequest,
    TripDetailsResponse,
)
from schemas.alerts import Alert
from realtime.dispatcher import event_for
from logging_config import get_logger

logger = get_logger(__name__)

trips_router = APIRouter(prefix="/trips", tags=["trips"])


@trips_router.put("/{trip_id}/context", response_model=TripContext)
async def save_trip_context(trip_id: str, context: TripContextRequest, request: Request):
    # Upstream integrations (weather, security, maps) push their latest snapshot here.
    # The monitor reads it on every tick.
    hub = request.app.state.hub
    logger.info(f"Context update for trip {trip_id} from {request.client.host if request.client else 'unknown'}")
    try:
        return hub.backend.save_trip_context(trip_id, context)
    except Exception as e:
        logger.error(f"Error saving context for trip {trip_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to save trip context")


@trips_router.get("/{trip_id}", response_model=TripDetailsResponse)
async def get_trip_details(trip_id: str, request: Request):
    """
    Realtime status of a trip.

    Returns:
    - online_count: connections currently in the trip's room on this instance
    - monitoring: whether a periodic monitor is running for the trip
    - has_context: whether a context snapshot is stored
    """
    hub = request.app.state.hub
    try:
        context = hub.backend.get_trip_context(trip_id)
    except Exception as e:
        logger.error(f"Error fetching context for trip {trip_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to load trip context")

    return TripDetailsResponse(
        trip_id=trip_id,
        online_count=hub.registry.rooms.count(trip_id),
        monitoring=hub.monitor.is_running(trip_id),
        has_context=context is not None,
        updated_at=context.updated_at if context else None,
    )


@trips_router.delete("/{trip_id}/context")
async def delete_trip_context(trip_id: str, request: Request):
    hub = request.app.state.hub
    try:
        deleted = hub.backend.delete_trip_context(trip_id)
    except Exception as e:
        logger.error(f"Error deleting context for trip {trip_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete trip context")
    if not deleted:
        logger.warning(f"Delete context failed: trip {trip_id} not found")
        raise HTTPException(status_code=404, detail="Trip context not found")

    await hub.monitor.stop(trip_id)
    logger.info(f"Context for trip {trip_id} deleted and monitor stopped")
    return {"message": "Trip context deleted"}


@trips_router.post("/{trip_id}/alerts", response_model=DispatchResponse)
async def send_trip_alert(trip_id: str, body: DispatchAlertRequest, request: Request):
    hub = request.app.state.hub
    alert = Alert(
        type=body.type,
        severity=body.severity,
        message=body.message,
        alerts=body.alerts,
        suggested_action=body.suggested_action,
        trip_id=trip_id,
    )
    delivered = await hub.dispatcher.send_to_trip(trip_id, alert, event=event_for(alert))
    return DispatchResponse(delivered=delivered, scope="global" if alert.is_critical else "trip")


@trips_router.post("/{trip_id}/monitor", response_model=MonitorResponse)
async def start_trip_monitor(trip_id: str, request: Request):
    hub = request.app.state.hub
    hub.monitor.start(trip_id)
    return MonitorResponse(trip_id=trip_id, monitoring=True)


@trips_router.delete("/{trip_id}/monitor", response_model=MonitorResponse)
async def stop_trip_monitor(trip_id: str, request: Request):
    hub = request.app.state.hub
    await hub.monitor.stop(trip_id)
    return MonitorResponse(trip_id=trip_id, monitoring=False)
