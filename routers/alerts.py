from fastapi import APIRouter, Request
from schemas.alerts import Alert, AlertType, Severity
from schemas.trips import DispatchResponse, EmergencyRequest
from logging_config import get_logger

logger = get_logger(__name__)

alerts_router = APIRouter(prefix="/alerts", tags=["alerts"])


@alerts_router.post("/emergency", response_model=DispatchResponse)
async def send_emergency_alert(body: EmergencyRequest, request: Request):
    hub = request.app.state.hub
    logger.warning(f"EMERGENCY alert via API for trip {body.trip_id}: {body.message}")
    alert = Alert(
        type=AlertType.EMERGENCY,
        severity=Severity.CRITICAL,
        message=body.message,
        trip_id=body.trip_id,
        location=body.location,
    )
    delivered = await hub.dispatcher.send_global(alert)
    return DispatchResponse(delivered=delivered, scope="global")
