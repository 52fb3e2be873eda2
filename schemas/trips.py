from typing import Any, Optional

from pydantic import BaseModel, Field

from schemas.alerts import AlertType, Severity


class WeatherSnapshot(BaseModel):
    temperature: float
    condition: str


class SecurityReport(BaseModel):
    category: str = "security"
    message: str
    severity: Severity = Severity.LOW


class RouteSnapshot(BaseModel):
    duration_seconds: int
    duration_in_traffic_seconds: Optional[int] = None


class Hazard(BaseModel):
    lat: float
    lng: float
    radius_km: float = Field(default=1.0, gt=0)
    type: AlertType = AlertType.GENERAL
    message: str
    severity: Severity = Severity.MEDIUM


class TripContextRequest(BaseModel):
    destination: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    weather: Optional[WeatherSnapshot] = None
    security: list[SecurityReport] = []
    route: Optional[RouteSnapshot] = None
    hazards: list[Hazard] = []


class TripContext(TripContextRequest):
    trip_id: str
    updated_at: Optional[str] = None


class TripDetailsResponse(BaseModel):
    trip_id: str
    online_count: int
    monitoring: bool
    has_context: bool
    updated_at: Optional[str] = None


class DispatchAlertRequest(BaseModel):
    type: AlertType = AlertType.GENERAL
    severity: Severity = Severity.MEDIUM
    message: str
    alerts: Optional[list[dict[str, Any]]] = None
    suggested_action: Optional[str] = None


class EmergencyRequest(BaseModel):
    message: str
    trip_id: Optional[str] = None
    location: Optional[dict[str, Any]] = None


class DispatchResponse(BaseModel):
    delivered: int
    scope: str


class MonitorResponse(BaseModel):
    trip_id: str
    monitoring: bool


class HealthResponse(BaseModel):
    status: str
    connections: int
    rooms: int
    monitors: int
    redis: bool
