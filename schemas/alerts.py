from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class AlertType(str, Enum):
    WEATHER = "weather"
    SECURITY = "security"
    TRAFFIC = "traffic"
    EMERGENCY = "emergency"
    GENERAL = "general"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


SEVERITY_RANK = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


def highest_severity(severities) -> Severity:
    return max(severities, key=lambda s: SEVERITY_RANK[s], default=Severity.LOW)


class Alert(BaseModel):
    """A best-effort notification pushed to connected clients. Never persisted."""

    model_config = ConfigDict(populate_by_name=True)

    type: AlertType = AlertType.GENERAL
    severity: Severity = Severity.LOW
    message: str
    timestamp: Optional[str] = None
    trip_id: Optional[str] = Field(default=None, alias="tripId")
    alerts: Optional[list[dict[str, Any]]] = None
    suggested_action: Optional[str] = Field(default=None, alias="suggestedAction")
    recommendation: Optional[str] = None
    location: Optional[dict[str, Any]] = None

    @property
    def is_critical(self) -> bool:
        return self.severity == Severity.CRITICAL

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# Inbound socket payloads. The web client sends camelCase keys.

class TripRef(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    trip_id: str = Field(alias="tripId", min_length=1)


class Location(BaseModel):
    model_config = ConfigDict(extra="allow")

    lat: Optional[float] = None
    lng: Optional[float] = None

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None


class LocationUpdate(TripRef):
    location: Location


class TravelAlertRequest(TripRef):
    alert_type: AlertType = Field(default=AlertType.GENERAL, alias="alertType")
    message: str
    severity: Severity = Severity.MEDIUM


class EmergencyAlertRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    trip_id: Optional[str] = Field(default=None, alias="tripId")
    message: str
    location: Optional[dict[str, Any]] = None
