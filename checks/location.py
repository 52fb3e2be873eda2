import math
from schemas.trips import Hazard

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(min(1.0, a)))


def nearby_alerts(hazards: list[Hazard], lat: float, lng: float) -> list[dict]:
    """Hazards whose radius covers the given point, closest first."""
    matches = []
    for hazard in hazards:
        distance = haversine_km(lat, lng, hazard.lat, hazard.lng)
        if distance <= hazard.radius_km:
            matches.append({
                "type": hazard.type.value,
                "message": hazard.message,
                "severity": hazard.severity.value,
                "distanceKm": round(distance, 2),
            })
    matches.sort(key=lambda m: m["distanceKm"])
    return matches
