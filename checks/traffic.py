from checks.base import ConditionCheck
from schemas.alerts import Alert, AlertType, Severity
from schemas.trips import TripContext

# seconds of extra travel time before the route is flagged
DELAY_THRESHOLD_SECONDS = 600


class TrafficCheck(ConditionCheck):
    name = "traffic"

    async def check(self, context: TripContext) -> list[Alert]:
        route = context.route
        if route is None or route.duration_in_traffic_seconds is None:
            return []
        delay = route.duration_in_traffic_seconds - route.duration_seconds
        if delay <= DELAY_THRESHOLD_SECONDS:
            return []
        return [Alert(
            type=AlertType.TRAFFIC,
            severity=Severity.MEDIUM,
            message=f"Heavy traffic expected. {round(delay / 60)} minutes delay.",
            alerts=[{"type": "traffic_delay", "delay_seconds": delay, "severity": Severity.MEDIUM.value}],
            suggested_action="Consider alternative route",
        )]
