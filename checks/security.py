from checks.base import ConditionCheck
from schemas.alerts import Alert, AlertType, Severity
from schemas.trips import SecurityReport, TripContext

UNSAFE_SEVERITIES = (Severity.HIGH, Severity.CRITICAL)


def risk_level(reports: list[SecurityReport]) -> Severity:
    critical = sum(1 for r in reports if r.severity == Severity.CRITICAL)
    high = sum(1 for r in reports if r.severity == Severity.HIGH)
    if critical > 0 or high > 2:
        return Severity.HIGH
    if high > 0:
        return Severity.MEDIUM
    return Severity.LOW


class SecurityCheck(ConditionCheck):
    """Raises one security alert when any report is high or critical.

    The alert carries the trip's risk level as its severity, so a single critical
    report does not escalate the trip alert into a global emergency.
    """

    name = "security"

    async def check(self, context: TripContext) -> list[Alert]:
        unsafe = [r for r in context.security if r.severity in UNSAFE_SEVERITIES]
        if not unsafe:
            return []
        return [Alert(
            type=AlertType.SECURITY,
            severity=risk_level(context.security),
            message="Security conditions have changed at your destination.",
            alerts=[
                {"type": r.category, "message": r.message, "severity": r.severity.value}
                for r in context.security
            ],
            recommendation="Consider alternative destinations due to security concerns.",
        )]
