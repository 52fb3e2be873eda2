import math

import pytest

from checks.location import haversine_km, nearby_alerts
from checks.security import SecurityCheck, risk_level
from checks.traffic import TrafficCheck
from checks.weather import WeatherCheck
from schemas.alerts import AlertType, Severity
from schemas.trips import Hazard, RouteSnapshot, SecurityReport, TripContext, WeatherSnapshot


def context(**kwargs):
    return TripContext(trip_id="T1", **kwargs)


async def test_weather_clear_day_is_quiet():
    ctx = context(weather=WeatherSnapshot(temperature=24, condition="Clear"))
    assert await WeatherCheck().check(ctx) == []


async def test_weather_without_snapshot_is_quiet():
    assert await WeatherCheck().check(context()) == []


async def test_freezing_snow_is_aggregated_into_one_high_alert():
    ctx = context(weather=WeatherSnapshot(temperature=-5, condition="Snow"))

    [alert] = await WeatherCheck().check(ctx)

    assert alert.type == AlertType.WEATHER
    assert alert.severity == Severity.HIGH
    assert [a["type"] for a in alert.alerts] == ["extreme_cold", "severe_weather"]
    assert alert.alerts[1]["message"] == "Snow expected. Consider indoor activities."
    assert alert.recommendation == "Consider indoor attractions and museums."


async def test_rain_is_medium():
    [alert] = await WeatherCheck().check(context(weather=WeatherSnapshot(temperature=18, condition="Rain")))
    assert alert.severity == Severity.MEDIUM


async def test_heat_is_high():
    [alert] = await WeatherCheck().check(context(weather=WeatherSnapshot(temperature=43, condition="Clear")))
    assert alert.alerts[0]["type"] == "extreme_heat"


@pytest.mark.parametrize(
    "severities, expected",
    [
        ([], Severity.LOW),
        ([Severity.LOW, Severity.MEDIUM], Severity.LOW),
        ([Severity.HIGH], Severity.MEDIUM),
        ([Severity.HIGH] * 3, Severity.HIGH),
        ([Severity.CRITICAL], Severity.HIGH),
    ],
)
def test_risk_level(severities, expected):
    reports = [SecurityReport(message="x", severity=s) for s in severities]
    assert risk_level(reports) == expected


async def test_security_low_reports_are_safe():
    ctx = context(security=[SecurityReport(message="Pickpockets", severity=Severity.LOW)])
    assert await SecurityCheck().check(ctx) == []


async def test_security_critical_report_never_makes_a_critical_alert():
    ctx = context(security=[SecurityReport(category="civil_unrest", message="Riots", severity=Severity.CRITICAL)])

    [alert] = await SecurityCheck().check(ctx)

    assert alert.type == AlertType.SECURITY
    assert alert.severity == Severity.HIGH
    assert alert.alerts == [{"type": "civil_unrest", "message": "Riots", "severity": "critical"}]


async def test_traffic_delay_over_ten_minutes():
    ctx = context(route=RouteSnapshot(duration_seconds=1800, duration_in_traffic_seconds=3000))

    [alert] = await TrafficCheck().check(ctx)

    assert alert.type == AlertType.TRAFFIC
    assert alert.message == "Heavy traffic expected. 20 minutes delay."
    assert alert.suggested_action == "Consider alternative route"


async def test_traffic_small_delay_is_ignored():
    ctx = context(route=RouteSnapshot(duration_seconds=1800, duration_in_traffic_seconds=2400))
    assert await TrafficCheck().check(ctx) == []


def test_haversine_paris_to_london():
    assert haversine_km(48.8566, 2.3522, 51.5074, -0.1278) == pytest.approx(343.5, abs=1.0)


def test_nearby_alerts_filters_by_radius_and_sorts():
    hazards = [
        Hazard(lat=48.8600, lng=2.3500, radius_km=2, message="Road works"),
        Hazard(lat=48.8570, lng=2.3520, radius_km=1, type=AlertType.SECURITY, message="Protest", severity=Severity.HIGH),
        Hazard(lat=45.7640, lng=4.8357, radius_km=5, message="Lyon flooding"),
    ]

    alerts = nearby_alerts(hazards, 48.8566, 2.3522)

    assert [a["message"] for a in alerts] == ["Protest", "Road works"]
    assert alerts[0]["type"] == "security"
    assert alerts[0]["severity"] == "high"


def test_haversine_antipodal_points_do_not_overflow():
    assert haversine_km(0.0, 0.0, 0.0, 180.0) == pytest.approx(math.pi * 6371.0)
    assert haversine_km(45.0, 10.0, -45.0, -170.0) == pytest.approx(math.pi * 6371.0)
