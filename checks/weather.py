from checks.base import ConditionCheck
from schemas.alerts import Alert, AlertType, Severity, highest_severity
from schemas.trips import TripContext, WeatherSnapshot

SEVERE_CONDITIONS = ("Thunderstorm", "Snow", "Rain")


def analyze_weather(weather: WeatherSnapshot) -> list[dict]:
    alerts = []
    if weather.temperature < 0:
        alerts.append({
            "type": "extreme_cold",
            "message": "Extremely cold weather expected. Pack warm clothing.",
            "severity": Severity.HIGH,
        })
    if weather.temperature > 40:
        alerts.append({
            "type": "extreme_heat",
            "message": "Extremely hot weather expected. Stay hydrated.",
            "severity": Severity.HIGH,
        })
    if weather.condition in SEVERE_CONDITIONS:
        alerts.append({
            "type": "severe_weather",
            "message": f"{weather.condition} expected. Consider indoor activities.",
            "severity": Severity.MEDIUM,
        })
    return alerts


def weather_recommendation(weather: WeatherSnapshot) -> str:
    if 20 <= weather.temperature <= 30 and weather.condition == "Clear":
        return "Perfect weather for outdoor activities!"
    if weather.temperature < 10 or weather.condition in ("Rain", "Snow"):
        return "Consider indoor attractions and museums."
    return "Mixed conditions. Plan both indoor and outdoor activities."


class WeatherCheck(ConditionCheck):
    name = "weather"

    async def check(self, context: TripContext) -> list[Alert]:
        if context.weather is None:
            return []
        sub_alerts = analyze_weather(context.weather)
        if not sub_alerts:
            return []
        return [Alert(
            type=AlertType.WEATHER,
            severity=highest_severity(a["severity"] for a in sub_alerts),
            message="Weather conditions have deteriorated at your destination.",
            alerts=[{**a, "severity": a["severity"].value} for a in sub_alerts],
            suggested_action="Consider postponing outdoor activities",
            recommendation=weather_recommendation(context.weather),
        )]
