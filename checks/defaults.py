from checks.security import SecurityCheck
from checks.traffic import TrafficCheck
from checks.weather import WeatherCheck


def default_checks():
    return [WeatherCheck(), SecurityCheck(), TrafficCheck()]
