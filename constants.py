import os

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", None)

CLIENT_URL = os.getenv("CLIENT_URL", "*")

MONITOR_INTERVAL_SECONDS = float(os.getenv("MONITOR_INTERVAL_SECONDS", 60))
MONITOR_TICK_TIMEOUT_SECONDS = float(os.getenv("MONITOR_TICK_TIMEOUT_SECONDS", 20))
TRIP_CONTEXT_TTL_SECONDS = int(os.getenv("TRIP_CONTEXT_TTL_SECONDS", 86400))

ALERT_BRIDGE_ENABLED = os.getenv("ALERT_BRIDGE_ENABLED", "false").lower() in ("1", "true", "yes")
