TRIP_META_KEY = "trip:meta:{trip_id}" # trip id - context snapshot hash
ALERT_CHANNEL = "alerts:channel" # pub/sub channel shared by all instances

# **Example `trip:meta:{id}` hash fields**
# - `destination` = plain string
# - `lat` / `lng` = floats
# - `weather` = json string ({"temperature": 12.5, "condition": "Rain"})
# - `security` = json list of reports
# - `route` = json string ({"duration_seconds": 1800, "duration_in_traffic_seconds": 2700})
# - `hazards` = json list of {lat, lng, radius_km, type, message, severity}
# - `updated_at` = ISO timestamp
