import redis
import json
from datetime import datetime
from typing import Optional
from constants import REDIS_HOST, REDIS_PORT, REDIS_PASSWORD, TRIP_CONTEXT_TTL_SECONDS
from redis_keys import TRIP_META_KEY, ALERT_CHANNEL
from schemas.trips import TripContext, TripContextRequest
from logging_config import get_logger

logger = get_logger(__name__)


class RedisBackend:
    """Trip context snapshots and the cross-instance alert channel."""

    def __init__(self, redis_client: redis.Redis, pubsub_client: Optional[redis.Redis] = None):
        self.redis_client = redis_client
        # Separate connection for pub/sub (required by Redis)
        self.pubsub_client = pubsub_client or redis_client

    @classmethod
    def from_settings(cls):
        logger.info(f"Initializing RedisBackend with connection to {REDIS_HOST}:{REDIS_PORT}")
        try:
            redis_client = redis.Redis(host=REDIS_HOST, port=REDIS_PORT, password=REDIS_PASSWORD, decode_responses=True)
            redis_client.ping()
            pubsub_client = redis.Redis(host=REDIS_HOST, port=REDIS_PORT, password=REDIS_PASSWORD, decode_responses=True)
            pubsub_client.ping()
            logger.info(f"Redis clients connected successfully to {REDIS_HOST}:{REDIS_PORT}")
        except Exception as e:
            logger.error(f"Failed to connect to Redis at {REDIS_HOST}:{REDIS_PORT}: {e}", exc_info=True)
            raise
        return cls(redis_client, pubsub_client)

    def ping(self) -> bool:
        try:
            return bool(self.redis_client.ping())
        except Exception as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    def save_trip_context(self, trip_id: str, context: TripContextRequest, ttl: int = TRIP_CONTEXT_TTL_SECONDS) -> TripContext:
        logger.info(f"Saving context for trip {trip_id} with TTL {ttl} seconds")
        key = TRIP_META_KEY.format(trip_id=trip_id)
        stored = TripContext(trip_id=trip_id, updated_at=datetime.now().isoformat(), **context.model_dump())
        # Convert dict values to strings for Redis hash, skip None values
        mapping = {}
        for k, v in stored.model_dump(mode="json").items():
            if v is None:
                continue
            if isinstance(v, (dict, list)):
                mapping[k] = json.dumps(v)
            else:
                mapping[k] = str(v)
        pipe = self.redis_client.pipeline()
        pipe.delete(key)
        pipe.hset(key, mapping=mapping)
        if ttl:
            pipe.expire(key, ttl)
        pipe.execute()
        logger.debug(f"Context for trip {trip_id} stored under key: {key}")
        return stored

    def get_trip_context(self, trip_id: str) -> Optional[TripContext]:
        logger.debug(f"Fetching context for trip {trip_id}")
        key = TRIP_META_KEY.format(trip_id=trip_id)
        raw = self.redis_client.hgetall(key)
        if not raw:
            logger.debug(f"No context stored for trip {trip_id}")
            return None
        # Convert back from strings
        result = {}
        for k, v in raw.items():
            if k in ("trip_id", "destination", "updated_at"):
                result[k] = v
                continue
            try:
                result[k] = json.loads(v)
            except (json.JSONDecodeError, TypeError):
                result[k] = v
        return TripContext(**result)

    def delete_trip_context(self, trip_id: str) -> bool:
        logger.info(f"Deleting context for trip {trip_id}")
        deleted = self.redis_client.delete(TRIP_META_KEY.format(trip_id=trip_id))
        return bool(deleted)

    def publish_envelope(self, envelope: dict) -> int:
        """Publish an outgoing alert envelope to the shared channel."""
        subscribers = self.redis_client.publish(ALERT_CHANNEL, json.dumps(envelope))
        logger.debug(f"Published envelope {envelope.get('event')} to {ALERT_CHANNEL}, {subscribers} subscribers")
        return subscribers

    def subscribe_alerts(self):
        logger.debug(f"Subscribing to Redis channel {ALERT_CHANNEL}")
        pubsub = self.pubsub_client.pubsub()
        pubsub.subscribe(ALERT_CHANNEL)
        return pubsub

    def close(self):
        clients = [self.redis_client]
        if self.pubsub_client is not self.redis_client:
            clients.append(self.pubsub_client)
        for client in clients:
            try:
                client.close()
            except Exception as e:
                logger.debug(f"Error closing Redis client: {e}")
