import asyncio
import json
import time
import uuid
from typing import Optional
from backend import RedisBackend
from realtime.dispatcher import AlertDispatcher
from logging_config import get_logger

logger = get_logger(__name__)


class AlertBridge:
    """Relays dispatched envelopes between instances over Redis pub/sub.

    Each instance only tracks its own sockets. Envelopes are published with the
    instance id and every other instance delivers them to its local members.
    """

    def __init__(self, backend: RedisBackend, dispatcher: AlertDispatcher, instance_id: Optional[str] = None):
        self.backend = backend
        self.dispatcher = dispatcher
        self.instance_id = instance_id or uuid.uuid4().hex
        self._task: Optional[asyncio.Task] = None

    def publish(self, scope: str, envelope: dict, trip_id: Optional[str] = None):
        self.backend.publish_envelope({
            "origin": self.instance_id,
            "scope": scope,
            "trip_id": trip_id,
            "envelope": envelope,
        })

    def start(self):
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.listen(), name="alert-bridge")
            logger.info(f"Alert bridge started for instance {self.instance_id}")

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Alert bridge stopped")

    async def handle_message(self, raw: str) -> int:
        try:
            message = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Error parsing bridged envelope: {e}")
            return 0
        if message.get("origin") == self.instance_id:
            return 0
        envelope = message.get("envelope")
        if not isinstance(envelope, dict) or "event" not in envelope:
            logger.warning(f"Ignoring bridged message without an envelope from {message.get('origin')}")
            return 0
        return await self.dispatcher.deliver_remote(message.get("scope"), envelope, trip_id=message.get("trip_id"))

    async def listen(self):
        """Background task draining the shared alert channel."""
        pubsub = None
        try:
            pubsub = self.backend.subscribe_alerts()
            loop = asyncio.get_running_loop()

            def get_message():
                """Blocking call to get next message from Redis pub/sub with timeout."""
                try:
                    return pubsub.get_message(timeout=1.0, ignore_subscribe_messages=True)
                except Exception as e:
                    logger.error(f"Error in pubsub.get_message() on alert bridge: {e}", exc_info=True)
                    # back off before retrying a broken connection
                    time.sleep(1.0)
                    return None

            while True:
                message = await loop.run_in_executor(None, get_message)
                if message is None:
                    # Timeout or no message, continue loop
                    continue
                if message.get("type") != "message":
                    continue
                try:
                    await self.handle_message(message["data"])
                except Exception as e:
                    logger.error(f"Error delivering bridged envelope: {e}", exc_info=True)
        except asyncio.CancelledError:
            logger.info("Alert bridge listener cancelled")
            raise
        finally:
            if pubsub:
                try:
                    pubsub.close()
                except Exception as e:
                    logger.error(f"Error closing alert bridge pub/sub: {e}")
