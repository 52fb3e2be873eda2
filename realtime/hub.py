import asyncio
from typing import Optional
from backend import RedisBackend
from checks.defaults import default_checks
from constants import MONITOR_INTERVAL_SECONDS, MONITOR_TICK_TIMEOUT_SECONDS
from realtime.bridge import AlertBridge
from realtime.dispatcher import AlertDispatcher
from realtime.events import EventRouter
from realtime.monitor import TripMonitor
from realtime.registry import ConnectionRegistry
from schemas.trips import TripContext
from logging_config import get_logger

logger = get_logger(__name__)


class RealtimeHub:
    """Everything the socket layer shares, owned by one server process.

    Built at startup and torn down at shutdown. Monitors belong to trips: a
    trip's monitor is stopped once its room has no members left.
    """

    def __init__(
        self,
        backend: Optional[RedisBackend] = None,
        checks: Optional[list] = None,
        interval: float = MONITOR_INTERVAL_SECONDS,
        tick_timeout: float = MONITOR_TICK_TIMEOUT_SECONDS,
        bridge_enabled: bool = False,
    ):
        self.backend = backend
        self.registry = ConnectionRegistry()
        self.dispatcher = AlertDispatcher(self.registry)
        self.monitor = TripMonitor(
            self.dispatcher,
            checks if checks is not None else default_checks(),
            load_context=self.load_context,
            interval=interval,
            tick_timeout=tick_timeout,
        )
        self.events = EventRouter(self)
        self.bridge = None
        if bridge_enabled and backend is not None:
            self.bridge = AlertBridge(backend, self.dispatcher)
            self.dispatcher.bridge = self.bridge

    async def start(self):
        if self.bridge is not None:
            self.bridge.start()

    async def shutdown(self):
        logger.info(f"Shutting down realtime hub: {len(self.registry)} connections, {len(self.monitor.active())} monitors")
        await self.monitor.stop_all()
        if self.bridge is not None:
            await self.bridge.stop()

    async def load_context(self, trip_id: str) -> TripContext:
        if self.backend is None:
            return TripContext(trip_id=trip_id)
        loop = asyncio.get_running_loop()
        context = await loop.run_in_executor(None, self.backend.get_trip_context, trip_id)
        return context or TripContext(trip_id=trip_id)

    async def release_trip(self, trip_id: str) -> bool:
        """Stop the trip's monitor if nobody is left in its room."""
        if self.registry.rooms.count(trip_id) > 0 or not self.monitor.is_running(trip_id):
            return False
        logger.info(f"Room for trip {trip_id} is empty, stopping its monitor")
        return await self.monitor.stop(trip_id)

    async def disconnect(self, connection_id: str):
        """Unregister the connection and release its room and every trip it started monitoring."""
        owned = self.monitor.owned_by(connection_id)
        connection = self.registry.unregister(connection_id)
        trip_ids = set(owned)
        if connection is not None and connection.trip_id:
            trip_ids.add(connection.trip_id)
        for trip_id in sorted(trip_ids):
            await self.release_trip(trip_id)
