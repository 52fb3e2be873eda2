import asyncio
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional
from constants import MONITOR_INTERVAL_SECONDS, MONITOR_TICK_TIMEOUT_SECONDS
from realtime.dispatcher import AlertDispatcher, event_for
from schemas.alerts import Alert
from schemas.trips import TripContext
from logging_config import get_logger

logger = get_logger(__name__)


class MonitorState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class MonitorHandle:
    """Repeating timer for one trip: idle -> running -> idle.

    start() on a running handle and stop() on an idle one are no-ops. stop()
    cancels and awaits the timer task, so no tick fires once it returns.
    """

    def __init__(self, trip_id: str, interval: float, tick: Callable[[str], Awaitable[None]]):
        self.trip_id = trip_id
        self.interval = interval
        self._tick = tick
        self._task: Optional[asyncio.Task] = None
        self.state = MonitorState.IDLE
        self.ticks = 0
        # connections that asked for this monitor
        self.started_by: set[str] = set()

    @property
    def running(self) -> bool:
        return self.state is MonitorState.RUNNING

    def start(self) -> bool:
        if self.running:
            return False
        self.state = MonitorState.RUNNING
        self._task = asyncio.create_task(self._run(), name=f"monitor:{self.trip_id}")
        return True

    async def stop(self) -> bool:
        if not self.running:
            return False
        self.state = MonitorState.IDLE
        task, self._task = self._task, None
        # A tick that stops its own monitor must not await itself
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        return True

    async def _run(self):
        try:
            while self.running:
                await asyncio.sleep(self.interval)
                if not self.running:
                    break
                self.ticks += 1
                await self._tick(self.trip_id)
        except asyncio.CancelledError:
            logger.debug(f"Monitor task cancelled for trip {self.trip_id} after {self.ticks} ticks")
            raise


async def empty_context(trip_id: str) -> TripContext:
    return TripContext(trip_id=trip_id)


class TripMonitor:
    """At most one periodic condition monitor per trip."""

    def __init__(
        self,
        dispatcher: AlertDispatcher,
        checks: list,
        load_context: Callable[[str], Awaitable[TripContext]] = empty_context,
        interval: float = MONITOR_INTERVAL_SECONDS,
        tick_timeout: float = MONITOR_TICK_TIMEOUT_SECONDS,
    ):
        self.dispatcher = dispatcher
        self.checks = checks
        self.load_context = load_context
        self.interval = interval
        self.tick_timeout = tick_timeout
        # Format: {trip_id: MonitorHandle}
        self._handles: Dict[str, MonitorHandle] = {}

    def start(self, trip_id: str, owner: Optional[str] = None) -> bool:
        """Start monitoring the trip. Returns False if it is already monitored."""
        handle = self._handles.get(trip_id)
        if handle is not None and handle.running:
            if owner:
                handle.started_by.add(owner)
            logger.debug(f"Monitor for trip {trip_id} already running")
            return False
        handle = MonitorHandle(trip_id, self.interval, self._tick)
        if owner:
            handle.started_by.add(owner)
        self._handles[trip_id] = handle
        handle.start()
        logger.info(f"Monitor started for trip {trip_id} (every {self.interval}s)")
        return True

    async def stop(self, trip_id: str) -> bool:
        handle = self._handles.pop(trip_id, None)
        if handle is None:
            return False
        stopped = await handle.stop()
        if stopped:
            logger.info(f"Monitor stopped for trip {trip_id} after {handle.ticks} ticks")
        return stopped

    async def stop_all(self):
        trip_ids = list(self._handles)
        for trip_id in trip_ids:
            await self.stop(trip_id)
        if trip_ids:
            logger.info(f"Stopped {len(trip_ids)} monitors")

    def is_running(self, trip_id: str) -> bool:
        handle = self._handles.get(trip_id)
        return handle is not None and handle.running

    def active(self) -> list[str]:
        return [trip_id for trip_id, handle in self._handles.items() if handle.running]

    def owned_by(self, connection_id: str) -> list[str]:
        return [trip_id for trip_id, handle in self._handles.items() if handle.running and connection_id in handle.started_by]

    async def evaluate(self, trip_id: str) -> list[Alert]:
        context = await self.load_context(trip_id)
        alerts = []
        for check in self.checks:
            alerts.extend(await check.check(context))
        return alerts

    async def _tick(self, trip_id: str):
        try:
            alerts = await asyncio.wait_for(self.evaluate(trip_id), timeout=self.tick_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Monitor tick for trip {trip_id} timed out after {self.tick_timeout}s, skipping cycle")
            return
        except Exception as e:
            logger.error(f"Monitor tick failed for trip {trip_id}: {e}", exc_info=True)
            return

        if alerts:
            logger.info(f"Monitor tick for trip {trip_id} produced {len(alerts)} alerts")
        for alert in alerts:
            await self.dispatcher.send_to_trip(trip_id, alert, event=event_for(alert))
