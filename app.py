from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from routers.trips import trips_router
from routers.alerts import alerts_router
from backend import RedisBackend
from realtime.hub import RealtimeHub
from schemas.trips import HealthResponse
from constants import ALERT_BRIDGE_ENABLED, CLIENT_URL, MONITOR_INTERVAL_SECONDS, MONITOR_TICK_TIMEOUT_SECONDS
import uuid
from datetime import datetime
from logging_config import get_logger, setup_logging
import os

# Setup logging
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE", None)
setup_logging(log_level=log_level, log_file=log_file)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    backend = RedisBackend.from_settings()
    hub = RealtimeHub(
        backend=backend,
        interval=MONITOR_INTERVAL_SECONDS,
        tick_timeout=MONITOR_TICK_TIMEOUT_SECONDS,
        bridge_enabled=ALERT_BRIDGE_ENABLED,
    )
    app.state.hub = hub
    await hub.start()
    logger.info(f"Realtime hub ready (monitor interval {MONITOR_INTERVAL_SECONDS}s, bridge {'on' if hub.bridge else 'off'})")
    try:
        yield
    finally:
        await hub.shutdown()
        backend.close()
        logger.info("Realtime hub stopped")


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in CLIENT_URL.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(trips_router)
app.include_router(alerts_router)

logger.info("FastAPI application initialized")


@app.get("/health", response_model=HealthResponse)
async def health(request: Request):
    hub = request.app.state.hub
    return HealthResponse(
        status="ok",
        connections=len(hub.registry),
        rooms=len(hub.registry.rooms.rooms()),
        monitors=len(hub.monitor.active()),
        redis=hub.backend.ping(),
    )


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Realtime trip channel.

    Frames are JSON objects `{"event": "<name>", "data": <payload>}` in both
    directions. Clients join a trip room with `join-trip` and then receive that
    trip's alerts; emergency alerts reach every connection.
    """
    hub = websocket.app.state.hub
    connection_id = str(uuid.uuid4())

    await websocket.accept()
    hub.registry.register(connection_id, websocket)
    logger.info(f"WebSocket connection accepted: {connection_id}")

    try:
        await websocket.send_json({
            "event": "connected",
            "data": {
                "connection_id": connection_id,
                "timestamp": datetime.now().isoformat(),
            },
        })

        message_count = 0
        while True:
            try:
                data = await websocket.receive_text()
            except WebSocketDisconnect:
                logger.info(f"WebSocket disconnected normally for connection {connection_id}")
                break
            message_count += 1
            logger.debug(f"Received message #{message_count} from connection {connection_id}")
            await hub.events.handle(connection_id, data)
    except Exception as e:
        logger.error(f"WebSocket error for connection {connection_id}: {e}", exc_info=True)
    finally:
        # Cleanup on disconnect
        await hub.disconnect(connection_id)
        try:
            await websocket.close()
        except Exception as e:
            logger.debug(f"Error closing WebSocket: {e}")
