from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional
from realtime.rooms import RoomMembership
from logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class Connection:
    connection_id: str
    # Anything with an awaitable send_json(), normally a starlette WebSocket
    socket: Any
    trip_id: Optional[str] = None
    connected: bool = True
    connected_at: str = field(default_factory=lambda: datetime.now().isoformat())


class ConnectionRegistry:
    """Live connections of this process and the room each one sits in."""

    def __init__(self, rooms: Optional[RoomMembership] = None):
        self.rooms = rooms or RoomMembership()
        self._connections: Dict[str, Connection] = {}

    def register(self, connection_id: str, socket: Any) -> Connection:
        connection = Connection(connection_id=connection_id, socket=socket)
        self._connections[connection_id] = connection
        logger.info(f"Connection {connection_id} registered (total: {len(self._connections)})")
        return connection

    def unregister(self, connection_id: str) -> Optional[Connection]:
        """Forget the connection and drop it from its room. Unknown ids are a no-op."""
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return None
        connection.connected = False
        self.rooms.remove(connection_id)
        logger.info(f"Connection {connection_id} unregistered (room: {connection.trip_id}, total: {len(self._connections)})")
        return connection

    def join(self, connection_id: str, trip_id: str) -> bool:
        connection = self._connections.get(connection_id)
        if connection is None:
            logger.warning(f"Join ignored: connection {connection_id} is not registered")
            return False
        previous = self.rooms.join(connection_id, trip_id)
        connection.trip_id = trip_id
        if previous:
            logger.info(f"Connection {connection_id} moved from trip {previous} to trip {trip_id}")
        else:
            logger.info(f"Connection {connection_id} joined trip {trip_id}")
        return True

    def leave(self, connection_id: str, trip_id: str) -> bool:
        left = self.rooms.leave(connection_id, trip_id)
        connection = self._connections.get(connection_id)
        if left and connection is not None:
            connection.trip_id = None
            logger.info(f"Connection {connection_id} left trip {trip_id}")
        return left

    def get(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def members(self, trip_id: str) -> list[Connection]:
        """Snapshot of the connections currently in the trip's room."""
        return [self._connections[cid] for cid in self.rooms.members(trip_id) if cid in self._connections]

    def connections(self) -> list[Connection]:
        return list(self._connections.values())

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._connections
