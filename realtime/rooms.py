from typing import Dict, FrozenSet, Optional, Set
from logging_config import get_logger

logger = get_logger(__name__)


class RoomMembership:
    """Trip-scoped rooms. A connection sits in at most one room at a time."""

    def __init__(self):
        # Format: {trip_id: {connection_id, ...}}
        self._rooms: Dict[str, Set[str]] = {}
        # Format: {connection_id: trip_id}
        self._room_of: Dict[str, str] = {}

    def join(self, connection_id: str, trip_id: str) -> Optional[str]:
        """Put the connection in the trip's room and return the room it left, if any."""
        previous = self._room_of.get(connection_id)
        if previous == trip_id:
            return None
        if previous is not None:
            self._discard(connection_id, previous)
        self._rooms.setdefault(trip_id, set()).add(connection_id)
        self._room_of[connection_id] = trip_id
        logger.debug(f"Connection {connection_id} joined room {trip_id} (members: {len(self._rooms[trip_id])})")
        return previous

    def leave(self, connection_id: str, trip_id: str) -> bool:
        if self._room_of.get(connection_id) != trip_id:
            return False
        self._discard(connection_id, trip_id)
        del self._room_of[connection_id]
        logger.debug(f"Connection {connection_id} left room {trip_id}")
        return True

    def remove(self, connection_id: str) -> Optional[str]:
        """Drop the connection from whatever room it occupies."""
        trip_id = self._room_of.pop(connection_id, None)
        if trip_id is not None:
            self._discard(connection_id, trip_id)
        return trip_id

    def room_of(self, connection_id: str) -> Optional[str]:
        return self._room_of.get(connection_id)

    def members(self, trip_id: str) -> FrozenSet[str]:
        return frozenset(self._rooms.get(trip_id, ()))

    def count(self, trip_id: str) -> int:
        return len(self._rooms.get(trip_id, ()))

    def rooms(self) -> list[str]:
        return list(self._rooms)

    def _discard(self, connection_id: str, trip_id: str):
        members = self._rooms.get(trip_id)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self._rooms[trip_id]
