from typing import Dict, List, Optional

from logging_config import get_logger

logger = get_logger(__name__)


class PresenceRegistry:
    """In-memory room membership.

    Members are kept in join order (dicts preserve insertion order). A room exists
    only while it has at least one member.
    """

    def __init__(self):
        # Format: {room_id: {connection_id: None}}
        self._rooms: Dict[str, Dict[str, None]] = {}
        # Format: {connection_id: room_id}
        self._membership: Dict[str, str] = {}

    def join(self, room_id: str, connection_id: str) -> List[str]:
        """Add a connection to a room, leaving whatever room it was in before."""
        previous = self._membership.get(connection_id)
        if previous is not None and previous != room_id:
            self.leave(previous, connection_id)
        members = self._rooms.setdefault(room_id, {})
        members[connection_id] = None
        self._membership[connection_id] = room_id
        logger.debug(f"Connection {connection_id} joined room {room_id} ({len(members)} members)")
        return list(members)

    def leave(self, room_id: str, connection_id: str) -> List[str]:
        """Remove a connection from a room. Unknown rooms and members are ignored."""
        members = self._rooms.get(room_id)
        if members is None:
            return []
        members.pop(connection_id, None)
        if self._membership.get(connection_id) == room_id:
            del self._membership[connection_id]
        if not members:
            del self._rooms[room_id]
            logger.debug(f"Room {room_id} is empty, deleted")
            return []
        return list(members)

    def members_of(self, room_id: str) -> List[str]:
        return list(self._rooms.get(room_id, ()))

    def room_of(self, connection_id: str) -> Optional[str]:
        return self._membership.get(connection_id)

    def rooms(self) -> Dict[str, List[str]]:
        return {room_id: list(members) for room_id, members in self._rooms.items()}

    def clear(self):
        self._rooms.clear()
        self._membership.clear()
