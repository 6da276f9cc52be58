import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from constants import VOLATILE_QUEUE_LIMIT
from logging_config import get_logger
from presence import PresenceRegistry

logger = get_logger(__name__)

# Server -> client messages
INIT_ROOM = "init-room"
ROOM_USER_CHANGE = "room-user-change"
NEW_USER = "new-user"
CLIENT_BROADCAST = "client-broadcast"
CLIENT_VOLATILE = "client-volatile"
USER_FOLLOW_CHANGE = "user-follow-change"

# Client -> server messages
JOIN_ROOM = "join-room"
SERVER_BROADCAST = "server-broadcast"
SERVER_VOLATILE_BROADCAST = "server-volatile-broadcast"
IDLE_STATE = "idle-state"

ROOM_MESSAGES = (JOIN_ROOM, SERVER_BROADCAST, SERVER_VOLATILE_BROADCAST)


@dataclass
class Connection:
    connection_id: str
    username: Optional[str] = None
    is_idle: bool = False
    room_id: Optional[str] = None
    connected_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    # Messages waiting to be written to the socket; None tells the writer to stop.
    outbox: asyncio.Queue = field(default_factory=asyncio.Queue)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "connectionId": self.connection_id,
            "username": self.username,
            "isIdle": self.is_idle,
            "connectedAt": self.connected_at,
        }


class RoomCoordinator:
    """Room membership transitions and message relay for live connections.

    Every method is synchronous and runs on the server's event loop, so membership
    reads and writes never interleave. Delivery is best effort: messages for
    connections that are gone are dropped, and nothing is reported to the sender.
    """

    def __init__(self, registry: Optional[PresenceRegistry] = None, volatile_queue_limit: int = VOLATILE_QUEUE_LIMIT):
        self.registry = registry or PresenceRegistry()
        self.volatile_queue_limit = volatile_queue_limit
        self.connections: Dict[str, Connection] = {}

    def connect(self, connection_id: Optional[str] = None, username: Optional[str] = None) -> Connection:
        connection_id = connection_id or str(uuid.uuid4())
        connection = Connection(connection_id=connection_id, username=username)
        self.connections[connection_id] = connection
        logger.info(f"Connection {connection_id} registered ({len(self.connections)} connected)")
        self._send(connection_id, {"type": INIT_ROOM, "connectionId": connection_id})
        return connection

    def join(self, connection_id: str, room_id: str, username: Optional[str] = None):
        connection = self.connections.get(connection_id)
        if connection is None or not room_id:
            logger.debug(f"Ignoring join of room {room_id!r} for unknown connection {connection_id}")
            return
        if isinstance(username, str) and username:
            connection.username = username

        # rejoining the current room is a full leave followed by a fresh join
        if connection.room_id is not None:
            self._leave_current(connection)

        existing = [member for member in self.registry.members_of(room_id) if member != connection_id]
        members = self.registry.join(room_id, connection_id)
        connection.room_id = room_id
        logger.info(f"Connection {connection_id} joined room {room_id} ({len(members)} members)")

        roster = {"type": ROOM_USER_CHANGE, "roomId": room_id, "members": members}
        for member in members:
            self._send(member, roster)
        for member in existing:
            self._send(member, {"type": NEW_USER, "roomId": room_id, "connectionId": connection_id})

    def broadcast(self, connection_id: str, room_id: str, payload: Any) -> int:
        return self._relay(connection_id, room_id, {"type": CLIENT_BROADCAST, "payload": payload}, volatile=False)

    def volatile_broadcast(self, connection_id: str, room_id: str, payload: Any) -> int:
        return self._relay(connection_id, room_id, {"type": CLIENT_VOLATILE, "payload": payload}, volatile=True)

    def follow_change(self, connection_id: str, payload: Any) -> int:
        """Relay a follow-state change to every other connection, regardless of room."""
        message = {"type": USER_FOLLOW_CHANGE, "payload": payload}
        sent = 0
        for other in list(self.connections):
            if other != connection_id and self._send(other, message):
                sent += 1
        return sent

    def set_idle(self, connection_id: str, is_idle: bool):
        connection = self.connections.get(connection_id)
        if connection is not None:
            connection.is_idle = bool(is_idle)

    def disconnect(self, connection_id: str):
        connection = self.connections.get(connection_id)
        if connection is None:
            return
        if connection.room_id is not None:
            self._leave_current(connection)
        del self.connections[connection_id]
        connection.outbox.put_nowait(None)
        logger.info(f"Connection {connection_id} removed ({len(self.connections)} connected)")

    def handle_message(self, connection_id: str, message: Any):
        """Dispatch one decoded client frame. Malformed frames are ignored."""
        if not isinstance(message, dict):
            logger.warning(f"Ignoring non-object frame from connection {connection_id}")
            return
        message_type = message.get("type")
        if message_type in ROOM_MESSAGES and not isinstance(message.get("roomId"), str):
            logger.warning(f"Ignoring {message_type} frame with invalid roomId from connection {connection_id}")
            return
        if message_type == JOIN_ROOM:
            self.join(connection_id, message.get("roomId"), message.get("username"))
        elif message_type == SERVER_BROADCAST:
            self.broadcast(connection_id, message.get("roomId"), message.get("payload"))
        elif message_type == SERVER_VOLATILE_BROADCAST:
            self.volatile_broadcast(connection_id, message.get("roomId"), message.get("payload"))
        elif message_type == USER_FOLLOW_CHANGE:
            self.follow_change(connection_id, message.get("payload"))
        elif message_type == IDLE_STATE:
            self.set_idle(connection_id, message.get("isIdle", False))
        else:
            logger.warning(f"Ignoring unknown message type {message_type!r} from connection {connection_id}")

    def room_members(self, room_id: str) -> List[Dict[str, Any]]:
        return [
            self.connections[member].as_dict()
            for member in self.registry.members_of(room_id)
            if member in self.connections
        ]

    def reset(self):
        for connection in self.connections.values():
            connection.outbox.put_nowait(None)
        self.connections.clear()
        self.registry.clear()

    def _leave_current(self, connection: Connection):
        room_id = connection.room_id
        remaining = self.registry.leave(room_id, connection.connection_id)
        connection.room_id = None
        logger.info(f"Connection {connection.connection_id} left room {room_id} ({len(remaining)} remaining)")
        if remaining:
            roster = {"type": ROOM_USER_CHANGE, "roomId": room_id, "members": remaining}
            for member in remaining:
                self._send(member, roster)

    def _relay(self, connection_id: str, room_id: str, message: Dict[str, Any], volatile: bool) -> int:
        sent = 0
        for member in self.registry.members_of(room_id):
            if member != connection_id and self._send(member, message, volatile=volatile):
                sent += 1
        logger.debug(f"Relayed {message['type']} from {connection_id} to {sent} members of room {room_id}")
        return sent

    def _send(self, connection_id: str, message: Dict[str, Any], volatile: bool = False) -> bool:
        connection = self.connections.get(connection_id)
        if connection is None:
            return False
        if volatile and connection.outbox.qsize() >= self.volatile_queue_limit:
            logger.debug(f"Dropped volatile message for slow connection {connection_id}")
            return False
        connection.outbox.put_nowait(message)
        return True


coordinator = RoomCoordinator()
