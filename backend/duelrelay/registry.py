from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass
class Connection:
    sid: str
    open: bool = True
    participant_id: Optional[str] = None
    room_id: Optional[str] = None

    @property
    def bound(self) -> bool:
        return self.participant_id is not None and self.room_id is not None


class ConnectionRegistry:
    """Live transport connections keyed by Socket.IO session id.

    A connection is registered on connect and bound to a participant once it
    is placed in a room. Resolving an unbound or unknown connection returns
    None, which callers treat as a normal state.
    """

    def __init__(self):
        self._connections: Dict[str, Connection] = {}

    def register(self, sid: str) -> Connection:
        conn = self._connections.get(sid)
        if conn is None:
            conn = Connection(sid=sid)
            self._connections[sid] = conn
        return conn

    def get(self, sid: str) -> Optional[Connection]:
        return self._connections.get(sid)

    def bind(self, sid: str, participant_id: str, room_id: str) -> None:
        # Only live, registered connections can be placed
        conn = self._connections[sid]
        conn.participant_id = participant_id
        conn.room_id = room_id

    def unbind(self, sid: str) -> None:
        conn = self._connections.get(sid)
        if conn is not None:
            conn.participant_id = None
            conn.room_id = None

    def resolve(self, sid: str) -> Optional[Tuple[str, str]]:
        conn = self._connections.get(sid)
        if conn is None or not conn.bound:
            return None
        return conn.participant_id, conn.room_id

    def is_open(self, sid: str) -> bool:
        conn = self._connections.get(sid)
        return bool(conn and conn.open)

    def mark_closed(self, sid: str) -> None:
        conn = self._connections.get(sid)
        if conn is not None:
            conn.open = False

    def unregister(self, sid: str) -> None:
        self._connections.pop(sid, None)

    def count(self) -> int:
        return len(self._connections)

    def __contains__(self, sid: str) -> bool:
        return sid in self._connections
