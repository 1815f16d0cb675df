import logging
from typing import Any, Callable, Dict, Optional

from duelrelay.registry import ConnectionRegistry
from duelrelay.rooms import RoomStore

logger = logging.getLogger(__name__)

Deliver = Callable[[str, Dict[str, Any]], None]


class Relay:
    """Fan-out of messages to the members of a room."""

    def __init__(self, registry: ConnectionRegistry, rooms: RoomStore, deliver: Deliver):
        self.registry = registry
        self.rooms = rooms
        self.deliver = deliver

    def send(self, sid: str, message: Dict[str, Any]) -> bool:
        """Deliver to one connection. Closed connections are skipped."""
        if not self.registry.is_open(sid):
            logger.debug(f"[send-skip] sid={sid} type={message.get('type')} closed")
            return False
        self.deliver(sid, message)
        return True

    def broadcast(self, room_id: str, message: Dict[str, Any], exclude: Optional[str] = None) -> int:
        room = self.rooms.get_room(room_id)
        if room is None:
            return 0
        delivered = 0
        for participant in list(room.participants.values()):
            if participant.id == exclude:
                continue
            if self.send(participant.sid, message):
                delivered += 1
        logger.debug(f"[broadcast] room={room_id} type={message.get('type')} delivered={delivered}")
        return delivered

    # ---- Pass-through handlers ----

    def relay_game_state(self, room_id: str, participant_id: str, message: Dict[str, Any], mirror: bool = True) -> None:
        room = self.rooms.get_room(room_id)
        if room is None:
            return
        if mirror:
            room.state = {k: v for k, v in message.items() if k not in ('type', 'playerId')}
        self.broadcast(room_id, dict(message, playerId=participant_id), exclude=participant_id)

    def relay_to_opponent(self, room_id: str, participant_id: str, message: Dict[str, Any]) -> None:
        self.broadcast(room_id, dict(message, playerId=participant_id), exclude=participant_id)

    def select_character(self, room_id: str, participant_id: str, character, exclude_sender: bool = False) -> None:
        room = self.rooms.get_room(room_id)
        if room is None or participant_id not in room.participants:
            return
        # Record before broadcasting so later state queries see it
        room.participants[participant_id].character = character
        self.broadcast(room_id, {
            'type': 'characterSelected',
            'playerId': participant_id,
            'character': character,
        }, exclude=participant_id if exclude_sender else None)

    def update_health(self, room_id: str, participant_id: str, health) -> None:
        room = self.rooms.get_room(room_id)
        if room is None or participant_id not in room.participants:
            return
        participant = room.participants[participant_id]
        participant.set_health(health)
        self.broadcast(room_id, {
            'type': 'healthUpdated',
            'playerId': participant_id,
            'health': participant.health,
            'maxHealth': participant.max_health,
        })
