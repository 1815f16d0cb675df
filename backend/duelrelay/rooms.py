import logging
import random
import string
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from duelrelay.errors import RoomFull, RoomNotFound

logger = logging.getLogger(__name__)

ROOM_CODE_LENGTH = 6
PARTICIPANT_ID_LENGTH = 9
DEFAULT_CAPACITY = 2
DEFAULT_HEALTH = 100

_BASE36 = string.ascii_lowercase + string.digits


def generate_room_code(length=ROOM_CODE_LENGTH):
    """Short, shareable room code. Not security sensitive."""
    return ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))


def generate_participant_id():
    return 'player_' + ''.join(random.choices(_BASE36, k=PARTICIPANT_ID_LENGTH))


@dataclass
class Participant:
    id: str
    sid: str
    character: Optional[str] = None
    health: int = DEFAULT_HEALTH
    max_health: int = DEFAULT_HEALTH

    def set_health(self, value) -> int:
        self.health = max(0, min(int(value), self.max_health))
        return self.health

    def to_dict(self):
        return {
            'id': self.id,
            'character': self.character,
            'health': self.health,
            'maxHealth': self.max_health,
        }


@dataclass
class Room:
    id: str
    host: Optional[str]
    capacity: int = DEFAULT_CAPACITY
    mode: str = 'code'
    participants: 'OrderedDict[str, Participant]' = field(default_factory=OrderedDict)
    state: Optional[Dict[str, Any]] = None
    created_at: float = field(default_factory=time.time)

    @property
    def size(self) -> int:
        return len(self.participants)

    @property
    def is_full(self) -> bool:
        return self.size >= self.capacity

    @property
    def is_empty(self) -> bool:
        return not self.participants

    def participant_ids(self) -> List[str]:
        return list(self.participants.keys())

    def others(self, participant_id: str) -> List[Participant]:
        return [p for pid, p in self.participants.items() if pid != participant_id]

    def to_dict(self):
        return {
            'roomId': self.id,
            'host': self.host,
            'capacity': self.capacity,
            'players': [p.to_dict() for p in self.participants.values()],
            'state': self.state,
        }


class RoomStore:
    """Active rooms keyed by code.

    Membership never exceeds a room's capacity, and a room is only deleted
    once it has no participants left.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        self.capacity = capacity
        self._rooms: Dict[str, Room] = {}

    def _new_code(self) -> str:
        while True:
            code = generate_room_code()
            if code not in self._rooms:
                return code
            logger.debug(f"[room-code-collision] code={code}")

    def create_room(self, host_participant_id: str, mode: str = 'code') -> Room:
        room = Room(id=self._new_code(), host=host_participant_id, capacity=self.capacity, mode=mode)
        self._rooms[room.id] = room
        logger.info(f"[room-created] room={room.id} host={host_participant_id} mode={mode}")
        return room

    def get_room(self, room_id: Optional[str]) -> Optional[Room]:
        if not room_id:
            return None
        return self._rooms.get(room_id)

    def add_participant(self, room_id: str, participant: Participant) -> Room:
        room = self.get_room(room_id)
        if room is None:
            raise RoomNotFound()
        if participant.id in room.participants:
            return room
        if room.is_full:
            raise RoomFull()
        room.participants[participant.id] = participant
        return room

    def remove_participant(self, room_id: str, participant_id: str) -> Optional[Participant]:
        room = self.get_room(room_id)
        if room is None:
            return None
        removed = room.participants.pop(participant_id, None)
        if removed is not None and room.host == participant_id:
            # Host passes to whoever is left
            room.host = next(iter(room.participants), None)
        return removed

    def delete_room(self, room_id: str) -> bool:
        room = self._rooms.get(room_id)
        if room is None:
            return False
        if not room.is_empty:
            raise ValueError(f"room {room_id} still has {room.size} participant(s)")
        del self._rooms[room_id]
        logger.info(f"[room-deleted] room={room_id}")
        return True

    def sweep_empty_rooms(self) -> int:
        empty = [room_id for room_id, room in self._rooms.items() if room.is_empty]
        for room_id in empty:
            del self._rooms[room_id]
            logger.info(f"[room-swept] room={room_id}")
        return len(empty)

    def count(self) -> int:
        return len(self._rooms)

    def participant_count(self) -> int:
        return sum(room.size for room in self._rooms.values())

    def __iter__(self):
        return iter(list(self._rooms.values()))
