import logging
from collections import deque
from typing import Deque, Optional

from duelrelay.errors import AlreadyPlaced, RoomFull, RoomNotFound
from duelrelay.registry import ConnectionRegistry
from duelrelay.relay import Relay
from duelrelay.rooms import Participant, Room, RoomStore, generate_participant_id

logger = logging.getLogger(__name__)


class WaitingPool:
    """FIFO of connections waiting for an anonymous match."""

    def __init__(self):
        self._queue: Deque[str] = deque()

    def push(self, sid: str) -> bool:
        if sid in self._queue:
            return False
        self._queue.append(sid)
        return True

    def pop(self) -> Optional[str]:
        return self._queue.popleft() if self._queue else None

    def remove(self, sid: str) -> bool:
        try:
            self._queue.remove(sid)
        except ValueError:
            return False
        return True

    def __contains__(self, sid: str) -> bool:
        return sid in self._queue

    def __len__(self) -> int:
        return len(self._queue)


class Matchmaker:
    """Places connections into rooms, by code or by anonymous pairing."""

    def __init__(self, registry: ConnectionRegistry, rooms: RoomStore, relay: Relay, pool: WaitingPool):
        self.registry = registry
        self.rooms = rooms
        self.relay = relay
        self.pool = pool

    def _ensure_unplaced(self, sid: str) -> None:
        if self.registry.resolve(sid) is not None:
            raise AlreadyPlaced()
        if sid in self.pool:
            raise AlreadyPlaced('Already waiting for a match')

    def _place(self, sid: str, room: Room, character=None) -> Participant:
        participant = Participant(id=generate_participant_id(), sid=sid, character=character)
        self.rooms.add_participant(room.id, participant)
        self.registry.bind(sid, participant.id, room.id)
        return participant

    # ---- Explicit rooms ----

    def create_room(self, sid: str) -> Room:
        self._ensure_unplaced(sid)
        participant_id = generate_participant_id()
        room = self.rooms.create_room(participant_id, mode='code')
        host = Participant(id=participant_id, sid=sid)
        self.rooms.add_participant(room.id, host)
        self.registry.bind(sid, host.id, room.id)
        self.relay.send(sid, {'type': 'roomCreated', 'roomId': room.id, 'playerId': host.id})
        return room

    def join_by_code(self, sid: str, room_id, character=None) -> Room:
        self._ensure_unplaced(sid)
        code = room_id.strip().upper() if isinstance(room_id, str) else None
        room = self.rooms.get_room(code)
        if room is None:
            logger.info(f"[join-rejected] sid={sid} room={room_id} reason=not_found")
            raise RoomNotFound()
        if room.is_full:
            logger.info(f"[join-rejected] sid={sid} room={room.id} reason=full")
            raise RoomFull()

        participant = self._place(sid, room, character=character)
        logger.info(f"[join] player={participant.id} room={room.id} size={room.size}/{room.capacity}")
        self.relay.broadcast(room.id, {
            'type': 'playerJoined',
            'playerId': participant.id,
            'character': character,
        })
        # This addition is the one that filled the room
        if room.is_full:
            logger.info(f"[game-start] room={room.id} players={room.participant_ids()}")
            self.relay.broadcast(room.id, {
                'type': 'gameStart',
                'roomId': room.id,
                'players': room.participant_ids(),
            })
        return room

    # ---- Anonymous matching ----

    def _pop_live_waiter(self) -> Optional[str]:
        while True:
            waiter = self.pool.pop()
            if waiter is None or self.registry.is_open(waiter):
                return waiter
            logger.warning(f"[match-skip] sid={waiter} no longer connected")

    def find_match(self, sid: str) -> Optional[Room]:
        if sid in self.pool:
            self.relay.send(sid, {'type': 'waitingForMatch'})
            return None
        self._ensure_unplaced(sid)

        waiter = self._pop_live_waiter()
        if waiter is None:
            self.pool.push(sid)
            logger.info(f"[match-wait] sid={sid} waiting={len(self.pool)}")
            self.relay.send(sid, {'type': 'waitingForMatch'})
            return None

        host_id = generate_participant_id()
        room = self.rooms.create_room(host_id, mode='match')
        host = Participant(id=host_id, sid=waiter)
        self.rooms.add_participant(room.id, host)
        self.registry.bind(waiter, host.id, room.id)
        guest = self._place(sid, room)
        logger.info(f"[match-found] room={room.id} player1={host.id} player2={guest.id}")

        self.relay.send(waiter, {'type': 'matchFound', 'roomId': room.id, 'isPlayer1': True, 'playerId': host.id})
        self.relay.send(sid, {'type': 'matchFound', 'roomId': room.id, 'isPlayer1': False, 'playerId': guest.id})
        return room

    def cancel_match(self, sid: str) -> bool:
        removed = self.pool.remove(sid)
        if removed:
            logger.info(f"[match-cancel] sid={sid} waiting={len(self.pool)}")
        self.relay.send(sid, {'type': 'matchCancelled'})
        return removed
