import logging
from typing import Optional

from duelrelay.errors import NotInRoom
from duelrelay.matchmaker import WaitingPool
from duelrelay.registry import ConnectionRegistry
from duelrelay.relay import Relay
from duelrelay.rooms import RoomStore

logger = logging.getLogger(__name__)


class LifecycleSupervisor:
    """Disconnect cleanup, room teardown and the periodic empty-room sweep."""

    def __init__(self, registry: ConnectionRegistry, rooms: RoomStore, relay: Relay, pool: WaitingPool):
        self.registry = registry
        self.rooms = rooms
        self.relay = relay
        self.pool = pool

    def _leave(self, sid: str) -> Optional[str]:
        binding = self.registry.resolve(sid)
        if binding is None:
            return None
        participant_id, room_id = binding
        self.registry.unbind(sid)
        room = self.rooms.get_room(room_id)
        if room is None:
            return room_id
        self.rooms.remove_participant(room_id, participant_id)

        if room.mode == 'match':
            # Matched rooms never refill: tell the opponent and tear down
            self.relay.broadcast(room_id, {'type': 'playerDisconnected', 'playerId': participant_id})
            for other in room.others(participant_id):
                self.rooms.remove_participant(room_id, other.id)
                self.registry.unbind(other.sid)
        else:
            self.relay.broadcast(room_id, {'type': 'playerLeft', 'playerId': participant_id})

        logger.info(f"[leave] player={participant_id} room={room_id} remaining={room.size}")
        if room.is_empty:
            self.rooms.delete_room(room_id)
        return room_id

    def leave_room(self, sid: str) -> str:
        room_id = self._leave(sid)
        if room_id is None:
            raise NotInRoom()
        self.relay.send(sid, {'type': 'leftRoom', 'roomId': room_id})
        return room_id

    def connection_lost(self, sid: str, reason=None) -> bool:
        """Clean up after a connection. Runs once; later calls are no-ops."""
        if sid not in self.registry:
            return False
        self.registry.mark_closed(sid)
        room_id = self._leave(sid)
        if room_id is None and self.pool.remove(sid):
            logger.info(f"[match-wait-dropped] sid={sid} waiting={len(self.pool)}")
        self.registry.unregister(sid)
        logger.info(f"[disconnect] sid={sid} room={room_id} reason={reason}")
        return True

    def sweep(self) -> int:
        removed = self.rooms.sweep_empty_rooms()
        logger.info(
            f"[sweep] rooms={self.rooms.count()} players={self.rooms.participant_count()} "
            f"connections={self.registry.count()} waiting={len(self.pool)} removed={removed}"
        )
        return removed
