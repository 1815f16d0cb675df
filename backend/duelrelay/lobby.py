import logging
import math
import threading
from typing import Any, Dict, Optional, Tuple

from duelrelay.errors import NotInRoom, ParseError, RelayError, UnknownMessageType
from duelrelay.matchmaker import Matchmaker, WaitingPool
from duelrelay.protocol import DIALECT_CODE, handlers_for, parse_envelope, resolve_handler
from duelrelay.registry import ConnectionRegistry
from duelrelay.relay import Deliver, Relay
from duelrelay.rooms import DEFAULT_CAPACITY, RoomStore
from duelrelay.supervisor import LifecycleSupervisor

logger = logging.getLogger(__name__)

# Every room is a two-player duel; matchmaking relies on one join filling it
ROOM_CAPACITY = DEFAULT_CAPACITY


def _discard(sid, message):
    logger.debug(f"[deliver-unbound] sid={sid} type={message.get('type')}")


class Lobby:
    """Owner of every piece of relay state.

    Connection registry, room store and waiting pool live here and are only
    touched while holding ``lock``, so each connect, message, disconnect or
    sweep runs to completion before the next one starts. Follows the
    ``init_app`` pattern so a module-level instance can be bound to the app
    built by the factory.
    """

    def __init__(self, deliver: Optional[Deliver] = None,
                 dialect: str = DIALECT_CODE, mirror_state: bool = True):
        self.lock = threading.RLock()
        self._sweeper_started = False
        self.configure(deliver=deliver, dialect=dialect, mirror_state=mirror_state)

    def configure(self, deliver: Optional[Deliver] = None,
                  dialect: str = DIALECT_CODE, mirror_state: bool = True) -> None:
        """(Re)build all state from scratch."""
        with self.lock:
            self.dialect = dialect
            self.handlers = handlers_for(dialect)
            self.mirror_state = mirror_state
            self.registry = ConnectionRegistry()
            self.rooms = RoomStore(capacity=ROOM_CAPACITY)
            self.pool = WaitingPool()
            self.relay = Relay(self.registry, self.rooms, deliver or _discard)
            self.matchmaker = Matchmaker(self.registry, self.rooms, self.relay, self.pool)
            self.supervisor = LifecycleSupervisor(self.registry, self.rooms, self.relay, self.pool)

    def init_app(self, app, deliver: Deliver) -> None:
        self.configure(
            deliver=deliver,
            dialect=app.config.get('PROTOCOL_DIALECT', DIALECT_CODE),
            mirror_state=bool(app.config.get('MIRROR_GAME_STATE', True)),
        )
        app.extensions['duelrelay'] = self

    # ---- Transport entry points ----

    def connect(self, sid: str) -> None:
        with self.lock:
            self.registry.register(sid)

    def disconnect(self, sid: str, reason=None) -> bool:
        with self.lock:
            return self.supervisor.connection_lost(sid, reason)

    def handle_message(self, sid: str, raw: Any) -> None:
        with self.lock:
            if sid not in self.registry:
                # Arrived after disconnect cleanup
                logger.debug(f"[dropped] sid={sid} not connected")
                return
            try:
                message = parse_envelope(raw)
                handler = getattr(self, resolve_handler(self.handlers, message))
                handler(sid, message)
            except UnknownMessageType as exc:
                logger.debug(f"[ignored] sid={sid} {exc.message}")
            except RelayError as exc:
                if isinstance(exc, ParseError):
                    logger.warning(f"[bad-message] sid={sid}")
                self.relay.send(sid, {'type': 'error', 'message': exc.message})

    def sweep(self) -> int:
        with self.lock:
            return self.supervisor.sweep()

    def stats(self) -> Dict[str, int]:
        with self.lock:
            return {
                'rooms': self.rooms.count(),
                'players': self.rooms.participant_count(),
                'connections': self.registry.count(),
                'waiting': len(self.pool),
            }

    def start_sweeper(self, socketio, interval: int) -> None:
        """Run ``sweep`` every ``interval`` seconds as a background task."""
        if interval <= 0 or self._sweeper_started:
            return
        self._sweeper_started = True

        def _worker():
            while True:
                socketio.sleep(interval)
                try:
                    self.sweep()
                except Exception:
                    logger.exception("[sweep] failed")

        socketio.start_background_task(_worker)

    # ---- Message handlers ----

    def _binding(self, sid: str) -> Optional[Tuple[str, str]]:
        return self.registry.resolve(sid)

    def on_create_room(self, sid, message):
        self.matchmaker.create_room(sid)

    def on_join_room(self, sid, message):
        self.matchmaker.join_by_code(sid, message.get('roomId'), message.get('character'))

    def on_find_match(self, sid, message):
        self.matchmaker.find_match(sid)

    def on_cancel_match(self, sid, message):
        self.matchmaker.cancel_match(sid)

    def on_game_state(self, sid, message):
        binding = self._binding(sid)
        if binding is None:
            return
        participant_id, room_id = binding
        self.relay.relay_game_state(room_id, participant_id, message, mirror=self.mirror_state)

    def on_character_select(self, sid, message):
        binding = self._binding(sid)
        if binding is None:
            return
        participant_id, room_id = binding
        self.relay.select_character(room_id, participant_id, message.get('character'))

    def on_select_character(self, sid, message):
        binding = self._binding(sid)
        if binding is None:
            return
        participant_id, room_id = binding
        self.relay.select_character(room_id, participant_id, message.get('character'), exclude_sender=True)

    def on_relay_to_opponent(self, sid, message):
        binding = self._binding(sid)
        if binding is None:
            return
        participant_id, room_id = binding
        self.relay.relay_to_opponent(room_id, participant_id, message)

    def on_update_health(self, sid, message):
        binding = self._binding(sid)
        if binding is None:
            return
        health = message.get('health')
        if isinstance(health, bool) or not isinstance(health, (int, float)) or not math.isfinite(health):
            raise ParseError()
        participant_id, room_id = binding
        self.relay.update_health(room_id, participant_id, health)

    def on_get_room_state(self, sid, message):
        binding = self._binding(sid)
        room = self.rooms.get_room(binding[1]) if binding else None
        if room is None:
            raise NotInRoom()
        self.relay.send(sid, dict(room.to_dict(), type='roomState'))

    def on_leave_room(self, sid, message):
        self.supervisor.leave_room(sid)
