"""Wire envelope and the per-dialect dispatch tables.

Every client message is a JSON object with a ``type`` discriminator. Two
dialects exist and a server runs exactly one of them:

- ``code``: rooms are created explicitly and joined by sharing their code.
- ``match``: clients queue with ``findMatch`` and are paired FIFO.
"""
import json
from typing import Any, Dict

from duelrelay.errors import ParseError, UnknownMessageType

DIALECT_CODE = 'code'
DIALECT_MATCH = 'match'

# message type -> Lobby handler method name
CODE_HANDLERS: Dict[str, str] = {
    'createRoom': 'on_create_room',
    'joinRoom': 'on_join_room',
    'gameState': 'on_game_state',
    'characterSelect': 'on_character_select',
    'updateHealth': 'on_update_health',
    'getRoomState': 'on_get_room_state',
    'leaveRoom': 'on_leave_room',
}

MATCH_HANDLERS: Dict[str, str] = {
    'findMatch': 'on_find_match',
    'cancelMatch': 'on_cancel_match',
    'selectCharacter': 'on_select_character',
    'gameState': 'on_game_state',
    'specialAttack': 'on_relay_to_opponent',
    'chatMessage': 'on_relay_to_opponent',
    'gameReady': 'on_relay_to_opponent',
    'updateHealth': 'on_update_health',
    'getRoomState': 'on_get_room_state',
    'leaveRoom': 'on_leave_room',
}

DIALECTS: Dict[str, Dict[str, str]] = {
    DIALECT_CODE: CODE_HANDLERS,
    DIALECT_MATCH: MATCH_HANDLERS,
}


def handlers_for(dialect: str) -> Dict[str, str]:
    try:
        return DIALECTS[dialect]
    except KeyError:
        raise ValueError(f"unknown protocol dialect {dialect!r}; expected one of {sorted(DIALECTS)}")


def parse_envelope(raw: Any) -> Dict[str, Any]:
    """Decode an inbound frame into a message dict.

    Accepts JSON text (or bytes) as well as an already-decoded object, which
    is what Socket.IO hands over when the client emits an object.
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode('utf-8')
        except UnicodeDecodeError:
            raise ParseError()
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            raise ParseError()
    if not isinstance(raw, dict):
        raise ParseError()
    return raw


def resolve_handler(table: Dict[str, str], message: Dict[str, Any]) -> str:
    msg_type = message.get('type')
    if not isinstance(msg_type, str) or msg_type not in table:
        raise UnknownMessageType(f"Unknown message type: {msg_type!r}")
    return table[msg_type]


def encode(message: Dict[str, Any]) -> str:
    return json.dumps(message)
