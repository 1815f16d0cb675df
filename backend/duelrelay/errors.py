"""Errors surfaced to clients as ``error{message}`` replies."""
from typing import Optional


class RelayError(Exception):
    """Base class; ``message`` is the client-facing text."""

    message = 'Server error'

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ParseError(RelayError):
    message = 'Invalid message format'


class RoomNotFound(RelayError):
    message = 'Room not found'


class RoomFull(RelayError):
    message = 'Room is full'


class AlreadyPlaced(RelayError):
    message = 'Already in a room'


class NotInRoom(RelayError):
    message = 'Not in a room'


class UnknownMessageType(RelayError):
    # Never sent to the client; dispatch drops these silently
    message = 'Unknown message type'
