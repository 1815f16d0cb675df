from flask import current_app, request
from flask_socketio import emit
from duelrelay import lobby, socketio


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def handle_connect(auth=None):
    sid = _get_sid()
    lobby.connect(sid)
    current_app.logger.info(f"[connect] sid={sid}")
    emit('connected', {'message': 'Connected', 'dialect': lobby.dialect})


def handle_disconnect(reason=None):
    # Socket.IO may report the same connection more than once; the
    # supervisor ignores anything it has already cleaned up
    sid = _get_sid()
    if not lobby.disconnect(sid, reason):
        current_app.logger.debug(f"[disconnect-ignored] sid={sid} already cleaned up")


def handle_message(data=None):
    lobby.handle_message(_get_sid(), data)


def handle_error(exc):
    # Unexpected handler failure: log it and keep the connection
    current_app.logger.error(f"[socket-error] sid={_get_sid()} {exc!r}", exc_info=exc)


def register_socketio_handlers(namespace: str = '/ws') -> None:
    """Register Socket.IO event handlers on ``namespace``.

    Clients send envelopes as text on the ``message`` event; objects emitted
    on the ``json`` event take the same path.
    """
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('message', handle_message, namespace=namespace)
    socketio.on_event('json', handle_message, namespace=namespace)
    socketio.on_error(namespace)(handle_error)
