import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    HOST = os.environ.get('HOST', '0.0.0.0')
    PORT = int(os.environ.get('PORT', '3000'))
    # Socket.IO namespace clients connect to
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/ws')
    # 'code' (createRoom/joinRoom) or 'match' (findMatch queue)
    PROTOCOL_DIALECT = os.environ.get('PROTOCOL_DIALECT', 'code')
    # Empty-room sweep interval (seconds). 0 disables.
    SWEEP_INTERVAL_SEC = int(os.environ.get('SWEEP_INTERVAL_SEC', '30'))
    # Keep the last gameState payload on the room for getRoomState
    MIRROR_GAME_STATE = os.environ.get('MIRROR_GAME_STATE', '1') not in ('0', 'false', 'False')
    # Directory holding index.html and the client assets
    STATIC_DIR = os.environ.get('STATIC_DIR') or os.path.join(os.path.dirname(os.path.abspath(__file__)), 'static')
