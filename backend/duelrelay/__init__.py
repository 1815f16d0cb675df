from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config
from duelrelay.lobby import Lobby
from duelrelay.protocol import encode

allowed_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)
lobby = Lobby()

def create_app(config_class=Config):
    flask_app = Flask(__name__, static_folder=None)
    flask_app.config.from_object(config_class)

    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)
    namespace = flask_app.config.get('SOCKETIO_NAMESPACE', '/ws')

    def deliver(sid, message):
        socketio.send(encode(message), to=sid, namespace=namespace)

    # Fresh in-memory state for every app instance
    lobby.init_app(flask_app, deliver)

    from duelrelay.main import main
    flask_app.register_blueprint(main)

    from duelrelay.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace)

    flask_app.logger.info(
        f"[startup] dialect={lobby.dialect} namespace={namespace} capacity={lobby.rooms.capacity}"
    )
    # Periodic sweep is runtime-only; tests call lobby.sweep() directly
    if not flask_app.config.get('TESTING'):
        lobby.start_sweeper(socketio, int(flask_app.config.get('SWEEP_INTERVAL_SEC', 30)))

    return flask_app
