import logging
import os
from duelrelay import create_app, socketio

logging.basicConfig(
    level=os.environ.get('LOG_LEVEL', 'INFO'),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

app = create_app()

if __name__ == '__main__':
    # Use SocketIO server to enable websockets in dev
    socketio.run(app, host=app.config['HOST'], port=app.config['PORT'],
                 debug=os.environ.get('FLASK_DEBUG') == '1', allow_unsafe_werkzeug=True)
