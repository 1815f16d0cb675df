import errno
import os
from flask import Blueprint, Response, current_app, jsonify
from werkzeug.security import safe_join
from duelrelay import lobby

main = Blueprint('main', __name__)

CONTENT_TYPES = {
    '.js': 'text/javascript',
    '.css': 'text/css',
    '.json': 'application/json',
    '.png': 'image/png',
    '.jpg': 'image/jpg',
}


def _read(path):
    with open(path, 'rb') as fh:
        return fh.read()


@main.route('/health')
def health():
    return jsonify({'status': 'ok', 'dialect': lobby.dialect, **lobby.stats()})


@main.route('/')
@main.route('/index.html')
def index():
    path = os.path.join(current_app.config['STATIC_DIR'], 'index.html')
    try:
        data = _read(path)
    except OSError as exc:
        current_app.logger.warning(f"[static] index.html unreadable: {exc}")
        return Response('Error loading index.html', status=500)
    return Response(data, mimetype='text/html')


@main.route('/<path:filename>')
def static_file(filename):
    """Serve a client asset; content type follows the file extension."""
    path = safe_join(current_app.config['STATIC_DIR'], filename)
    if path is None:
        return Response('File not found', status=404)
    content_type = CONTENT_TYPES.get(os.path.splitext(path)[1].lower(), 'text/html')
    try:
        data = _read(path)
    except FileNotFoundError:
        return Response('File not found', status=404)
    except OSError as exc:
        code = errno.errorcode.get(exc.errno, 'EIO')
        current_app.logger.error(f"[static] {filename} read failed: {code}")
        return Response(f'Server error: {code}', status=500)
    return Response(data, content_type=content_type)
