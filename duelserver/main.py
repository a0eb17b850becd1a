import os

from flask import Blueprint, current_app, jsonify, send_from_directory

main = Blueprint('main', __name__)


def _page(filename):
    static_dir = current_app.static_folder
    if not static_dir or not os.path.isfile(os.path.join(static_dir, filename)):
        return jsonify({'error': 'Client not built'}), 404
    return send_from_directory(static_dir, filename)


@main.route('/')
def index():
    return _page('index.html')


@main.route('/game')
def game():
    return _page('game.html')


@main.route('/health')
def health():
    lobby = current_app.extensions['duelserver']
    with lobby.lock:
        return jsonify({'status': 'ok', 'rooms': len(lobby.rooms), 'connections': len(lobby.connections)})
