from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config

socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__, static_folder=getattr(config_class, 'STATIC_DIR', None), static_url_path='')
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = flask_app.config.get('CORS_ALLOWED_ORIGINS', '*')
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # One lobby per application; handlers and routes share it
    from duelserver.services.lobby import Lobby
    lobby = Lobby.from_config(flask_app.config)
    flask_app.extensions['duelserver'] = lobby

    from duelserver.main import main
    flask_app.register_blueprint(main)

    from duelserver.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    from duelserver.socketio_events import register_socketio_handlers
    register_socketio_handlers(lobby, namespace=flask_app.config.get('SOCKETIO_NAMESPACE', '/'))

    return flask_app
