from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config
from skyjo.channels import ChannelHub
from skyjo.game import SessionRegistry

allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)
channels = ChannelHub()
sessions = SessionRegistry()

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    # Engine loggers (skyjo.game.*) propagate to the app logger's handler
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    origins = list(allowed_origins)
    if flask_app.config.get('FRONTEND_URL'):
        origins.append(flask_app.config['FRONTEND_URL'])
    CORS(flask_app, supports_credentials=True, origins=origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=origins)
    channels.init_app(flask_app, socketio)
    sessions.init_app(flask_app, channels)

    from skyjo.main import main, register_error_handlers
    flask_app.register_blueprint(main)
    register_error_handlers(flask_app)

    from skyjo.api.sessions import sessions_api
    flask_app.register_blueprint(sessions_api, url_prefix='/api/sessions')

    from skyjo.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace=flask_app.config.get('SOCKETIO_NAMESPACE', '/ws'))

    return flask_app
