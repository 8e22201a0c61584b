from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config

socketio = SocketIO(async_mode=None)


def _origins(value):
    if not value or value == '*':
        return '*'
    return [o.strip() for o in value.split(',') if o.strip()]


def create_app(config_class=Config, scheduler=None):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    allowed_origins = _origins(flask_app.config.get('CORS_ORIGINS'))
    CORS(flask_app, origins=allowed_origins)
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from subathon.main import main
    flask_app.register_blueprint(main)

    from subathon.api.timer import timer
    flask_app.register_blueprint(timer, url_prefix='/api')

    from subathon.runtime import TimerRuntime
    from subathon.services.timer.scheduler import SocketIOScheduler
    runtime = TimerRuntime(flask_app.config, scheduler or SocketIOScheduler(socketio))
    flask_app.extensions['subathon'] = runtime

    # Importing here ensures the handlers bind to the initialized socketio instance
    from subathon.socketio_events import broadcast_snapshot, register_socketio_handlers
    register_socketio_handlers()
    runtime.engine.add_listener(broadcast_snapshot)

    if flask_app.config.get('AUTOSTART_RUNTIME'):
        runtime.start()

    return flask_app


def get_runtime(flask_app=None):
    from flask import current_app
    return (flask_app or current_app).extensions['subathon']
