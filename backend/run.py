import signal
import sys

from subathon import create_app, get_runtime, socketio

app = create_app()


def _shutdown(signum, _frame):
    app.logger.info(f"[signal] {signal.Signals(signum).name} received, flushing timer state")
    get_runtime(app).shutdown()
    sys.exit(0)


if __name__ == '__main__':
    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)
    try:
        # Use SocketIO server to enable websockets in dev
        socketio.run(app, host=app.config['HOST'], port=app.config['PORT'], allow_unsafe_werkzeug=True)
    finally:
        get_runtime(app).shutdown()
