import os

from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, '.env'))


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Browser origins allowed to open a socket (comma separated, '*' for any)
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')
    # Streamlabs socket API; the client is not started without a token
    STREAMLABS_TOKEN = os.environ.get('STREAMLABS_TOKEN')
    STREAMLABS_URL = os.environ.get('STREAMLABS_URL', 'https://sockets.streamlabs.com')
    STREAMLABS_ACCOUNT = os.environ.get('STREAMLABS_ACCOUNT', 'twitch_account')
    # Durable snapshot of the timer
    STATE_FILE = os.environ.get('STATE_FILE') or os.path.join(basedir, 'data', 'timer-state.json')
    PERSIST_DEBOUNCE_MS = int(os.environ.get('PERSIST_DEBOUNCE_MS', '120'))
    # Seconds added per tier 1/2/3 sub until changed from the settings panel
    DEFAULT_SECONDS_PER_SUB = int(os.environ.get('DEFAULT_SECONDS_PER_SUB', '300'))
    TICK_INTERVAL_SEC = float(os.environ.get('TICK_INTERVAL_SEC', '1.0'))
    # Start the ticker and the Streamlabs client inside create_app
    AUTOSTART_RUNTIME = os.environ.get('AUTOSTART_RUNTIME', '1') == '1'
    # Observer-facing Socket.IO server
    HOST = os.environ.get('HOST', '127.0.0.1')
    PORT = int(os.environ.get('PORT', '3000'))
