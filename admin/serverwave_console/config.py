import os

from dotenv import load_dotenv

from .services.device_code import DEFAULT_PATTERN, DEFAULT_WINDOW

load_dotenv()


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY', 'change-me-in-production')
    SESSION_COOKIE_HTTPONLY = True
    PERMANENT_SESSION_LIFETIME = 3600

    ADMIN_TOKEN = os.environ.get('ADMIN_TOKEN', '')
    LOG_LEVEL   = os.environ.get('LOG_LEVEL', 'INFO')

    # Docker container backing a session id, e.g. 'serverwave-{session_id}'
    CONTAINER_NAME_TEMPLATE = os.environ.get('CONTAINER_NAME_TEMPLATE', '{session_id}')
    COMMAND_FALLBACK_EXEC   = os.environ.get('COMMAND_FALLBACK_EXEC', 'mc-send-to-console')

    LOG_FETCH_LIMIT        = int(os.environ.get('LOG_FETCH_LIMIT', '500'))
    STREAM_TAIL            = int(os.environ.get('STREAM_TAIL', '0'))
    STREAM_MAX_RECONNECTS  = int(os.environ.get('STREAM_MAX_RECONNECTS', '5'))
    STREAM_RECONNECT_DELAY = float(os.environ.get('STREAM_RECONNECT_DELAY', '2'))

    DEVICE_CODE_WINDOW  = int(os.environ.get('DEVICE_CODE_WINDOW', str(DEFAULT_WINDOW)))
    DEVICE_CODE_PATTERN = os.environ.get('DEVICE_CODE_PATTERN', DEFAULT_PATTERN)

    SCROLL_TOLERANCE = int(os.environ.get('SCROLL_TOLERANCE', '50'))
    HISTORY_LIMIT    = int(os.environ.get('HISTORY_LIMIT', '100'))
    MAX_NOTICES      = int(os.environ.get('MAX_NOTICES', '20'))

    STATUS_POLL_SECONDS = float(os.environ.get('STATUS_POLL_SECONDS', '2'))
    RESTART_DELAY       = float(os.environ.get('RESTART_DELAY', '2'))
