import functools

from flask import current_app, jsonify, session

from .services.registry import SessionNotFound


def login_required(f):
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if not session.get('logged_in'):
            return jsonify({'error': 'Authentication required', 'status': 401}), 401
        return f(*args, **kwargs)
    return decorated


def with_console_session(f):
    """Resolve the <sid> URL argument to an attached ConsoleSession."""
    @functools.wraps(f)
    def decorated(sid, *args, **kwargs):
        try:
            console = current_app.console_sessions.get(sid)
        except SessionNotFound:
            return jsonify({'error': f'Session {sid} is not attached', 'status': 404}), 404
        return f(console, *args, **kwargs)
    return decorated
