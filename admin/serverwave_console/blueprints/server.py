import logging

from flask import Blueprint, current_app, jsonify

from ..decorators import login_required
from ..services.supervisor import SupervisorError

log = logging.getLogger(__name__)

bp = Blueprint('server', __name__, url_prefix='/api/server')

ACTIONS = ('start', 'stop', 'restart')


@bp.route('/<sid>/<action>', methods=['POST'])
@login_required
def server_control(sid, action):
    if action not in ACTIONS:
        return jsonify({'ok': False, 'error': 'Invalid action'}), 400

    registry = current_app.console_sessions
    console = registry.get(sid) if sid in registry else registry.attach(sid)
    try:
        getattr(console, action)()
    except SupervisorError as exc:
        log.warning('Server %s %s failed: %s', sid, action, exc)
        return jsonify({'ok': False, 'error': str(exc)}), 502
    log.info('Server %s: %s done', sid, action)
    return jsonify({'ok': True, **console.state()})
