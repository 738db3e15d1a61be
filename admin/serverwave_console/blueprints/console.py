from flask import Blueprint, current_app, jsonify, request

from ..decorators import login_required, with_console_session
from ..services.registry import SessionNotFound
from ..services.status import parse_status

bp = Blueprint('console', __name__, url_prefix='/api/console')


def _int_arg(data, key, default=None):
    value = data.get(key, default)
    if value is None:
        return default
    return int(value)


@bp.route('/<sid>/attach', methods=['POST'])
@login_required
def api_console_attach(sid):
    console = current_app.console_sessions.attach(sid)
    return jsonify(console.state())


@bp.route('/<sid>/detach', methods=['POST'])
@login_required
def api_console_detach(sid):
    try:
        current_app.console_sessions.detach(sid)
    except SessionNotFound:
        return jsonify({'error': f'Session {sid} is not attached', 'status': 404}), 404
    return jsonify({'ok': True})


@bp.route('/<sid>/lines')
@login_required
@with_console_session
def api_console_lines(console):
    try:
        since = int(request.args.get('since', 0))
    except ValueError:
        since = 0
    return jsonify(console.poll(since))


@bp.route('/<sid>/send', methods=['POST'])
@login_required
@with_console_session
def api_console_send(console):
    data = request.get_json(silent=True) or {}
    cmd = console.submit_command(data.get('cmd', ''))
    if not cmd:
        return jsonify({'ok': False, 'error': 'Empty command'})
    return jsonify({'ok': True, 'cmd': cmd})


@bp.route('/<sid>/history/previous', methods=['POST'])
@login_required
@with_console_session
def api_console_history_previous(console):
    return jsonify({'cmd': console.recall_previous()})


@bp.route('/<sid>/history/next', methods=['POST'])
@login_required
@with_console_session
def api_console_history_next(console):
    return jsonify({'cmd': console.recall_next()})


@bp.route('/<sid>/scroll', methods=['POST'])
@login_required
@with_console_session
def api_console_scroll(console):
    data = request.get_json(silent=True) or {}
    try:
        state = console.scroll(
            float(data['scroll_top']),
            float(data['scroll_height']),
            float(data['client_height']),
            observed_length=_int_arg(data, 'total'),
            anchor=_int_arg(data, 'anchor'),
        )
    except (KeyError, TypeError, ValueError):
        return jsonify({'ok': False, 'error': 'Invalid scroll geometry'}), 400
    return jsonify({'ok': True, 'pinned': state.value == 'pinned',
                    'viewport': console.viewport.to_dict()})


@bp.route('/<sid>/pin', methods=['POST'])
@login_required
@with_console_session
def api_console_pin(console):
    console.pin()
    return jsonify({'ok': True, 'viewport': console.viewport.to_dict()})


@bp.route('/<sid>/clear', methods=['POST'])
@login_required
@with_console_session
def api_console_clear(console):
    console.clear()
    return jsonify({'ok': True})


@bp.route('/<sid>/refresh', methods=['POST'])
@login_required
@with_console_session
def api_console_refresh(console):
    console.refresh()
    return jsonify(console.state())


@bp.route('/<sid>/status', methods=['POST'])
@login_required
@with_console_session
def api_console_status(console):
    data = request.get_json(silent=True) or {}
    try:
        status = parse_status(data.get('status', ''))
    except ValueError:
        return jsonify({'ok': False, 'error': 'Unknown status'}), 400
    console.set_status(status)
    return jsonify(console.state())


@bp.route('/<sid>/device-code/dismiss', methods=['POST'])
@login_required
@with_console_session
def api_console_dismiss_device_code(console):
    console.dismiss_device_code()
    return jsonify({'ok': True})
