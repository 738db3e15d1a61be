import hmac

from flask import Blueprint, current_app, jsonify, request, session

bp = Blueprint('auth', __name__)


@bp.route('/login', methods=['POST'])
def login():
    cfg = current_app.console_config
    data = request.get_json(silent=True) or request.form
    token = (data.get('token') or '').strip()
    if token and cfg.ADMIN_TOKEN and hmac.compare_digest(token, cfg.ADMIN_TOKEN):
        session['logged_in'] = True
        return jsonify({'ok': True})
    return jsonify({'ok': False, 'error': 'Invalid token'}), 401


@bp.route('/logout')
def logout():
    session.clear()
    return jsonify({'ok': True})
