import os

from flask import Flask, jsonify, request

from .config import Config


def create_app(config_class=Config, supervisor=None):
    app = Flask(__name__)
    cfg = config_class()
    app.secret_key = cfg.SECRET_KEY
    app.config['SESSION_COOKIE_HTTPONLY'] = cfg.SESSION_COOKIE_HTTPONLY
    app.config['SESSION_COOKIE_SAMESITE'] = getattr(cfg, 'SESSION_COOKIE_SAMESITE', 'Lax')
    app.config['SESSION_COOKIE_SECURE']   = getattr(cfg, 'SESSION_COOKIE_SECURE', False)
    app.config['PERMANENT_SESSION_LIFETIME'] = cfg.PERMANENT_SESSION_LIFETIME

    # Config and session registry live on the app for threads and blueprints
    from .services.registry import SessionRegistry
    from .services.supervisor import DockerSupervisor
    app.console_config = cfg
    app.console_sessions = SessionRegistry(supervisor or DockerSupervisor(cfg), cfg)

    # Register blueprints
    from .blueprints.auth    import bp as auth_bp
    from .blueprints.console import bp as console_bp
    from .blueprints.server  import bp as server_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(console_bp)
    app.register_blueprint(server_bp)

    # Security headers on every response
    @app.after_request
    def _security_headers(response):
        response.headers.setdefault('X-Content-Type-Options', 'nosniff')
        response.headers.setdefault('X-Frame-Options', 'DENY')
        response.headers.setdefault('Referrer-Policy', 'same-origin')
        return response

    # Error handlers
    @app.errorhandler(404)
    def not_found(e):
        return jsonify({'error': 'Not found', 'status': 404}), 404

    @app.errorhandler(405)
    def not_allowed(e):
        return jsonify({'error': 'Method not allowed', 'status': 405}), 405

    @app.errorhandler(500)
    def server_error(e):
        app.logger.error('Unhandled error on %s: %s', request.path, e)
        return jsonify({'error': 'Internal server error', 'status': 500}), 500

    # Start background daemons only once.
    # Skip in TESTING mode (CI/pytest) to avoid Docker calls and thread leaks.
    # Guard against werkzeug reloader double-start in dev.
    if not os.environ.get('TESTING') and (
        not app.debug or os.environ.get('WERKZEUG_RUN_MAIN') == 'true'
    ):
        from .services.schedulers import start_all
        start_all(app)

    return app
