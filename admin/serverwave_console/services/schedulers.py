import logging
import threading
import time

log = logging.getLogger(__name__)


def start_all(app):
    """Start all daemon background threads."""
    cfg = app.console_config
    registry = app.console_sessions

    if cfg.STATUS_POLL_SECONDS > 0:
        def _status_loop():
            while True:
                time.sleep(cfg.STATUS_POLL_SECONDS)
                try:
                    registry.poll_statuses()
                except Exception:
                    log.exception('Status poller iteration failed')

        threading.Thread(target=_status_loop, daemon=True, name='console-status-poller').start()
