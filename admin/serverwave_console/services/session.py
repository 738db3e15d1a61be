"""Live console session: the per-attach context for one game server.

A ConsoleSession owns every piece of console state for one session id: the
log buffer, the viewport, the command history and the device-code watcher.
Nothing here is global.  Events (stream lines, scrolls, keystrokes, status
changes) may arrive from the stream thread and from request handlers, so
every mutation goes through the session lock and is applied one at a time.

Subscriptions are tagged with a generation number.  Cancelling a
subscription bumps the generation, so lines that were already in flight for
an old subscription, or that arrive after detach, are dropped instead of
being appended twice or to a dead session.
"""
import logging
import threading
import time
from collections import deque

from ..extensions import COMMAND_ECHO_PREFIX
from .buffer import LogBuffer
from .device_code import DeviceCodeWatcher
from .history import CommandHistory
from .status import SessionStatus, parse_status
from .supervisor import SupervisorError
from .viewport import Viewport

log = logging.getLogger(__name__)

STOPPING_MESSAGE   = 'Stopping server...'
RESTARTING_MESSAGE = 'Restarting server...'

EMPTY_MESSAGES = {
    SessionStatus.RUNNING:  'Waiting for logs...',
    SessionStatus.STOPPING: 'Stopping server...',
}
DEFAULT_EMPTY_MESSAGE = 'Server is stopped. Press Start to begin.'


def dispatch_in_thread(fn, *args):
    """Run *fn* fire-and-forget on a daemon thread."""
    threading.Thread(target=fn, args=args, daemon=True, name='console-command').start()


class ConsoleSession:
    def __init__(self, session_id, supervisor, cfg, dispatch=None, sleep=None):
        self.session_id = session_id
        self.supervisor = supervisor
        self.cfg = cfg
        self.buffer = LogBuffer()
        self.viewport = Viewport(cfg.SCROLL_TOLERANCE)
        self.history = CommandHistory(cfg.HISTORY_LIMIT)
        self.watcher = DeviceCodeWatcher(cfg.DEVICE_CODE_WINDOW, cfg.DEVICE_CODE_PATTERN)
        self.notices = deque(maxlen=cfg.MAX_NOTICES)
        # None until the supervisor (or a client) reports a lifecycle status.
        self.status = None
        self.attached = False
        self.streaming = False
        self._dispatch = dispatch or dispatch_in_thread
        self._sleep = sleep or time.sleep
        self._lock = threading.RLock()
        self._cancel = None
        self._generation = 0

    # ── Subscription ──────────────────────────────────────────────────────────

    def attach(self, fetch_history=True):
        """Start (or restart) streaming; any previous subscription is cancelled."""
        with self._lock:
            self._cancel_subscription()
            self.attached = True
            generation = self._generation
            if fetch_history:
                self._load_history()

            def _deliver(event):
                self.handle_event(event, generation)

            try:
                self._cancel = self.supervisor.subscribe_to_lines(self.session_id, _deliver)
            except SupervisorError as exc:
                log.warning('Subscribing to %s failed: %s', self.session_id, exc)
                return False
            self.streaming = True
            log.info('Attached console session %s', self.session_id)
            return True

    def detach(self):
        """Cancel streaming and drop all session state."""
        with self._lock:
            self._cancel_subscription()
            self.attached = False
            self.buffer.clear()
            self.viewport.reset()
            self.history.clear()
            self.watcher.reset()
            self.notices.clear()
            log.info('Detached console session %s', self.session_id)

    def _load_history(self):
        try:
            lines = self.supervisor.fetch_recent_lines(self.session_id, self.cfg.LOG_FETCH_LIMIT)
        except SupervisorError as exc:
            # Missing history is not fatal; carry on with an empty buffer.
            log.warning('Fetching recent lines for %s failed: %s', self.session_id, exc)
            lines = []
        self.buffer.seed(lines)
        self.viewport.repin(len(self.buffer))
        self._observe()

    def _cancel_subscription(self):
        self._generation += 1
        cancel, self._cancel = self._cancel, None
        self.streaming = False
        if cancel is not None:
            try:
                cancel()
            except Exception as exc:
                log.warning('Cancelling subscription for %s failed: %s', self.session_id, exc)

    def handle_event(self, event, generation):
        """Append a streamed line if it belongs to the live subscription."""
        with self._lock:
            if (not self.attached or generation != self._generation
                    or event.session_id != self.session_id):
                log.debug('Discarding stale line for %s', event.session_id)
                return False
            self.append(event.line)
            return True

    # ── Lines ─────────────────────────────────────────────────────────────────

    def append(self, raw):
        with self._lock:
            line = self.buffer.append(raw)
            self.viewport.on_append(len(self.buffer))
            self._observe()
            return line

    def _observe(self):
        self.watcher.observe(self.buffer.tail(self.watcher.window), self.status)

    def lines(self, since=0):
        """Rendered lines from *since* on, as JSON-ready dicts."""
        with self._lock:
            out = []
            for line, rendered in self.buffer.rendered(since):
                item = {'index': line.index, 'number': line.index + 1}
                item.update(rendered.to_dict())
                out.append(item)
            return out

    def drain_notices(self):
        with self._lock:
            notices = list(self.notices)
            self.notices.clear()
            return notices

    def poll(self, since=0):
        """One consistent read for a polling client: state, new lines, notices."""
        with self._lock:
            state = self.state()
            # A cursor past the end means the buffer was cleared under the
            # client; resend from the start.
            if since > state['total']:
                since = 0
            state['lines'] = self.lines(since)
            state['notices'] = self.drain_notices()
            return state

    def clear(self):
        """User-initiated clear: empty buffer, re-pin, allow re-detection."""
        with self._lock:
            self.buffer.clear()
            self.viewport.reset()
            self.watcher.reset()

    def refresh(self):
        """Re-fetch the recent tail and re-subscribe."""
        return self.attach(fetch_history=True)

    # ── Commands ──────────────────────────────────────────────────────────────

    def submit_command(self, text):
        """Record, echo and dispatch *text*; return the command or ''."""
        with self._lock:
            cmd = self.history.submit(text)
            if not cmd:
                return ''
            self.append(COMMAND_ECHO_PREFIX + cmd)
        self._dispatch(self._send_command, cmd)
        return cmd

    def _send_command(self, cmd):
        try:
            self.supervisor.submit_command(self.session_id, cmd)
        except SupervisorError as exc:
            log.warning('Command %r for %s failed: %s', cmd, self.session_id, exc)
            with self._lock:
                self.notices.append(f'Command failed: {exc}')

    def recall_previous(self):
        with self._lock:
            return self.history.recall_previous()

    def recall_next(self):
        with self._lock:
            return self.history.recall_next()

    # ── Viewport ──────────────────────────────────────────────────────────────

    def scroll(self, scroll_top, scroll_height, client_height,
               observed_length=None, anchor=None):
        with self._lock:
            return self.viewport.on_scroll(
                scroll_top, scroll_height, client_height, observed_length, anchor,
            )

    def pin(self):
        with self._lock:
            self.viewport.repin(len(self.buffer))

    # ── Device code ───────────────────────────────────────────────────────────

    def dismiss_device_code(self):
        with self._lock:
            self.watcher.dismiss()

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def set_status(self, status):
        status = parse_status(status)
        with self._lock:
            previous, self.status = self.status, status
            if status is previous:
                return
            log.info('Session %s: %s -> %s', self.session_id,
                     previous.value if previous else None, status.value)
            if status.is_terminal:
                self.watcher.reset()
            if status is SessionStatus.STOPPED and previous in (
                SessionStatus.RUNNING, SessionStatus.STOPPING,
            ):
                self._cancel_subscription()
                self.buffer.clear()
                self.viewport.reset()

    def start(self):
        with self._lock:
            self.buffer.clear()
            self.viewport.reset()
            self.watcher.reset()
        self.supervisor.start_server(self.session_id)
        self.set_status(SessionStatus.STARTING)
        # A restarted container still carries the previous run's log, so
        # stream from now on instead of re-fetching history.
        self.attach(fetch_history=False)

    def stop(self, message=STOPPING_MESSAGE):
        with self._lock:
            previous = self.status
            self.buffer.seed([message])
            self.viewport.repin(len(self.buffer))
            self.watcher.forget()
            self._cancel_subscription()
            if self.status is SessionStatus.RUNNING:
                self.set_status(SessionStatus.STOPPING)
        try:
            self.supervisor.stop_server(self.session_id)
        except SupervisorError:
            # The server is still up: put the console back the way it was.
            with self._lock:
                self.status = previous
                if self.attached:
                    self.attach(fetch_history=True)
                else:
                    self.buffer.clear()
                    self.viewport.reset()
            raise
        self.set_status(SessionStatus.STOPPED)
        # Already stopped (or never reported): the transition above was a
        # no-op, so drop the stop message here.
        with self._lock:
            self.buffer.clear()
            self.viewport.reset()

    def restart(self):
        self.stop(RESTARTING_MESSAGE)
        self._sleep(self.cfg.RESTART_DELAY)
        self.start()

    # ── Summary ───────────────────────────────────────────────────────────────

    def empty_message(self):
        return EMPTY_MESSAGES.get(self.status, DEFAULT_EMPTY_MESSAGE)

    def state(self):
        with self._lock:
            return {
                'session_id':   self.session_id,
                'status':       self.status.value if self.status else None,
                'attached':     self.attached,
                'streaming':    self.streaming,
                'total':        len(self.buffer),
                'viewport':     self.viewport.to_dict(),
                'device_code':  self.watcher.to_dict(),
                'history_size': len(self.history),
                'empty_message': self.empty_message(),
            }
