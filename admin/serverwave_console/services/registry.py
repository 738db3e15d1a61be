import logging
import threading

from .session import ConsoleSession
from .status import SessionStatus
from .supervisor import SupervisorError

log = logging.getLogger(__name__)


class SessionNotFound(KeyError):
    """No console session is attached for the given id."""


class SessionRegistry:
    """Attached console sessions, keyed by session id."""

    def __init__(self, supervisor, cfg, dispatch=None, sleep=None):
        self.supervisor = supervisor
        self.cfg = cfg
        self.dispatch = dispatch
        self.sleep = sleep
        self._sessions = {}
        self._lock = threading.Lock()

    def __contains__(self, session_id):
        return session_id in self._sessions

    def _create(self, session_id):
        return ConsoleSession(
            session_id, self.supervisor, self.cfg,
            dispatch=self.dispatch, sleep=self.sleep,
        )

    def attach(self, session_id):
        """Attach to *session_id*, creating its session on first use."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                session = self._sessions[session_id] = self._create(session_id)
        try:
            session.set_status(self.supervisor.get_status(session_id))
        except SupervisorError as exc:
            log.warning('Status of %s unavailable: %s', session_id, exc)
        session.attach()
        return session

    def detach(self, session_id):
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFound(session_id)
        session.detach()

    def get(self, session_id) -> ConsoleSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFound(session_id) from None

    def sessions(self):
        with self._lock:
            return list(self._sessions.values())

    def poll_statuses(self):
        """Refresh every session's status from the supervisor."""
        for session in self.sessions():
            try:
                status = self.supervisor.get_status(session.session_id)
            except SupervisorError as exc:
                log.warning('Status poll for %s failed: %s', session.session_id, exc)
                continue
            session.set_status(status)
            # Container started outside this service: pick the stream back up.
            if (status is SessionStatus.RUNNING and session.attached
                    and not session.streaming):
                session.attach(fetch_history=False)
