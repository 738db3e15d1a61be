"""Process supervisor: the Docker side of a console session.

The console engine only needs four things from whatever runs the game
server: a historical tail, a live line subscription, a way to write to the
process's stdin, and its lifecycle status.  Supervisor is that contract;
DockerSupervisor implements it with the Docker SDK, one container per
session id.
"""
import logging
import threading
from dataclasses import dataclass

from .status import DOCKER_STATUS, SessionStatus

log = logging.getLogger(__name__)


class SupervisorError(Exception):
    """The supervisor could not perform the requested operation."""


@dataclass(frozen=True)
class LineEvent:
    session_id: str
    line: str


class Supervisor:
    def fetch_recent_lines(self, session_id, limit):
        raise NotImplementedError

    def subscribe_to_lines(self, session_id, callback):
        """Deliver LineEvents to *callback*; return a cancel() callable."""
        raise NotImplementedError

    def submit_command(self, session_id, text):
        raise NotImplementedError

    def get_status(self, session_id):
        raise NotImplementedError

    def start_server(self, session_id):
        raise NotImplementedError

    def stop_server(self, session_id):
        raise NotImplementedError


def _docker_errors():
    import docker
    import requests
    return (docker.errors.DockerException, requests.exceptions.RequestException)


def split_chunk(pending, chunk):
    """Append *chunk* to *pending*; return (complete_lines, new_pending).

    With tty:true Docker emits raw PTY bytes that may split a line across
    chunks and use \\r for in-place progress updates.  Only the text after
    the last \\r of a line is kept, which is what a terminal would show.
    """
    pending += chunk
    lines = []
    while '\n' in pending:
        raw_line, pending = pending.split('\n', 1)
        raw_line = raw_line.rstrip('\r')
        if '\r' in raw_line:
            raw_line = raw_line.rsplit('\r', 1)[-1]
        line = raw_line.rstrip()
        if line.strip():
            lines.append(line)
    # Discard overwritten partial-line data (\r without \n).
    if '\r' in pending:
        pending = pending.rsplit('\r', 1)[-1]
    return lines, pending


class _Subscription:
    def __init__(self, session_id):
        self.session_id = session_id
        self.cancelled = threading.Event()
        self.client = None

    def cancel(self):
        self.cancelled.set()
        # Closing the client unblocks a pending read on the log stream.
        client = self.client
        if client is not None:
            try:
                client.close()
            except Exception as exc:
                log.debug('Closing Docker client for %s failed: %s', self.session_id, exc)


class DockerSupervisor(Supervisor):
    def __init__(self, cfg):
        self.cfg = cfg

    def container_name(self, session_id):
        return self.cfg.CONTAINER_NAME_TEMPLATE.format(session_id=session_id)

    def _container(self, client, session_id):
        return client.containers.get(self.container_name(session_id))

    def fetch_recent_lines(self, session_id, limit):
        import docker
        client = None
        try:
            client = docker.from_env()
            container = self._container(client, session_id)
            raw = container.logs(tail=limit, stdout=True, stderr=True)
        except _docker_errors() as exc:
            raise SupervisorError(f'Cannot fetch logs for {session_id}: {exc}') from exc
        finally:
            if client:
                client.close()
        text = raw.decode('utf-8', errors='replace')
        lines, _ = split_chunk('', text if text.endswith('\n') else text + '\n')
        return lines[-limit:] if limit else lines

    def subscribe_to_lines(self, session_id, callback):
        sub = _Subscription(session_id)
        threading.Thread(
            target=self._stream, args=(sub, callback),
            daemon=True, name=f'console-stream-{session_id}',
        ).start()
        return sub.cancel

    def _stream(self, sub, callback):
        """Follow the container log, reconnecting until cancelled or stopped."""
        import docker
        session_id = sub.session_id
        attempts = 0
        while not sub.cancelled.is_set():
            client = None
            try:
                client = docker.from_env()
                sub.client = client
                # cancel() may have run before the client was published.
                if sub.cancelled.is_set():
                    return
                container = self._container(client, session_id)
                if DOCKER_STATUS.get(container.status) not in (
                    SessionStatus.RUNNING, SessionStatus.STARTING,
                ):
                    log.info('Container for %s is %s; log stream ends',
                             session_id, container.status)
                    return
                pending = ''
                for chunk in container.logs(
                    stream=True, follow=True, tail=self.cfg.STREAM_TAIL,
                    stdout=True, stderr=True,
                ):
                    if sub.cancelled.is_set():
                        return
                    attempts = 0
                    lines, pending = split_chunk(
                        pending, chunk.decode('utf-8', errors='replace')
                    )
                    for line in lines:
                        callback(LineEvent(session_id, line))
            except Exception as exc:
                if sub.cancelled.is_set():
                    return
                log.warning('Log stream for %s failed: %s', session_id, exc)
            finally:
                sub.client = None
                if client:
                    try:
                        client.close()
                    except Exception as exc:
                        log.debug('Closing Docker client failed: %s', exc)
            attempts += 1
            if attempts > self.cfg.STREAM_MAX_RECONNECTS:
                log.warning('Log stream for %s gave up after %d attempts',
                            session_id, attempts)
                return
            if sub.cancelled.wait(self.cfg.STREAM_RECONNECT_DELAY):
                return

    def submit_command(self, session_id, text):
        """Write *text* to the container's stdin, falling back to exec."""
        import docker
        client = None
        try:
            client = docker.from_env()
            container = self._container(client, session_id)
            try:
                self._send_stdin(container, text)
                return
            except (OSError,) + _docker_errors() as exc:
                log.info('stdin attach for %s failed (%s); trying exec', session_id, exc)
            fallback = self.cfg.COMMAND_FALLBACK_EXEC
            if not fallback:
                raise SupervisorError(f'Cannot write to stdin of {session_id}')
            result = container.exec_run([fallback, text], stdout=True, stderr=True)
            if result.exit_code:
                output = (result.output or b'').decode('utf-8', errors='replace').strip()
                raise SupervisorError(f'{fallback} exited with {result.exit_code}: {output}')
        except _docker_errors() as exc:
            raise SupervisorError(f'Cannot send command to {session_id}: {exc}') from exc
        finally:
            if client:
                client.close()

    @staticmethod
    def _send_stdin(container, text):
        sock = container.attach_socket(params={'stdin': 1, 'stream': 1})
        try:
            raw = getattr(sock, '_sock', sock)
            raw.sendall((text + '\n').encode('utf-8'))
        finally:
            sock.close()

    def get_status(self, session_id):
        import docker
        client = None
        try:
            client = docker.from_env()
            try:
                container = self._container(client, session_id)
            except docker.errors.NotFound:
                return SessionStatus.STOPPED
            state = container.attrs.get('State', {})
            if state.get('OOMKilled') or state.get('Error'):
                return SessionStatus.ERROR
            return DOCKER_STATUS.get(container.status, SessionStatus.STOPPED)
        except _docker_errors() as exc:
            raise SupervisorError(f'Cannot read status of {session_id}: {exc}') from exc
        finally:
            if client:
                client.close()

    def container_action(self, action, session_id):
        """Start or stop the session's container via Docker SDK."""
        import docker
        client = None
        try:
            client = docker.from_env()
            container = self._container(client, session_id)
            if action == 'stop':
                container.stop(timeout=30)
            elif action == 'start':
                container.start()
            else:
                raise ValueError(f'Unknown container action: {action}')
        except _docker_errors() as exc:
            raise SupervisorError(f'Cannot {action} {session_id}: {exc}') from exc
        finally:
            if client:
                client.close()

    def start_server(self, session_id):
        self.container_action('start', session_id)

    def stop_server(self, session_id):
        self.container_action('stop', session_id)
