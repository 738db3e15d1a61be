from enum import Enum


class SessionStatus(str, Enum):
    STARTING   = 'starting'
    INSTALLING = 'installing'
    RUNNING    = 'running'
    STOPPING   = 'stopping'
    STOPPED    = 'stopped'
    ERROR      = 'error'

    @property
    def is_terminal(self):
        return self in (SessionStatus.STOPPED, SessionStatus.ERROR)


# Docker container state -> lifecycle status.  The supervisor reports ERROR
# instead when the container state carries OOMKilled or an Error message.
DOCKER_STATUS = {
    'created':    SessionStatus.STARTING,
    'restarting': SessionStatus.STARTING,
    'running':    SessionStatus.RUNNING,
    'paused':     SessionStatus.STOPPING,
    'removing':   SessionStatus.STOPPING,
    'exited':     SessionStatus.STOPPED,
    'dead':       SessionStatus.ERROR,
}


def parse_status(value):
    """Return a SessionStatus for *value*, raising ValueError if unknown."""
    if isinstance(value, SessionStatus):
        return value
    return SessionStatus(str(value).strip().lower())
