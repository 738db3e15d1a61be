"""Detection of device-code OAuth prompts embedded in console output.

Some game servers (Hytale) print a verification URL with a ``user_code``
query parameter the first time they need the owner to authenticate.  The
watcher spots that URL in the tail of the buffer and latches it once, so the
UI can raise a single prompt.  A false positive interrupts the user with a
modal, so anything short of a full match is ignored.
"""
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from ..extensions import CONTROL_CHARS, SGR_PATTERN

log = logging.getLogger(__name__)

DEFAULT_PATTERN = (
    r'https://oauth\.accounts\.hytale\.com/oauth2/device/verify'
    r'\?user_code=([A-Za-z0-9]+)'
)
DEFAULT_WINDOW = 30


@dataclass(frozen=True)
class DeviceCodeDetection:
    url: str
    code: str

    def to_dict(self):
        return {'url': self.url, 'code': self.code}


class WatcherState(Enum):
    WATCHING  = 'watching'
    DETECTED  = 'detected'
    DISMISSED = 'dismissed'


def clean_line(line):
    return CONTROL_CHARS.sub('', SGR_PATTERN.sub('', line))


def scan_for_device_code(lines, window=DEFAULT_WINDOW, pattern=DEFAULT_PATTERN):
    """Return the newest detection within the last *window* lines, or None."""
    if isinstance(pattern, str):
        pattern = re.compile(pattern)
    recent = list(lines)[-window:] if window > 0 else []
    for line in reversed(recent):
        match = pattern.search(clean_line(line))
        if match:
            return DeviceCodeDetection(url=match.group(0), code=match.group(1))
    return None


class DeviceCodeWatcher:
    def __init__(self, window=DEFAULT_WINDOW, pattern=DEFAULT_PATTERN):
        self.window = window
        self.pattern = re.compile(pattern)
        self.state = WatcherState.WATCHING
        self.detection: Optional[DeviceCodeDetection] = None

    @property
    def dismissed(self):
        return self.state is WatcherState.DISMISSED

    @property
    def visible(self):
        """The detection the UI should show, if any."""
        return self.detection if self.state is WatcherState.DETECTED else None

    def observe(self, lines: Iterable[str], status):
        """Scan *lines* unless the session is terminal or a result is latched."""
        if status is not None and status.is_terminal:
            return None
        if self.state is not WatcherState.WATCHING:
            return None
        detection = scan_for_device_code(lines, self.window, self.pattern)
        if detection:
            log.info('Device code detected: %s', detection.code)
            self.detection = detection
            self.state = WatcherState.DETECTED
        return detection

    def dismiss(self):
        self.state = WatcherState.DISMISSED

    def forget(self):
        """Drop the current detection but keep a dismissal in force."""
        self.detection = None
        if self.state is WatcherState.DETECTED:
            self.state = WatcherState.WATCHING

    def reset(self):
        self.detection = None
        self.state = WatcherState.WATCHING

    def to_dict(self):
        visible = self.visible
        return {
            'detection': visible.to_dict() if visible else None,
            'dismissed': self.dismissed,
        }
