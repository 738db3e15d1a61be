import re
from enum import Enum

from ..extensions import COMMAND_ECHO_PREFIX


class Severity(str, Enum):
    NONE    = 'none'
    DEBUG   = 'debug'
    WARNING = 'warning'
    ERROR   = 'error'


class LineHint(str, Enum):
    """Line-level background/border hint, independent of text styling."""
    ERROR   = 'error'
    WARNING = 'warning'
    COMMAND = 'command'


# Checked in this order; first hit wins.
_RULES = (
    (Severity.ERROR,   re.compile(r'\berror\b|\[error\]|exception', re.IGNORECASE)),
    (Severity.WARNING, re.compile(r'\bwarn(?:ing)?\b|\[warn(?:ing)?\]', re.IGNORECASE)),
    (Severity.DEBUG,   re.compile(r'\bdebug\b|\[debug\]', re.IGNORECASE)),
)

_HINTS = {
    Severity.ERROR:   LineHint.ERROR,
    Severity.WARNING: LineHint.WARNING,
}


def classify(line):
    """Return (Severity, LineHint or None) for a line without escape codes."""
    severity = Severity.NONE
    for label, pattern in _RULES:
        if pattern.search(line):
            severity = label
            break
    hint = _HINTS.get(severity)
    if is_command_echo(line):
        hint = LineHint.COMMAND
    return severity, hint


def is_command_echo(line):
    return line.startswith(COMMAND_ECHO_PREFIX)
