"""Interpreter for ANSI SGR escape sequences in console lines."""
from dataclasses import asdict, dataclass
from enum import Enum
from typing import List, Optional

from ..extensions import SGR_MARKER, SGR_PATTERN


class Color(str, Enum):
    BLACK          = 'black'
    RED            = 'red'
    GREEN          = 'green'
    YELLOW         = 'yellow'
    BLUE           = 'blue'
    MAGENTA        = 'magenta'
    CYAN           = 'cyan'
    WHITE          = 'white'
    BRIGHT_BLACK   = 'bright_black'
    BRIGHT_RED     = 'bright_red'
    BRIGHT_GREEN   = 'bright_green'
    BRIGHT_YELLOW  = 'bright_yellow'
    BRIGHT_BLUE    = 'bright_blue'
    BRIGHT_MAGENTA = 'bright_magenta'
    BRIGHT_CYAN    = 'bright_cyan'
    BRIGHT_WHITE   = 'bright_white'


_STANDARD = list(Color)[:8]
_BRIGHT   = list(Color)[8:]

FOREGROUND_CODES = {
    **{30 + i: c for i, c in enumerate(_STANDARD)},
    **{90 + i: c for i, c in enumerate(_BRIGHT)},
}
BACKGROUND_CODES = {40 + i: c for i, c in enumerate(_STANDARD)}


@dataclass(frozen=True)
class StyledSegment:
    text: str
    foreground: Optional[Color] = None
    background: Optional[Color] = None
    bold: bool = False
    dim: bool = False
    italic: bool = False
    underline: bool = False

    def to_dict(self):
        data = asdict(self)
        data['foreground'] = self.foreground.value if self.foreground else None
        data['background'] = self.background.value if self.background else None
        return data


def has_escape(line):
    """Cheap presence test used to pick the render path for a line."""
    return SGR_MARKER in line


def strip_sgr(line):
    return SGR_PATTERN.sub('', line)


def _parse_codes(params):
    # "" and empty list items both mean 0, as terminals treat them.
    if not params:
        return [0]
    return [int(p) if p else 0 for p in params.split(';')]


def _apply(style, code):
    if code == 0:
        style.clear()
    elif code == 1:
        style['bold'] = True
    elif code == 2:
        style['dim'] = True
    elif code == 3:
        style['italic'] = True
    elif code == 4:
        style['underline'] = True
    elif code == 22:
        style.pop('bold', None)
        style.pop('dim', None)
    elif code == 23:
        style.pop('italic', None)
    elif code == 24:
        style.pop('underline', None)
    elif code in FOREGROUND_CODES:
        style['foreground'] = FOREGROUND_CODES[code]
    elif code in BACKGROUND_CODES:
        style['background'] = BACKGROUND_CODES[code]


def parse_sgr(line: str) -> List[StyledSegment]:
    """Split *line* into styled runs with the SGR markers removed.

    Style accumulates across markers inside the line and always starts from
    the default, so nothing leaks between lines.  Unknown codes are ignored
    and an unterminated marker stays in the text as-is.
    """
    segments = []
    style = {}
    pos = 0
    for match in SGR_PATTERN.finditer(line):
        if match.start() > pos:
            segments.append(StyledSegment(line[pos:match.start()], **style))
        for code in _parse_codes(match.group(1)):
            _apply(style, code)
        pos = match.end()
    if pos < len(line):
        segments.append(StyledSegment(line[pos:], **style))
    return segments
