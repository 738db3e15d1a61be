"""Append-only log buffer for one console session.

Each line is rendered exactly once, when it is appended: lines carrying SGR
markers become a StyledLine, everything else goes through the severity
classifier and becomes a ClassifiedLine.  Renders are cached next to the
line so polling clients never pay for re-parsing.
"""
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from .ansi import StyledSegment, has_escape, parse_sgr
from .severity import LineHint, Severity, classify, is_command_echo


@dataclass(frozen=True)
class LogLine:
    index: int
    raw: str


@dataclass(frozen=True)
class StyledLine:
    segments: Tuple[StyledSegment, ...]
    hint: Optional[LineHint] = None

    kind = 'styled'

    def to_dict(self):
        return {
            'kind': self.kind,
            'hint': self.hint.value if self.hint else None,
            'segments': [s.to_dict() for s in self.segments],
        }


@dataclass(frozen=True)
class ClassifiedLine:
    text: str
    severity: Severity = Severity.NONE
    hint: Optional[LineHint] = None

    kind = 'classified'

    def to_dict(self):
        return {
            'kind': self.kind,
            'hint': self.hint.value if self.hint else None,
            'severity': self.severity.value,
            'text': self.text,
        }


RenderedLine = Union[StyledLine, ClassifiedLine]


def render_line(raw: str) -> RenderedLine:
    if has_escape(raw):
        hint = LineHint.COMMAND if is_command_echo(raw) else None
        return StyledLine(tuple(parse_sgr(raw)), hint)
    severity, hint = classify(raw)
    return ClassifiedLine(raw, severity, hint)


class LogBuffer:
    def __init__(self):
        self._lines: List[LogLine] = []
        self._rendered: List[RenderedLine] = []

    def __len__(self):
        return len(self._lines)

    def append(self, raw: str) -> LogLine:
        line = LogLine(len(self._lines), raw)
        self._lines.append(line)
        self._rendered.append(render_line(raw))
        return line

    def seed(self, raws):
        """Replace the contents with a historical tail."""
        self.clear()
        for raw in raws:
            self.append(raw)

    def clear(self):
        self._lines = []
        self._rendered = []

    def snapshot(self) -> List[LogLine]:
        return list(self._lines)

    def tail(self, count: int) -> List[str]:
        if count <= 0:
            return []
        return [line.raw for line in self._lines[-count:]]

    def rendered(self, since: int = 0) -> List[Tuple[LogLine, RenderedLine]]:
        since = max(0, min(since, len(self._lines)))
        return list(zip(self._lines[since:], self._rendered[since:]))
