"""Pinned/unpinned scroll state for a live console view.

While PINNED, every append jumps the view to the newest line (an instant
jump, so bursts of lines never leave it lagging).  A manual scroll away from
the bottom, with no new content since the last append, switches to
UNPINNED; from then on appends leave the reader where they are.  Scrolling
back within SCROLL_TOLERANCE of the bottom, or calling repin(), returns to
PINNED.
"""
from enum import Enum


class ScrollState(Enum):
    PINNED = 'pinned'
    UNPINNED = 'unpinned'


class Viewport:
    def __init__(self, tolerance=50):
        self.tolerance = tolerance
        self.state = ScrollState.PINNED
        # Index of the line the view is positioned on; None when empty.
        self.anchor = None
        self._seen_length = 0

    @property
    def pinned(self):
        return self.state is ScrollState.PINNED

    def on_append(self, length):
        """Record growth of the buffer to *length*.  Returns True on a jump."""
        self._seen_length = length
        if self.state is ScrollState.PINNED and length:
            self.anchor = length - 1
            return True
        return False

    def on_scroll(self, scroll_top, scroll_height, client_height,
                  observed_length=None, anchor=None):
        """Apply a manual scroll event and return the resulting state.

        observed_length is the buffer length the view had rendered when the
        scroll happened; a mismatch means content grew underneath the reader
        and the event must not unpin.
        """
        if observed_length is None:
            observed_length = self._seen_length
        at_bottom = scroll_height - scroll_top - client_height < self.tolerance
        if at_bottom:
            self.state = ScrollState.PINNED
            if self._seen_length:
                self.anchor = self._seen_length - 1
        elif observed_length == self._seen_length:
            self.state = ScrollState.UNPINNED
            if anchor is not None:
                self.anchor = anchor
        return self.state

    def repin(self, length):
        self.state = ScrollState.PINNED
        self._seen_length = length
        self.anchor = length - 1 if length else None

    def reset(self):
        self.state = ScrollState.PINNED
        self.anchor = None
        self._seen_length = 0

    def to_dict(self):
        return {'pinned': self.pinned, 'anchor': self.anchor}
