class CommandHistory:
    """Deduplicated command history, newest last, browsed with a cursor.

    cursor counts back from the newest entry; -1 means not browsing.
    """

    def __init__(self, limit=100):
        self.limit = limit
        self.entries = []
        self.cursor = -1

    def __len__(self):
        return len(self.entries)

    def submit(self, text):
        """Record *text* and return it for dispatch, or '' if blank."""
        cmd = (text or '').strip()
        if not cmd:
            return ''
        self.entries = [c for c in self.entries if c != cmd]
        self.entries.append(cmd)
        if self.limit and len(self.entries) > self.limit:
            del self.entries[:-self.limit]
        self.cursor = -1
        return cmd

    def recall_previous(self):
        if not self.entries:
            return ''
        if self.cursor < len(self.entries) - 1:
            self.cursor += 1
        return self.entries[-1 - self.cursor]

    def recall_next(self):
        if self.cursor > 0:
            self.cursor -= 1
            return self.entries[-1 - self.cursor]
        # Past the newest entry the input is cleared, not repeated.
        self.cursor = -1
        return ''

    def clear(self):
        self.entries = []
        self.cursor = -1
