import re

# Select-Graphic-Rendition markers: ESC [ <codes> m.  Anything else that
# starts with ESC is left to the renderer as literal text.
SGR_MARKER = '\x1b['
SGR_PATTERN = re.compile(r'\x1b\[([0-9;]*)m')
# C0 control characters (includes ESC, tab, CR, LF).
CONTROL_CHARS = re.compile(r'[\x00-\x1f]')

# Prefix of the locally synthesized echo of a submitted command.
COMMAND_ECHO_PREFIX = '> '
